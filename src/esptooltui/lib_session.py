from __future__ import annotations

import dataclasses
import datetime
import itertools
import logging
import pathlib
import typing

from .util_config import SessionConfig
from .util_constants import DIRECTORY_LOGS, PROBE_TIMEOUT_MS
from .util_display import Display
from .util_progress import ProgressState
from .util_subprocess import ProbeResult, Stream, subprocess_probe, subprocess_stream

logger = logging.getLogger(__name__)

FORMAT_LOGFILE_STEM = "%Y-%m-%d_%H-%M-%S"
FORMAT_LOGFILE = f"{FORMAT_LOGFILE_STEM}.log"


class LogSink:
    """
    Logfile of one operation, created exclusively: an existing file is never reused.

    Every line of the tool output is appended verbatim.
    """

    def __init__(self, filename: pathlib.Path) -> None:
        assert isinstance(filename, pathlib.Path)
        self.filename = filename
        self.filename.parent.mkdir(parents=True, exist_ok=True)
        # Raises FileExistsError
        self._f: typing.TextIO | None = self.filename.open(
            "x", encoding="utf-8", buffering=1
        )

    @staticmethod
    def create(
        directory: pathlib.Path,
        now: datetime.datetime | None = None,
    ) -> LogSink:
        """
        Example: logs/2026-10-19_13-03-58.log
        A second operation within the same second: logs/2026-10-19_13-03-58_1.log
        """
        if now is None:
            now = datetime.datetime.now()
        filename = directory / now.strftime(FORMAT_LOGFILE)
        for i in itertools.count(1):
            try:
                return LogSink(filename)
            except FileExistsError:
                filename = directory / f"{now.strftime(FORMAT_LOGFILE_STEM)}_{i}.log"
        raise AssertionError("unreachable")

    def append(self, line: str) -> None:
        assert self._f is not None, f"{self.filename} is already closed"
        self._f.write(f"{line}\n")

    def close(self) -> None:
        if self._f is None:
            return
        self._f.close()
        self._f = None

    def __enter__(self) -> LogSink:
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()


@dataclasses.dataclass
class FlashSession:
    """
    Everything an operation needs.

    'config' is read only while an operation is running.
    """

    config: SessionConfig
    tool: list[str]
    """
    Example: ['/usr/bin/python3', '-m', 'esptool']
    """
    display: Display = dataclasses.field(default_factory=Display)
    directory_logs: pathlib.Path = DIRECTORY_LOGS
    directory_firmware: pathlib.Path | None = None
    """
    None: See util_constants.directory_firmware()
    """
    probe_timeout_ms: int = PROBE_TIMEOUT_MS
    progress: ProgressState = dataclasses.field(default_factory=ProgressState)

    def __post_init__(self) -> None:
        assert isinstance(self.config, SessionConfig)
        assert isinstance(self.tool, list)
        assert len(self.tool) > 0
        assert isinstance(self.directory_logs, pathlib.Path)

    def open_log(self) -> LogSink:
        return LogSink.create(self.directory_logs)

    def run_step(self, arguments: list[str], log_sink: LogSink) -> bool:
        """
        Run one step (erase, write) of an operation.

        Every line of stdout and stderr
          * may update the progress bar
          * is appended to 'log_sink'
          * is echoed to the display

        Return True if the returncode is 0.
        Raises LaunchFailureException.
        """
        assert isinstance(arguments, list)
        assert isinstance(log_sink, LogSink)

        def on_line(stream: Stream, line: str) -> None:
            if self.progress.update(line):
                assert self.progress.percent is not None
                self.display.draw_bar(self.progress.percent)
            log_sink.append(line)
            self.display.echo(line)

        try:
            returncode = subprocess_stream(
                args=[*self.tool, *arguments],
                on_line=on_line,
            )
        finally:
            self.display.finish_bar()
        return returncode == 0

    def probe_result(self, arguments: list[str], timeout_ms: int) -> ProbeResult:
        assert isinstance(arguments, list)
        assert isinstance(timeout_ms, int)
        return subprocess_probe(
            args=[*self.tool, *arguments],
            timeout_s=timeout_ms / 1000.0,
        )

    def probe(self, arguments: list[str], timeout_ms: int) -> str:
        """
        Return the stdout of the tool.
        Return "" if it did not exit within 'timeout_ms'.
        Raises LaunchFailureException.
        """
        return self.probe_result(arguments=arguments, timeout_ms=timeout_ms).stdout
