from __future__ import annotations

import dataclasses
import enum
import logging
import queue
import subprocess
import threading
import time
import typing
from collections.abc import Callable, Iterator

from .util_baseclasses import LaunchFailureException
from .util_constants import PROBE_POLL_INTERVAL_S, ProcessOutcome

logger = logging.getLogger(__file__)


class Stream(enum.StrEnum):
    STDOUT = "stdout"
    STDERR = "stderr"


_EOF = None

_JOIN_READER_TIMEOUT_S = 1.0

_POPEN_TEXT_KWARGS: dict[str, typing.Any] = {
    "text": True,
    "encoding": "utf-8",
    "errors": "replace",
    "bufsize": 1,
}
"""
Universal newlines: esptool separates progress updates with '\\r' on a tty,
these become lines of their own.
"""


def _popen(args: list[str], stderr: int | None) -> subprocess.Popen[str]:
    try:
        return subprocess.Popen(  # pylint: disable=consider-using-with
            args=args,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=stderr,
            **_POPEN_TEXT_KWARGS,
        )
    except OSError as e:
        # FileNotFoundError, PermissionError, ...
        raise LaunchFailureException(f"Failed to start '{args[0]}': {e}") from e


def _drain(
    stream: typing.IO[str],
    name: Stream,
    lines: queue.Queue[tuple[Stream, str] | None],
) -> None:
    try:
        for line in stream:
            lines.put((name, line.rstrip("\r\n")))
    finally:
        lines.put(_EOF)


def iter_lines_merged(proc: subprocess.Popen[str]) -> Iterator[tuple[Stream, str]]:
    """
    Drain stdout and stderr in two threads and yield the lines in arrival order.

    The order within a stream is preserved.
    The interleaving between the streams is best effort.
    """
    assert proc.stdout is not None
    assert proc.stderr is not None

    lines: queue.Queue[tuple[Stream, str] | None] = queue.Queue()
    threads = [
        threading.Thread(
            target=_drain,
            args=(stream, name, lines),
            name=f"drain {name}",
            daemon=True,
        )
        for stream, name in (
            (proc.stdout, Stream.STDOUT),
            (proc.stderr, Stream.STDERR),
        )
    ]
    for thread in threads:
        thread.start()

    streams_open = len(threads)
    while streams_open > 0:
        item = lines.get()
        if item is _EOF:
            streams_open -= 1
            continue
        yield item

    for thread in threads:
        thread.join()


def subprocess_stream(
    args: list[str],
    on_line: Callable[[Stream, str], None],
) -> int:
    """
    Run 'args' and call 'on_line' for every line of stdout and stderr.
    Blocks until the process exited.

    Return the returncode.
    """
    assert isinstance(args, list)

    args_text = " ".join(args)
    logger.info(f"EXEC {args_text}")
    begin_s = time.monotonic()

    with _popen(args, stderr=subprocess.PIPE) as proc:
        for name, line in iter_lines_merged(proc):
            on_line(name, line)
        returncode = proc.wait()

    duration_s = time.monotonic() - begin_s
    if returncode != 0:
        logger.warning(
            f"EXEC failed with returncode={returncode} after {duration_s:0.3f}s: {args_text}"
        )
    else:
        logger.debug(f"EXEC returncode={returncode} duration={duration_s:0.3f}s")
    return returncode


@dataclasses.dataclass(frozen=True)
class ProbeResult:
    outcome: ProcessOutcome
    stdout: str = ""
    """
    Empty if the process timed out
    """
    returncode: int | None = None


def _read_all(stream: typing.IO[str], chunks: list[str]) -> None:
    try:
        chunks.append(stream.read())
    finally:
        stream.close()


def _kill_best_effort(proc: subprocess.Popen[str]) -> None:
    """
    A probe which may not be killed is left behind: The caller continues anyway.
    """
    try:
        proc.kill()
        proc.wait(timeout=1.0)
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug(f"Ignoring failure to kill pid={proc.pid}: {e!r}")


def subprocess_probe(
    args: list[str],
    timeout_s: float,
    poll_interval_s: float = PROBE_POLL_INTERVAL_S,
) -> ProbeResult:
    """
    Run 'args' and poll until it exits or 'timeout_s' elapses.

    On timeout, the process is killed and no output is returned.
    Otherwise the full stdout is returned, whatever the returncode.
    stderr is not captured.
    """
    assert isinstance(args, list)
    assert isinstance(timeout_s, float | int)
    assert timeout_s >= 0

    args_text = " ".join(args)
    logger.info(f"EXEC {args_text}")
    logger.info(f"EXEC     timeout_s={timeout_s:0.3f}")

    begin_s = time.monotonic()
    proc = _popen(args, stderr=None)
    assert proc.stdout is not None

    # Read stdout while polling: a full pipe would otherwise stall the probe
    chunks: list[str] = []
    reader = threading.Thread(
        target=_read_all,
        args=(proc.stdout, chunks),
        name="probe stdout",
        daemon=True,
    )
    reader.start()

    while proc.poll() is None:
        if time.monotonic() - begin_s >= timeout_s:
            logger.info(f"EXEC timed out after {timeout_s:0.3f}s: {args_text}")
            _kill_best_effort(proc)
            # stdout reaches EOF once the process is gone, unless a child inherited it
            reader.join(timeout=_JOIN_READER_TIMEOUT_S)
            if reader.is_alive():
                logger.debug(f"Leaving stdout reader of pid={proc.pid} behind")
            return ProbeResult(outcome=ProcessOutcome.TIMED_OUT)
        time.sleep(poll_interval_s)

    reader.join()
    stdout = "".join(chunks)
    outcome = (
        ProcessOutcome.SUCCESS if proc.returncode == 0 else ProcessOutcome.NON_ZERO_EXIT
    )
    logger.debug(
        f"EXEC returncode={proc.returncode} duration={time.monotonic() - begin_s:0.3f}s"
    )
    return ProbeResult(outcome=outcome, stdout=stdout, returncode=proc.returncode)
