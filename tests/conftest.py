from __future__ import annotations

import io
import pathlib
import shlex
import sys

import pytest
from rich.console import Console

from esptooltui.lib_session import FlashSession
from esptooltui.util_config import SessionConfig
from esptooltui.util_constants import (
    ENV_ESPTOOLTUI_ESPTOOL,
    ENV_ESPTOOLTUI_FIRMWARE,
    Chip,
)
from esptooltui.util_display import Display

DIRECTORY_OF_THIS_FILE = pathlib.Path(__file__).parent
FILENAME_FAKE_ESPTOOL = DIRECTORY_OF_THIS_FILE / "fake_esptool.py"
TOOL_FAKE_ESPTOOL = [sys.executable, str(FILENAME_FAKE_ESPTOOL)]


class Spy:
    """
    Reads back the invocations recorded by fake_esptool.py
    """

    def __init__(self, filename: pathlib.Path) -> None:
        self.filename = filename

    @property
    def subcommands(self) -> list[str]:
        if not self.filename.is_file():
            return []
        return [line.split()[0] for line in self.filename.read_text().splitlines()]

    @property
    def lines(self) -> list[str]:
        if not self.filename.is_file():
            return []
        return self.filename.read_text().splitlines()


@pytest.fixture
def spy(tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch) -> Spy:
    filename = tmp_path / "invocations.txt"
    monkeypatch.setenv("FAKE_ESPTOOL_RECORD", str(filename))
    return Spy(filename)


@pytest.fixture
def directory_firmware(tmp_path: pathlib.Path) -> pathlib.Path:
    directory = tmp_path / "firmware"
    directory.mkdir()
    for chip in Chip:
        (directory / chip.filename_firmware).write_bytes(b"\xe9" + bytes(15))
    return directory


@pytest.fixture
def env_cli(
    monkeypatch: pytest.MonkeyPatch,
    directory_firmware: pathlib.Path,
    spy: Spy,
) -> Spy:
    """
    Make the cli use fake_esptool.py and the test firmware.
    """
    monkeypatch.setenv(ENV_ESPTOOLTUI_ESPTOOL, shlex.join(TOOL_FAKE_ESPTOOL))
    monkeypatch.setenv(ENV_ESPTOOLTUI_FIRMWARE, str(directory_firmware))
    return spy


def make_display() -> tuple[Display, io.StringIO]:
    buffer = io.StringIO()
    console = Console(file=buffer, force_terminal=False, width=200)
    return Display(console=console), buffer


def make_session(
    tmp_path: pathlib.Path,
    config: SessionConfig | None = None,
    tool: list[str] | None = None,
    directory_firmware: pathlib.Path | None = None,
    probe_timeout_ms: int = 10000,
) -> tuple[FlashSession, io.StringIO]:
    display, buffer = make_display()
    session = FlashSession(
        config=config or SessionConfig(),
        tool=TOOL_FAKE_ESPTOOL if tool is None else tool,
        display=display,
        directory_logs=tmp_path / "logs",
        directory_firmware=directory_firmware,
        probe_timeout_ms=probe_timeout_ms,
    )
    return session, buffer


def read_logfile(session: FlashSession) -> list[str]:
    logfiles = sorted(session.directory_logs.glob("*.log"))
    assert len(logfiles) == 1, logfiles
    return logfiles[0].read_text(encoding="utf-8").splitlines()
