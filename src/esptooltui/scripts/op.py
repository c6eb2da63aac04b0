from __future__ import annotations

import logging
import pathlib
from typing import Optional

import typer
import typing_extensions

from ..lib_flash import do_flash, do_full_erase
from ..lib_session import FlashSession
from ..util_baseclasses import EspToolTuiAppExitException
from ..util_config import SessionConfig
from ..util_constants import DIRECTORY_LOGS, FILENAME_CONFIG, Chip, ExitCode
from ..util_display import Display
from ..util_esptool import find_esptool
from ..util_logging import init_logging
from .op_menu import Menu, list_serial_ports, wait_for_boot_mode

# 'typer' does not work correctly with typing.Annotated
# Required is: typing_extensions.Annotated
TyperAnnotated = typing_extensions.Annotated

# mypy: disable-error-code="valid-type"

app = typer.Typer(help="Flash MicroPython onto ESP32/ESP8266 using esptool.")

_ConfigAnnotation = TyperAnnotated[
    pathlib.Path,
    typer.Option(help="Settings file: port, chip and baud."),
]
_LogsAnnotation = TyperAnnotated[
    pathlib.Path,
    typer.Option(help="Directory for the logfile of each operation."),
]
_DebugAnnotation = TyperAnnotated[
    bool,
    typer.Option(help="Log debug messages to stderr."),
]
_PortAnnotation = TyperAnnotated[
    Optional[str],  # noqa: UP045
    typer.Option(help="Serial port, overrides the settings file."),
]
_ChipAnnotation = TyperAnnotated[
    Optional[Chip],  # noqa: UP045
    typer.Option(help="Chip, overrides the settings file."),
]
_BaudAnnotation = TyperAnnotated[
    Optional[int],  # noqa: UP045
    typer.Option(min=1, help="Baud rate, overrides the settings file."),
]
_YesAnnotation = TyperAnnotated[
    bool,
    typer.Option("--yes", "-y", help="Do not wait for the board to enter flash mode."),
]


def _init(debug: bool) -> list[str]:
    """
    Return the esptool command line prefix or exit.
    """
    init_logging(logging.DEBUG if debug else None)
    try:
        return find_esptool()
    except EspToolTuiAppExitException as e:
        Display().error(str(e))
        raise typer.Exit(code=ExitCode.FAILURE) from e


def _session(
    config: pathlib.Path,
    logs: pathlib.Path,
    debug: bool,
    port: str | None,
    chip: Chip | None,
    baud: int | None,
) -> FlashSession:
    tool = _init(debug)
    session_config = SessionConfig.load(config).with_overrides(
        port=port, chip=chip, baud=baud
    )
    return FlashSession(config=session_config, tool=tool, directory_logs=logs)


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """
    Without a command: Start the interactive menu.
    """
    if ctx.invoked_subcommand is None:
        menu()


@app.command(help="Interactive menu: settings, flash, full erase.")
def menu(
    config: _ConfigAnnotation = FILENAME_CONFIG,
    logs: _LogsAnnotation = DIRECTORY_LOGS,
    debug: _DebugAnnotation = False,
) -> None:
    tool = _init(debug)
    Menu(filename_config=config, directory_logs=logs, tool=tool).run()


@app.command(help="Flash MicroPython: probe, erase and write.")
def flash(
    port: _PortAnnotation = None,
    chip: _ChipAnnotation = None,
    baud: _BaudAnnotation = None,
    yes: _YesAnnotation = False,
    config: _ConfigAnnotation = FILENAME_CONFIG,
    logs: _LogsAnnotation = DIRECTORY_LOGS,
    debug: _DebugAnnotation = False,
) -> None:
    session = _session(
        config=config, logs=logs, debug=debug, port=port, chip=chip, baud=baud
    )
    wait_for_boot_mode(session.display, session.config.chip, pause=not yes)
    outcome = do_flash(session)
    if not outcome.is_success:
        raise typer.Exit(code=ExitCode.FAILURE)


@app.command(help="Erase the entire flash.")
def erase(
    port: _PortAnnotation = None,
    chip: _ChipAnnotation = None,
    baud: _BaudAnnotation = None,
    yes: _YesAnnotation = False,
    config: _ConfigAnnotation = FILENAME_CONFIG,
    logs: _LogsAnnotation = DIRECTORY_LOGS,
    debug: _DebugAnnotation = False,
) -> None:
    session = _session(
        config=config, logs=logs, debug=debug, port=port, chip=chip, baud=baud
    )
    wait_for_boot_mode(session.display, session.config.chip, pause=not yes)
    outcome = do_full_erase(session)
    if not outcome.is_success:
        raise typer.Exit(code=ExitCode.FAILURE)


@app.command(help="List the serial ports.")
def ports() -> None:
    for port in list_serial_ports():
        print(port)


if __name__ == "__main__":
    app()
