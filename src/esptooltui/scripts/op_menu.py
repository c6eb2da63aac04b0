from __future__ import annotations

import logging
import pathlib

import typer
from serial.tools import list_ports

from ..lib_flash import do_flash, do_full_erase
from ..lib_session import FlashSession
from ..util_config import SessionConfig
from ..util_constants import Chip
from ..util_display import Display

logger = logging.getLogger(__name__)

MENU_SETTINGS = "1"
MENU_FLASH = "2"
MENU_FULL_ERASE = "3"
MENU_EXIT = "4"

_MENU = (
    (MENU_SETTINGS, "Settings"),
    (MENU_FLASH, "Flash MicroPython"),
    (MENU_FULL_ERASE, "Full Erase"),
    (MENU_EXIT, "Exit"),
)


def list_serial_ports() -> list[str]:
    return sorted(port.device for port in list_ports.comports())


def wait_for_boot_mode(display: Display, chip: Chip, pause: bool = True) -> None:
    display.warning("\n=== ENTER FLASH MODE ===\n")
    for line in chip.boot_help:
        display.warning(line)
    if pause:
        typer.pause(info="\nPress any key when ready...")


def _prompt(text: str) -> str:
    return typer.prompt(text, default="", show_default=False)


def do_settings(display: Display, config: SessionConfig) -> None:
    display.info("\nAvailable Ports:")
    for port in list_serial_ports():
        display.info(f" - {port}")

    port = _prompt("\nSelect Port")
    chip = _prompt(f"Chip ({'/'.join(c.value for c in Chip)})")
    baud = _prompt(f"Baud (current {config.baud})")

    for warning in config.apply_settings(port=port, chip=chip, baud=baud):
        display.warning(warning)
    logger.debug(f"Settings: {config}")


class Menu:
    def __init__(
        self,
        filename_config: pathlib.Path,
        directory_logs: pathlib.Path,
        tool: list[str],
        display: Display | None = None,
    ) -> None:
        self.filename_config = filename_config
        self.config = SessionConfig.load(filename_config)
        self.directory_logs = directory_logs
        self.tool = tool
        self.display = display or Display()

    def session(self) -> FlashSession:
        return FlashSession(
            config=self.config,
            tool=self.tool,
            display=self.display,
            directory_logs=self.directory_logs,
        )

    def draw_header(self) -> None:
        self.display.header(
            [
                f"Port : {self.config.port}",
                f"Chip : {self.config.chip}",
                f"Baud : {self.config.baud}",
            ]
        )
        for key, label in _MENU:
            self.display.info(f"{key}) {label}")

    def run(self) -> None:
        """
        Loop until the user selects 'Exit'.
        """
        while True:
            self.draw_header()
            choice = _prompt("\nSelect").strip()

            if choice == MENU_SETTINGS:
                do_settings(self.display, self.config)
                self.config.save(self.filename_config)
            elif choice == MENU_FLASH:
                wait_for_boot_mode(self.display, self.config.chip)
                do_flash(self.session())
                typer.pause()
            elif choice == MENU_FULL_ERASE:
                wait_for_boot_mode(self.display, self.config.chip)
                do_full_erase(self.session())
                typer.pause()
            elif choice == MENU_EXIT:
                break

        self.config.save(self.filename_config)
