"""
Locate esptool and assemble its command lines.

Only the command line is built here, the flashing protocol is esptool's business.
"""

from __future__ import annotations

import importlib.util
import logging
import os
import pathlib
import shlex
import shutil
import sys

from .util_baseclasses import EspToolTuiAppExitException
from .util_config import SessionConfig
from .util_constants import ENV_ESPTOOLTUI_ESPTOOL, FLASH_ADDRESS, Chip

logger = logging.getLogger(__name__)

_ESPTOOL_EXECUTABLES = ("esptool", "esptool.py")


def find_esptool() -> list[str]:
    """
    Return the command line prefix to start esptool.

    Order:
      * ESPTOOLTUI_ESPTOOL
      * the esptool python package: python -m esptool
      * an esptool executable on PATH
    """
    env_esptool = os.environ.get(ENV_ESPTOOLTUI_ESPTOOL, "").strip()
    if env_esptool:
        tool = shlex.split(env_esptool)
        logger.debug(f"{ENV_ESPTOOLTUI_ESPTOOL}: {tool}")
        return tool

    if importlib.util.find_spec("esptool") is not None:
        return [sys.executable, "-m", "esptool"]

    for executable in _ESPTOOL_EXECUTABLES:
        filename = shutil.which(executable)
        if filename is not None:
            return [filename]

    raise EspToolTuiAppExitException(
        f"esptool not found: 'pip install esptool' or set {ENV_ESPTOOLTUI_ESPTOOL}."
    )


def args_probe(config: SessionConfig) -> list[str]:
    """
    The probe must not leave the chip running the application:
    It is followed by erase/write.
    """
    return [
        f"--port={config.port}",
        "--before=default_reset",
        "--after=no_reset",
        f"--chip={config.chip}",
        "flash_id",
    ]


def _args_common(config: SessionConfig) -> list[str]:
    return [
        f"--port={config.port}",
        f"--chip={config.chip}",
        f"--baud={config.baud}",
    ]


def args_erase(config: SessionConfig) -> list[str]:
    return [*_args_common(config), "erase_flash"]


def args_write(config: SessionConfig, filename_firmware: pathlib.Path) -> list[str]:
    assert isinstance(filename_firmware, pathlib.Path)
    args = [
        *_args_common(config),
        "write_flash",
        "--flash_size=detect",
        FLASH_ADDRESS,
        str(filename_firmware),
    ]
    if config.chip is Chip.ESP32:
        args += ["--flash_mode=dio", "--flash_freq=40m"]
    return args
