from __future__ import annotations

import logging
import pathlib

from .util_baseclasses import FirmwareMissingException
from .util_constants import ENV_ESPTOOLTUI_FIRMWARE, Chip, directory_firmware

logger = logging.getLogger(__name__)


def extract_firmware(
    chip: Chip,
    directory: pathlib.Path | None = None,
) -> pathlib.Path:
    """
    Return the MicroPython image for 'chip'.

    Example: ~/esptooltui_downloads/firmware/micropython-esp32.bin
    """
    assert isinstance(chip, Chip)
    if directory is None:
        directory = directory_firmware()
    assert isinstance(directory, pathlib.Path)

    filename = directory / chip.filename_firmware
    if not filename.is_file():
        raise FirmwareMissingException(
            f"Firmware missing: {filename} (directory may be set by {ENV_ESPTOOLTUI_FIRMWARE})"
        )
    logger.debug(f"Firmware for {chip}: {filename}")
    return filename
