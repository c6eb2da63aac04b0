import enum
import os
import pathlib

ENV_ESPTOOLTUI_ESPTOOL = "ESPTOOLTUI_ESPTOOL"
"""
Example: ESPTOOLTUI_ESPTOOL="/opt/esptool/esptool --trace"
"""

ENV_ESPTOOLTUI_FIRMWARE = "ESPTOOLTUI_FIRMWARE"

FILENAME_CONFIG = pathlib.Path("config.json")
DIRECTORY_LOGS = pathlib.Path("logs")

PROBE_TIMEOUT_MS = 8000
PROBE_POLL_INTERVAL_S = 0.1

PROBE_MARKER = "DETECTED"
"""
esptool prints 'Detected flash size: 4MB' when the chip answered.
"""

FLASH_ADDRESS = "0x0000"

PROGRESS_BAR_WIDTH = 30


class Chip(enum.StrEnum):
    ESP32 = "esp32"
    ESP8266 = "esp8266"

    @property
    def filename_firmware(self) -> str:
        return f"micropython-{self.value}.bin"

    @property
    def boot_help(self) -> list[str]:
        if self is Chip.ESP8266:
            return ["Hold FLASH", "Press RST", "Release FLASH"]
        return ["Hold BOOT", "Press EN", "Release BOOT"]


DEFAULT_PORT = "COM3"
DEFAULT_CHIP = Chip.ESP8266
DEFAULT_BAUD = 921600


class ProcessOutcome(enum.StrEnum):
    SUCCESS = "success"
    NON_ZERO_EXIT = "non_zero_exit"
    TIMED_OUT = "timed_out"
    LAUNCH_FAILURE = "launch_failure"


class OperationOutcome(enum.StrEnum):
    SUCCESS = "success"
    CONNECTIVITY_FAILURE = "connectivity_failure"
    "The probe timed out or its output lacked PROBE_MARKER"
    STEP_FAILURE = "step_failure"
    "erase or write returned a non zero exit code"
    LAUNCH_FAILURE = "launch_failure"
    RESOURCE_MISSING = "resource_missing"

    @property
    def is_success(self) -> bool:
        return self is OperationOutcome.SUCCESS


class ExitCode(enum.IntEnum):
    SUCCESS = 0
    "The operation succeeded"
    FAILURE = 1
    "The operation failed: See the log in DIRECTORY_LOGS."


def directory_firmware() -> pathlib.Path:
    try:
        return pathlib.Path(os.environ[ENV_ESPTOOLTUI_FIRMWARE])
    except KeyError:
        return pathlib.Path.home() / "esptooltui_downloads" / "firmware"
