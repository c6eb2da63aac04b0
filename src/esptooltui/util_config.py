from __future__ import annotations

import dataclasses
import json
import logging
import pathlib
import typing

from .util_constants import DEFAULT_BAUD, DEFAULT_CHIP, DEFAULT_PORT, Chip

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class SessionConfig:
    port: str = DEFAULT_PORT
    """
    Examples: COM5, /dev/ttyUSB0
    """
    chip: Chip = DEFAULT_CHIP
    baud: int = DEFAULT_BAUD

    def __post_init__(self) -> None:
        assert isinstance(self.port, str)
        assert isinstance(self.chip, Chip)
        assert isinstance(self.baud, int)
        assert self.baud > 0

    def to_dict(self) -> dict[str, typing.Any]:
        return {
            "port": self.port,
            "chip": str(self.chip),
            "baud": self.baud,
        }

    @staticmethod
    def from_dict(d: dict[str, typing.Any]) -> SessionConfig:
        """
        Missing keys fall back to the defaults, unknown keys are ignored.
        An invalid value falls back to its default, the other fields are kept.
        """
        config = SessionConfig()
        for key, parse in (
            ("port", _parse_port),
            ("chip", _parse_chip),
            ("baud", _parse_baud),
        ):
            if key not in d:
                continue
            try:
                setattr(config, key, parse(d[key]))
            except ValueError as e:
                logger.warning(
                    f"Invalid '{key}' ({e}): using default {getattr(config, key)}"
                )
        return config

    def with_overrides(
        self,
        port: str | None = None,
        chip: Chip | None = None,
        baud: int | None = None,
    ) -> SessionConfig:
        return SessionConfig(
            port=self.port if port is None else port,
            chip=self.chip if chip is None else chip,
            baud=self.baud if baud is None else baud,
        )

    @staticmethod
    def load(filename: pathlib.Path) -> SessionConfig:
        assert isinstance(filename, pathlib.Path)
        if not filename.is_file():
            logger.debug(f"{filename} does not exist: using defaults")
            return SessionConfig()
        try:
            d = json.loads(filename.read_text(encoding="utf-8"))
            if not isinstance(d, dict):
                raise ValueError(f"Expected a json object, got {type(d).__name__}")
            return SessionConfig.from_dict(d)
        except ValueError as e:
            # json.JSONDecodeError is a ValueError
            logger.warning(f"Failed to load {filename} ({e}): using defaults")
            return SessionConfig()

    def save(self, filename: pathlib.Path) -> None:
        assert isinstance(filename, pathlib.Path)
        filename.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")
        logger.debug(f"Saved {filename}: {self.to_dict()}")

    def apply_settings(self, port: str, chip: str, baud: str) -> list[str]:
        """
        Apply the raw answers of the settings prompts.

        port, chip: Blank keeps the previous value.
        baud: Unparsable or not positive keeps the previous value.

        Return a list of warnings for answers which were ignored.
        """
        warnings: list[str] = []
        if port.strip():
            self.port = port.strip()

        if chip.strip():
            try:
                self.chip = Chip(chip.strip().lower())
            except ValueError:
                choices = "/".join(c.value for c in Chip)
                warnings.append(
                    f"Unknown chip '{chip.strip()}' ({choices}): keeping {self.chip}"
                )

        try:
            baud_value = int(baud.strip())
            if baud_value > 0:
                self.baud = baud_value
        except ValueError:
            pass

        return warnings


def _parse_port(value: typing.Any) -> str:
    if not isinstance(value, str) or value.strip() == "":
        raise ValueError(f"expected a port name: {value!r}")
    return value.strip()


def _parse_chip(value: typing.Any) -> Chip:
    if not isinstance(value, str):
        raise ValueError(f"expected a chip name: {value!r}")
    return Chip(value.lower())


def _parse_baud(value: typing.Any) -> int:
    """
    Floats are rejected: json returns 'inf' for 1e999.
    """
    if isinstance(value, bool) or not isinstance(value, int | str):
        raise ValueError(f"expected an integer: {value!r}")
    baud = int(value)
    if baud <= 0:
        raise ValueError(f"baud must be positive: {baud}")
    return baud
