from __future__ import annotations

import json
import logging
import logging.config
import pathlib
import typing

import pytest
from conftest import Spy
from typer.testing import CliRunner

from esptooltui.scripts import op, op_menu
from esptooltui.util_baseclasses import EspToolTuiAppExitException
from esptooltui.util_logging import ColorFormatter

runner = CliRunner()


@pytest.fixture(autouse=True)
def reset_logging() -> typing.Iterator[None]:
    """
    init_logging() binds a handler to the stderr of the CliRunner.
    """
    yield
    logging.config.dictConfig(
        {"version": 1, "disable_existing_loggers": False, "root": {"handlers": []}}
    )


def _args_files(tmp_path: pathlib.Path) -> list[str]:
    return ["--config", str(tmp_path / "config.json"), "--logs", str(tmp_path / "logs")]


def test_menu_exit_saves_defaults(tmp_path: pathlib.Path, env_cli: Spy) -> None:
    result = runner.invoke(op.app, ["menu", *_args_files(tmp_path)], input="4\n")
    assert result.exit_code == 0, result.output
    assert "1) Settings" in result.output
    assert "Port : COM3" in result.output
    assert json.loads((tmp_path / "config.json").read_text()) == {
        "port": "COM3",
        "chip": "esp8266",
        "baud": 921600,
    }


def test_menu_settings(
    tmp_path: pathlib.Path, env_cli: Spy, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(op_menu, "list_serial_ports", lambda: ["COM5", "COM9"])
    result = runner.invoke(
        op.app,
        ["menu", *_args_files(tmp_path)],
        input="1\nCOM5\nesp32\n460800\n4\n",
    )
    assert result.exit_code == 0, result.output
    assert " - COM9" in result.output
    assert "Port : COM5" in result.output
    assert json.loads((tmp_path / "config.json").read_text()) == {
        "port": "COM5",
        "chip": "esp32",
        "baud": 460800,
    }


def test_menu_settings_keep_previous(
    tmp_path: pathlib.Path, env_cli: Spy, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(op_menu, "list_serial_ports", lambda: [])
    (tmp_path / "config.json").write_text(
        json.dumps({"port": "COM5", "chip": "esp32", "baud": 460800})
    )
    result = runner.invoke(
        op.app,
        ["menu", *_args_files(tmp_path)],
        input="1\n\nesp32c6\nfast\n4\n",
    )
    assert result.exit_code == 0, result.output
    assert "Unknown chip 'esp32c6'" in result.output
    assert json.loads((tmp_path / "config.json").read_text()) == {
        "port": "COM5",
        "chip": "esp32",
        "baud": 460800,
    }


def test_menu_flash(tmp_path: pathlib.Path, env_cli: Spy) -> None:
    result = runner.invoke(op.app, ["menu", *_args_files(tmp_path)], input="2\n4\n")
    assert result.exit_code == 0, result.output
    assert "Hold FLASH" in result.output
    assert env_cli.subcommands == ["flash_id", "erase_flash", "write_flash"]
    assert len(list((tmp_path / "logs").glob("*.log"))) == 1


def test_menu_full_erase(tmp_path: pathlib.Path, env_cli: Spy) -> None:
    result = runner.invoke(op.app, ["menu", *_args_files(tmp_path)], input="3\n4\n")
    assert result.exit_code == 0, result.output
    assert "Flash erased." in result.output
    assert env_cli.subcommands == ["erase_flash"]


def test_flash_command(tmp_path: pathlib.Path, env_cli: Spy) -> None:
    result = runner.invoke(
        op.app,
        ["flash", "--yes", "--port=COM5", "--chip=esp32", *_args_files(tmp_path)],
    )
    assert result.exit_code == 0, result.output
    assert "Hold BOOT" in result.output
    assert env_cli.subcommands == ["flash_id", "erase_flash", "write_flash"]
    assert "--flash_mode=dio" in env_cli.lines[2]
    # overrides are not persisted
    assert not (tmp_path / "config.json").exists()


def test_flash_command_connection_failed(
    tmp_path: pathlib.Path, env_cli: Spy, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("FAKE_ESPTOOL_FLASH_ID", "nomarker")
    result = runner.invoke(op.app, ["flash", "--yes", *_args_files(tmp_path)])
    assert result.exit_code == 1
    assert "Connection failed." in result.output
    assert env_cli.subcommands == ["flash_id"]


def test_erase_command(tmp_path: pathlib.Path, env_cli: Spy) -> None:
    result = runner.invoke(op.app, ["erase", "--yes", *_args_files(tmp_path)])
    assert result.exit_code == 0, result.output
    assert env_cli.subcommands == ["erase_flash"]


def test_esptool_missing(
    tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    def find_esptool() -> list[str]:
        raise EspToolTuiAppExitException("esptool not found")

    monkeypatch.setattr(op, "find_esptool", find_esptool)
    result = runner.invoke(op.app, ["menu", *_args_files(tmp_path)], input="4\n")
    assert result.exit_code == 1
    assert "esptool not found" in result.output


def test_ports(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(op, "list_serial_ports", lambda: ["/dev/ttyUSB0"])
    result = runner.invoke(op.app, ["ports"])
    assert result.exit_code == 0
    assert result.output.splitlines() == ["/dev/ttyUSB0"]


def test_color_formatter() -> None:
    formatter = ColorFormatter("%(levelname)s - %(message)s")
    record = logging.LogRecord(
        "x", logging.INFO, __file__, 1, "[COLOR_SUCCESS]Flash COM5: success", None, None
    )
    text = formatter.format(record)
    assert "Flash COM5: success" in text
    assert "[COLOR_SUCCESS]" not in text
    # The record is restored for other handlers
    assert record.msg == "[COLOR_SUCCESS]Flash COM5: success"


def test_menu_exit_keeps_valid_fields(tmp_path: pathlib.Path, env_cli: Spy) -> None:
    (tmp_path / "config.json").write_text(
        json.dumps({"port": "COM5", "chip": "esp32s3", "baud": 460800})
    )
    result = runner.invoke(op.app, ["menu", *_args_files(tmp_path)], input="4\n")
    assert result.exit_code == 0, result.output
    assert json.loads((tmp_path / "config.json").read_text()) == {
        "port": "COM5",
        "chip": "esp8266",
        "baud": 460800,
    }


def test_color_formatter_untagged() -> None:
    formatter = ColorFormatter("%(message)s")
    for msg in ("EXEC esptool flash_id", "[COLOR_OTHER]x"):
        record = logging.LogRecord("x", logging.INFO, __file__, 1, msg, None, None)
        assert formatter.format(record) == msg
