import json
import logging
import logging.config
import pathlib
import re
import typing_extensions

from rich.style import Style

DIRECTORY_OF_THIS_FILE = pathlib.Path(__file__).parent
FILENAME_LOGGING_JSON = DIRECTORY_OF_THIS_FILE / "util_logging_config.json"
assert FILENAME_LOGGING_JSON.is_file()

_DICT_STYLES = {
    "COLOR_SUCCESS": Style(color="green"),
    "COLOR_FAILED": Style(color="orange1"),
}


class ColorFormatter(logging.Formatter):
    RE_TAG = re.compile(r"^\[(?P<tag>COLOR_SUCCESS|COLOR_FAILED)\](?P<msg>.*$)", re.DOTALL)
    """
    Example: [COLOR_SUCCESS]Flash COM5: success
    tag: COLOR_SUCCESS
    msg: Flash COM5: success
    """

    @typing_extensions.override
    def format(self, record: logging.LogRecord) -> str:
        match = self.RE_TAG.match(record.msg) if isinstance(record.msg, str) else None
        if match is None:
            return super().format(record)

        msg_before = record.msg
        try:
            record.msg = match.group("msg")
            return _DICT_STYLES[match.group("tag")].render(super().format(record))
        finally:
            record.msg = msg_before


def init_logging(level: int | None = None) -> None:
    logging.config.dictConfig(json.loads(FILENAME_LOGGING_JSON.read_text()))
    if level is not None:
        logging.getLogger().setLevel(level=level)
