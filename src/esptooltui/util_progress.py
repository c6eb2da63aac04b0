from __future__ import annotations

import re

from .util_constants import PROGRESS_BAR_WIDTH

RE_PROGRESS = re.compile(r"\((?P<percent>\d+) ?%\)")
"""
Examples:
  Writing at 0x00010000... (3 %)
  Erasing flash (42%)
"""

CHAR_FILLED = "█"
CHAR_EMPTY = "░"


def parse_progress(line: str) -> int | None:
    """
    Return the percentage of the first '(<n>%)' or '(<n> %)' in 'line', clamped to 0..100.
    Return None if there is no match.
    """
    assert isinstance(line, str)
    match = RE_PROGRESS.search(line)
    if match is None:
        return None
    return max(0, min(100, int(match.group("percent"))))


def render_bar(percent: int, width: int = PROGRESS_BAR_WIDTH) -> str:
    """
    Example: [█████████░░░░░░░░░░░░░░░░░░░░░] 30%
    """
    filled = percent * width // 100
    return f"[{CHAR_FILLED * filled}{CHAR_EMPTY * (width - filled)}] {percent}%"


class ProgressState:
    """
    The last percentage seen in the tool output.
    A lower percentage overwrites a higher one: erase and write report separately.
    """

    def __init__(self) -> None:
        self.percent: int | None = None

    def update(self, line: str) -> bool:
        """
        Return True if 'line' carried a percentage.
        """
        percent = parse_progress(line)
        if percent is None:
            return False
        self.percent = percent
        return True

    def reset(self) -> None:
        self.percent = None
