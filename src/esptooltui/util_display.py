from __future__ import annotations

from rich.console import Console

from .util_progress import render_bar

BANNER = "========================================"
DELIMITER = "----------------------------------------"


class Display:
    """
    Console output of a session.

    The progress bar stays on the last line and is redrawn in place.
    Echoed tool output scrolls above it.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(highlight=False)
        self._bar: str | None = None

    def _write(self, text: str) -> None:
        # Bypass rich markup: tool output contains '[' and ']'
        self.console.file.write(text)
        self.console.file.flush()

    def draw_bar(self, percent: int) -> None:
        bar = render_bar(percent)
        padding = " " * max(0, len(self._bar or "") - len(bar))
        self._write(f"\r{bar}{padding}")
        self._bar = bar

    def echo(self, line: str) -> None:
        if self._bar is None:
            self._write(f"{line}\n")
            return
        self._write(f"\r{line.ljust(len(self._bar))}\n{self._bar}")

    def finish_bar(self) -> None:
        if self._bar is not None:
            self._write("\n")
            self._bar = None

    def _print(self, msg: str, style: str | None = None) -> None:
        self.finish_bar()
        self.console.print(msg, style=style, markup=False, highlight=False)

    def info(self, msg: str) -> None:
        self._print(msg)

    def success(self, msg: str) -> None:
        self._print(msg, style="green")

    def warning(self, msg: str) -> None:
        self._print(msg, style="yellow")

    def error(self, msg: str) -> None:
        self._print(msg, style="red")

    def header(self, lines: list[str]) -> None:
        self.finish_bar()
        self.console.clear()
        self._print(BANNER, style="cyan")
        self._print("              EspToolTui", style="cyan")
        self._print(BANNER, style="cyan")
        for line in lines:
            self._print(line)
        self._print(DELIMITER + "\n")
