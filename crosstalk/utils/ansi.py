"""Colour and styling helpers built on :mod:`rich`."""

import os
import sys

from rich.console import Console
from rich.markup import escape


console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)


class Ansi:
    """Lightweight collection of style names used throughout the app."""

    BOLD = "bold"

    FG_GREEN = "green"
    FG_BLUE = "blue"
    FG_CYAN = "cyan"
    FG_MAGENTA = "magenta"
    FG_YELLOW = "yellow"
    FG_RED = "red"

    @staticmethod
    def style(text: str, *codes: str) -> str:
        """Return *text* wrapped in rich markup unless ``NO_COLOR`` is set."""
        if os.getenv("NO_COLOR") is not None:
            return text
        style = " ".join(codes)
        return f"[{style}]{text}[/]"


def color_enabled(mode: str) -> bool:
    """Resolve the ``--color`` option; ``auto`` follows NO_COLOR and the terminal."""
    if mode == "on":
        return True
    if mode == "off":
        return False
    return os.getenv("NO_COLOR") is None and sys.stdout.isatty()


def configure_color(enabled: bool) -> None:
    for con in (console, err_console):
        con.no_color = not enabled


def user_prompt() -> str:
    return Ansi.style("\\[#]", Ansi.FG_BLUE, Ansi.BOLD) + " "


def model_prompt(model: str) -> str:
    # Escaped so model names never read as markup.
    return Ansi.style(f"\\[{escape(model)}]", Ansi.FG_GREEN, Ansi.BOLD)


ERROR_LABEL = Ansi.style("error:", Ansi.FG_RED, Ansi.BOLD)
WARNING_LABEL = Ansi.style("warning:", Ansi.FG_YELLOW, Ansi.BOLD)


def print_error(message: str, hint: str | None = None) -> None:
    err_console.print(f"{ERROR_LABEL} {escape(message)}")
    if hint:
        err_console.print(f"  hint: {escape(hint)}")


def print_warning(message: str) -> None:
    err_console.print(f"{WARNING_LABEL} {escape(message)}")
