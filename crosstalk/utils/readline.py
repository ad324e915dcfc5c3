"""Readline set-up for the chat prompt."""

import readline
from typing import Iterable, List, Optional

from ..config import Keybindings


def slash_completer(commands: Iterable[str]):
    """Return a readline completer offering *commands* for input starting with ``/``."""
    commands = sorted(commands)

    def complete(text: str, state: int) -> Optional[str]:
        buffer = readline.get_line_buffer()
        if not buffer.startswith("/"):
            return None
        matches: List[str] = [cmd for cmd in commands if cmd.startswith(buffer)]
        return matches[state] if state < len(matches) else None

    return complete


def configure_line_editing(keybindings: Keybindings, commands: Iterable[str]) -> None:
    """Select Emacs or Vi editing and enable Tab completion of slash commands."""
    readline.parse_and_bind(f"set editing-mode {keybindings.value}")
    # "/" must not split words, otherwise completion only sees the bare name.
    readline.set_completer_delims(" \t\n")
    readline.set_completer(slash_completer(commands))
    readline.parse_and_bind("tab: complete")
