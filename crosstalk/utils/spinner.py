"""Wait indicator shown until the first fragment of a reply arrives."""
from __future__ import annotations

from typing import Any, Optional

from yaspin import yaspin  # type: ignore

from .ansi import console


class Spinner:
    """Display a small spinner next to a prefix while work is done."""

    def __init__(self, prefix: str = "", enabled: bool = True):
        self._prefix = prefix
        self._enabled = enabled
        self._spinner: Optional[Any] = None

    @property
    def running(self) -> bool:
        return self._spinner is not None

    def start(self) -> None:
        if self.running:
            return
        console.print(self._prefix, end="")
        console.file.flush()
        if not self._enabled:
            return
        # spinner after the text so the prefix stays at the start
        self._spinner = yaspin(text="", side="right")
        self._spinner.start()

    def stop(self) -> None:
        if not self.running:
            return
        self._spinner.stop()
        self._spinner = None
        # stopping clears the line, so the prefix is drawn again
        console.print(f"\r{self._prefix}", end="")
        console.file.flush()
