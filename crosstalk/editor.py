"""External editor integration for composing prompts."""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Optional, Sequence

from .errors import EditorError

logger = logging.getLogger(__name__)

# "editor" is the name of the system-registered alternative on Debian-like systems.
SYSTEM_EDITOR = "editor"
FALLBACK_EDITORS = ("vim", "emacs", "vi", "nano")


def resolve_editor(configured: Optional[str] = None) -> str:
    """Return the editor command to launch.

    Precedence: the configured ``editor``, then ``$EDITOR``, then the system
    ``editor`` alternative, then the first fallback found on ``PATH``.
    """
    if configured:
        return configured

    env_editor = os.environ.get("EDITOR")
    if env_editor:
        return env_editor

    for candidate in (SYSTEM_EDITOR, *FALLBACK_EDITORS):
        if shutil.which(candidate):
            return candidate

    raise EditorError("no suitable editor found, set EDITOR or the editor option in the config")


def _split_command(command: str) -> Sequence[str]:
    try:
        argv = shlex.split(command)
    except ValueError as exc:
        raise EditorError(f'cannot parse editor command "{command}": {exc}') from exc
    if not argv:
        raise EditorError("the editor command is empty")
    return argv


def launch_editor(command: str, draft: str = "") -> Optional[str]:
    """Edit *draft* in *command* and return the result.

    Returns None when the file is left empty. Raises EditorError when the
    editor cannot be started, exits with a non-zero status, or the file
    cannot be written or read back as UTF-8. The temporary file is removed
    on every path.
    """
    argv = _split_command(command)

    try:
        handle = tempfile.NamedTemporaryFile(
            mode="w", encoding="utf-8", prefix="xtalk-", suffix=".md", delete=False
        )
    except OSError as exc:
        raise EditorError(f"failed to create a temporary file: {exc}") from exc
    path = Path(handle.name)

    try:
        try:
            with handle:
                handle.write(draft)
        except (OSError, UnicodeError) as exc:
            raise EditorError(f"failed to write the draft to {path}: {exc}") from exc

        try:
            status = subprocess.run([*argv, str(path)], check=False).returncode
        except OSError as exc:
            raise EditorError(f'failed to launch editor "{command}": {exc}') from exc

        if status != 0:
            raise EditorError(f'the editor "{command}" did not exit successfully (status {status})')

        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeError) as exc:
            raise EditorError(f"failed to read the edited message: {exc}") from exc
    finally:
        # Clean up temporary file
        path.unlink(missing_ok=True)

    logger.debug("editor returned %d characters", len(content))
    if not content.strip():
        return None
    return content.rstrip("\n")
