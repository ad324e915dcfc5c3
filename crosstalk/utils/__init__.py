from .ansi import (
    Ansi,
    ERROR_LABEL,
    WARNING_LABEL,
    color_enabled,
    configure_color,
    console,
    err_console,
    model_prompt,
    print_error,
    print_warning,
    user_prompt,
)
from .readline import configure_line_editing
from .spinner import Spinner

__all__ = [
    "Ansi",
    "ERROR_LABEL",
    "WARNING_LABEL",
    "color_enabled",
    "configure_color",
    "console",
    "err_console",
    "model_prompt",
    "print_error",
    "print_warning",
    "user_prompt",
    "configure_line_editing",
    "Spinner",
]
