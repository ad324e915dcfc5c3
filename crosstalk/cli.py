"""Command-line entry point and the interactive chat session."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence, TextIO

import questionary
from rich.logging import RichHandler
from rich.markup import escape

from .config import Config, read_config
from .core import Conversation, ModelSpec, Registry, populate_registry
from .editor import launch_editor, resolve_editor
from .errors import (
    ConfigError,
    EditorError,
    NoActivatedProvidersError,
    ProviderError,
    ResolutionError,
)
from .listing import FORMATS, list_models, list_providers
from .providers import ChatProvider, ContextManagement
from .utils import (
    Ansi,
    Spinner,
    color_enabled,
    configure_color,
    configure_line_editing,
    console,
    err_console,
    model_prompt,
    print_error,
    print_warning,
    user_prompt,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Chat session
# ---------------------------------------------------------------------------


class ChatCLI:
    """Chat session state machine driving the REPL or a one-shot completion."""

    COMMANDS = ("/clear", "/edit", "/exit", "/help", "/model", "/models")

    def __init__(
        self,
        registry: Registry,
        provider: ChatProvider,
        model: str,
        *,
        editor: Optional[str] = None,
        incremental: bool = True,
        interactive: bool = True,
    ):
        self.registry = registry
        self.provider = provider
        self.model = model
        self.editor = editor
        # Render fragments as they arrive (output is a terminal).
        self.incremental = incremental
        self.interactive = interactive
        self.conversation = Conversation()
        # Input queued by the editor, consumed before reading the prompt again.
        self.pending: Optional[str] = None

    @property
    def spec(self) -> ModelSpec:
        return ModelSpec(model=self.model, provider_id=self.provider.id)

    # -------------- Interactive pickers ---------------

    @staticmethod
    def _interactive_picker(
        title: str, options: List[str], current: Optional[str] = None
    ) -> Optional[str]:
        """Present *options* to the user and return the selected value."""
        if not options:
            console.print("(no items available)")
            return None

        try:
            return questionary.select(
                title,
                choices=options,
                default=current if current in options else None,
            ).ask()
        except (KeyboardInterrupt, EOFError):
            console.print()
            return None

    def _model_choices(self) -> List[str]:
        choices: List[str] = []
        for provider in self.registry.providers():
            try:
                models = provider.list_models()
            except ProviderError as exc:
                print_warning(f"cannot list models of {provider.id}: {exc}")
                continue
            choices.extend(f"{provider.id}/{model.name}" for model in models)
        return choices

    # ---------------- Command handling ---------------

    def handle_command(self, line: str) -> bool:
        """Handle slash commands. Return False to exit REPL."""

        parts = line.strip().split(maxsplit=1)
        if not parts:
            return True

        cmd = parts[0].lower()
        argument = parts[1].strip() if len(parts) > 1 else ""

        if cmd == "/help":
            from . import __doc__ as _doc  # lazy import to avoid circularity

            console.print(escape(_doc or "(no help available)"))

        elif cmd == "/exit":
            return False

        elif cmd == "/clear":
            self.conversation.clear()
            console.print("\\[conversation cleared]")

        elif cmd == "/edit":
            self.edit(argument)

        elif cmd == "/model":
            if not argument:
                argument = self._interactive_picker(
                    "Select a model:", self._model_choices(), current=str(self.spec)
                ) or ""
                if not argument:
                    return True
            self.switch_model(argument)

        elif cmd == "/models":
            try:
                list_models(self.registry, self.provider.id)
            except ProviderError as exc:
                print_error(f"failed to list models: {exc}")

        else:
            print_error(f"unknown command: {cmd} (see /help)")

        return True

    def switch_model(self, text: str) -> bool:
        """Re-resolve the session's model; the current one is kept on failure."""
        try:
            provider, model = self.registry.resolve(ModelSpec.parse(text))
        except ResolutionError as exc:
            print_error(str(exc), exc.hint)
            return False

        self.provider, self.model = provider, model
        console.print(f"\\[model switched to {escape(str(self.spec))}]")
        return True

    def edit(self, draft: str = "") -> None:
        """Compose the next message in the external editor."""
        try:
            content = launch_editor(resolve_editor(self.editor), draft)
        except EditorError as exc:
            print_warning(f"{exc}; no message was queued")
            return

        if content is None:
            console.print("\\[empty message, nothing queued]")
            return

        console.print(user_prompt() + escape(content))
        self.pending = content

    # ---------------- Completion ---------------

    def send(self, text: str) -> bool:
        """Append a user message and stream the reply into the conversation."""
        self.conversation.add_user_message(text)
        reply = self._stream()
        if reply is None:
            return False
        self.conversation.add_assistant_message(reply)
        return True

    def _stream(self) -> Optional[str]:
        """Render the provider's reply; None when it failed or was interrupted."""
        prefix = model_prompt(self.model) + " "
        spinner = Spinner(prefix=prefix, enabled=self.incremental)
        accumulator: List[str] = []

        fragments = self.provider.complete(self.conversation.messages, self.model)
        try:
            if self.interactive:
                spinner.start()
            for fragment in fragments:
                spinner.stop()
                if self.incremental:
                    console.out(fragment, end="", highlight=False)
                    console.file.flush()
                accumulator.append(fragment)
        except ProviderError as exc:
            spinner.stop()
            if self.interactive:
                console.print()
            print_error(f"completion for {self.spec} failed: {exc}")
            return None
        except KeyboardInterrupt:
            spinner.stop()
            console.print("\n\\[interrupted]")
            return None
        finally:
            # Abandons the request if the stream was not exhausted.
            close = getattr(fragments, "close", None)
            if close is not None:
                close()

        reply = "".join(accumulator)
        if self.incremental:
            console.out("\n" if not self.interactive else "\n\n", end="")
        else:
            console.out(reply, highlight=False)
        return reply

    # ---------------- Interaction loop ---------------

    def _read_line(self) -> Optional[str]:
        """Return the next input: queued editor content or one prompt line."""
        if self.pending is not None:
            line, self.pending = self.pending, None
            return line
        try:
            return console.input(user_prompt())
        except (EOFError, KeyboardInterrupt):
            console.print()
            return None

    def repl(self) -> None:
        """Run the interactive read–eval–print-loop."""
        while True:
            queued = self.pending is not None
            line = self._read_line()
            if line is None:
                break

            if not queued:
                line = line.strip()
                if not line:
                    continue
                if line.startswith("/"):
                    if not self.handle_command(line):
                        break
                    continue

            self.send(line)

    def run(self, initial_message: Optional[str] = None) -> bool:
        """Run the session; returns False when a one-shot completion failed."""
        if self.interactive:
            from . import __version__

            console.print(Ansi.style(f"xtalk version {__version__}", Ansi.BOLD))
            console.print(
                Ansi.style(f"Chatting with {escape(str(self.spec))}.", Ansi.FG_YELLOW),
                Ansi.style("Commands start with '/'. Type /help for help.", Ansi.FG_YELLOW),
                sep="\n",
            )
            if self.provider.context_management is ContextManagement.IMPLICIT:
                print_warning(
                    "This provider implicitly manages context. "
                    "The context may be truncated without warning."
                )

        if initial_message is not None:
            ok = self.send(initial_message)
            if not self.interactive:
                return ok

        if self.interactive:
            self.repl()
        return True


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def chat_command(
    args: argparse.Namespace,
    config: Config,
    registry: Registry,
    stdin: Optional[TextIO] = None,
    stdout: Optional[TextIO] = None,
) -> int:
    stdin = sys.stdin if stdin is None else stdin
    stdout = sys.stdout if stdout is None else stdout
    in_terminal = stdin.isatty()
    out_terminal = stdout.isatty()

    if args.message is not None and not in_terminal:
        print_error(
            "an initial message is being provided both through standard input "
            "and the message argument"
        )
        return 1

    # Without an explicit message, chat interactively only on a terminal.
    if args.message is not None:
        interactive = args.interactive
        initial = args.message
    else:
        interactive = in_terminal and out_terminal
        initial = None if in_terminal else stdin.read()

    if not interactive and not (initial and initial.strip()):
        print_error("no message was supplied", "pass a message as an argument or through standard input")
        return 1

    try:
        spec = ModelSpec.parse(args.model) if args.model else None
        provider, model = registry.resolve(spec)
    except ResolutionError as exc:
        # Without any provider the remediation is obvious, so say that instead.
        if registry.is_empty():
            exc = NoActivatedProvidersError()
        print_error(f"failed to resolve model: {exc}", exc.hint)
        return 1

    logger.debug("resolved %s/%s", provider.id, model)

    if interactive:
        configure_line_editing(config.keybindings, ChatCLI.COMMANDS)

    session = ChatCLI(
        registry,
        provider,
        model,
        editor=config.editor,
        incremental=out_terminal,
        interactive=interactive,
    )
    return 0 if session.run(initial) else 1


def list_command(args: argparse.Namespace, registry: Registry) -> int:
    if args.object == "providers":
        list_providers(registry, fmt=args.format)
        return 0

    try:
        list_models(registry, args.provider, fmt=args.format)
    except (ProviderError, ResolutionError) as exc:
        print_error(f"failed to list models: {exc}")
        return 1
    return 0


# ---------------------------------------------------------------------------
# Entrypoint helpers (keeping it separate simplifies __main__ handling)
# ---------------------------------------------------------------------------


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    from . import __version__

    parser = argparse.ArgumentParser(prog="xtalk", description="A general-purpose CLI for chat models.")
    parser.add_argument("--color", choices=("auto", "on", "off"), default="auto", help="Use colour in the output")
    parser.add_argument("--config", type=Path, help="Path of the configuration file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log debugging information")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    commands = parser.add_subparsers(dest="command")

    chat = commands.add_parser("chat", help="Start a chat")
    chat.add_argument("--model", "-m", help="Model spec, e.g. 'gpt-4o' or 'ollama/llama3'")
    chat.add_argument("--interactive", "-i", action="store_true", help="Keep chatting after the initial message")
    chat.add_argument("message", nargs="?", help="Initial message")

    listing = commands.add_parser("list", help="List providers or models")
    listing.add_argument("--format", "-f", choices=FORMATS, default="table", help="Output format")
    objects = listing.add_subparsers(dest="object", required=True)
    objects.add_parser("providers", help="Configured providers")
    models = objects.add_parser("models", help="Models of the activated providers")
    models.add_argument("--provider", "-p", help="Limit listing to the specified provider")

    return parser.parse_args(_with_default_command(sys.argv[1:] if argv is None else argv))


_GLOBAL_VALUE_OPTIONS = ("--color", "--config")
_GLOBAL_FLAGS = ("--verbose", "-v")


def _with_default_command(argv: Sequence[str]) -> List[str]:
    """Insert the implicit ``chat`` command after the global options."""
    argv = list(argv)
    index = 0
    while index < len(argv):
        arg = argv[index]
        if arg in _GLOBAL_VALUE_OPTIONS:
            index += 2
        elif arg in _GLOBAL_FLAGS or arg.split("=", 1)[0] in _GLOBAL_VALUE_OPTIONS:
            index += 1
        else:
            break

    if index < len(argv) and argv[index] in ("chat", "list", "-h", "--help", "--version"):
        return argv
    return argv[:index] + ["chat"] + argv[index:]


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_time=False, show_path=False)],
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    configure_color(color_enabled(args.color))
    _configure_logging(args.verbose)

    try:
        config = read_config(args.config)
    except ConfigError as exc:
        print_error(str(exc))
        return 1

    registry = populate_registry(config)

    if args.command == "list":
        return list_command(args, registry)
    return chat_command(args, config, registry)


def run_cli() -> None:  # pragma: no cover
    sys.exit(main())


if __name__ == "__main__":  # pragma: no cover
    run_cli()
