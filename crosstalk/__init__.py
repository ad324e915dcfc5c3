"""xtalk: chat with local and hosted language models from the terminal.

Usage
-----
    xtalk [chat] [-m MODEL_SPEC] [-i] [MESSAGE]
    xtalk list providers
    xtalk list models [-p PROVIDER]

A model spec is either a model name ("gpt-4o") or a name qualified with its
provider ("ollama/llama3"). Without -m the configured default_model is used,
otherwise the default of the most preferred active provider.

Slash commands (enter them as a line at the prompt):

    /help                       - show this help
    /exit                       - terminate the chat (Ctrl-D works too)
    /clear                      - forget every message of the conversation
    /edit [DRAFT]               - compose the next message in your editor
    /model [MODEL_SPEC]         - switch to a different model
    /models                     - list the models of the current provider

Ctrl-C while a reply is streaming discards the reply.
"""

__version__ = "0.0.1a0"

# Re-export useful symbols for convenience
from .core import Conversation, Message, ModelSpec, Registry, populate_registry
from .cli import ChatCLI, main, run_cli

__all__ = [
    "__version__",
    "Conversation",
    "Message",
    "ModelSpec",
    "Registry",
    "populate_registry",
    "ChatCLI",
    "main",
    "run_cli",
]
