from .session import Conversation, Message
from .registry import ActivationRecord, ModelSpec, Registry
from .activation import activate, build_providers, populate_registry

__all__ = [
    "Conversation",
    "Message",
    "ActivationRecord",
    "ModelSpec",
    "Registry",
    "activate",
    "build_providers",
    "populate_registry",
]
