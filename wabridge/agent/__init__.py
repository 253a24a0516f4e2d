"""Assistant invocation and message routing."""

from wabridge.agent.invoker import (
    ClaudeInvoker,
    InvocationError,
    InvocationResult,
    InvocationTimeoutError,
    SpawnError,
)
from wabridge.agent.router import MessageRouter

__all__ = [
    "ClaudeInvoker",
    "InvocationError",
    "InvocationResult",
    "InvocationTimeoutError",
    "MessageRouter",
    "SpawnError",
]
