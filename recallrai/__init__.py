"""Asynchronous Python client for the RecallrAI contextual memory API."""

from recallrai.client import RecallrAI
from recallrai.core.logging import setup_logging
from recallrai.errors import ErrorKind, RecallrAIError
from recallrai.merge_conflict import MergeConflict
from recallrai.schemas.merge_conflict import (
    MergeConflictAnswer,
    MergeConflictMemory,
    MergeConflictQuestion,
    MergeConflictStatus,
)
from recallrai.schemas.session import (
    Context,
    ContextMetadata,
    ContextOptions,
    Message,
    MessageRole,
    RecallStrategy,
    SessionStatus,
)
from recallrai.session import Session
from recallrai.user import User
from recallrai.version import __version__

__all__ = [
    "Context",
    "ContextMetadata",
    "ContextOptions",
    "ErrorKind",
    "MergeConflict",
    "MergeConflictAnswer",
    "MergeConflictMemory",
    "MergeConflictQuestion",
    "MergeConflictStatus",
    "Message",
    "MessageRole",
    "RecallStrategy",
    "RecallrAI",
    "RecallrAIError",
    "Session",
    "SessionStatus",
    "User",
    "__version__",
    "setup_logging",
]
