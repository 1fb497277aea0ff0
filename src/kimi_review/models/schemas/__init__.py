"""
Review Bot Data Models

Pydantic schemas and dataclasses shared by the pipeline components.
"""

from .run_context import RunContext, TriggerKind
from .review import (
    ChatMessage,
    ContentBlob,
    ContentSegment,
    ReviewRequest,
    ReviewResult,
    ReviewScope,
)

__all__ = [
    # Run models
    "RunContext",
    "TriggerKind",

    # Content models
    "ContentBlob",
    "ContentSegment",
    "ReviewScope",

    # Completion models
    "ChatMessage",
    "ReviewRequest",
    "ReviewResult",
]
