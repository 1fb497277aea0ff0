"""
Review Pipeline Data Models

Transient values passed between the pipeline components. None outlives a run.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class ReviewScope(str, Enum):
    """What the collector gathers."""
    REPO = "repo"
    DIFF = "diff"


@dataclass(frozen=True)
class ContentSegment:
    """One labeled piece of collected content."""

    source: str
    """File path (``./a/b.py``) or ``diff``."""

    data: bytes


@dataclass(frozen=True)
class ContentBlob:
    """Finalized, size-capped content sent to the model."""

    scope: ReviewScope
    segments: Tuple[ContentSegment, ...]
    data: bytes
    """Concatenation of the segments cut to the byte budget."""

    max_total_bytes: int
    collected_size: int = 0
    """Bytes gathered before the cut; collection stops once the budget is exceeded."""

    skipped_files: Tuple[str, ...] = ()

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def is_empty(self) -> bool:
        return not self.data

    @property
    def truncated(self) -> bool:
        return self.collected_size > self.size

    @property
    def sources(self) -> List[str]:
        return [segment.source for segment in self.segments]

    def as_text(self) -> str:
        """Decode for the request body; a cut may split a multi-byte character."""
        return self.data.decode("utf-8", errors="replace")


class ChatMessage(BaseModel):
    """A single chat turn."""

    model_config = ConfigDict(frozen=True)

    role: str
    content: str


class ReviewRequest(BaseModel):
    """Chat-completion request for one review."""

    model_config = ConfigDict(frozen=True)

    model: str
    messages: List[ChatMessage]
    max_tokens: int = Field(ge=1)
    temperature: float = Field(ge=0.0, le=2.0)

    @classmethod
    def build(
        cls,
        model: str,
        persona: str,
        content: str,
        max_tokens: int,
        temperature: float,
    ) -> "ReviewRequest":
        return cls(
            model=model,
            messages=[
                ChatMessage(role="system", content=persona),
                ChatMessage(role="user", content=content),
            ],
            max_tokens=max_tokens,
            temperature=temperature,
        )

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump()


@dataclass(frozen=True)
class ReviewResult:
    """Outcome of the completion call: review text or a failure description."""

    status_code: int
    attempts: int
    review_text: Optional[str] = None
    error_message: Optional[str] = None
    raw_response: Optional[str] = None
    delays: Tuple[float, ...] = field(default_factory=tuple)

    @property
    def succeeded(self) -> bool:
        return self.status_code == 200
