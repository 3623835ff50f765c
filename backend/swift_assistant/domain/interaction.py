"""
Interaction Domain Models

Request/response shapes flowing through the interaction pipeline.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncIterator, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class MessageRole(str, Enum):
    """Role of a prior conversation turn."""
    USER = "user"
    ASSISTANT = "assistant"


class ChatTurn(BaseModel):
    """One prior turn as sent back by the client."""
    role: MessageRole
    content: str


@dataclass
class AudioInput:
    """Raw audio blob uploaded by the client."""
    data: bytes
    filename: str = "audio.wav"
    content_type: Optional[str] = None


@dataclass
class CurrentUser:
    """Authenticated caller, resolved from the bearer token."""
    id: str
    email: Optional[str] = None


@dataclass
class RequestContext:
    """Coarse client context derived from edge request headers."""
    city: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
    timezone: Optional[str] = None
    correlation_id: str = "unknown"
    user_agent: Optional[str] = None


@dataclass
class InteractionRequest:
    """Everything the pipeline needs for one exchange."""
    input: Union[str, AudioInput]
    history: List[ChatTurn] = field(default_factory=list)
    screenshot: Optional[str] = None
    user: Optional[CurrentUser] = None
    context: RequestContext = field(default_factory=RequestContext)


@dataclass
class InteractionResult:
    """
    Synthesized reply plus the metadata echoed back in headers.

    ``audio`` is a cached clip (bytes) or a live provider stream.
    """
    audio: Union[bytes, AsyncIterator[bytes]]
    transcript: str
    response_text: str
    rate_limited: bool = False
    usage_count: Optional[int] = None
    daily_limit: Optional[int] = None
    interaction_id: Optional[str] = None


class FeedbackRequest(BaseModel):
    """Answers to the three-question feedback survey."""
    problem_solved: Optional[str] = Field(default=None, alias="problemSolved")
    most_important_feature: Optional[str] = Field(default=None, alias="mostImportantFeature")
    improvement: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)
