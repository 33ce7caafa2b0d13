"""
Pydantic models for room state and inbound message payloads.
"""
import time
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator

Number = Union[int, float]


def now_ms() -> int:
    return int(time.time() * 1000)


# ============ IDENTITY ============

class IdentityRecord(BaseModel):
    """Display identity bound to a connection by an `identify` message."""
    userId: str
    name: str
    color: str
    avatar: Optional[str] = None


class PresenceEntry(IdentityRecord):
    """One user's current location, as shown in the roster."""
    page: str = "#/counter"


# ============ CHAT ============

class ChatMessage(BaseModel):
    """One chat entry. Unknown client fields are kept and relayed as-is."""
    model_config = ConfigDict(extra="allow")

    id: str
    userId: Optional[str] = None
    text: Optional[str] = None
    image: Optional[str] = None  # data URL
    ts: int = Field(default_factory=now_ms)
    name: Optional[str] = None
    color: Optional[str] = None
    avatar: Optional[str] = None
    reactions: Optional[Dict[str, int]] = None


class Reaction(BaseModel):
    id: str
    emoji: str


# ============ GRAPH ============

class GraphElement(BaseModel):
    """A node or edge; everything but the id is opaque to the server."""
    model_config = ConfigDict(extra="allow")

    id: str


class GraphSnapshot(BaseModel):
    """Full replacement of a board's nodes and edges."""
    nodes: List[GraphElement]
    edges: List[GraphElement]


class Rect(BaseModel):
    x: Number
    y: Number
    w: Number
    h: Number


class AssertedIdentity(BaseModel):
    """Identity fields a client may embed in ephemeral messages."""
    color: Optional[str] = None
    name: Optional[str] = None
    avatar: Optional[str] = None


class PointerCursor(AssertedIdentity):
    x: Number
    y: Number


class Selection(AssertedIdentity):
    ids: List[str] = Field(default_factory=list)


class Marquee(AssertedIdentity):
    rect: Optional[Rect] = None


# ============ EDITOR ============

class DocumentEdit(BaseModel):
    content: str
    version: int


class TextCursor(AssertedIdentity):
    pos: int
    selStart: Optional[int] = None
    selEnd: Optional[int] = None


# ============ POLLS ============

class Poll(BaseModel):
    id: str
    question: str
    options: List[str]
    votes: Dict[int, int]  # option index -> count


class PollCreate(BaseModel):
    """Request to create a poll: a question and at least two options."""
    question: str
    options: List[str]

    @field_validator("question")
    @classmethod
    def question_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("question must not be empty")
        return value

    @field_validator("options")
    @classmethod
    def at_least_two_options(cls, value: List[str]) -> List[str]:
        options = [option.strip() for option in value if option.strip()]
        if len(options) < 2:
            raise ValueError("a poll needs at least two options")
        return options


class Vote(BaseModel):
    pollId: str
    option: StrictInt


# ============ PRESENCE ============

class PageChange(BaseModel):
    page: str


# ============ HTTP ============

class RoomInfo(BaseModel):
    """Room status information."""
    room_id: str
    kind: Optional[str] = None
    connection_count: int
    created_at: str
