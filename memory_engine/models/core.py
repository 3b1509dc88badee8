"""
Core data models for the long-term memory system.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class MemorySourceType(str, Enum):
    """What an embedding record was computed from."""
    CHAT = 'chat'  # Raw user message of a conversational turn
    EPISODIC = 'episodic'  # Summary of an EpisodicMemoryEntry


@dataclass
class UserProfile:
    """The slice of a user record the memory engine reads and writes."""
    email: str  # Lookup key, also the user document id
    id: Optional[str] = None  # Owner id on every memory record
    long_term_memory: str = ''  # Append-only narrative summary
    preferred_mode: str = ''
    weekly_goal: str = ''
    last_question: str = ''
    last_response: str = ''


@dataclass(frozen=True)
class LongTermMemoryEntry:
    """One distilled insight about a user."""
    user_id: str
    content: str
    created_at: datetime


@dataclass(frozen=True)
class EpisodicMemoryEntry:
    """One summarized life event taken from a single exchange.

    The id is assigned by the store on insertion and is None before that.
    """
    user_id: str
    summary: str
    raw_text: str  # Verbatim exchange, both sides
    tags: List[str]
    created_at: datetime
    id: Optional[str] = None


@dataclass(frozen=True)
class MemoryEmbedding:
    """A vector record pointing back at the text it was computed from."""
    user_id: str
    source_type: MemorySourceType
    content: str
    embedding: List[float]
    created_at: datetime
    source_id: Optional[str] = None  # Only set for EPISODIC records


@dataclass(frozen=True)
class EpisodicEvent:
    """Parsed episodic extractor output."""
    summary: str
    tags: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ScoredMemory:
    """A retrieved memory and its similarity to the query. Never persisted."""
    content: str
    score: float


@dataclass(frozen=True)
class ChatResult:
    """Reply returned to the boundary layer; ok is False for the failure message."""
    message: str
    ok: bool = True
