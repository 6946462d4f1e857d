"""
Shared data models and utilities for the lunch voting system.

This module contains:
- VoteRank: The three ranked choices a voter hands out each day
- Candidate: A restaurant as seen by one client during a session
- CandidateRecord / BallotRecord: Records as stored in the shared record store
- MalformedBallot: A stored ballot that failed validation
- Outcome: Result codes returned to the caller for every operation
- Record key and voting period helpers
"""

import uuid
from dataclasses import dataclass, asdict
from datetime import datetime, time, timezone
from enum import Enum
from typing import Optional, Dict, Any, Mapping

from pydantic import BaseModel, Field, field_validator


class VoteRank(str, Enum):
    """Ranked vote choices, ordered by weight."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def weight(self) -> int:
        """Score a single ballot of this rank adds to its candidate."""
        return RANK_WEIGHTS[self]

    def __lt__(self, other):
        if not isinstance(other, VoteRank):
            return NotImplemented
        return self.weight < other.weight

    # str defines every comparison already, so functools.total_ordering
    # would keep the alphabetical ones; all four are overridden here
    def __le__(self, other):
        if not isinstance(other, VoteRank):
            return NotImplemented
        return self.weight <= other.weight

    def __gt__(self, other):
        if not isinstance(other, VoteRank):
            return NotImplemented
        return self.weight > other.weight

    def __ge__(self, other):
        if not isinstance(other, VoteRank):
            return NotImplemented
        return self.weight >= other.weight


RANK_WEIGHTS = {
    VoteRank.LOW: 1,
    VoteRank.MEDIUM: 2,
    VoteRank.HIGH: 3,
}

# Each voter casts exactly one ballot per rank per voting period
BALLOTS_PER_VOTER = len(VoteRank)


class Outcome(str, Enum):
    """Caller-facing result of a store operation."""
    SUCCESS = "success"
    EMPTY_RECORD = "empty-record"
    TAMPERED_VOTE_FOUND = "tampered-vote-found"
    BALLOT_COUNT_INVALID = "ballot-count-invalid"
    GENERAL_ERROR = "general-error"


@dataclass
class Candidate:
    """
    A restaurant as seen by the local client.

    Attributes:
        id: Store-assigned record identifier
        name: Display name
        vote: The caller's pending (not yet submitted) rank for this candidate
        score: Weighted sum of qualifying ballots, recomputed on every refresh
    """
    id: str
    name: str
    vote: Optional[VoteRank] = None
    score: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for display or logging."""
        data = asdict(self)
        data['vote'] = self.vote.value if self.vote else None
        return data


class StoredRecord(BaseModel):
    """Fields the record store keeps for every record."""

    id: str = Field(..., description="Store-assigned record identifier")
    created_at: datetime = Field(..., description="Creation timestamp (UTC)")
    modified_at: datetime = Field(..., description="Last modification timestamp (UTC)")
    author: str = Field(..., description="Identity of the user who created the record")

    @field_validator("created_at", "modified_at")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        """Treat naive timestamps as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def to_hash(self) -> Dict[str, str]:
        """Flatten to string fields for storage in a Redis hash."""
        return {key: str(value) for key, value in self.model_dump(mode='json').items()}


class CandidateRecord(StoredRecord):
    """Stored restaurant record."""

    name: str = Field(default="", description="Restaurant name")


class BallotRecord(StoredRecord):
    """
    Stored ballot: one ranked vote from one author for one restaurant.

    Ballots are never updated after creation, so a record whose
    modification timestamp differs from its creation timestamp has been
    altered by someone after it was cast.
    """

    restaurant: str = Field(..., description="Identifier of the candidate record voted for")
    priority: VoteRank = Field(..., description="Rank of the vote: low, medium or high")

    @field_validator("restaurant")
    @classmethod
    def validate_restaurant(cls, v: str) -> str:
        """Validate the candidate reference is not empty."""
        if not v or not v.strip():
            raise ValueError("Ballot must reference a restaurant")
        return v.strip()

    @property
    def is_tampered(self) -> bool:
        return self.modified_at != self.created_at


@dataclass
class MalformedBallot:
    """
    A stored ballot that failed validation.

    It never scores, but it still counts toward its author's ballots for
    the period. Timestamps are kept as the raw stored strings.
    """
    id: str
    author: Optional[str] = None
    created_at: Optional[str] = None
    modified_at: Optional[str] = None
    reason: str = ""

    @property
    def is_tampered(self) -> bool:
        if self.created_at is None or self.modified_at is None:
            return False
        return self.modified_at != self.created_at

    @classmethod
    def from_hash(cls, record_id: str, data: Mapping[str, str], reason: str = "") -> "MalformedBallot":
        """Build from the raw fields of a stored hash."""
        return cls(
            id=data.get("id") or record_id,
            author=data.get("author") or None,
            created_at=data.get("created_at"),
            modified_at=data.get("modified_at"),
            reason=reason,
        )


def generate_record_id() -> str:
    """
    Generate a new opaque record identifier.

    Returns:
        str: Random 32 character hexadecimal identifier
    """
    return uuid.uuid4().hex


def get_current_timestamp() -> datetime:
    """
    Get the current time as an aware UTC datetime.

    Returns:
        datetime: Current UTC time
    """
    return datetime.now(timezone.utc)


def start_of_voting_period(now: Optional[datetime] = None) -> datetime:
    """
    Get the instant the current voting period started.

    The voting period is the current calendar day in the client's local
    time zone. Every client computes it from its own clock.

    Args:
        now: Reference time (defaults to the current local time)

    Returns:
        datetime: Aware datetime for local midnight of the reference day
    """
    if now is None:
        now = datetime.now()

    midnight = datetime.combine(now.date(), time.min)
    if now.tzinfo is None:
        return midnight.astimezone()

    # A fixed offset from astimezone() is only valid for that instant;
    # midnight may fall on the other side of a DST change
    if isinstance(now.tzinfo, timezone) and now.utcoffset() == now.astimezone().utcoffset():
        return midnight.astimezone()

    return midnight.replace(tzinfo=now.tzinfo)


# Redis key templates for the record store
REDIS_KEYS = {
    'candidate': 'candidate:{}',    # HASH for one candidate record
    'ballot': 'ballot:{}',          # HASH for one ballot record
    'candidates': 'candidates',     # ZSET of candidate ids scored by creation time
    'ballots': 'ballots',           # ZSET of ballot ids scored by creation time
}


def get_redis_key(key_type: str, *args, prefix: str = '') -> str:
    """
    Get formatted Redis key.

    Args:
        key_type: Type of key from REDIS_KEYS
        *args: Arguments to format into key
        prefix: Namespace prepended to every key

    Returns:
        str: Formatted Redis key
    """
    key_template = REDIS_KEYS[key_type]
    if '{}' in key_template:
        key_template = key_template.format(*args)
    return f"{prefix}{key_template}"
