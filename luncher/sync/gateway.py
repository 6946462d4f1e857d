"""
Record store gateway for the vote synchronizer.

The engine talks to the shared record store only through SyncGateway.
Every call is a coroutine; the store offers no transactions spanning
several records and no server-side validation, so each ballot is an
independent record.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple, Union

from luncher.shared.models import (
    BallotRecord,
    CandidateRecord,
    MalformedBallot,
    VoteRank,
    generate_record_id,
    get_current_timestamp,
)

logger = logging.getLogger(__name__)

StoredBallot = Union[BallotRecord, MalformedBallot]


class GatewayError(Exception):
    """Raised when the record store reports a failure."""
    pass


class SyncGateway(ABC):
    """Narrow async interface to the remote record store."""

    user_id: str

    @abstractmethod
    async def query_candidates(self) -> List[CandidateRecord]:
        """Return all candidate records, in store order."""

    @abstractmethod
    async def query_ballots(self, created_after: datetime) -> List[StoredBallot]:
        """
        Return all ballot records created at or after the given instant.

        Records that fail validation come back as MalformedBallot so they
        still count toward their author's ballots.
        """

    @abstractmethod
    async def save_candidate(self, name: str) -> Optional[CandidateRecord]:
        """
        Create a candidate record.

        Returns:
            The stored record, or None if the store acknowledged the write
            but returned no record

        Raises:
            GatewayError: If the store reports a failure
        """

    @abstractmethod
    async def save_ballot(self, candidate_ref: str, rank: VoteRank) -> Optional[BallotRecord]:
        """
        Create a ballot record authored by this gateway's user.

        Returns:
            The stored record, or None if the store acknowledged the write
            but returned no record

        Raises:
            GatewayError: If the store reports a failure
        """

    @abstractmethod
    async def delete_ballot(self, record_id: str) -> None:
        """Delete a ballot record. Best effort."""

    async def close(self) -> None:
        """Release store connections."""


class InMemoryStore:
    """Process-local record store shared by several InMemoryGateway clients."""

    def __init__(self):
        self.candidates: Dict[str, CandidateRecord] = {}
        self.ballots: Dict[str, BallotRecord] = {}
        self.malformed: Dict[str, Tuple[datetime, MalformedBallot]] = {}

    def add_candidate(self, record: CandidateRecord) -> None:
        self.candidates[record.id] = record

    def add_ballot(self, record: BallotRecord) -> None:
        self.ballots[record.id] = record

    def add_malformed(self, record: MalformedBallot, created_at: datetime) -> None:
        """Store an unreadable ballot under the index time it was filed at."""
        self.malformed[record.id] = (created_at, record)


class InMemoryGateway(SyncGateway):
    """SyncGateway backed by an InMemoryStore."""

    def __init__(
        self,
        user_id: str,
        store: Optional[InMemoryStore] = None,
        clock: Callable[[], datetime] = get_current_timestamp
    ):
        self.user_id = user_id
        self.store = store if store is not None else InMemoryStore()
        self.clock = clock

    async def query_candidates(self) -> List[CandidateRecord]:
        return sorted(self.store.candidates.values(), key=lambda r: r.created_at)

    async def query_ballots(self, created_after: datetime) -> List[StoredBallot]:
        indexed = [(r.created_at, r) for r in self.store.ballots.values()]
        indexed.extend(self.store.malformed.values())
        records = [(at, r) for at, r in indexed if at >= created_after]
        return [r for _, r in sorted(records, key=lambda pair: pair[0])]

    async def save_candidate(self, name: str) -> Optional[CandidateRecord]:
        now = self.clock()
        record = CandidateRecord(
            id=generate_record_id(),
            created_at=now,
            modified_at=now,
            author=self.user_id,
            name=name
        )
        self.store.add_candidate(record)
        logger.debug(f"Saved candidate {record.id} ({name!r})")
        return record

    async def save_ballot(self, candidate_ref: str, rank: VoteRank) -> Optional[BallotRecord]:
        now = self.clock()
        record = BallotRecord(
            id=generate_record_id(),
            created_at=now,
            modified_at=now,
            author=self.user_id,
            restaurant=candidate_ref,
            priority=rank
        )
        self.store.add_ballot(record)
        logger.debug(f"Saved ballot {record.id}: {rank.value} for {candidate_ref}")
        return record

    async def delete_ballot(self, record_id: str) -> None:
        self.store.ballots.pop(record_id, None)
        self.store.malformed.pop(record_id, None)
        logger.debug(f"Deleted ballot {record_id}")
