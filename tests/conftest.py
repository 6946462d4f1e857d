"""Pytest fixtures for the vote synchronizer tests.

Unit tests run the engine against an InMemoryStore so that ballots from
several users, tampered records and store failures can be set up directly.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

import pytest

from luncher.shared.models import (
    BallotRecord,
    CandidateRecord,
    MalformedBallot,
    VoteRank,
    generate_record_id,
)
from luncher.sync.engine import ReconciliationEngine
from luncher.sync.gateway import GatewayError, InMemoryGateway, InMemoryStore

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
PERIOD_START = datetime(2026, 10, 18, 0, 0, tzinfo=timezone.utc)

CALLER = "alice"


class RecordingGateway(InMemoryGateway):
    """InMemoryGateway that records calls and can be told to fail."""

    def __init__(self, user_id: str, store: Optional[InMemoryStore] = None, clock=lambda: NOW):
        super().__init__(user_id, store=store, clock=clock)
        self.saved_ballots: List[BallotRecord] = []
        self.deleted: List[str] = []
        self.fail_save_at: Optional[int] = None
        self.empty_save_at: Optional[int] = None
        self.fail_candidate_save = False
        self.fail_queries = False
        self.fail_deletes = False
        self.save_attempts = 0

    async def query_candidates(self):
        if self.fail_queries:
            raise GatewayError("query failed")
        return await super().query_candidates()

    async def query_ballots(self, created_after):
        if self.fail_queries:
            raise GatewayError("query failed")
        return await super().query_ballots(created_after)

    async def save_candidate(self, name):
        if self.fail_candidate_save:
            raise GatewayError("save failed")
        return await super().save_candidate(name)

    async def save_ballot(self, candidate_ref, rank):
        self.save_attempts += 1
        if self.save_attempts == self.fail_save_at:
            raise GatewayError("save failed")
        if self.save_attempts == self.empty_save_at:
            return None
        record = await super().save_ballot(candidate_ref, rank)
        self.saved_ballots.append(record)
        return record

    async def delete_ballot(self, record_id):
        self.deleted.append(record_id)
        if self.fail_deletes:
            raise GatewayError("delete failed")
        await super().delete_ballot(record_id)


@pytest.fixture
def store() -> InMemoryStore:
    """Empty shared record store."""
    return InMemoryStore()


@pytest.fixture
def gateway(store: InMemoryStore) -> RecordingGateway:
    """Gateway for the calling user."""
    return RecordingGateway(CALLER, store=store)


@pytest.fixture
def engine(gateway: RecordingGateway) -> ReconciliationEngine:
    """Engine acting as the calling user."""
    return ReconciliationEngine(gateway)


@pytest.fixture
def add_candidate(store: InMemoryStore) -> Callable[..., CandidateRecord]:
    """Helper fixture to put a candidate record in the store.

    Returns a function taking the restaurant name and an optional offset
    (seconds after PERIOD_START) used as its creation time.
    """
    def _add(name: str, offset: int = 0) -> CandidateRecord:
        created = PERIOD_START - timedelta(days=1) + timedelta(seconds=offset)
        record = CandidateRecord(
            id=generate_record_id(),
            created_at=created,
            modified_at=created,
            author="bob",
            name=name
        )
        store.add_candidate(record)
        return record

    return _add


@pytest.fixture
def add_ballot(store: InMemoryStore) -> Callable[..., BallotRecord]:
    """Helper fixture to put a ballot record in the store.

    Returns a function taking author, restaurant id and rank. By default the
    ballot is created one hour into the voting period and never modified.
    """
    def _add(
        author: str,
        restaurant: str,
        rank: VoteRank,
        created: datetime = PERIOD_START + timedelta(hours=1),
        modified: Optional[datetime] = None
    ) -> BallotRecord:
        record = BallotRecord(
            id=generate_record_id(),
            created_at=created,
            modified_at=modified or created,
            author=author,
            restaurant=restaurant,
            priority=rank
        )
        store.add_ballot(record)
        return record

    return _add


@pytest.fixture
def add_malformed(store: InMemoryStore) -> Callable[..., MalformedBallot]:
    """Helper fixture to put an unreadable ballot in the store.

    Returns a function taking the author (None for a record with no author)
    and optionally the raw stored modification timestamp.
    """
    def _add(author: Optional[str], modified: Optional[str] = None) -> MalformedBallot:
        created = PERIOD_START + timedelta(hours=1)
        record = MalformedBallot(
            id=generate_record_id(),
            author=author,
            created_at=created.isoformat(),
            modified_at=modified or created.isoformat(),
            reason="priority: input should be 'low', 'medium' or 'high'"
        )
        store.add_malformed(record, created)
        return record

    return _add


@pytest.fixture
def three_restaurants(add_candidate) -> List[CandidateRecord]:
    """Restaurants A, B and C, stored in that order."""
    return [add_candidate(name, offset=i) for i, name in enumerate(["A", "B", "C"])]


@pytest.fixture
def cast_vote(add_ballot):
    """Helper fixture to store a full, valid vote for a user.

    Takes the author and the (low, medium, high) restaurant ids.
    """
    def _cast(author: str, low: str, medium: str, high: str) -> List[BallotRecord]:
        return [
            add_ballot(author, low, VoteRank.LOW),
            add_ballot(author, medium, VoteRank.MEDIUM),
            add_ballot(author, high, VoteRank.HIGH),
        ]

    return _cast
