"""
Ballot reconciliation and vote submission.

Project: Luncher - Daily Restaurant Voting

╔══════════════════════════════════════════════════════════════════════════════╗
║                        READ-TIME VOTE RECONCILIATION                         ║
╚══════════════════════════════════════════════════════════════════════════════╝

The record store has no server-side logic and no multi-record transactions.
A vote is three independent ballot records, so the voting rules are enforced
by every client when it reads, not when it writes:

1. TAMPER DETECTION
   - Ballots are never updated after creation
   - modified_at != created_at means someone edited the record
   - Tampered ballots are excluded and a delete is issued in the background

2. ONE VOTE PER USER PER DAY
   - Only ballots created since local midnight are read
   - An author's ballots count only if there are exactly three of them,
     one per rank
   - Partial (1-2) and repeated (4+) submissions disqualify all of that
     author's ballots for the day
   - Unreadable ballots never score but still count toward their author

3. WEIGHTED AGGREGATION
   - low=1, medium=2, high=3
   - Scores are rebuilt from zero on every pass
   - Ballots pointing at a deleted restaurant are dropped

════════════════════════════════════════════════════════════════════════════════
"""

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Dict, List, Optional, Set

from luncher.shared.models import (
    BALLOTS_PER_VOTER,
    Candidate,
    MalformedBallot,
    Outcome,
    StoredRecord,
    VoteRank,
    start_of_voting_period,
)
from luncher.sync.ballot import selected_candidates, validate_ballot
from luncher.sync.gateway import GatewayError, StoredBallot, SyncGateway
from luncher.sync.metrics import (
    ballots_reconciled,
    reconciliation_duration,
    submissions,
    tampered_deletes,
)

logger = logging.getLogger(__name__)


@dataclass
class Reconciliation:
    """
    Result of reconciling one batch of ballots.

    Attributes:
        candidates: Candidates with recomputed scores
        can_vote: False if the caller already cast a valid vote this period
        counted: Ballots that contributed to a score
        tampered: Ballots excluded because they were modified after creation
        disqualified: Ballots excluded because their author broke the three-ballot rule
        dangling: Valid ballots whose restaurant no longer exists
        malformed: Unreadable ballots, excluded from scoring
    """
    candidates: List[Candidate]
    can_vote: bool = True
    counted: int = 0
    tampered: int = 0
    disqualified: int = 0
    dangling: int = 0
    malformed: int = 0


@dataclass
class RefreshResult:
    """State handed back to the caller after a refresh."""
    candidates: List[Candidate] = field(default_factory=list)
    can_vote: bool = False
    outcome: Outcome = Outcome.SUCCESS


def _qualified_authors(ballots: List[StoredBallot]) -> Set[str]:
    """Authors who cast exactly one ballot of each rank in the batch."""
    ranks_by_author: Dict[str, List[Optional[VoteRank]]] = defaultdict(list)
    for ballot in ballots:
        if isinstance(ballot, MalformedBallot):
            if ballot.author is not None:
                ranks_by_author[ballot.author].append(None)
            continue
        ranks_by_author[ballot.author].append(ballot.priority)

    qualified = set()
    for author, ranks in ranks_by_author.items():
        if len(ranks) == BALLOTS_PER_VOTER and set(ranks) == set(VoteRank):
            qualified.add(author)
        else:
            logger.warning(
                f"Disqualifying {len(ranks)} ballots from {author}: "
                f"expected {BALLOTS_PER_VOTER} distinct ranks"
            )
    return qualified


class ReconciliationEngine:
    """Fetches, validates and aggregates ballots; submits new records."""

    def __init__(self, gateway: SyncGateway, user_id: Optional[str] = None):
        """
        Initialize the engine.

        Args:
            gateway: Record store the engine reads from and writes to
            user_id: Caller identity (defaults to the gateway's user)
        """
        self.gateway = gateway
        self.user_id = user_id or gateway.user_id
        self.candidates: List[Candidate] = []

        # Detached delete tasks, held until they finish
        self._pending_deletes: Set[asyncio.Task] = set()
        self._deleting: Set[str] = set()

    async def fetch_candidates(self) -> List[Candidate]:
        """
        Replace the local candidate set with the store's candidate records.

        Returns:
            list: Fresh candidates with zero scores, sorted by name

        Raises:
            GatewayError: If the store query fails
        """
        self.candidates = []

        records = await self.gateway.query_candidates()
        candidates = [Candidate(id=record.id, name=record.name) for record in records]
        candidates.sort(key=lambda candidate: candidate.name.casefold())

        self.candidates = candidates
        logger.debug(f"Fetched {len(candidates)} candidates")
        return candidates

    async def reconcile_ballots(
        self,
        candidates: List[Candidate],
        period_start: datetime
    ) -> Reconciliation:
        """
        Recompute candidate scores from the ballots cast this period.

        Args:
            candidates: Candidates to score; their scores are reset and mutated
            period_start: Start of the current voting period

        Returns:
            Reconciliation: Scored candidates, eligibility flag and tallies

        Raises:
            GatewayError: If the ballot query fails
        """
        for candidate in candidates:
            candidate.score = 0

        ballots = await self.gateway.query_ballots(period_start)
        qualified = _qualified_authors(ballots)
        by_id = {candidate.id: candidate for candidate in candidates}

        result = Reconciliation(candidates=candidates)
        caller_already_voted = False

        for ballot in ballots:
            if ballot.is_tampered:
                logger.warning(
                    f"Tampered ballot {ballot.id} from {ballot.author}: "
                    f"created {ballot.created_at}, modified {ballot.modified_at}"
                )
                self._discard_tampered(ballot)
                ballots_reconciled.labels(status='tampered').inc()
                result.tampered += 1
                continue

            if isinstance(ballot, MalformedBallot):
                ballots_reconciled.labels(status='malformed').inc()
                result.malformed += 1
                continue

            if ballot.author not in qualified:
                ballots_reconciled.labels(status='disqualified').inc()
                result.disqualified += 1
                continue

            if ballot.author == self.user_id:
                caller_already_voted = True

            candidate = by_id.get(ballot.restaurant)
            if candidate is None:
                logger.debug(f"Ballot {ballot.id} references unknown restaurant {ballot.restaurant}")
                ballots_reconciled.labels(status='dangling').inc()
                result.dangling += 1
                continue

            candidate.score += ballot.priority.weight
            ballots_reconciled.labels(status='counted').inc()
            result.counted += 1

        result.can_vote = not caller_already_voted

        logger.info(
            f"Reconciled {len(ballots)} ballots: {result.counted} counted, "
            f"{result.tampered} tampered, {result.disqualified} disqualified, "
            f"{result.dangling} dangling, {result.malformed} malformed"
        )
        return result

    async def refresh(self, now: Optional[datetime] = None) -> RefreshResult:
        """
        Fetch candidates, then reconcile today's ballots against them.

        Args:
            now: Reference time for the voting period (defaults to now)

        Returns:
            RefreshResult: Scored candidates, eligibility flag and outcome
        """
        with reconciliation_duration.time():
            try:
                candidates = await self.fetch_candidates()
                result = await self.reconcile_ballots(candidates, start_of_voting_period(now))
            except GatewayError as e:
                logger.error(f"Refresh failed: {e}")
                return RefreshResult(
                    candidates=self.candidates,
                    can_vote=False,
                    outcome=Outcome.GENERAL_ERROR
                )

        outcome = Outcome.TAMPERED_VOTE_FOUND if result.tampered else Outcome.SUCCESS
        return RefreshResult(
            candidates=result.candidates,
            can_vote=result.can_vote,
            outcome=outcome
        )

    async def submit_ballots(self, candidates: List[Candidate]) -> Outcome:
        """
        Save one ballot per ranked candidate.

        Saves run one after another and stop at the first failure, so a
        failed submission can leave one or two ballots in the store. Other
        clients may also observe a submission half way through. An incomplete
        set of ballots counts for nothing during reconciliation.

        Args:
            candidates: Current candidate set with the caller's selections

        Returns:
            Outcome: SUCCESS, BALLOT_COUNT_INVALID, EMPTY_RECORD or GENERAL_ERROR
        """
        is_valid, error = validate_ballot(candidates)
        if not is_valid:
            logger.warning(f"Ballot rejected before submission: {error}")
            submissions.labels(operation='ballot', outcome=Outcome.BALLOT_COUNT_INVALID.value).inc()
            return Outcome.BALLOT_COUNT_INVALID

        outcome = Outcome.SUCCESS
        for candidate in selected_candidates(candidates):
            outcome = await self._persist(
                self.gateway.save_ballot(candidate.id, candidate.vote),
                f"{candidate.vote.value} ballot for {candidate.name!r}"
            )
            if outcome is not Outcome.SUCCESS:
                break

        submissions.labels(operation='ballot', outcome=outcome.value).inc()
        if outcome is Outcome.SUCCESS:
            logger.info(f"Ballot submitted by {self.user_id}")
        return outcome

    async def submit_candidate(self, name: str) -> Outcome:
        """
        Add a restaurant to the shared list.

        Args:
            name: Display name

        Returns:
            Outcome: SUCCESS, EMPTY_RECORD or GENERAL_ERROR
        """
        name = (name or '').strip()
        if not name:
            logger.warning("Refusing to add a restaurant with a blank name")
            outcome = Outcome.GENERAL_ERROR
        else:
            outcome = await self._persist(self.gateway.save_candidate(name), f"restaurant {name!r}")

        submissions.labels(operation='candidate', outcome=outcome.value).inc()
        return outcome

    async def _persist(self, save: Awaitable[Optional[StoredRecord]], description: str) -> Outcome:
        """Await a store write and map its result to an outcome."""
        try:
            record = await save
        except GatewayError as e:
            logger.error(f"Failed to save {description}: {e}")
            return Outcome.GENERAL_ERROR

        if record is None:
            logger.error(f"Store returned no record for {description}")
            return Outcome.EMPTY_RECORD

        logger.debug(f"Saved {description} as {record.id}")
        return Outcome.SUCCESS

    def _discard_tampered(self, ballot: StoredBallot) -> None:
        """Start a background delete for a tampered ballot."""
        if ballot.id in self._deleting:
            return

        self._deleting.add(ballot.id)
        task = asyncio.create_task(self._delete_tampered(ballot.id))
        self._pending_deletes.add(task)
        task.add_done_callback(self._pending_deletes.discard)

    async def _delete_tampered(self, record_id: str) -> None:
        try:
            await self.gateway.delete_ballot(record_id)
            tampered_deletes.labels(status='success').inc()
            logger.info(f"Deleted tampered ballot {record_id}")
        except Exception as e:
            tampered_deletes.labels(status='error').inc()
            logger.error(f"Failed to delete tampered ballot {record_id}: {e}")
        finally:
            self._deleting.discard(record_id)

    async def wait_for_pending_deletes(self) -> None:
        """Wait for background deletes of tampered ballots to finish."""
        if self._pending_deletes:
            await asyncio.gather(*list(self._pending_deletes))
