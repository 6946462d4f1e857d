"""Client-side voting session: local selections plus automatic re-sync."""

import logging
from datetime import datetime
from typing import Callable, List, Optional

from luncher.shared.models import Candidate, Outcome
from luncher.sync.engine import ReconciliationEngine, RefreshResult
from luncher.sync.gateway import SyncGateway
from luncher.sync.ranks import RankAssigner

logger = logging.getLogger(__name__)


class VotingSession:
    """
    One user's view of today's vote.

    Owns the candidate list, the rank pool and the eligibility flag. Every
    submission is followed by a refresh so local state matches the store.
    Call refresh() before tap(); a submit() on a session that has never
    refreshed refreshes first so eligibility reflects the store.
    """

    def __init__(
        self,
        gateway: SyncGateway,
        user_id: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.engine = ReconciliationEngine(gateway, user_id=user_id)
        self.ranks = RankAssigner()
        self.clock = clock
        self.candidates: List[Candidate] = []
        self.can_vote = False
        self.refreshed = False
        self.last_outcome: Optional[Outcome] = None

    @property
    def scores_visible(self) -> bool:
        """Scores are revealed only after the caller has voted."""
        return not self.can_vote

    async def refresh(self) -> RefreshResult:
        """Re-sync candidates, scores and eligibility from the store."""
        now = self.clock() if self.clock else None
        result = await self.engine.refresh(now)

        self.candidates = result.candidates
        self.can_vote = result.can_vote
        self.refreshed = True
        # Selections belonged to the replaced candidate objects
        self.ranks.reset()

        logger.info(
            f"Refreshed: {len(self.candidates)} restaurants, "
            f"can_vote={self.can_vote}, outcome={result.outcome.value}"
        )
        return result

    def tap(self, index: int) -> Candidate:
        """Cycle the caller's rank on the candidate at a list position."""
        return self.ranks.assign(self.candidates[index])

    async def submit(self) -> Outcome:
        """Submit the caller's three ranked ballots, then refresh."""
        if not self.refreshed:
            logger.warning("submit() called before refresh(), refreshing first")
            await self.refresh()

        if not self.can_vote:
            # A second set of ballots would disqualify the first
            logger.warning("Caller already voted this period, not submitting")
            outcome = Outcome.BALLOT_COUNT_INVALID
        else:
            outcome = await self.engine.submit_ballots(self.candidates)

        return await self._notify(outcome)

    async def add_candidate(self, name: str) -> Outcome:
        """Add a restaurant to the shared list, then refresh."""
        outcome = await self.engine.submit_candidate(name)
        return await self._notify(outcome)

    async def _notify(self, outcome: Outcome) -> Outcome:
        self.last_outcome = outcome
        if outcome is Outcome.SUCCESS:
            logger.info("Submission stored")
        else:
            logger.error(f"Submission failed: {outcome.value}")

        await self.refresh()
        return outcome

    async def close(self) -> None:
        """Finish background deletes and release the store."""
        await self.engine.wait_for_pending_deletes()
        await self.engine.gateway.close()
