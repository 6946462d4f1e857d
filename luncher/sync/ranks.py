"""Caller-local assignment of the three daily vote ranks."""

import logging
from typing import List

from luncher.shared.models import Candidate, VoteRank

logger = logging.getLogger(__name__)


class RankAssigner:
    """
    Pool of the caller's unassigned rank tokens.

    The pool starts as [low, medium, high]. Each tap on a candidate either
    takes a token from the pool, swaps the candidate's token for the next
    one in the pool, or gives the token back. Exactly three tokens exist,
    so no two candidates can hold the same rank.
    """

    def __init__(self):
        self._unused: List[VoteRank] = list(VoteRank)

    @property
    def available(self) -> List[VoteRank]:
        """Ranks not currently held by any candidate, in hand-out order."""
        return list(self._unused)

    def reset(self) -> None:
        """Return every token to the pool."""
        self._unused = list(VoteRank)

    def assign(self, candidate: Candidate) -> Candidate:
        """
        Cycle the rank held by a candidate.

        Args:
            candidate: The candidate the caller tapped

        Returns:
            The same candidate, with its vote updated
        """
        current = candidate.vote

        if current is not None:
            if self._unused:
                candidate.vote = self._unused.pop(0)
                self._unused.append(current)
            else:
                candidate.vote = None
                self._unused.append(current)
        elif self._unused:
            candidate.vote = self._unused.pop(0)

        logger.debug(
            f"Rank for {candidate.name!r}: {current.value if current else None} -> "
            f"{candidate.vote.value if candidate.vote else None}"
        )
        return candidate
