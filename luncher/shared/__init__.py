"""
Shared utilities and models for the lunch voting system.

This package contains common code used by every client:
- Data models (VoteRank, Candidate, stored records, outcomes)
- Record identifier and timestamp helpers
- Voting period computation
- Redis key layout of the record store
"""

from .models import (
    VoteRank,
    Outcome,
    Candidate,
    StoredRecord,
    CandidateRecord,
    BallotRecord,
    MalformedBallot,
    generate_record_id,
    get_current_timestamp,
    start_of_voting_period,
    get_redis_key,
    RANK_WEIGHTS,
    BALLOTS_PER_VOTER,
    REDIS_KEYS,
)

__all__ = [
    'VoteRank',
    'Outcome',
    'Candidate',
    'StoredRecord',
    'CandidateRecord',
    'BallotRecord',
    'MalformedBallot',
    'generate_record_id',
    'get_current_timestamp',
    'start_of_voting_period',
    'get_redis_key',
    'RANK_WEIGHTS',
    'BALLOTS_PER_VOTER',
    'REDIS_KEYS',
]
