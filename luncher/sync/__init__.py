"""
Vote synchronizer: talks to the shared record store.

- gateway: SyncGateway interface and the in-memory store
- redis_client: Redis-backed SyncGateway
- ranks: caller-local rank pool
- ballot: pre-submission ballot checks
- engine: reconciliation and submission
- session: one user's voting session
"""

from .gateway import GatewayError, SyncGateway, InMemoryGateway, InMemoryStore
from .redis_client import RedisGateway
from .ranks import RankAssigner
from .ballot import selected_candidates, validate_ballot
from .engine import ReconciliationEngine, Reconciliation, RefreshResult
from .session import VotingSession

__all__ = [
    'GatewayError',
    'SyncGateway',
    'InMemoryGateway',
    'InMemoryStore',
    'RedisGateway',
    'RankAssigner',
    'selected_candidates',
    'validate_ballot',
    'ReconciliationEngine',
    'Reconciliation',
    'RefreshResult',
    'VotingSession',
]
