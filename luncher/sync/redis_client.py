"""Redis-backed record store gateway."""

import logging
from datetime import datetime
from typing import List, Optional, Type, TypeVar, Union

import redis.asyncio as redis
from pydantic import ValidationError

from luncher.shared.models import (
    BallotRecord,
    CandidateRecord,
    MalformedBallot,
    StoredRecord,
    VoteRank,
    generate_record_id,
    get_current_timestamp,
    get_redis_key,
)
from luncher.sync.config import Config
from luncher.sync.gateway import GatewayError, StoredBallot, SyncGateway
from luncher.sync.metrics import malformed_records

logger = logging.getLogger(__name__)

RecordT = TypeVar('RecordT', bound=StoredRecord)


class RedisGateway(SyncGateway):
    """
    Record store kept in Redis.

    Each record is a hash at candidate:{id} or ballot:{id}. The sorted
    sets candidates and ballots index record ids by creation time so that
    ballots of the current voting period are a single range query.
    """

    def __init__(
        self,
        user_id: Optional[str] = None,
        url: Optional[str] = None,
        key_prefix: Optional[str] = None,
        client: Optional[redis.Redis] = None
    ):
        """
        Initialize Redis connection pool.

        Args:
            user_id: Identity stamped as author on records this client saves
            url: Redis URL (defaults to the configured host)
            key_prefix: Namespace for every key (defaults to REDIS_KEY_PREFIX)
            client: Existing client to use instead of opening a pool
        """
        self.user_id = user_id or Config.USER_ID
        self.prefix = Config.REDIS_KEY_PREFIX if key_prefix is None else key_prefix
        self.pool = None
        if client is None:
            self.pool = redis.ConnectionPool.from_url(
                url or Config.get_redis_url(),
                max_connections=Config.REDIS_MAX_CONNECTIONS,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_keepalive=True,
                health_check_interval=30
            )
            client = redis.Redis(connection_pool=self.pool)
        self.client = client

    def _key(self, key_type: str, *args) -> str:
        return get_redis_key(key_type, *args, prefix=self.prefix)

    async def ping(self) -> None:
        """Test the Redis connection."""
        try:
            await self.client.ping()
            logger.info("Redis connection established successfully")
        except redis.RedisError as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise GatewayError(f"Redis unavailable: {e}") from e

    async def _load(
        self,
        key_type: str,
        ids: List[str],
        model: Type[RecordT],
        keep_malformed: bool = False
    ) -> List[Union[RecordT, MalformedBallot]]:
        """
        Fetch record hashes for ids, skipping deleted ones.

        Malformed records are skipped too, unless keep_malformed is set, in
        which case they are returned as MalformedBallot.
        """
        if not ids:
            return []

        pipe = self.client.pipeline(transaction=False)
        for record_id in ids:
            pipe.hgetall(self._key(key_type, record_id))
        rows = await pipe.execute()

        records = []
        for record_id, data in zip(ids, rows):
            if not data:
                # Index entry outlived its record
                continue
            try:
                records.append(model.model_validate(data))
            except ValidationError as e:
                logger.warning(f"Malformed {key_type} record {record_id}: {e.error_count()} errors")
                malformed_records.labels(record_type=key_type).inc()
                if keep_malformed:
                    records.append(MalformedBallot.from_hash(record_id, data, reason=str(e)))
        return records

    async def query_candidates(self) -> List[CandidateRecord]:
        try:
            ids = await self.client.zrange(self._key('candidates'), 0, -1)
            return await self._load('candidate', ids, CandidateRecord)
        except redis.RedisError as e:
            logger.error(f"Redis error querying candidates: {e}")
            raise GatewayError(f"Candidate query failed: {e}") from e

    async def query_ballots(self, created_after: datetime) -> List[StoredBallot]:
        try:
            ids = await self.client.zrangebyscore(
                self._key('ballots'),
                created_after.timestamp(),
                '+inf'
            )
            logger.debug(f"{len(ids)} ballots created since {created_after.isoformat()}")
            return await self._load('ballot', ids, BallotRecord, keep_malformed=True)
        except redis.RedisError as e:
            logger.error(f"Redis error querying ballots: {e}")
            raise GatewayError(f"Ballot query failed: {e}") from e

    async def _save(self, key_type: str, index_type: str, record: RecordT) -> Optional[RecordT]:
        key = self._key(key_type, record.id)
        try:
            pipe = self.client.pipeline(transaction=True)
            pipe.hset(key, mapping=record.to_hash())
            pipe.zadd(self._key(index_type), {record.id: record.created_at.timestamp()})
            await pipe.execute()

            data = await self.client.hgetall(key)
        except redis.RedisError as e:
            logger.error(f"Redis error saving {key_type} {record.id}: {e}")
            raise GatewayError(f"Saving {key_type} failed: {e}") from e

        if not data:
            logger.warning(f"Saved {key_type} {record.id} but read back nothing")
            return None

        try:
            return type(record).model_validate(data)
        except ValidationError as e:
            raise GatewayError(f"Stored {key_type} {record.id} is unreadable: {e}") from e

    async def save_candidate(self, name: str) -> Optional[CandidateRecord]:
        now = get_current_timestamp()
        record = CandidateRecord(
            id=generate_record_id(),
            created_at=now,
            modified_at=now,
            author=self.user_id,
            name=name
        )
        return await self._save('candidate', 'candidates', record)

    async def save_ballot(self, candidate_ref: str, rank: VoteRank) -> Optional[BallotRecord]:
        now = get_current_timestamp()
        record = BallotRecord(
            id=generate_record_id(),
            created_at=now,
            modified_at=now,
            author=self.user_id,
            restaurant=candidate_ref,
            priority=rank
        )
        return await self._save('ballot', 'ballots', record)

    async def delete_ballot(self, record_id: str) -> None:
        try:
            pipe = self.client.pipeline(transaction=True)
            pipe.delete(self._key('ballot', record_id))
            pipe.zrem(self._key('ballots'), record_id)
            await pipe.execute()
            logger.debug(f"Deleted ballot {record_id}")
        except redis.RedisError as e:
            logger.error(f"Redis error deleting ballot {record_id}: {e}")
            raise GatewayError(f"Deleting ballot failed: {e}") from e

    async def close(self) -> None:
        """Close Redis connection pool."""
        try:
            await self.client.aclose()
            if self.pool is not None:
                await self.pool.disconnect()
            logger.info("Redis connection pool closed")
        except Exception as e:
            logger.error(f"Error closing Redis connection: {e}")
