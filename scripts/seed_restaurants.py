#!/usr/bin/env python3
"""
Add restaurants to the shared Redis record store and print today's standings.

Usage:
    python scripts/seed_restaurants.py [--user USER] [--metrics-port PORT] NAME [NAME ...]

Environment Variables:
    REDIS_HOST: Redis server host (default: localhost)
    REDIS_PORT: Redis server port (default: 6379)
    REDIS_PASSWORD: Redis password (optional)
    LUNCHER_USER_ID: Identity records are saved as
"""

import argparse
import asyncio
import logging
import sys

from luncher.shared.models import Outcome
from luncher.sync.config import Config, configure_logging
from luncher.sync.engine import ReconciliationEngine
from luncher.sync.gateway import GatewayError
from luncher.sync.metrics import start_metrics_server
from luncher.sync.redis_client import RedisGateway

logger = logging.getLogger(__name__)


async def seed(names, user_id):
    gateway = RedisGateway(user_id=user_id)
    engine = ReconciliationEngine(gateway)

    try:
        await gateway.ping()

        for name in names:
            outcome = await engine.submit_candidate(name)
            if outcome is not Outcome.SUCCESS:
                logger.error(f"Could not add {name!r}: {outcome.value}")
                return 1
            logger.info(f"Added {name!r}")

        result = await engine.refresh()
        print("=" * 60)
        for candidate in result.candidates:
            print(f"  {candidate.name:<40} {candidate.score:>5}")
        print("=" * 60)
        print(f"Outcome: {result.outcome.value}, {user_id} can vote: {result.can_vote}")

        await engine.wait_for_pending_deletes()
        return 0 if result.outcome is not Outcome.GENERAL_ERROR else 1

    except GatewayError as e:
        logger.error(f"Redis unavailable: {e}")
        return 1
    finally:
        await gateway.close()


def main():
    parser = argparse.ArgumentParser(description='Seed restaurants into the lunch vote store')
    parser.add_argument('names', nargs='+', help='Restaurant names to add')
    parser.add_argument('--user', default=Config.USER_ID, help='Identity to save records as')
    parser.add_argument('--metrics-port', type=int, default=None, help='Expose Prometheus metrics on this port')
    args = parser.parse_args()

    configure_logging()
    if args.metrics_port:
        start_metrics_server(args.metrics_port)

    sys.exit(asyncio.run(seed(args.names, args.user)))


if __name__ == '__main__':
    main()
