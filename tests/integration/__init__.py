"""Integration tests for the Redis record store.

These tests talk to a live Redis server (REDIS_HOST / REDIS_PORT) and are
skipped when none is reachable.
"""
