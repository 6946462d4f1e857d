"""Prometheus metrics for ballot reconciliation and submission."""

import logging

from prometheus_client import Counter, Histogram, start_http_server

from luncher.sync.config import Config

logger = logging.getLogger(__name__)

ballots_reconciled = Counter(
    'luncher_ballots_reconciled_total',
    'Ballot records seen during reconciliation',
    ['status']
)

malformed_records = Counter(
    'luncher_malformed_records_total',
    'Stored records skipped because they failed validation',
    ['record_type']
)

tampered_deletes = Counter(
    'luncher_tampered_deletes_total',
    'Delete requests issued for tampered ballots',
    ['status']
)

submissions = Counter(
    'luncher_submissions_total',
    'Ballot and candidate submissions',
    ['operation', 'outcome']
)

reconciliation_duration = Histogram(
    'luncher_reconciliation_duration_seconds',
    'Time spent fetching and reconciling records',
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
)


def start_metrics_server(port=None):
    """Expose metrics over HTTP."""
    port = port or Config.METRICS_PORT
    logger.info(f"Starting Prometheus metrics server on port {port}")
    start_http_server(port)
