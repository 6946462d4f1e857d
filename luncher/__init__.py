"""
Luncher: daily restaurant voting over a shared record store.

Clients cast three ranked ballots a day and every client reconciles the
shared ballot records into per-restaurant scores on refresh.
"""

__version__ = '2.0.0'
