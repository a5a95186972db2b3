"""
Services layer for data access and external communications.

This layer handles:
- Note store queries and conditional writes
- Note lifecycle transitions and the periodic sweep
- Partner notifications via Kafka
- Room lookups
"""

from . import room_service

__all__ = [
    "room_service",
]
