"""
messaging-core: direct messages and message reactions on PostgreSQL.

This package provides the storage layer behind a social backend's messaging
features: sending and threading direct messages, read-state tracking, soft
deletion, and typed reactions with per-message aggregation.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
