"""
Message and reaction storage on PostgreSQL.

This package provides the pooled database client, the schema, and the two
stores: MessageStore for direct messages and ReactionStore for reactions and
the reaction type catalog.
"""

from messaging_core.store.client import DatabaseClient, StoreConfig
from messaging_core.store.errors import (
    AlreadyExistsError,
    InternalError,
    InvalidArgumentError,
    NotFoundError,
    StoreError,
    UnavailableError,
    classify_error,
)
from messaging_core.store.messages import MessageStore
from messaging_core.store.models import (
    ById,
    ByUserPair,
    ConversationPage,
    Message,
    MessagePage,
    Reaction,
    ReactionCount,
    ReactionType,
    ReadSelector,
    read_selector,
)
from messaging_core.store.reactions import ReactionStore
from messaging_core.store.schema import DEFAULT_REACTION_TYPES, apply_schema

__all__ = [
    "DatabaseClient",
    "StoreConfig",
    "MessageStore",
    "ReactionStore",
    "apply_schema",
    "DEFAULT_REACTION_TYPES",
    "Message",
    "MessagePage",
    "ConversationPage",
    "Reaction",
    "ReactionCount",
    "ReactionType",
    "ReadSelector",
    "ById",
    "ByUserPair",
    "read_selector",
    "StoreError",
    "InvalidArgumentError",
    "NotFoundError",
    "AlreadyExistsError",
    "UnavailableError",
    "InternalError",
    "classify_error",
]
