# Storage module
"""Ledger store adapters and local session persistence."""

from cryptowallet.storage.firebase import FirebaseLedgerStore
from cryptowallet.storage.ledger import (
    SERVER_TIMESTAMP,
    ILedgerStore,
    InMemoryLedgerStore,
    join_path,
    split_path,
)
from cryptowallet.storage.push_ids import PushIdGenerator, generate_push_id
from cryptowallet.storage.storage import (
    InMemoryStorage,
    IStorageService,
    JsonFileStorage,
    SessionCache,
)

__all__ = [
    "SERVER_TIMESTAMP",
    "ILedgerStore",
    "InMemoryLedgerStore",
    "FirebaseLedgerStore",
    "join_path",
    "split_path",
    "PushIdGenerator",
    "generate_push_id",
    "IStorageService",
    "JsonFileStorage",
    "InMemoryStorage",
    "SessionCache",
]
