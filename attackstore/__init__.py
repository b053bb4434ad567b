"""Append-only attack event storage on InfluxDB."""

from attackstore.core.config import Settings, get_settings
from attackstore.core.errors import (
    AttackStoreError,
    DecodeFailureError,
    InvalidArgumentError,
    NotInitializedError,
    QueryFailureError,
    WriteFailureError,
)
from attackstore.db.points import AttackCodec, DecodePolicy
from attackstore.db.query import QueryMode
from attackstore.schemas.attack import Attack
from attackstore.schemas.criteria import SearchCriteria
from attackstore.services.attack_store import AttackStore
from attackstore.services.initialization import StoreState

__all__ = [
    "Attack",
    "AttackCodec",
    "AttackStore",
    "AttackStoreError",
    "DecodeFailureError",
    "DecodePolicy",
    "InvalidArgumentError",
    "NotInitializedError",
    "QueryFailureError",
    "QueryMode",
    "SearchCriteria",
    "Settings",
    "StoreState",
    "WriteFailureError",
    "get_settings",
]
