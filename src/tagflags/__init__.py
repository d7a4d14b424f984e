"""tagflags: tag-targeted feature flag service."""

from .config import CouchbaseSection, FlagsConfig, LogSection, load
from .exceptions import (
    AlreadyExistsError,
    DependencyError,
    DuplicateChainError,
    FlagError,
    FlagErrorCodes,
    NotFoundError,
    StoreError,
    ValidationError,
)
from .http_store import CouchbaseQueryStore
from .logger import configure_logging
from .memory import InMemoryFlagStore
from .models import ChainOp, FlagCheck, Record, Rule, RuleChain, RuleOp, Tag
from .mutex import KeyedMutex
from .query import (
    ConditionOp,
    Direction,
    Order,
    ScopeCollection,
    Update,
    Where,
    build_update,
    fully_qualified_name,
)
from .service import FlagService
from .store import FLAG_COLLECTION, FLAG_SCOPE, FlagReader, FlagWriter

__all__ = [
    "AlreadyExistsError",
    "ChainOp",
    "ConditionOp",
    "CouchbaseQueryStore",
    "CouchbaseSection",
    "DependencyError",
    "Direction",
    "DuplicateChainError",
    "FLAG_COLLECTION",
    "FLAG_SCOPE",
    "FlagCheck",
    "FlagError",
    "FlagErrorCodes",
    "FlagReader",
    "FlagService",
    "FlagWriter",
    "FlagsConfig",
    "InMemoryFlagStore",
    "KeyedMutex",
    "LogSection",
    "NotFoundError",
    "Order",
    "Record",
    "Rule",
    "RuleChain",
    "RuleOp",
    "ScopeCollection",
    "StoreError",
    "Tag",
    "Update",
    "ValidationError",
    "Where",
    "build_update",
    "configure_logging",
    "fully_qualified_name",
    "load",
]
