"""DocQuery - async document mapper with relation resolution and eager loading."""

from __future__ import annotations

from doc_query.core.connection import StoreConfig, StoreManager
from doc_query.core.engine import Engine
from doc_query.core.enums import RelationKind, StoreBackend
from doc_query.core.exceptions import (
    AdapterError,
    CannotOverrideRelationError,
    DeletedModelError,
    DocQueryError,
    DuplicateModelError,
    InvalidParameterError,
    InvalidRelationMethodError,
    MissingDatabaseRowError,
    ModelError,
    ModelNotFoundError,
    RegistryError,
    RelationError,
    RelationNotFoundError,
    RuntimeModelError,
    UnsavedModelInstanceError,
)
from doc_query.core.registry import ModelRegistry
from doc_query.loading import EagerLoader, GroupedEntry, GroupedResult
from doc_query.model import Model, Pages, Pivot, Query, Serializer, relation

__version__ = "0.1.0"

__all__ = [
    # Store
    "StoreConfig",
    "StoreManager",
    "Engine",
    # Registry
    "ModelRegistry",
    # Model
    "Model",
    "Pivot",
    "Query",
    "Serializer",
    "Pages",
    "relation",
    # Loading
    "EagerLoader",
    "GroupedEntry",
    "GroupedResult",
    # Enums
    "StoreBackend",
    "RelationKind",
    # Exceptions
    "DocQueryError",
    "InvalidParameterError",
    "RelationError",
    "InvalidRelationMethodError",
    "UnsavedModelInstanceError",
    "CannotOverrideRelationError",
    "RelationNotFoundError",
    "ModelError",
    "DeletedModelError",
    "RuntimeModelError",
    "MissingDatabaseRowError",
    "RegistryError",
    "ModelNotFoundError",
    "DuplicateModelError",
    "AdapterError",
]
