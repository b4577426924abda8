"""Store backend and relation kind enumerations."""

from __future__ import annotations

from enum import Enum


class StoreBackend(Enum):
    """Supported document store backends."""

    MEMORY = "memory"
    SQLITE = "sqlite"


class RelationKind(Enum):
    """Relation kinds a model can declare."""

    HAS_ONE = "HasOne"
    HAS_MANY = "HasMany"
    BELONGS_TO = "BelongsTo"
    BELONGS_TO_MANY = "BelongsToMany"
    EMBEDS_MANY = "EmbedsMany"
    MORPH_ONE = "MorphOne"
    MORPH_MANY = "MorphMany"
    MORPH_TO = "MorphTo"
