"""Relations layer - one strategy per relation kind behind a shared contract."""

from __future__ import annotations

from doc_query.relations.base import BaseRelation, QueryRelation
from doc_query.relations.belongs_to import BelongsTo
from doc_query.relations.belongs_to_many import BelongsToMany
from doc_query.relations.capabilities import (
    Attachable,
    BulkPersistable,
    Embeddable,
    ManyFetchable,
    Paginatable,
    SingleFetchable,
)
from doc_query.relations.embeds_many import EmbedsMany
from doc_query.relations.has_many import HasMany
from doc_query.relations.has_one import HasOne
from doc_query.relations.morph_many import MorphMany
from doc_query.relations.morph_one import MorphOne
from doc_query.relations.morph_to import MorphTo
from doc_query.relations.pivot import PivotManager

__all__ = [
    "BaseRelation",
    "QueryRelation",
    "SingleFetchable",
    "ManyFetchable",
    "Paginatable",
    "BulkPersistable",
    "Attachable",
    "Embeddable",
    "HasOne",
    "HasMany",
    "BelongsTo",
    "BelongsToMany",
    "PivotManager",
    "EmbedsMany",
    "MorphOne",
    "MorphMany",
    "MorphTo",
]
