"""Default record type for rows of a many-to-many join collection."""

from __future__ import annotations

from doc_query.model.base import Model


class Pivot(Model):
    """A join-collection row exposed on related instances as ``pivot``.

    Plain pivots are written by the pivot manager directly; declare a
    ``Model`` subclass as ``pivot_model`` to get setters, hooks and
    timestamps on pivot data.

    Rows live in the owning relation's pivot collection, so no
    collection is declared here.
    """

    created_at_column = None
    updated_at_column = None
