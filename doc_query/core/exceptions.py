"""DocQuery exception hierarchy.

Every error carries a stable ``code`` and renders as ``"<CODE>: <detail>"``.
Errors raised by the store driver itself are never wrapped.
"""

from __future__ import annotations


class DocQueryError(Exception):
    """Base exception for all DocQuery errors."""

    code = "E_DOC_QUERY"

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"{self.code}: {detail}")


class InvalidParameterError(DocQueryError):
    """Raised when an argument has the wrong shape."""

    code = "E_INVALID_PARAMETER"


# --- Relations ---


class RelationError(DocQueryError):
    """Base for relation errors."""


class InvalidRelationMethodError(RelationError):
    """Raised when a relation kind cannot support the requested verb."""

    code = "E_INVALID_RELATION_METHOD"

    def __init__(self, method: str, relation: str, detail: str | None = None) -> None:
        self.method = method
        self.relation = relation
        super().__init__(detail or f"{method} is not supported by {relation} relation")


class UnsavedModelInstanceError(RelationError):
    """Raised when the parent key needed by a relation is undefined."""

    code = "E_UNSAVED_MODEL_INSTANCE"

    def __init__(self, model_name: str) -> None:
        self.model_name = model_name
        super().__init__(
            f"Cannot process relation, since {model_name} model is not persisted "
            "to database or relational value is undefined"
        )


class CannotOverrideRelationError(RelationError):
    """Raised when a relation is eager-loaded twice onto the same instance."""

    code = "E_CANNOT_OVERRIDE_RELATION"

    def __init__(self, relation: str) -> None:
        self.relation = relation
        super().__init__(f"Trying to eagerload {relation} relationship twice")


class RelationNotFoundError(RelationError):
    """Raised when a relation name is not registered on a model."""

    code = "E_INVALID_MODEL_RELATION"

    def __init__(self, relation: str, model_name: str) -> None:
        self.relation = relation
        self.model_name = model_name
        super().__init__(f"{relation} is not defined on {model_name} model")


# --- Model state ---


class ModelError(DocQueryError):
    """Base for model state errors."""


class DeletedModelError(ModelError):
    """Raised when writing to a frozen (deleted) model instance."""

    code = "E_DELETED_MODEL"

    def __init__(self, model_name: str) -> None:
        self.model_name = model_name
        super().__init__(f"Cannot edit deleted model instance for {model_name} model")


class RuntimeModelError(ModelError):
    """Raised when an operation is invalid for the instance's current state."""

    code = "E_RUNTIME_ERROR"


class MissingDatabaseRowError(ModelError):
    """Raised when a fail-if-absent lookup finds nothing."""

    code = "E_MISSING_DATABASE_ROW"

    def __init__(self, model_name: str) -> None:
        self.model_name = model_name
        super().__init__(f"Cannot find database row for {model_name} model")


# --- Registry ---


class RegistryError(DocQueryError):
    """Base for model registry errors."""

    code = "E_REGISTRY"


class ModelNotFoundError(RegistryError):
    """Raised when a model name cannot be resolved by the registry."""

    code = "E_MODEL_NOT_FOUND"

    def __init__(self, model_name: str) -> None:
        self.model_name = model_name
        super().__init__(f"Model not found: '{model_name}'")


class DuplicateModelError(RegistryError):
    """Raised when two different classes register under the same name."""

    code = "E_DUPLICATE_MODEL"

    def __init__(self, model_name: str) -> None:
        self.model_name = model_name
        super().__init__(f"Duplicate model name '{model_name}'")


# --- Adapter ---


class AdapterError(DocQueryError):
    """Raised when a store adapter cannot be loaded."""

    code = "E_ADAPTER"
