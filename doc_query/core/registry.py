"""Model registry.

Maps model names to model classes. Morph relations resolve their determiner
values here, and string references to related or pivot models resolve here
too, so lookups always go through the registry a model was registered with.

    registry = ModelRegistry(engine)
    registry.register(User, Post)

    @registry.register
    class Comment(Model): ...
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from doc_query.core.exceptions import DuplicateModelError, ModelNotFoundError

if TYPE_CHECKING:
    from doc_query.core.engine import Engine


class ModelRegistry:
    """Name -> model class lookup bound to one Engine.

    Args:
        engine: Store client used by every model registered here.

    Raises:
        DuplicateModelError: If two different classes register under one name.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._models: dict[str, type[Any]] = {}

    def register(self, *models: type[Any]) -> Any:
        """Register model classes and bind them to this registry.

        With a single class the class itself is returned, so this also works
        as a class decorator.
        """
        for model in models:
            name = model.morph_name()
            existing = self._models.get(name)
            if existing is not None and existing is not model:
                raise DuplicateModelError(name)
            self._models[name] = model
            model._registry = self
        return models[0] if len(models) == 1 else models

    def get(self, name: str) -> type[Any]:
        """Look up a model class by registered name.

        Raises:
            ModelNotFoundError: If no model is registered under ``name``.
        """
        try:
            return self._models[name]
        except KeyError:
            raise ModelNotFoundError(name) from None

    def resolve(self, reference: str | type[Any]) -> type[Any]:
        """Return a model class for a class or a registered name."""
        if isinstance(reference, str):
            return self.get(reference)
        return reference

    def has(self, name: str) -> bool:
        """Check if a model name is registered."""
        return name in self._models

    @property
    def names(self) -> list[str]:
        """List all registered model names, sorted alphabetically."""
        return sorted(self._models.keys())

    def __len__(self) -> int:
        return len(self._models)

    def __contains__(self, name: object) -> bool:
        return name in self._models
