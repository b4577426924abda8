"""Base model record.

A ``Model`` instance wraps one document: an attribute bag with getter and
setter interception, dirty tracking against the last persisted state, a
new/persisted/frozen state flag and the relation results loaded onto it.

    class User(Model):
        hidden = ("password",)

        def set_email_attribute(self, value):
            return value.lower()

        @relation
        def posts(self):
            return self.has_many(Post)
"""

from __future__ import annotations

import copy
import re
from collections.abc import Callable, Mapping, Sequence
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Any, ClassVar

from doc_query.core.exceptions import (
    CannotOverrideRelationError,
    DeletedModelError,
    InvalidParameterError,
    MissingDatabaseRowError,
    RuntimeModelError,
)
from doc_query.loading.eager import EagerLoader
from doc_query.model.hooks import Hooks
from doc_query.model.query import Query
from doc_query.model.serializer import Serializer

if TYPE_CHECKING:
    from doc_query.core.engine import Engine
    from doc_query.core.registry import ModelRegistry
    from doc_query.relations import (
        BelongsTo,
        BelongsToMany,
        EmbedsMany,
        HasMany,
        HasOne,
        MorphMany,
        MorphOne,
        MorphTo,
    )

_INTERNAL = frozenset(
    {"_attributes", "_original", "_relations", "_persisted", "_frozen", "_deleted", "_parent"}
)

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def snake_case(name: str) -> str:
    """``PostUser`` -> ``post_user``."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def pluralize(word: str) -> str:
    """Naive English plural, enough for collection and field names."""
    if re.search(r"[^aeiou]y$", word):
        return word[:-1] + "ies"
    if re.search(r"(s|x|z|ch|sh)$", word):
        return word + "es"
    return word + "s"


def relation(method: Callable[..., Any]) -> Callable[..., Any]:
    """Mark a model method as a relation factory."""
    method.__is_relation__ = True  # type: ignore[attr-defined]
    return method


def _serialize(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {key: _serialize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_serialize(item) for item in value]
    return value


class Model:
    """Base class for document-backed models."""

    collection: ClassVar[str] = "models"
    primary_key: ClassVar[str] = "_id"
    created_at_column: ClassVar[str | None] = "created_at"
    updated_at_column: ClassVar[str | None] = "updated_at"
    hidden: ClassVar[Sequence[str]] = ()
    visible: ClassVar[Sequence[str] | None] = None
    computed: ClassVar[Sequence[str]] = ()

    __relations__: ClassVar[dict[str, Callable[..., Any]]] = {}
    _hooks: ClassVar[Hooks] = Hooks()
    _global_scopes: ClassVar[dict[str, Callable[[Query], Any]]] = {}
    _registry: ClassVar[ModelRegistry | None] = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if "collection" not in cls.__dict__:
            cls.collection = pluralize(snake_case(cls.__name__))
        relations: dict[str, Callable[..., Any]] = {}
        for base in reversed(cls.__mro__):
            for name, value in vars(base).items():
                if getattr(value, "__is_relation__", False):
                    relations[name] = value
        cls.__relations__ = relations
        cls._hooks = cls._hooks.copy()
        cls._global_scopes = dict(cls._global_scopes)

    def __init__(self, attributes: Mapping[str, Any] | None = None, **values: Any) -> None:
        object.__setattr__(self, "_attributes", {})
        object.__setattr__(self, "_original", {})
        object.__setattr__(self, "_relations", {})
        object.__setattr__(self, "_persisted", False)
        object.__setattr__(self, "_frozen", False)
        object.__setattr__(self, "_deleted", False)
        object.__setattr__(self, "_parent", None)
        self.merge({**(attributes or {}), **values})

    # --- class configuration ---

    @classmethod
    def get_registry(cls) -> ModelRegistry:
        if cls._registry is None:
            raise RuntimeModelError(f"{cls.__name__} model is not registered with a ModelRegistry")
        return cls._registry

    @classmethod
    def get_engine(cls) -> Engine:
        return cls.get_registry().engine

    @classmethod
    def foreign_key_name(cls) -> str:
        return f"{snake_case(cls.__name__)}_id"

    @classmethod
    def morph_name(cls) -> str:
        """Name stored in determiner fields and used by the registry."""
        return cls.__name__

    @classmethod
    def add_hook(cls, name: str, handler: Callable[..., Any]) -> None:
        """Register a lifecycle handler, e.g. ``User.add_hook("before_create", fn)``."""
        cls._hooks.add(name, handler)

    @classmethod
    def add_global_scope(cls, callback: Callable[[Query], Any], name: str | None = None) -> None:
        """Apply ``callback`` to every query on this model, relation queries included.

        Skip it per query with ``ignore_scopes(name)``.
        """
        cls._global_scopes[name or f"scope_{len(cls._global_scopes)}"] = callback

    @classmethod
    def new_up(cls, document: Mapping[str, Any]) -> Model:
        """Build a persisted instance from a stored document, bypassing setters."""
        instance = cls()
        object.__setattr__(instance, "_attributes", dict(document))
        instance.mark_persisted()
        return instance

    # --- attributes ---

    def __setattr__(self, name: str, value: Any) -> None:
        if name in _INTERNAL or isinstance(getattr(type(self), name, None), property):
            object.__setattr__(self, name, value)
        else:
            self.set(name, value)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__") or name in _INTERNAL:
            raise AttributeError(name)
        attributes = object.__getattribute__(self, "_attributes")
        if name in attributes:
            return self._get_value(name)
        raise AttributeError(f"'{type(self).__name__}' object has no attribute '{name}'")

    def __delattr__(self, name: str) -> None:
        if name in self._attributes:
            self.unset(name)
        else:
            object.__delattr__(self, name)

    def _get_value(self, name: str) -> Any:
        value = self._attributes.get(name)
        getter = getattr(type(self), f"get_{name}_attribute", None)
        return getter(self, value) if callable(getter) else value

    def _ensure_not_frozen(self) -> None:
        if self._frozen:
            raise DeletedModelError(type(self).__name__)

    def get(self, name: str, default: Any = None) -> Any:
        """Read an attribute through its getter, or ``default`` when absent."""
        if name not in self._attributes:
            return default
        return self._get_value(name)

    def set(self, name: str, value: Any) -> None:
        """Write an attribute through its setter."""
        self._ensure_not_frozen()
        setter = getattr(type(self), f"set_{name}_attribute", None)
        self._attributes[name] = setter(self, value) if callable(setter) else value

    def unset(self, name: str) -> None:
        """Remove an attribute; the next save unsets it in the store."""
        self._ensure_not_frozen()
        self._attributes.pop(name, None)

    def merge(self, values: Mapping[str, Any]) -> None:
        for name, value in values.items():
            self.set(name, value)

    def fill(self, values: Mapping[str, Any]) -> None:
        """Replace every attribute except the primary key."""
        self._ensure_not_frozen()
        key = self._attributes.get(self.primary_key)
        self._attributes.clear()
        if key is not None:
            self._attributes[self.primary_key] = key
        self.merge(values)

    @property
    def attributes(self) -> dict[str, Any]:
        """Raw attribute bag. Mutating it bypasses setters and frozen checks."""
        return self._attributes

    @property
    def dirty(self) -> dict[str, Any]:
        """Attributes added or changed since the last save."""
        return {
            name: value
            for name, value in self._attributes.items()
            if name not in self._original or self._original[name] != value
        }

    def _removed(self) -> list[str]:
        return [name for name in self._original if name not in self._attributes]

    @property
    def is_dirty(self) -> bool:
        return bool(self.dirty) or bool(self._removed())

    def _sync_original(self) -> None:
        object.__setattr__(self, "_original", copy.deepcopy(self._attributes))

    # --- state ---

    @property
    def is_new(self) -> bool:
        return not self._persisted

    @property
    def persisted(self) -> bool:
        return self._persisted

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def is_deleted(self) -> bool:
        return self._deleted

    def mark_persisted(self) -> None:
        """Flag the instance as stored and reset dirty tracking."""
        object.__setattr__(self, "_persisted", True)
        self._sync_original()

    def freeze(self) -> None:
        object.__setattr__(self, "_frozen", True)

    def unfreeze(self) -> None:
        object.__setattr__(self, "_frozen", False)

    @property
    def primary_key_value(self) -> Any:
        return self._attributes.get(self.primary_key)

    # --- persistence ---

    async def run_hooks(self, name: str) -> None:
        await type(self)._hooks.run(name, self)

    def touch(self, created: bool = False) -> None:
        """Stamp timestamp columns with the current UTC time."""
        now = datetime.now(timezone.utc)
        if created and self.created_at_column and self._attributes.get(self.created_at_column) is None:
            self._attributes[self.created_at_column] = now
        if self.updated_at_column:
            self._attributes[self.updated_at_column] = now

    async def save(self) -> bool:
        """Insert a new instance or update its dirty attributes.

        Returns:
            False when an existing instance had nothing to save.

        Raises:
            DeletedModelError: If the instance is frozen.
        """
        self._ensure_not_frozen()
        engine = self.get_engine()
        if self.is_new:
            await self.run_hooks("before_create")
            await self.run_hooks("before_save")
            self.touch(created=True)
            ids = await engine.insert(self.collection, self._attributes)
            if self._attributes.get(self.primary_key) is None:
                self._attributes[self.primary_key] = ids[0]
            self.mark_persisted()
            await self.run_hooks("after_create")
            await self.run_hooks("after_save")
            return True

        if not self.is_dirty:
            return False
        await self.run_hooks("before_update")
        await self.run_hooks("before_save")
        self.touch()
        patch: dict[str, Any] = {}
        if self.dirty:
            patch["$set"] = self.dirty
        removed = self._removed()
        if removed:
            patch["$unset"] = {name: "" for name in removed}
        await engine.update(self.collection, {self.primary_key: self.primary_key_value}, patch)
        self._sync_original()
        await self.run_hooks("after_update")
        await self.run_hooks("after_save")
        return True

    async def delete(self) -> int:
        """Delete the document and freeze the instance."""
        self._ensure_not_frozen()
        if self.is_new:
            raise RuntimeModelError("Cannot delete a model instance that was never saved")
        await self.run_hooks("before_delete")
        deleted = await self.get_engine().delete(
            self.collection, {self.primary_key: self.primary_key_value}
        )
        object.__setattr__(self, "_deleted", True)
        self.freeze()
        await self.run_hooks("after_delete")
        return deleted

    async def reload(self) -> Model:
        """Replace attributes with the stored document and drop loaded relations.

        Does nothing for a new instance.

        Raises:
            RuntimeModelError: If the instance was deleted.
            MissingDatabaseRowError: If the document no longer exists.
        """
        if self.is_new:
            return self
        if self._deleted:
            raise RuntimeModelError("Cannot reload a deleted model instance")
        document = await self.get_engine().find_one(
            self.collection, {self.primary_key: self.primary_key_value}
        )
        if document is None:
            raise MissingDatabaseRowError(type(self).__name__)
        object.__setattr__(self, "_attributes", document)
        object.__setattr__(self, "_relations", {})
        self._sync_original()
        return self

    # --- class-level queries ---

    @classmethod
    def query(cls) -> Query:
        return Query(cls)

    @classmethod
    async def find(cls, value: Any) -> Model | None:
        return await cls.query().where(cls.primary_key, value).first()

    @classmethod
    async def find_or_fail(cls, value: Any) -> Model:
        return await cls.query().where(cls.primary_key, value).first_or_fail()

    @classmethod
    async def find_by(cls, *args: Any) -> Model | None:
        return await cls.query().where(*args).first()

    @classmethod
    async def find_by_or_fail(cls, *args: Any) -> Model:
        return await cls.query().where(*args).first_or_fail()

    @classmethod
    async def first(cls) -> Model | None:
        return await cls.query().first()

    @classmethod
    async def first_or_fail(cls) -> Model:
        return await cls.query().first_or_fail()

    @classmethod
    async def all(cls) -> Serializer[Model]:
        return await cls.query().fetch()

    @classmethod
    async def count(cls) -> int:
        return await cls.query().count()

    @classmethod
    async def paginate(cls, page: int = 1, per_page: int = 20) -> Serializer[Model]:
        return await cls.query().paginate(page, per_page)

    @classmethod
    def with_(cls, *args: Any) -> Query:
        return cls.query().with_(*args)

    @classmethod
    async def create(cls, attributes: Mapping[str, Any] | None = None, **values: Any) -> Model:
        instance = cls(attributes, **values)
        await instance.save()
        return instance

    @classmethod
    async def create_many(cls, rows: Sequence[Mapping[str, Any]]) -> list[Model]:
        """Create one instance per mapping, in order.

        Raises:
            InvalidParameterError: If ``rows`` is not a list.
        """
        if not isinstance(rows, (list, tuple)):
            raise InvalidParameterError(
                f"{cls.__name__}.create_many expects a list of objects instead received {type(rows).__name__}"
            )
        return [await cls.create(row) for row in rows]

    @classmethod
    async def find_or_create(
        cls, search: Mapping[str, Any], attributes: Mapping[str, Any] | None = None
    ) -> Model:
        existing = await cls.query().where(search).first()
        if existing is not None:
            return existing
        return await cls.create({**search, **(attributes or {})})

    @classmethod
    async def find_or_new(
        cls, search: Mapping[str, Any], attributes: Mapping[str, Any] | None = None
    ) -> Model:
        """Like ``find_or_create``, but the new instance is not saved."""
        existing = await cls.query().where(search).first()
        if existing is not None:
            return existing
        return cls({**search, **(attributes or {})})

    # --- relation results ---

    async def load(self, *args: Any) -> None:
        """Eager-load relations onto this instance, e.g. ``load("posts", fn)``."""
        await EagerLoader.from_args(*args).load_for_one(self)

    def has_related(self, name: str) -> bool:
        return name in self._relations

    def get_related(self, name: str) -> Any:
        return self._relations.get(name)

    def set_related(self, name: str, value: Any) -> None:
        """Store a loaded relation result.

        Raises:
            CannotOverrideRelationError: If ``name`` is already loaded.
        """
        if name in self._relations:
            raise CannotOverrideRelationError(name)
        self._relations[name] = value

    def put_related(self, name: str, value: Any) -> None:
        """Store a relation result, replacing any previous one."""
        self._relations[name] = value

    @property
    def relations(self) -> dict[str, Any]:
        return dict(self._relations)

    @property
    def parent(self) -> str | None:
        """Name of the model this instance was loaded through, if any."""
        return self._parent

    @property
    def has_parent(self) -> bool:
        return self._parent is not None

    def set_parent(self, name: str) -> None:
        object.__setattr__(self, "_parent", name)

    # --- relation factories ---

    def _resolve(self, reference: type[Model] | str) -> type[Model]:
        if isinstance(reference, str):
            return type(self).get_registry().resolve(reference)
        return reference

    def has_one(
        self,
        related: type[Model] | str,
        primary_key: str | None = None,
        foreign_key: str | None = None,
    ) -> HasOne:
        from doc_query.relations import HasOne

        return HasOne(
            self,
            self._resolve(related),
            primary_key or self.primary_key,
            foreign_key or self.foreign_key_name(),
        )

    def has_many(
        self,
        related: type[Model] | str,
        primary_key: str | None = None,
        foreign_key: str | None = None,
    ) -> HasMany:
        from doc_query.relations import HasMany

        return HasMany(
            self,
            self._resolve(related),
            primary_key or self.primary_key,
            foreign_key or self.foreign_key_name(),
        )

    def belongs_to(
        self,
        related: type[Model] | str,
        primary_key: str | None = None,
        foreign_key: str | None = None,
    ) -> BelongsTo:
        from doc_query.relations import BelongsTo

        related_model = self._resolve(related)
        return BelongsTo(
            self,
            related_model,
            primary_key or related_model.primary_key,
            foreign_key or related_model.foreign_key_name(),
        )

    def belongs_to_many(
        self,
        related: type[Model] | str,
        foreign_key: str | None = None,
        related_foreign_key: str | None = None,
        primary_key: str | None = None,
        related_primary_key: str | None = None,
    ) -> BelongsToMany:
        from doc_query.relations import BelongsToMany

        related_model = self._resolve(related)
        return BelongsToMany(
            self,
            related_model,
            foreign_key=foreign_key or self.foreign_key_name(),
            related_foreign_key=related_foreign_key or related_model.foreign_key_name(),
            primary_key=primary_key or self.primary_key,
            related_primary_key=related_primary_key or related_model.primary_key,
        )

    def embeds_many(
        self,
        related: type[Model] | str,
        primary_key: str | None = None,
        field: str | None = None,
    ) -> EmbedsMany:
        from doc_query.relations import EmbedsMany

        related_model = self._resolve(related)
        return EmbedsMany(
            self,
            related_model,
            primary_key or related_model.primary_key,
            field or pluralize(snake_case(related_model.__name__)),
        )

    def morph_one(
        self,
        related: type[Model] | str,
        determiner: str = "determiner",
        primary_key: str | None = None,
        foreign_key: str = "parent_id",
    ) -> MorphOne:
        from doc_query.relations import MorphOne

        return MorphOne(
            self, self._resolve(related), primary_key or self.primary_key, foreign_key, determiner
        )

    def morph_many(
        self,
        related: type[Model] | str,
        determiner: str = "determiner",
        primary_key: str | None = None,
        foreign_key: str = "parent_id",
    ) -> MorphMany:
        from doc_query.relations import MorphMany

        return MorphMany(
            self, self._resolve(related), primary_key or self.primary_key, foreign_key, determiner
        )

    def morph_to(
        self,
        determiner: str = "determiner",
        primary_key: str = "_id",
        foreign_key: str = "parent_id",
    ) -> MorphTo:
        from doc_query.relations import MorphTo

        return MorphTo(self, type(self).get_registry(), primary_key, foreign_key, determiner)

    # --- serialization ---

    def to_dict(self) -> dict[str, Any]:
        """Serialize attributes, computed values and loaded relations."""
        names = [name for name in self._attributes if name not in self.hidden]
        if self.visible is not None:
            names = [name for name in names if name in self.visible]
        data = {name: _serialize(self._get_value(name)) for name in names}
        for name in self.computed:
            getter = getattr(self, f"get_{name}_attribute")
            data[name] = _serialize(getter(dict(self._attributes)))
        for name, value in self._relations.items():
            data[name] = value.to_dict() if value is not None else None
        return data

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._attributes!r})"
