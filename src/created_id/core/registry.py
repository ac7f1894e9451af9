"""Explicit configuration of the classes covered by the id range index.

Every component of the index receives a :class:`TrackedTypes` mapping at
construction time. A registration resolves the canonical type key of a
class once, from its mapper hierarchy, so that all subclasses of a
hierarchy read and write the same id ranges.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

from sqlalchemy import inspect
from sqlalchemy.exc import NoInspectionAvailable
from sqlalchemy.orm import InstrumentedAttribute
from sqlalchemy.sql.elements import ColumnElement

from created_id.errors import SetupError
from created_id.models.id_range import CLASS_NAME_MAX_LENGTH

logger = logging.getLogger(__name__)

ScopeFactory = Callable[[type[Any]], ColumnElement[bool]]


@dataclass(frozen=True)
class TrackedType:
    """Index configuration for one class hierarchy.

    Attributes:
        model: The class that was registered.
        base_model: Root of the mapped hierarchy; queried when computing ranges.
        base_key: Canonical type key under which ranges are stored.
        id_column: Attribute name of the integer primary key.
        created_at_column: Attribute name of the creation timestamp.
        default_scope: Optional factory for the criterion applied to normal
            (scoped) reads, typically a soft-delete filter. It receives the
            queried class.
        id_width_bytes: Fixed byte width of the primary key column, if any.
    """

    model: type[Any]
    base_model: type[Any]
    base_key: str
    id_column: str = "id"
    created_at_column: str = "created_at"
    default_scope: ScopeFactory | None = None
    id_width_bytes: int | None = None

    def id_attr(self, model: type[Any] | None = None) -> InstrumentedAttribute[Any]:
        """Return the primary key attribute on ``model`` (default: the base class)."""
        return getattr(model or self.base_model, self.id_column)

    def created_at_attr(self, model: type[Any] | None = None) -> InstrumentedAttribute[Any]:
        """Return the created_at attribute on ``model`` (default: the base class)."""
        return getattr(model or self.base_model, self.created_at_column)

    def scope(self, model: type[Any]) -> ColumnElement[bool] | None:
        """Return the default scope criterion for ``model``, if one is configured."""
        if self.default_scope is None:
            return None
        return self.default_scope(model)

    @property
    def max_representable_id(self) -> int | None:
        """Largest signed integer that fits the configured id width."""
        if not self.id_width_bytes:
            return None
        return (256**self.id_width_bytes) // 2 - 1


class TrackedTypes:
    """Mapping from mapped classes to their :class:`TrackedType` configuration."""

    def __init__(self) -> None:
        self._types: dict[type[Any], TrackedType] = {}

    def register(
        self,
        model: type[Any],
        *,
        id_column: str = "id",
        created_at_column: str = "created_at",
        base_key: str | None = None,
        default_scope: ScopeFactory | None = None,
        id_width_bytes: int | None = None,
    ) -> TrackedType:
        """Register ``model`` and return its configuration.

        Raises:
            SetupError: If ``model`` is not mapped or lacks the named columns.
        """
        try:
            mapper = inspect(model)
        except NoInspectionAvailable as exc:
            raise SetupError(f"{model!r} is not a mapped class") from exc

        base_model = mapper.base_mapper.class_
        key = base_key or base_model.__name__
        if len(key) > CLASS_NAME_MAX_LENGTH:
            raise SetupError(f"base key {key!r} is longer than {CLASS_NAME_MAX_LENGTH} characters")

        for column in (id_column, created_at_column):
            if column not in mapper.columns:
                raise SetupError(f"{model.__name__} has no mapped column {column!r}")
        if not mapper.columns[id_column].primary_key:
            raise SetupError(f"{model.__name__}.{id_column} is not the primary key")

        tracked = TrackedType(
            model=model,
            base_model=base_model,
            base_key=key,
            id_column=id_column,
            created_at_column=created_at_column,
            default_scope=default_scope,
            id_width_bytes=id_width_bytes,
        )
        self._types[model] = tracked
        logger.debug("Tracking %s under %r", model.__name__, key)
        return tracked

    def resolve(self, model: type[Any]) -> TrackedType:
        """Return the configuration for ``model`` or its nearest registered ancestor.

        Raises:
            SetupError: If neither ``model`` nor any of its ancestors is registered.
        """
        tracked = self._types.get(model)
        if tracked is not None:
            return tracked
        for ancestor in model.__mro__[1:]:
            tracked = self._types.get(ancestor)
            if tracked is not None:
                self._types[model] = tracked
                return tracked
        raise SetupError(f"{getattr(model, '__name__', model)!r} is not tracked by the id range index")

    def is_tracked(self, model: type[Any]) -> bool:
        """Return True if ``model`` resolves to a registration."""
        try:
            self.resolve(model)
        except SetupError:
            return False
        return True

    def base_key_of(self, model: type[Any]) -> str:
        """Return the canonical type key for ``model``."""
        return self.resolve(model).base_key

    def __iter__(self) -> Iterator[TrackedType]:
        seen: set[int] = set()
        for tracked in self._types.values():
            if id(tracked) not in seen:
                seen.add(id(tracked))
                yield tracked

    def __contains__(self, model: object) -> bool:
        return isinstance(model, type) and self.is_tracked(model)
