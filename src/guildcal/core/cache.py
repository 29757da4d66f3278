"""Generic identifier-keyed cache shared by every resource manager.

``CachedManager[T]`` owns a ``dict[str, T]`` and knows how to:

- reduce an identifier-or-entity argument to a canonical id (``resolve_id``)
- merge a raw wire record into the cache (``add``), patching an existing
  entity in place so references held by callers see the refreshed fields

Arguments that accept either a raw id or a hydrated entity are first turned
into a ``ById`` / ``ByEntity`` reference by :meth:`CachedManager.to_ref`;
``resolve_id`` is the only place that reduces either shape to an id.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Generic, Protocol, TypeVar

from guildcal.errors import UnresolvableReference

logger = logging.getLogger(__name__)


class Resource(Protocol):
    """Shape every cached entity must have."""

    @property
    def id(self) -> str: ...

    def patch(self, data: Mapping[str, Any]) -> None: ...


T = TypeVar("T", bound=Resource)


@dataclass(frozen=True, slots=True)
class ById:
    """Reference to a resource by its raw identifier."""

    id: str


@dataclass(frozen=True, slots=True)
class ByEntity(Generic[T]):
    """Reference to a resource through an already-hydrated entity."""

    entity: T


def normalize_id(value: Any) -> str | None:
    """Return *value* as a non-empty identifier string, or ``None``."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value) if value >= 0 else None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return None


class CachedManager(Generic[T]):
    """Cache of hydrated resources of one kind, keyed by identifier."""

    #: Human-readable resource kind used in error messages.
    kind = "resource"

    def __init__(
        self,
        holds: type[T],
        iterable: Iterable[Mapping[str, Any]] | None = None,
    ) -> None:
        self._holds = holds
        self.cache: dict[str, T] = {}
        for data in iterable or ():
            self.add(data)

    @property
    def holds(self) -> type[T]:
        return self._holds

    def __len__(self) -> int:
        return len(self.cache)

    def __contains__(self, key: object) -> bool:
        return key in self.cache

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def to_ref(self, value: Any) -> ById | ByEntity[T]:
        """Classify *value* as a ``ById`` or ``ByEntity`` reference.

        Raises ``UnresolvableReference`` when *value* is neither an identifier
        nor an entity of the managed type.
        """
        if isinstance(value, ById | ByEntity):
            return value
        if isinstance(value, self._holds):
            return ByEntity(value)
        raw_id = normalize_id(value)
        if raw_id is None:
            raise UnresolvableReference(self.kind, value)
        return ById(raw_id)

    def resolve_id(self, value: Any) -> str:
        """Reduce an identifier, entity, or reference to the canonical id."""
        ref = self.to_ref(value)
        if isinstance(ref, ById):
            resolved = normalize_id(ref.id)
        else:
            resolved = normalize_id(getattr(ref.entity, "id", None))
        if resolved is None:
            raise UnresolvableReference(self.kind, value)
        return resolved

    def resolve(self, value: Any) -> T | None:
        """Return the cached entity for *value*, or ``None`` if it is not cached.

        An entity passed in directly is returned as-is.
        """
        ref = self.to_ref(value)
        if isinstance(ref, ByEntity):
            return ref.entity
        return self.cache.get(self.resolve_id(ref))

    # ------------------------------------------------------------------
    # Cache access
    # ------------------------------------------------------------------

    def get(self, key: str) -> T | None:
        return self.cache.get(key)

    def _construct(self, data: Mapping[str, Any]) -> T:
        return self._holds.model_validate(data)  # type: ignore[attr-defined]

    def _key_of(self, data: Mapping[str, Any]) -> str | None:
        return normalize_id(data.get("id"))

    def add(self, data: Mapping[str, Any], cache: bool = True) -> T:
        """Merge a raw wire record and return the hydrated entity.

        When an entity with the same id is already cached it is patched
        (field-for-field overwrite), so the record may be partial. With
        *cache* true the cached object is patched in place and returned;
        otherwise a patched copy is returned and the cache is left alone.
        """
        existing = self.cache.get(self._key_of(data) or "")
        if existing is not None:
            if cache:
                existing.patch(data)
                return existing
            clone = existing.model_copy(deep=True)  # type: ignore[attr-defined]
            clone.patch(data)
            return clone

        entity = self._construct(data)
        if cache:
            self.cache[entity.id] = entity
            logger.debug("Cached %s %s", self.kind, entity.id)
        return entity

    def remove(self, key: str) -> T | None:
        """Drop *key* from the cache and return the evicted entity, if any."""
        evicted = self.cache.pop(key, None)
        if evicted is not None:
            logger.debug("Evicted %s %s", self.kind, key)
        return evicted
