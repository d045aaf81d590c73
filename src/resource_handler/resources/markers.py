"""Declarative field markers for resource models.

Three markers attach to Pydantic fields via ``Annotated``:

- ``CreateOnly``: changing the field requires replacing the resource
- ``ReadOnly``: field is assigned by the service, never by the caller
- ``Compare``: field-level comparison strategy used to compute update deltas

Helper functions introspect these markers at runtime so handlers never keep
separate lists of property names in sync with the model.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal, TypeAlias, TypeVar

if TYPE_CHECKING:
    from pydantic.fields import FieldInfo

M = TypeVar("M")
CompareStrategy: TypeAlias = Literal["partial", "exact", "set"]


# ── Marker dataclasses ──────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class CreateOnly:
    """Field can only be set on create."""


@dataclass(frozen=True, slots=True)
class ReadOnly:
    """Field is populated by the service (identifiers, endpoints...)."""


@dataclass(frozen=True, slots=True)
class Compare:
    """How update deltas compare the field.

    - ``"partial"``: for dict values, only keys declared in desired are compared
    - ``"exact"``: strict equality comparison
    - ``"set"``: order-insensitive list comparison
    """

    strategy: CompareStrategy


# ── Shared introspection primitives ─────────────────────────────────


def _find_marker(field_info: FieldInfo, marker_type: type[M]) -> M | None:
    """Return the first marker of *marker_type* on a field, or ``None``."""
    return next((m for m in field_info.metadata if isinstance(m, marker_type)), None)


def _iter_marked_fields(
    model_or_cls: Any,
    marker_type: type[M],
) -> list[tuple[str, FieldInfo, M]]:
    """Return ``(field_name, field_info, marker)`` for every field carrying *marker_type*."""
    cls = model_or_cls if isinstance(model_or_cls, type) else type(model_or_cls)
    return [
        (name, fi, marker)
        for name, fi in cls.model_fields.items()
        if (marker := _find_marker(fi, marker_type)) is not None
    ]


def _hashable(value: Any) -> Any:
    if isinstance(value, dict):
        return tuple(sorted((k, _hashable(v)) for k, v in value.items()))
    if isinstance(value, list):
        return tuple(_hashable(v) for v in value)
    return value


# ── Public helpers ──────────────────────────────────────────────────


def collect_create_only(model_or_cls: Any) -> list[str]:
    """Names of ``CreateOnly`` fields."""
    return [name for name, _, _ in _iter_marked_fields(model_or_cls, CreateOnly)]


def collect_read_only(model_or_cls: Any) -> list[str]:
    """Names of ``ReadOnly`` fields."""
    return [name for name, _, _ in _iter_marked_fields(model_or_cls, ReadOnly)]


def collect_compare_strategies(model_or_cls: Any) -> dict[str, CompareStrategy]:
    """Collect per-field compare strategies from ``Compare`` markers."""
    return {
        name: marker.strategy for name, _, marker in _iter_marked_fields(model_or_cls, Compare)
    }


def values_differ(
    desired: Any,
    prior: Any,
    *,
    strategy: CompareStrategy | None = None,
) -> bool:
    """Check whether a desired value differs from the prior value.

    - ``strategy="set"``: lists are compared order-insensitively (list items
      may be dicts, e.g. tags).
    - ``strategy="exact"``: strict equality.
    - ``strategy=None`` or ``"partial"``: for dicts only keys present in
      *desired* are compared; everything else uses strict equality.
    """
    if strategy == "set":
        if isinstance(desired, list) and isinstance(prior, list):
            return {_hashable(v) for v in desired} != {_hashable(v) for v in prior}
        return desired != prior

    if strategy == "exact":
        return desired != prior

    if isinstance(desired, dict) and isinstance(prior, dict):
        return any(values_differ(v, prior.get(k), strategy="partial") for k, v in desired.items())
    return desired != prior
