"""Merge functions that fold YNAB delta batches into cached snapshots.

All mergers key entities by identity (``id``, or ``month`` for month
summaries), drop tombstones unless ``preserve_deleted`` is set, overlay only
the fields present on the delta entity, and keep snapshot order with new
entities appended. Inputs are never mutated.
"""

from collections.abc import Callable, Hashable
from typing import Any, Protocol, TypeVar

from pydantic import BaseModel

from ..schemas import CategoryGroup, MonthSummary, Transaction
from .delta import MergeOptions


class Identified(Protocol):
    @property
    def id(self) -> str: ...

    @property
    def deleted(self) -> bool | None: ...


M = TypeVar("M", bound=BaseModel)
T = TypeVar("T", bound=Identified)


def _provided_fields(entity: BaseModel) -> dict[str, Any]:
    """Fields explicitly present on an entity, including passthrough extras."""
    fields = {name: getattr(entity, name) for name in entity.model_fields_set if name in type(entity).model_fields}
    if entity.model_extra:
        fields.update(entity.model_extra)
    return fields


def _overlay(base: M | None, delta: M) -> M:
    if base is None:
        return delta
    return base.model_copy(update=_provided_fields(delta))


def _merge_keyed(
    snapshot: list[M],
    delta: list[M],
    key: Callable[[M], Hashable],
    preserve_deleted: bool,
    merge_one: Callable[[M | None, M], M] = _overlay,
) -> list[M]:
    merged: dict[Hashable, M] = {key(entity): entity for entity in snapshot}

    for entity in delta:
        entity_key = key(entity)
        if entity.deleted and not preserve_deleted:
            merged.pop(entity_key, None)
            continue
        merged[entity_key] = merge_one(merged.get(entity_key), entity)

    return list(merged.values())


def merge_flat_entities(
    snapshot: list[T],
    delta: list[T],
    options: MergeOptions | None = None,
) -> list[T]:
    """Merge entities without nested collections (accounts, payees, ...)."""
    preserve_deleted = bool(options and options.preserve_deleted)
    return _merge_keyed(snapshot, delta, lambda entity: entity.id, preserve_deleted)


def merge_months(
    snapshot: list[MonthSummary],
    delta: list[MonthSummary],
    options: MergeOptions | None = None,
) -> list[MonthSummary]:
    preserve_deleted = bool(options and options.preserve_deleted)
    return _merge_keyed(snapshot, delta, lambda month: month.month, preserve_deleted)


def _merge_nested(base: M | None, delta: M, attribute: str, preserve_deleted: bool) -> M:
    """Overlay ``delta`` onto ``base`` and merge the child list stored in ``attribute``.

    A delta without the child list keeps the existing children untouched. A
    parent first seen in a delta gets the same tombstone handling as an existing
    one: its deleted children are dropped unless ``preserve_deleted`` is set.
    """
    delta_children = getattr(delta, attribute)
    if base is None:
        if delta_children is None:
            return delta
        base_children = []
        merged = delta
    elif delta_children is None:
        return _overlay(base, delta).model_copy(update={attribute: getattr(base, attribute)})
    else:
        base_children = getattr(base, attribute) or []
        merged = _overlay(base, delta)

    children = _merge_keyed(
        base_children,
        delta_children,
        lambda child: child.id,
        preserve_deleted,
    )
    return merged.model_copy(update={attribute: children})


def merge_categories(
    snapshot: list[CategoryGroup],
    delta: list[CategoryGroup],
    options: MergeOptions | None = None,
) -> list[CategoryGroup]:
    """Merge category groups and the categories nested inside them."""
    preserve_deleted = bool(options and options.preserve_deleted)
    return _merge_keyed(
        snapshot,
        delta,
        lambda group: group.id,
        preserve_deleted,
        lambda base, group: _merge_nested(base, group, "categories", preserve_deleted),
    )


def merge_transactions(
    snapshot: list[Transaction],
    delta: list[Transaction],
    options: MergeOptions | None = None,
) -> list[Transaction]:
    """Merge transactions and their subtransactions."""
    preserve_deleted = bool(options and options.preserve_deleted)
    return _merge_keyed(
        snapshot,
        delta,
        lambda txn: txn.id,
        preserve_deleted,
        lambda base, txn: _merge_nested(base, txn, "subtransactions", preserve_deleted),
    )
