"""
Index-based updates on tuples of frozen records.

Each helper returns a new tuple and shares every untouched element with
the input, so the previous tuple stays valid as a rollback target.
"""

from typing import Any, TypeVar

from pydantic import BaseModel

R = TypeVar("R", bound=BaseModel)


def index_of(items: tuple[R, ...], item_id: str) -> int:
    for i, item in enumerate(items):
        if item.id == item_id:
            return i
    raise KeyError(item_id)


def append(items: tuple[R, ...], item: R) -> tuple[R, ...]:
    return (*items, item)


def replace_at(items: tuple[R, ...], index: int, item: R) -> tuple[R, ...]:
    if not 0 <= index < len(items):
        raise IndexError(index)
    return (*items[:index], item, *items[index + 1:])


def remove_at(items: tuple[R, ...], index: int) -> tuple[R, ...]:
    if not 0 <= index < len(items):
        raise IndexError(index)
    return (*items[:index], *items[index + 1:])


def update_by_id(items: tuple[R, ...], item_id: str, **changes: Any) -> tuple[R, ...]:
    index = index_of(items, item_id)
    return replace_at(items, index, items[index].model_copy(update=changes))


def remove_by_id(items: tuple[R, ...], item_id: str) -> tuple[R, ...]:
    return remove_at(items, index_of(items, item_id))


def upsert_by_id(items: tuple[R, ...], item: R) -> tuple[R, ...]:
    try:
        return replace_at(items, index_of(items, item.id), item)
    except KeyError:
        return append(items, item)
