"""
Board snapshots — pure Python dataclasses, no I/O.

A :class:`Board` maps every configured column key to an ordered tuple of
items. Boards are never mutated: every change builds a new snapshot, so a
caller holding a reference always sees a consistent board in which each
item appears in exactly one column.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

import structlog

from bugboard.core.constants import COLUMN_TITLES, UNKNOWN_COLUMN
from bugboard.core.models import Item

logger = structlog.get_logger()

_SEPARATORS_RE = re.compile(r"[\s_\-]+")


def normalize_column(value: Any) -> str:
    """Return the canonical column key for a status string.

    "In Progress", "in_progress" and "IN-PROGRESS" all become "in-progress".
    """
    if value is None:
        return ""
    return _SEPARATORS_RE.sub("-", str(value).strip().lower()).strip("-")


def column_title(key: str) -> str:
    return COLUMN_TITLES.get(key) or key.replace("-", " ").title()


class UnmappedPolicy(str, Enum):
    """What to do with an item whose status matches no configured column."""

    DROP = "drop"
    BUCKET = "bucket"
    ERROR = "error"


class UnmappedStatusError(ValueError):
    """An item status matched no column under the ``error`` policy."""


@dataclass(frozen=True)
class Board:
    """Immutable column key → ordered items snapshot."""

    columns: Mapping[str, tuple[Item, ...]] = field(default_factory=dict)

    @classmethod
    def empty(cls, column_keys: Iterable[str]) -> Board:
        return cls(columns={key: () for key in column_keys})

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def keys(self) -> list[str]:
        return list(self.columns)

    def column(self, key: str) -> tuple[Item, ...]:
        return self.columns[key]

    def has_column(self, key: str) -> bool:
        return key in self.columns

    def find(self, item_id: str) -> tuple[str, int] | None:
        """Return ``(column, index)`` of *item_id*, or None."""
        for key, items in self.columns.items():
            for index, item in enumerate(items):
                if item.id == item_id:
                    return key, index
        return None

    def get(self, item_id: str) -> Item | None:
        located = self.find(item_id)
        if located is None:
            return None
        key, index = located
        return self.columns[key][index]

    def item_ids(self) -> list[str]:
        return [item.id for items in self.columns.values() for item in items]

    def items(self) -> list[Item]:
        return [item for items in self.columns.values() for item in items]

    def counts(self) -> dict[str, int]:
        return {key: len(items) for key, items in self.columns.items()}

    def __len__(self) -> int:
        return sum(len(items) for items in self.columns.values())

    # ------------------------------------------------------------------
    # Copy-on-write
    # ------------------------------------------------------------------

    def replace_columns(self, updates: Mapping[str, tuple[Item, ...]]) -> Board:
        """Return a new board with the given columns swapped in."""
        merged = dict(self.columns)
        merged.update(updates)
        return Board(columns=merged)

    def to_dict(self) -> dict[str, list[dict[str, Any]]]:
        return {key: [item.to_api() for item in items] for key, items in self.columns.items()}


@dataclass
class GroupResult:
    board: Board
    dropped_ids: list[str] = field(default_factory=list)
    duplicate_ids: list[str] = field(default_factory=list)


def group_items(
    items: Iterable[Item],
    column_keys: Iterable[str],
    policy: UnmappedPolicy = UnmappedPolicy.DROP,
) -> GroupResult:
    """Group *items* into a fresh board keyed by *column_keys*.

    Status matching is case-insensitive (see :func:`normalize_column`).
    Later duplicates of an id are skipped; the first occurrence wins.
    """
    known = list(column_keys)
    grouped: dict[str, list[Item]] = {key: [] for key in known}
    if policy is UnmappedPolicy.BUCKET:
        grouped.setdefault(UNKNOWN_COLUMN, [])

    seen: set[str] = set()
    dropped: list[str] = []
    duplicates: list[str] = []

    for item in items:
        if item.id in seen:
            duplicates.append(item.id)
            continue
        seen.add(item.id)

        key = normalize_column(item.status)
        if key in known:
            grouped[key].append(item.with_column(key))
        elif policy is UnmappedPolicy.ERROR:
            raise UnmappedStatusError(f"Item {item.id!r} has unrecognized status {item.status!r}")
        elif policy is UnmappedPolicy.DROP:
            dropped.append(item.id)
        else:
            # Bucketed items keep their raw status so the store's value is not lost
            grouped[UNKNOWN_COLUMN].append(replace(item, column=UNKNOWN_COLUMN))

    if dropped:
        logger.warning("items_dropped_unmapped_status", count=len(dropped), item_ids=dropped)
    if duplicates:
        logger.warning("items_duplicate_ids", count=len(duplicates), item_ids=duplicates)

    board = Board(columns={key: tuple(values) for key, values in grouped.items()})
    return GroupResult(board=board, dropped_ids=dropped, duplicate_ids=duplicates)
