"""Admin statistics over a flat item list: counts, search, recent items."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from bugboard.core.board import normalize_column
from bugboard.core.models import Item

RESOLVED_STATUSES = frozenset({"resolved", "done", "closed"})

_STATUS_BUCKETS = ("open", "in-progress", "in-review", "resolved", "done", "closed")
_LEVEL_BUCKETS = ("low", "medium", "high", "critical")


@dataclass
class BoardStats:
    total: int = 0
    open: int = 0
    in_progress: int = 0
    resolved: int = 0
    critical: int = 0
    high_priority: int = 0
    by_status: dict[str, int] = field(default_factory=dict)
    by_priority: dict[str, int] = field(default_factory=dict)
    by_severity: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        return {
            "total": self.total,
            "open": self.open,
            "in_progress": self.in_progress,
            "resolved": self.resolved,
            "critical": self.critical,
            "high_priority": self.high_priority,
            "by_status": dict(self.by_status),
            "by_priority": dict(self.by_priority),
            "by_severity": dict(self.by_severity),
        }


def compute_stats(items: Iterable[Item]) -> BoardStats:
    items = list(items)
    statuses = [normalize_column(i.status) for i in items]
    priorities = [i.priority.lower() for i in items]
    severities = [i.severity.lower() for i in items]

    return BoardStats(
        total=len(items),
        open=statuses.count("open"),
        in_progress=statuses.count("in-progress"),
        resolved=sum(1 for s in statuses if s in RESOLVED_STATUSES),
        critical=severities.count("critical"),
        high_priority=priorities.count("high"),
        by_status={s: statuses.count(s) for s in _STATUS_BUCKETS},
        by_priority={p: priorities.count(p) for p in _LEVEL_BUCKETS},
        by_severity={s: severities.count(s) for s in _LEVEL_BUCKETS},
    )


def filter_items(items: Iterable[Item], search: str = "", status: str = "all") -> list[Item]:
    """Case-insensitive search over title, description and assignee, plus a status filter."""
    term = search.strip().lower()
    wanted = "all" if status.strip().lower() == "all" else normalize_column(status)

    def _matches(item: Item) -> bool:
        if wanted != "all" and normalize_column(item.status) != wanted:
            return False
        if not term:
            return True
        haystack = (item.title, item.description, item.assignee.name)
        return any(term in text.lower() for text in haystack)

    return [i for i in items if _matches(i)]


def recent_items(items: Iterable[Item], limit: int = 10) -> list[Item]:
    """Newest first by ``created_at``; items without a parseable date sort last."""
    dated: list[tuple[datetime, Item]] = []
    undated: list[Item] = []
    for item in items:
        parsed = _parse_date(item.created_at)
        if parsed is None:
            undated.append(item)
        else:
            dated.append((parsed, item))
    dated.sort(key=lambda pair: pair[0], reverse=True)
    return ([item for _, item in dated] + undated)[:limit]


def _parse_date(value: str) -> datetime | None:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    # Compare naive and aware timestamps on the same footing
    return parsed.replace(tzinfo=None)
