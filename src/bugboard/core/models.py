"""
Item model — the one trackable issue record shared by every module.

Raw API payloads are normalised here, immediately after fetch, so nothing
downstream ever branches on payload shape:

  - ``assignee`` may arrive as a string, a ``{name, avatar}`` mapping, or
    nothing at all; it always leaves as an :class:`Assignee`.
  - Missing display fields get fallback values ("Untitled", "N/A").
  - Keys the client does not know about are kept in ``extra`` so that an
    item survives a fetch/update round trip unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from bugboard.core.constants import NOT_AVAILABLE, UNASSIGNED, UNTITLED

# Payload keys mapped onto Item fields; camelCase is the wire format.
_KNOWN_KEYS = frozenset(
    {
        "id",
        "status",
        "title",
        "description",
        "priority",
        "severity",
        "assignee",
        "dueDate",
        "createdAt",
        "tags",
    }
)


def initials(name: str) -> str:
    """Return up to two upper-case initials for *name* ("??" when empty)."""
    parts = [p for p in name.split() if p]
    if not parts:
        return "??"
    return "".join(p[0] for p in parts).upper()[:2]


@dataclass(frozen=True)
class Assignee:
    name: str = UNASSIGNED
    avatar: str = "??"

    @property
    def is_unassigned(self) -> bool:
        return self.name == UNASSIGNED

    @classmethod
    def from_raw(cls, raw: Any) -> Assignee:
        if raw is None:
            return cls()
        if isinstance(raw, str):
            name = raw.strip()
            return cls(name=name, avatar=initials(name)) if name else cls()
        if isinstance(raw, dict):
            name = str(raw.get("name") or "").strip()
            if not name:
                return cls()
            avatar = str(raw.get("avatar") or "").strip() or initials(name)
            return cls(name=name, avatar=avatar)
        return cls(name=str(raw), avatar=initials(str(raw)))


@dataclass(frozen=True)
class Item:
    """A single issue on the board.

    ``status`` is the raw value last reported by the remote store.
    ``column`` is the normalised board column the item currently sits in;
    it is empty until the item has been placed on a board.
    """

    id: str
    status: str = ""
    column: str = ""
    title: str = UNTITLED
    description: str = ""
    priority: str = NOT_AVAILABLE
    severity: str = NOT_AVAILABLE
    assignee: Assignee = field(default_factory=Assignee)
    due_date: str = NOT_AVAILABLE
    created_at: str = NOT_AVAILABLE
    tags: tuple[str, ...] = ()
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    def with_column(self, column: str) -> Item:
        """Return a copy placed in *column*; the status follows the column."""
        return replace(self, column=column, status=column)

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> Item:
        """Build an Item from an API payload.

        Raises ``ValueError`` when the payload has no usable ``id``.
        """
        raw_id = raw.get("id")
        if raw_id is None or str(raw_id).strip() == "":
            raise ValueError("item payload has no id")

        return cls(
            id=str(raw_id),
            status=str(raw.get("status") or ""),
            title=_text(raw.get("title"), UNTITLED),
            description=_text(raw.get("description"), ""),
            priority=_text(raw.get("priority"), NOT_AVAILABLE),
            severity=_text(raw.get("severity"), NOT_AVAILABLE),
            assignee=Assignee.from_raw(raw.get("assignee")),
            due_date=_text(raw.get("dueDate"), NOT_AVAILABLE),
            created_at=_text(raw.get("createdAt"), NOT_AVAILABLE),
            tags=_tags(raw.get("tags")),
            extra={k: v for k, v in raw.items() if k not in _KNOWN_KEYS},
        )

    def to_api(self) -> dict[str, Any]:
        """Serialise back to the wire format; fallback values are not sent."""
        payload: dict[str, Any] = dict(self.extra)
        payload["id"] = self.id
        payload["status"] = self.status
        payload["title"] = self.title
        payload["description"] = self.description
        for key, value in (
            ("priority", self.priority),
            ("severity", self.severity),
            ("dueDate", self.due_date),
            ("createdAt", self.created_at),
        ):
            if value != NOT_AVAILABLE:
                payload[key] = value
        if not self.assignee.is_unassigned:
            payload["assignee"] = self.assignee.name
        if self.tags:
            payload["tags"] = list(self.tags)
        return payload


def _text(value: Any, default: str) -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def _tags(value: Any) -> tuple[str, ...]:
    # The store sends tags either as a list or as a comma-separated string
    if not value:
        return ()
    if isinstance(value, str):
        return tuple(t.strip() for t in value.split(",") if t.strip())
    if isinstance(value, (list, tuple)):
        return tuple(str(t).strip() for t in value if str(t).strip())
    return ()
