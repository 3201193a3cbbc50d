"""
BoardSyncController — optimistic board moves reconciled against a remote store.

The controller owns the in-memory :class:`~bugboard.core.board.Board`.
A move is applied locally first (synchronously, before any network I/O)
and only then reconciled with the authoritative store:

  1. Optimistic phase: a new board snapshot with the item in its new
     position replaces the old one and subscribers are notified.
  2. Reconciliation (cross-column moves only): one ``set_item_column``
     request, bounded by a timeout. Success or failure, the board is then
     reloaded from the store, which either confirms or reverts the move.

Per-item lifecycle::

    Settled(C) --drag to D != C--> Pending(C, D) --ack ok-----> Settled(D)
                                                 --ack failed-> Settled(C)
    Settled(C) --reorder within C--> Settled(C)   (no network call)

Rapid re-drags: every cross-column move of an item gets a sequence number.
Requests for one item are serialised by a per-item lock; a queued request
that has been superseded is never sent, and the outcome of a request that
was superseded while in flight is ignored because the newer move
reconciles. Loads carry a generation number and a load that resolves after
a newer one has been applied is discarded.

Everything runs on one asyncio event loop; no thread safety is provided.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

import structlog

from bugboard.core.board import (
    Board,
    UnmappedPolicy,
    UnmappedStatusError,
    group_items,
    normalize_column,
)
from bugboard.core.constants import DEFAULT_COLUMNS, DEFAULT_RECONCILE_TIMEOUT_SECONDS
from bugboard.core.exceptions import ApiError, FetchError, InvalidMoveError
from bugboard.core.models import Item

logger = structlog.get_logger()

BoardListener = Callable[[Board], None]


class ItemStore(Protocol):
    """The remote collaborator the controller synchronises against."""

    async def fetch_all_items(self) -> Sequence[Item | dict[str, Any]]: ...

    async def set_item_column(self, item_id: str, column: str) -> Any: ...


# ---------------------------------------------------------------------------
# Item column-membership state
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Settled:
    column: str


@dataclass(frozen=True)
class Pending:
    from_column: str
    to_column: str


ItemState = Settled | Pending


@dataclass
class _PendingMove:
    from_column: str
    from_index: int
    to_column: str
    seq: int


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------


class BoardSyncController:
    """Keeps a local board optimistically in step with a remote item store."""

    def __init__(
        self,
        store: ItemStore,
        columns: Iterable[str] = DEFAULT_COLUMNS,
        *,
        unmapped: UnmappedPolicy | str = UnmappedPolicy.DROP,
        reconcile_timeout: float = DEFAULT_RECONCILE_TIMEOUT_SECONDS,
    ) -> None:
        self._store = store
        self._columns = [normalize_column(c) for c in columns]
        self._unmapped = UnmappedPolicy(unmapped)
        self._reconcile_timeout = reconcile_timeout

        self._board = Board.empty(self._columns)
        self._listeners: list[BoardListener] = []

        self._pending: dict[str, _PendingMove] = {}
        self._seq: dict[str, int] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._tasks: set[asyncio.Task[None]] = set()

        self._load_generation = 0
        self._applied_generation = 0

        self.dropped_ids: list[str] = []
        self.last_error: str = ""

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def board(self) -> Board:
        return self._board

    @property
    def columns(self) -> list[str]:
        return list(self._columns)

    @property
    def loaded(self) -> bool:
        return self._applied_generation > 0

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def item_state(self, item_id: str) -> ItemState | None:
        """Return the column-membership state of *item_id* (None if not on the board)."""
        pending = self._pending.get(item_id)
        if pending is not None:
            return Pending(from_column=pending.from_column, to_column=pending.to_column)
        located = self._board.find(item_id)
        if located is None:
            return None
        return Settled(column=located[0])

    def subscribe(self, listener: BoardListener) -> Callable[[], None]:
        """Call *listener* with every new board snapshot. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load_board(self) -> Board:
        """Replace the board with the store's full current item set.

        Raises :class:`FetchError` when the store cannot be read; the
        previous board stays in place.
        """
        self._load_generation += 1
        generation = self._load_generation
        log = logger.bind(generation=generation)

        try:
            raw_items = await self._store.fetch_all_items()
        except ApiError as exc:
            if generation < self._applied_generation:
                log.debug("board_load_stale_failure_ignored", error=str(exc))
                return self._board
            self.last_error = str(exc)
            log.warning("board_load_failed", error=str(exc))
            if isinstance(exc, FetchError):
                raise
            raise FetchError(str(exc), status_code=exc.status_code) from exc

        try:
            result = group_items(self._coerce(raw_items), self._columns, self._unmapped)
        except UnmappedStatusError as exc:
            if generation < self._applied_generation:
                log.debug("board_load_stale_failure_ignored", error=str(exc))
                return self._board
            self.last_error = str(exc)
            log.warning("board_load_rejected", error=str(exc))
            raise FetchError(str(exc)) from exc

        if generation < self._applied_generation:
            log.debug("board_load_stale_discarded", applied=self._applied_generation)
            return self._board

        self._applied_generation = generation
        self._pending.clear()
        self.dropped_ids = result.dropped_ids
        self.last_error = ""
        self._set_board(result.board)
        log.info("board_loaded", items=len(result.board), dropped=len(result.dropped_ids))
        return result.board

    async def refresh(self) -> Board:
        """External refresh signal: reload everything."""
        return await self.load_board()

    @staticmethod
    def _coerce(raw_items: Iterable[Item | dict[str, Any]]) -> list[Item]:
        items: list[Item] = []
        for raw in raw_items:
            if isinstance(raw, Item):
                items.append(raw)
                continue
            if not isinstance(raw, dict):
                logger.warning("item_skipped_malformed", error="payload is not an object")
                continue
            try:
                items.append(Item.from_api(raw))
            except ValueError as exc:
                logger.warning("item_skipped_malformed", error=str(exc))
        return items

    # ------------------------------------------------------------------
    # Moves
    # ------------------------------------------------------------------

    def move_item(
        self,
        item_id: str,
        source_column: str,
        source_index: int,
        dest_column: str,
        dest_index: int,
    ) -> asyncio.Task[None] | None:
        """Move an item optimistically and schedule reconciliation.

        The board is updated before this method returns. Cross-column moves
        return the reconciliation task (which never raises for remote
        failures); no-ops and same-column reorders return None. Cross-column
        moves must be made from inside a running event loop.

        Raises :class:`InvalidMoveError` when the move does not match the
        current board; the board is left untouched.
        """
        source_column = normalize_column(source_column)
        dest_column = normalize_column(dest_column)

        if source_column == dest_column and source_index == dest_index:
            logger.debug("move_noop", item_id=item_id, column=source_column)
            return None

        board = self._board
        if not board.has_column(source_column):
            raise InvalidMoveError(f"Unknown source column {source_column!r}")

        source = list(board.column(source_column))
        if not (0 <= source_index < len(source)) or source[source_index].id != item_id:
            raise InvalidMoveError(
                f"Item {item_id!r} is not at index {source_index} of column {source_column!r}"
            )

        if source_column == dest_column:
            item = source.pop(source_index)
            index = _clamp(dest_index, len(source))
            source.insert(index, item)
            self._set_board(board.replace_columns({source_column: tuple(source)}))
            logger.debug("item_reordered", item_id=item_id, column=source_column, index=index)
            return None

        # Only configured columns are valid targets; the unknown bucket is not
        if dest_column not in self._columns:
            raise InvalidMoveError(f"Unknown destination column {dest_column!r}")

        loop = asyncio.get_running_loop()

        item = source.pop(source_index)
        dest = list(board.column(dest_column))
        index = _clamp(dest_index, len(dest))
        dest.insert(index, item.with_column(dest_column))

        seq = self._seq.get(item_id, 0) + 1
        self._seq[item_id] = seq
        previous = self._pending.get(item_id)
        self._pending[item_id] = _PendingMove(
            from_column=previous.from_column if previous else source_column,
            from_index=previous.from_index if previous else source_index,
            to_column=dest_column,
            seq=seq,
        )

        self._set_board(
            board.replace_columns({source_column: tuple(source), dest_column: tuple(dest)})
        )
        logger.info(
            "item_moved",
            item_id=item_id,
            from_column=source_column,
            to_column=dest_column,
            index=index,
            seq=seq,
        )

        task = loop.create_task(
            self._reconcile(item_id, dest_column, seq), name=f"reconcile-{item_id}-{seq}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait until every scheduled reconciliation has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def _is_superseded(self, item_id: str, seq: int) -> bool:
        return self._seq.get(item_id) != seq

    async def _reconcile(self, item_id: str, column: str, seq: int) -> None:
        log = logger.bind(item_id=item_id, column=column, seq=seq)
        lock = self._locks.setdefault(item_id, asyncio.Lock())

        async with lock:
            if self._is_superseded(item_id, seq):
                log.debug("reconcile_skipped_superseded")
                return
            error = ""
            try:
                await asyncio.wait_for(
                    self._store.set_item_column(item_id, column),
                    timeout=self._reconcile_timeout,
                )
            except ApiError as exc:
                error = str(exc)
            except TimeoutError:
                error = f"update timed out after {self._reconcile_timeout}s"

        if self._is_superseded(item_id, seq):
            log.info("reconcile_result_discarded", ok=not error)
            return

        pending = self._pending.get(item_id)
        if pending is not None and pending.seq == seq:
            del self._pending[item_id]
        else:
            pending = None

        if error:
            log.warning("item_move_failed_reverting", error=error)
        else:
            log.info("item_move_confirmed")

        try:
            await self.load_board()
        except FetchError as exc:
            log.warning("reconcile_reload_failed", error=str(exc))
            if error and pending is not None:
                self._revert_locally(item_id, pending)

        # A successful reload clears last_error; the failed update is what callers need
        if error:
            self.last_error = error

    def _revert_locally(self, item_id: str, pending: _PendingMove) -> None:
        """Put a failed move back where it came from when the store is unreachable."""
        board = self._board
        located = board.find(item_id)
        if located is None or not board.has_column(pending.from_column):
            return
        column, index = located
        if column == pending.from_column:
            return
        current = list(board.column(column))
        item = current.pop(index)
        origin = list(board.column(pending.from_column))
        index = _clamp(pending.from_index, len(origin))
        origin.insert(index, item.with_column(pending.from_column))
        self._set_board(
            board.replace_columns({column: tuple(current), pending.from_column: tuple(origin)})
        )
        logger.info("item_move_reverted_locally", item_id=item_id, column=pending.from_column)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _set_board(self, board: Board) -> None:
        self._board = board
        for listener in list(self._listeners):
            try:
                listener(board)
            except Exception:  # noqa: BLE001
                logger.exception("board_listener_failed")


def _clamp(index: int, length: int) -> int:
    return max(0, min(index, length))
