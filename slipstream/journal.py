"""
Checkpoint / revert for in-process state.

Every state write the engine performs (nonce advance, registry flip, buffered
event, and token balances when the token shares the journal) records an undo
entry. A request runs between `checkpoint()` and either `commit_to()` or
`revert_to()`, which gives it all-or-nothing semantics:

    with journal.atomic():
        ledger.consume(sender, nonce)
        token.transfer_from(...)
    # any exception inside the block has already undone every write

Checkpoints nest (a batch is one outer checkpoint around per-item ones).
Markers are depths, as in a snapshot stack: `checkpoint()` returns the new
depth, and reverting/committing to a marker discards every checkpoint at or
above it.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, Dict, Generic, Iterator, List, Optional, Tuple, TypeVar

from core.logging import get_logger

log = get_logger("slipstream.journal")

K = TypeVar("K")
V = TypeVar("V")

_MISSING = object()


class Journal:
    def __init__(self) -> None:
        self._undo: List[Callable[[], None]] = []
        self._marks: List[int] = []
        self._on_commit: List[Callable[[], None]] = []

    def depth(self) -> int:
        return len(self._marks)

    def in_checkpoint(self) -> bool:
        return bool(self._marks)

    def record(self, undo: Callable[[], None]) -> None:
        """Register how to undo a write that just happened."""
        if self._marks:
            self._undo.append(undo)

    def checkpoint(self) -> int:
        self._marks.append(len(self._undo))
        return len(self._marks)

    def revert_to(self, marker: int) -> None:
        self._check_marker(marker)
        floor = self._marks[marker - 1]
        while len(self._undo) > floor:
            self._undo.pop()()
        del self._marks[marker - 1:]

    def commit_to(self, marker: int) -> None:
        self._check_marker(marker)
        del self._marks[marker - 1:]
        if not self._marks:
            # Outermost commit: nothing left to undo, run deferred effects.
            self._undo.clear()
            hooks, self._on_commit = self._on_commit, []
            for hook in hooks:
                # One failing hook does not skip the rest.
                try:
                    hook()
                except Exception:
                    name = getattr(hook, "__qualname__", repr(hook))
                    log.exception("commit hook failed", extra={"hook": name})

    def on_commit(self, hook: Callable[[], None]) -> None:
        """Run `hook` once the outermost checkpoint commits (immediately if none is open)."""
        if self._marks:
            self._on_commit.append(hook)
            self._undo.append(self._on_commit.pop)
        else:
            hook()

    @contextmanager
    def atomic(self) -> Iterator[int]:
        marker = self.checkpoint()
        try:
            yield marker
        except BaseException:
            self.revert_to(marker)
            raise
        self.commit_to(marker)

    def _check_marker(self, marker: int) -> None:
        if marker < 1 or marker > len(self._marks):
            raise ValueError(f"invalid checkpoint marker {marker}; depth={len(self._marks)}")


class JournaledMap(Generic[K, V]):
    """
    A dict whose writes are undoable through a shared `Journal`.

    Only the operations the engine needs are exposed; reads never touch the
    journal.
    """

    def __init__(self, journal: Journal, initial: Optional[Dict[K, V]] = None) -> None:
        self._journal = journal
        self._data: Dict[K, V] = dict(initial or {})

    def get(self, key: K, default: Optional[V] = None) -> Optional[V]:
        return self._data.get(key, default)

    def __getitem__(self, key: K) -> V:
        return self._data[key]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    def items(self) -> List[Tuple[K, V]]:
        return list(self._data.items())

    def __setitem__(self, key: K, value: V) -> None:
        prev = self._data.get(key, _MISSING)
        self._data[key] = value
        self._journal.record(lambda: self._restore(key, prev))

    def _restore(self, key: K, prev: object) -> None:
        if prev is _MISSING:
            self._data.pop(key, None)
        else:
            self._data[key] = prev  # type: ignore[assignment]


__all__ = ["Journal", "JournaledMap"]
