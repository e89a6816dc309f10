"""
slipstream.events — emitted records and pluggable sinks.

Three records leave the engine:

- GaslessTokenTransferCompleted: one per executed transfer request.
- RelayerAuthorizationUpdated: one per successful relayer allow-list change.
- TokenSupportStatusUpdated: one per successful token allow-list change.

Records are immutable. The proxy hands them to its sink only once the request
that produced them has committed, so a sink never observes a record of a
rolled-back request.

Backends
--------
- InMemoryEventSink: fast, test/dev friendly; keeps all records in RAM.
- JsonlEventSink: append-only JSONL file; durable and simple to operate.
- NullEventSink: no-op sink for setups that ignore records.

Each sink assigns a strictly increasing `seq` in append order.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Protocol, Type, Union, runtime_checkable

# =============================================================================
# Records
# =============================================================================


@dataclass(frozen=True)
class GaslessTokenTransferCompleted:
    NAME: ClassVar[str] = "GaslessTokenTransferCompleted"

    from_address: str
    to_address: str
    token: str
    amount: int
    relayer_fee: int
    executing_relayer: str
    nonce: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.from_address,
            "to": self.to_address,
            "token": self.token,
            "amount": self.amount,
            "relayerFee": self.relayer_fee,
            "executingRelayer": self.executing_relayer,
            "nonce": self.nonce,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "GaslessTokenTransferCompleted":
        return cls(
            from_address=d["from"],
            to_address=d["to"],
            token=d["token"],
            amount=int(d["amount"]),
            relayer_fee=int(d["relayerFee"]),
            executing_relayer=d["executingRelayer"],
            nonce=int(d["nonce"]),
        )


@dataclass(frozen=True)
class RelayerAuthorizationUpdated:
    NAME: ClassVar[str] = "RelayerAuthorizationUpdated"

    relayer: str
    is_authorized: bool

    def to_dict(self) -> Dict[str, Any]:
        return {"relayer": self.relayer, "isAuthorized": self.is_authorized}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "RelayerAuthorizationUpdated":
        return cls(relayer=d["relayer"], is_authorized=bool(d["isAuthorized"]))


@dataclass(frozen=True)
class TokenSupportStatusUpdated:
    NAME: ClassVar[str] = "TokenSupportStatusUpdated"

    token: str
    is_supported: bool

    def to_dict(self) -> Dict[str, Any]:
        return {"token": self.token, "isSupported": self.is_supported}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TokenSupportStatusUpdated":
        return cls(token=d["token"], is_supported=bool(d["isSupported"]))


Event = Union[GaslessTokenTransferCompleted, RelayerAuthorizationUpdated, TokenSupportStatusUpdated]

EVENT_TYPES: Dict[str, Type[Any]] = {
    cls.NAME: cls
    for cls in (GaslessTokenTransferCompleted, RelayerAuthorizationUpdated, TokenSupportStatusUpdated)
}


@dataclass(frozen=True)
class EventRecord:
    """An emitted record together with its position in the sink."""

    seq: int
    event: Event

    @property
    def name(self) -> str:
        return self.event.NAME


# =============================================================================
# Sink interface
# =============================================================================


@runtime_checkable
class EventSink(Protocol):
    def append(self, event: Event) -> EventRecord:
        """Append a single record. Returns the stored record."""

    def get_events(self, *, name: Optional[str] = None, limit: Optional[int] = None) -> Iterable[EventRecord]:
        """Iterate stored records in append order, optionally filtered by record name."""

    def flush(self) -> None:
        """Force persistence, if applicable."""

    def close(self) -> None:
        """Release resources (files, buffers)."""


def _matches(rec: EventRecord, name: Optional[str]) -> bool:
    return name is None or rec.name == name


# =============================================================================
# In-memory sink
# =============================================================================


class InMemoryEventSink(EventSink):
    """
    A simple, thread-safe in-memory sink.

    Keeps all records in RAM; meant for tests and single-process relayers.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._records: List[EventRecord] = []

    def append(self, event: Event) -> EventRecord:
        with self._lock:
            rec = EventRecord(seq=len(self._records), event=event)
            self._records.append(rec)
        return rec

    def get_events(self, *, name: Optional[str] = None, limit: Optional[int] = None) -> Iterable[EventRecord]:
        with self._lock:
            matched = [rec for rec in self._records if _matches(rec, name)]
        return matched if limit is None else matched[:limit]

    def events(self, name: Optional[str] = None) -> List[Event]:
        """Convenience projection: just the record payloads."""
        return [rec.event for rec in self.get_events(name=name)]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def flush(self) -> None:
        # Nothing to do
        return

    def close(self) -> None:
        with self._lock:
            self._records.clear()


# =============================================================================
# JSONL sink (durable)
# =============================================================================


class JsonlEventSink(EventSink):
    """
    Append-only JSONL sink.

    Format (one object per line)
    ----------------------------
    {"seq": 0, "event": "GaslessTokenTransferCompleted", "args": {"from": "0x…", ...}}

    Amounts are written as JSON integers (arbitrary precision in Python's
    json module). Reopening an existing file continues the sequence.
    """

    def __init__(self, path: str) -> None:
        self._path = path
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        self._fh = open(path, "a+", encoding="utf-8", buffering=1)  # line-buffered
        self._lock = threading.RLock()
        self._log = logging.getLogger(__name__)
        self._next_seq = self._count_existing()

    def _count_existing(self) -> int:
        self._fh.seek(0)
        n = sum(1 for line in self._fh if line.strip())
        self._fh.seek(0, os.SEEK_END)
        return n

    @staticmethod
    def _encode(rec: EventRecord) -> str:
        obj = {"seq": rec.seq, "event": rec.name, "args": rec.event.to_dict()}
        return json.dumps(obj, separators=(",", ":"))

    @staticmethod
    def _decode(line: str) -> EventRecord:
        obj = json.loads(line)
        cls = EVENT_TYPES[obj["event"]]
        return EventRecord(seq=int(obj["seq"]), event=cls.from_dict(obj["args"]))

    def append(self, event: Event) -> EventRecord:
        with self._lock:
            rec = EventRecord(seq=self._next_seq, event=event)
            self._fh.write(self._encode(rec) + "\n")
            self._next_seq += 1
        return rec

    def get_events(self, *, name: Optional[str] = None, limit: Optional[int] = None) -> Iterable[EventRecord]:
        out: List[EventRecord] = []
        with self._lock:
            self._fh.flush()
            self._fh.seek(0)
            for line in self._fh:
                if not line.strip():
                    continue
                try:
                    rec = self._decode(line)
                except (KeyError, ValueError) as e:
                    self._log.warning("Skipping malformed event line: %s (%r)", line[:120], e)
                    continue
                if _matches(rec, name):
                    out.append(rec)
                    if limit is not None and len(out) >= limit:
                        break
            self._fh.seek(0, os.SEEK_END)
        return out

    def flush(self) -> None:
        with self._lock:
            self._fh.flush()
            os.fsync(self._fh.fileno())

    def close(self) -> None:
        with self._lock:
            if not self._fh.closed:
                self._fh.flush()
                self._fh.close()


# =============================================================================
# Null sink
# =============================================================================


class NullEventSink(EventSink):
    """A sink that drops everything."""

    def __init__(self) -> None:
        self._seq = 0

    def append(self, event: Event) -> EventRecord:
        # Return a record to keep call sites simple, even though it's not stored.
        rec = EventRecord(seq=self._seq, event=event)
        self._seq += 1
        return rec

    def get_events(self, *, name: Optional[str] = None, limit: Optional[int] = None) -> Iterable[EventRecord]:
        return []

    def flush(self) -> None:
        return

    def close(self) -> None:
        return


__all__ = [
    "GaslessTokenTransferCompleted",
    "RelayerAuthorizationUpdated",
    "TokenSupportStatusUpdated",
    "Event",
    "EVENT_TYPES",
    "EventRecord",
    "EventSink",
    "InMemoryEventSink",
    "JsonlEventSink",
    "NullEventSink",
]
