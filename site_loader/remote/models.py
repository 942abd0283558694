# site_loader/remote/models.py
"""
Data models for the SiteLoader retrieval engine.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Protocol

from site_loader.errors import InvalidTransition

NodeAddress = bytes


@dataclass(frozen=True, slots=True)
class SiteDescriptor:
    """Root of a published tree. ``total_size`` is advisory only."""

    root_address: NodeAddress
    depth: int
    total_size: int


@dataclass(frozen=True, slots=True)
class FlatDescriptor:
    """Legacy flat layout: chunks are resolved by index."""

    count: int


class ChunkStatus(str, Enum):
    PENDING = "pending"
    SCANNED = "scanned"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


_TRANSITIONS: Dict[ChunkStatus, frozenset[ChunkStatus]] = {
    ChunkStatus.PENDING: frozenset({ChunkStatus.SCANNED}),
    ChunkStatus.SCANNED: frozenset({ChunkStatus.LOADING}),
    ChunkStatus.LOADING: frozenset({ChunkStatus.LOADED, ChunkStatus.FAILED}),
    ChunkStatus.FAILED: frozenset({ChunkStatus.LOADING}),
    ChunkStatus.LOADED: frozenset(),
}


@dataclass(slots=True)
class Chunk:
    """One leaf: its assembly index, address and (once loaded) payload."""

    index: int
    address: NodeAddress
    payload: Optional[bytes] = None
    status: ChunkStatus = ChunkStatus.PENDING

    def advance(self, new: ChunkStatus) -> None:
        if new not in _TRANSITIONS[self.status]:
            raise InvalidTransition(self.index, self.status.value, new.value)
        self.status = new


@dataclass(frozen=True, slots=True)
class Progress:
    """Snapshot delivered to progress callbacks."""

    phase: str
    scanned: int
    loaded: int
    failed: int
    total: Optional[int] = None


ProgressCallback = Callable[[Progress], None]
LeafCallback = Callable[[Chunk], None]


class RemoteReader(Protocol):
    """Anything that can read the raw payload stored at a node address."""

    async def read(self, address: NodeAddress) -> bytes: ...


ReadFn = Callable[[NodeAddress], Awaitable[bytes]]


@dataclass(slots=True)
class LoadState:
    """Per-load collection of chunks and counters; never shared between loads."""

    chunks: Dict[int, Chunk] = field(default_factory=dict)
    total: Optional[int] = None
    bytes_loaded: int = 0

    def add_leaf(self, chunk: Chunk) -> Chunk:
        if chunk.index in self.chunks:
            raise ValueError(f"duplicate chunk index {chunk.index}")
        chunk.advance(ChunkStatus.SCANNED)
        self.chunks[chunk.index] = chunk
        return chunk

    def mark_loading(self, index: int) -> None:
        self.chunks[index].advance(ChunkStatus.LOADING)

    def mark_loaded(self, index: int, payload: bytes) -> None:
        chunk = self.chunks[index]
        chunk.advance(ChunkStatus.LOADED)
        chunk.payload = payload
        self.bytes_loaded += len(payload)

    def mark_failed(self, index: int) -> None:
        self.chunks[index].advance(ChunkStatus.FAILED)

    def _count(self, status: ChunkStatus) -> int:
        return sum(1 for c in self.chunks.values() if c.status is status)

    @property
    def scanned(self) -> int:
        return len(self.chunks)

    @property
    def loaded(self) -> int:
        return self._count(ChunkStatus.LOADED)

    @property
    def failed(self) -> int:
        return self._count(ChunkStatus.FAILED)

    @property
    def missing(self) -> List[int]:
        """Indices that have no payload, ascending."""
        return sorted(i for i, c in self.chunks.items() if c.status is not ChunkStatus.LOADED)

    def completed(self) -> Dict[int, bytes]:
        return {i: c.payload for i, c in self.chunks.items() if c.payload is not None}

    def snapshot(self, phase: str) -> Progress:
        return Progress(phase, self.scanned, self.loaded, self.failed, self.total)
