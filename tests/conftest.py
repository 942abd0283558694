# File: tests/conftest.py
from __future__ import annotations

import itertools
from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import pytest

from site_loader.config import RetryProfile, SchedulePolicy
from site_loader.errors import RemoteCallError
from site_loader.remote.models import SiteDescriptor

TreeShape = Union[bytes, Sequence["TreeShape"]]

MASTER = bytes.fromhex("7c57f2a97d075fd61be15a112e5294492dbb6079")


def addr(n: int) -> bytes:
    """Deterministic 20-byte address for test node *n*."""
    return n.to_bytes(20, "big")


class TreeBuilder:
    """Builds an in-memory node tree from nested lists of leaf payloads."""

    def __init__(self) -> None:
        self.nodes: Dict[bytes, bytes] = {}
        self.leaves: List[bytes] = []
        self._ids = itertools.count(1)

    def build(self, shape: TreeShape) -> Tuple[bytes, int]:
        address = addr(next(self._ids))
        if isinstance(shape, bytes):
            self.nodes[address] = shape
            self.leaves.append(address)
            return address, 0
        children = [self.build(child) for child in shape]
        depths = {d for _, d in children}
        assert len(depths) <= 1, "all subtrees must have the same depth"
        self.nodes[address] = b"".join(a for a, _ in children)
        return address, (depths.pop() + 1 if depths else 1)


def build_tree(shape: TreeShape) -> Tuple[bytes, int, TreeBuilder]:
    builder = TreeBuilder()
    root, depth = builder.build(shape)
    return root, depth, builder


class FakeRemote:
    """In-memory stand-in for the RPC reader."""

    def __init__(
        self,
        nodes: Dict[bytes, bytes],
        *,
        failing: Iterable[bytes] = (),
        flaky: Optional[Dict[bytes, int]] = None,
        site: Optional[SiteDescriptor] = None,
        flat: Optional[List[bytes]] = None,
    ) -> None:
        self.nodes = nodes
        self.failing = set(failing)
        self.flaky = dict(flaky or {})
        self.site = site
        self.flat = flat or []
        self.calls: Counter = Counter()

    async def read(self, address: bytes) -> bytes:
        self.calls[address] += 1
        if address in self.failing:
            raise RemoteCallError("unreachable")
        if self.flaky.get(address, 0) > 0:
            self.flaky[address] -= 1
            raise RemoteCallError("flaky")
        try:
            return self.nodes[address]
        except KeyError:
            raise RemoteCallError("no such node") from None

    async def read_text(self, address: bytes) -> bytes:
        return await self.read(address)

    async def get_site_info(self, master: bytes) -> SiteDescriptor:
        if self.site is None:
            raise RemoteCallError("no site info")
        return self.site

    async def get_chunk_count(self, master: bytes) -> int:
        return len(self.flat)

    async def resolve_chunk(self, master: bytes, index: int) -> bytes:
        return self.flat[index]


@pytest.fixture()
def fast_policy() -> SchedulePolicy:
    """Schedule policy with near-zero delays so tests stay quick."""
    return SchedulePolicy(
        light=RetryProfile(max_attempts=2, base_delay=0.0, max_delay=0.0),
        resilient=RetryProfile(max_attempts=3, base_delay=0.001, max_delay=0.01),
        retry_rounds=5,
        round_delay=0.001,
        retry_pacing=0.0,
        worker_delay=0.0,
        poll_interval=0.01,
        load_timeout=0.5,
    )


@pytest.fixture()
def ten_leaf_tree():
    """Depth-2 tree with ten two-byte leaves spread unevenly over subtrees."""
    shape = [
        [b"00", b"01", b"02"],
        [b"03"],
        [b"04", b"05", b"06", b"07"],
        [b"08", b"09"],
    ]
    return build_tree(shape)
