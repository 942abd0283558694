# === FILE: site_loader/scanner.py ===
"""
Обход дерева адресов узлов: перечисляет листья в детерминированном порядке.

Обход в глубину, слева направо, на явном стеке. Индекс листа назначается
в момент обнаружения и определяет его место в итоговом буфере.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Tuple

from site_loader.config import RetryProfile
from site_loader.errors import FetchFailure, MalformedNodeError, ScanFailure
from site_loader.logger import logger
from site_loader.remote.models import Chunk, LeafCallback, NodeAddress, ReadFn
from site_loader.remote.retry import RETRYABLE, call_with_retry, read_with_retry
from site_loader.utils import ADDRESS_WIDTH, short_address, split_addresses

__all__ = ["TraversalState", "TreeScanner", "FlatScanner"]


@dataclass(slots=True)
class TraversalState:
    """Состояние одного обхода: стек работ, счётчик индексов, найденные листья."""

    stack: List[Tuple[NodeAddress, int]] = field(default_factory=list)
    next_index: int = 0
    nodes_read: int = 0
    leaves: List[Chunk] = field(default_factory=list)

    def emit(self, address: NodeAddress) -> Chunk:
        chunk = Chunk(index=self.next_index, address=address)
        self.next_index += 1
        self.leaves.append(chunk)
        return chunk


class TreeScanner:
    """Перечисляет листья дерева начиная с корня заданной глубины."""

    def __init__(self, read: ReadFn, profile: RetryProfile) -> None:
        self._read = read
        self.profile = profile

    async def scan(
        self,
        root: NodeAddress,
        depth: int,
        on_leaf: Optional[LeafCallback] = None,
    ) -> List[Chunk]:
        """
        Возвращает листья в порядке обхода с индексами ``0..L-1``.

        Любой нечитаемый внутренний узел прерывает обход (:class:`ScanFailure`),
        при некорректной длине узла :class:`MalformedNodeError`.
        """
        if depth < 0:
            raise ValueError(f"depth must be non-negative, got {depth}")
        state = TraversalState(stack=[(root, depth)])
        while state.stack:
            address, level = state.stack.pop()
            if level == 0:
                chunk = state.emit(address)
                if on_leaf is not None:
                    on_leaf(chunk)
                continue
            children = await self._children(address)
            state.nodes_read += 1
            logger.debug("Scan depth %d: %s -> %d nodes", level, short_address(address), len(children))
            # обратный порядок: левый потомок снимается со стека первым
            state.stack.extend((child, level - 1) for child in reversed(children))
        logger.info("Scan complete: %d leaves, %d internal nodes", len(state.leaves), state.nodes_read)
        return state.leaves

    async def _children(self, address: NodeAddress) -> List[NodeAddress]:
        try:
            payload = await read_with_retry(self._read, address, self.profile)
        except FetchFailure as exc:
            logger.error("Failed to traverse node %s", short_address(address))
            raise ScanFailure(address) from exc
        if len(payload) % ADDRESS_WIDTH:
            raise MalformedNodeError(address, len(payload))
        return split_addresses(payload)


class FlatScanner:
    """Плоский режим: адрес i-го листа получается вызовом ``resolve(i)``."""

    def __init__(
        self,
        resolve: Callable[[int], Awaitable[NodeAddress]],
        profile: RetryProfile,
        master: NodeAddress,
    ) -> None:
        self._resolve = resolve
        self.profile = profile
        self.master = master

    async def scan(self, count: int, on_leaf: Optional[LeafCallback] = None) -> List[Chunk]:
        leaves: List[Chunk] = []
        for index in range(count):
            try:
                address = await call_with_retry(
                    lambda i=index: self._resolve(i), self.profile, label=f"resolve #{index}"
                )
            except RETRYABLE as exc:
                logger.error("Failed to resolve chunk #%d", index)
                raise ScanFailure(self.master) from exc
            chunk = Chunk(index=index, address=address)
            leaves.append(chunk)
            if on_leaf is not None:
                on_leaf(chunk)
        logger.info("Resolved %d flat chunks", len(leaves))
        return leaves
