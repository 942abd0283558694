# === FILE: site_loader/scheduler.py ===
"""
Планировщики загрузки листьев.

* ``phased`` – проход лёгким профилем, затем до N раундов повторов устойчивым
  профилем; окончательно упавшие листья пропускаются (best-effort).
* ``overlapped`` – один фоновый воркер разбирает очередь, пока сканер её
  наполняет; упавший лист возвращается в конец очереди, завершение
  ограничено только внешним дедлайном.
"""
from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Dict, List, Optional, Type

from site_loader.config import SchedulePolicy
from site_loader.errors import FetchFailure, IncompleteLoadError, TimeoutFailure
from site_loader.logger import logger
from site_loader.remote.models import Chunk, LeafCallback, LoadState, ProgressCallback, ReadFn
from site_loader.remote.retry import read_with_retry
from site_loader.utils import format_bytes, short_address

__all__ = ["Discover", "LoadScheduler", "PhasedScheduler", "OverlappedScheduler", "make_scheduler"]

#: корутина обнаружения листьев: вызывает колбэк для каждого листа и возвращает их список
Discover = Callable[[LeafCallback], Awaitable[List[Chunk]]]


class LoadScheduler(ABC):
    """Общая часть стратегий: чтение, политика и уведомления о прогрессе."""

    name: str = ""

    def __init__(
        self,
        read: ReadFn,
        policy: SchedulePolicy,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        self._read = read
        self.policy = policy
        self._on_progress = on_progress

    @abstractmethod
    async def run(self, discover: Discover) -> LoadState:
        """Обнаруживает листья через *discover* и загружает их."""

    def _emit(self, phase: str, state: LoadState) -> None:
        if self._on_progress is not None:
            self._on_progress(state.snapshot(phase))

    async def _load_one(self, state: LoadState, chunk: Chunk, profile) -> bool:
        state.mark_loading(chunk.index)
        try:
            payload = await read_with_retry(self._read, chunk.address, profile)
        except FetchFailure as exc:
            state.mark_failed(chunk.index)
            logger.debug("Chunk #%d failed: %s", chunk.index, exc)
            return False
        state.mark_loaded(chunk.index, payload)
        return True


class PhasedScheduler(LoadScheduler):
    """Сначала полный скан, затем проход и раунды повторов."""

    name = "phased"

    async def run(self, discover: Discover) -> LoadState:
        state = LoadState()

        def on_leaf(chunk: Chunk) -> None:
            state.add_leaf(chunk)
            self._emit("scan", state)

        leaves = await discover(on_leaf)
        state.total = len(leaves)
        logger.info("Phase 2: loading %d chunks", state.total)

        failed = await self._first_pass(state, leaves)
        logger.info("Loaded: %d, Failed: %d", state.loaded, len(failed))
        if failed:
            failed = await self._retry_rounds(state, failed)

        if failed:
            logger.warning("%d chunks permanently failed: %s", len(failed), [c.index for c in failed])
            if self.policy.strict:
                raise IncompleteLoadError(state.missing)
        logger.info("Load finished: %d/%d chunks, %s", state.loaded, state.total, format_bytes(state.bytes_loaded))
        return state

    async def _first_pass(self, state: LoadState, leaves: List[Chunk]) -> List[Chunk]:
        failed: List[Chunk] = []
        for chunk in leaves:
            if not await self._load_one(state, chunk, self.policy.light):
                failed.append(chunk)
            self._emit("load", state)
        return failed

    async def _retry_rounds(self, state: LoadState, failed: List[Chunk]) -> List[Chunk]:
        for round_no in range(1, self.policy.retry_rounds + 1):
            if not failed:
                break
            logger.info("Retry round %d: %d chunks", round_no, len(failed))
            await asyncio.sleep(self.policy.round_delay * round_no)
            still_failed: List[Chunk] = []
            for pos, chunk in enumerate(failed):
                if pos:
                    await asyncio.sleep(self.policy.retry_pacing)
                if not await self._load_one(state, chunk, self.policy.resilient):
                    still_failed.append(chunk)
                self._emit("retry", state)
            failed = still_failed
        return failed


class OverlappedScheduler(LoadScheduler):
    """Скан и загрузка идут одновременно; повторы без окончательного отказа."""

    name = "overlapped"

    async def run(self, discover: Discover) -> LoadState:
        state = LoadState()
        queue: asyncio.Queue[Chunk] = asyncio.Queue()

        def on_leaf(chunk: Chunk) -> None:
            state.add_leaf(chunk)
            queue.put_nowait(chunk)
            self._emit("scan", state)

        worker = asyncio.create_task(self._worker(state, queue))
        try:
            leaves = await discover(on_leaf)
            state.total = len(leaves)
            logger.info("Scan complete: %d chunks, waiting for loader", state.total)
            await self._wait(state, worker)
        finally:
            worker.cancel()
            await asyncio.gather(worker, return_exceptions=True)
        logger.info("All %d chunks loaded, %s", state.total, format_bytes(state.bytes_loaded))
        return state

    async def _worker(self, state: LoadState, queue: asyncio.Queue[Chunk]) -> None:
        while True:
            chunk = await queue.get()
            try:
                if not await self._load_one(state, chunk, self.policy.resilient):
                    logger.warning("Retry failed: %s, requeued", short_address(chunk.address))
                    queue.put_nowait(chunk)
                self._emit("load", state)
            finally:
                queue.task_done()
            await asyncio.sleep(self.policy.worker_delay)

    async def _wait(self, state: LoadState, worker: asyncio.Task) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.policy.load_timeout
        total = state.total or 0
        while state.loaded < total:
            if worker.done():
                # воркер завершился только из-за исключения
                worker.result()
            now = loop.time()
            if now >= deadline:
                raise TimeoutFailure(state.loaded, total)
            await asyncio.sleep(min(self.policy.poll_interval, deadline - now))


_SCHEDULERS: Dict[str, Type[LoadScheduler]] = {
    PhasedScheduler.name: PhasedScheduler,
    OverlappedScheduler.name: OverlappedScheduler,
}


def make_scheduler(
    policy: SchedulePolicy,
    read: ReadFn,
    on_progress: Optional[ProgressCallback] = None,
) -> LoadScheduler:
    """Создаёт планировщик по имени стратегии из *policy*."""
    try:
        cls = _SCHEDULERS[policy.strategy]
    except KeyError:
        raise ValueError(f"Неизвестная стратегия: {policy.strategy}") from None
    return cls(read, policy, on_progress)
