# File: site_loader/engine.py
"""site_loader.engine: Оркестрация загрузки: дескриптор → скан → загрузка → сборка → декодирование."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union, cast

from site_loader.assembler import Assembly, assemble_state
from site_loader.config import LoaderConfig
from site_loader.encoding import EncodingDetector
from site_loader.errors import SiteLoaderError
from site_loader.logger import logger
from site_loader.remote.models import (
    FlatDescriptor,
    LoadState,
    Progress,
    ProgressCallback,
    SiteDescriptor,
)
from site_loader.remote.rpc import RpcReader
from site_loader.resolver import SiteResolver
from site_loader.scanner import FlatScanner, TreeScanner
from site_loader.scheduler import make_scheduler
from site_loader.utils import format_bytes

__all__ = ["LoadResult", "SiteLoader", "start_load", "load", "describe_site"]

ErrorCallback = Callable[[SiteLoaderError], None]


@dataclass(slots=True)
class LoadResult:
    """Итог одной загрузки."""

    site_address: str
    descriptor: Union[SiteDescriptor, FlatDescriptor]
    strategy: str
    state: LoadState
    assembly: Assembly
    text: Optional[str] = None
    encoding: Optional[str] = None

    @property
    def data(self) -> bytes:
        return self.assembly.data

    @property
    def missing(self) -> List[int]:
        return self.assembly.missing

    @property
    def complete(self) -> bool:
        return self.assembly.complete


class SiteLoader:
    """Фасад для CLI и тестов: полный цикл загрузки одного сайта."""

    def __init__(
        self,
        config: LoaderConfig,
        *,
        reader: Any = None,
        on_progress: Optional[ProgressCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        """*reader* подменяет транспорт; по умолчанию создаётся :class:`RpcReader`."""
        self.config = config
        self._reader = reader
        self._on_progress = on_progress
        self._on_error = on_error

    async def load(self, *, raw: bool = False) -> Optional[LoadResult]:
        """Загружает сайт; при *raw* декодирование пропускается."""
        logger.info("Starting load of %s (%s, %s)", self.config.site_address, self.config.mode, self.config.schedule.strategy)
        try:
            if self._reader is not None:
                return await self._run(self._reader, raw)
            async with RpcReader.from_config(self.config) as reader:
                return await self._run(reader, raw)
        except SiteLoaderError as exc:
            logger.error("Load failed: %s", exc)
            if self._on_error is None:
                raise
            self._on_error(exc)
            return None

    async def _run(self, reader: Any, raw: bool) -> LoadResult:
        policy = self.config.schedule
        master = self.config.site
        self._notify(Progress("resolve", 0, 0, 0))
        descriptor = await SiteResolver(reader, policy.resilient).describe(master, self.config.mode)

        if isinstance(descriptor, FlatDescriptor):
            flat = FlatScanner(lambda i: reader.resolve_chunk(master, i), policy.resilient, master)
            discover = lambda on_leaf: flat.scan(descriptor.count, on_leaf)  # noqa: E731
            read = reader.read_text
            expected_size = None
        else:
            tree = TreeScanner(reader.read, policy.resilient)
            discover = lambda on_leaf: tree.scan(  # noqa: E731
                descriptor.root_address, descriptor.depth, on_leaf
            )
            read = reader.read
            expected_size = descriptor.total_size

        state = await make_scheduler(policy, read, self._on_progress).run(discover)

        self._notify(state.snapshot("assemble"))
        assembly = assemble_state(state, expected_size)
        if assembly.missing:
            logger.warning(
                "Assembled %s with %d missing chunk(s), %s short of declared size",
                format_bytes(len(assembly.data)), len(assembly.missing), format_bytes(assembly.shortfall),
            )
        else:
            logger.info("Complete! %d chunks, %s", assembly.chunk_count, format_bytes(len(assembly.data)))

        result = LoadResult(
            site_address=self.config.site_address,
            descriptor=descriptor,
            strategy=policy.strategy,
            state=state,
            assembly=assembly,
        )
        if not raw:
            self._notify(state.snapshot("decode"))
            if isinstance(descriptor, FlatDescriptor):
                # flat leaves are ABI strings, already UTF-8 regardless of any meta charset
                result.encoding = "utf-8"
            else:
                detector = EncodingDetector(self.config.charsets, self.config.preview_bytes)
                result.encoding = detector.detect(assembly.data)
            result.text = assembly.data.decode(result.encoding, errors="replace")
        self._notify(state.snapshot("done"))
        return result

    def _notify(self, progress: Progress) -> None:
        if self._on_progress is not None:
            self._on_progress(progress)


async def start_load(
    cfg: LoaderConfig,
    *,
    raw: bool = False,
    on_progress: Optional[ProgressCallback] = None,
) -> LoadResult:
    """Запускает загрузку по конфигу; ошибки пробрасываются вызывающему."""
    result = await SiteLoader(cfg, on_progress=on_progress).load(raw=raw)
    return cast(LoadResult, result)


async def load(
    site_address: str,
    rpc_url: str,
    options: Union[LoaderConfig, Dict[str, Any], None] = None,
    *,
    raw: bool = False,
    reader: Any = None,
    on_progress: Optional[ProgressCallback] = None,
    on_error: Optional[ErrorCallback] = None,
) -> Union[str, bytes, None]:
    """
    Одним вызовом: декодированный текст (или сырой буфер при *raw*).

    При переданном *on_error* ошибка передаётся в него и возвращается ``None``.
    """
    if isinstance(options, LoaderConfig):
        data = options.model_dump(mode="json")
    else:
        data = dict(options or {})
    data.update(site_address=site_address, rpc_url=rpc_url)
    cfg = LoaderConfig(**data)
    result = await SiteLoader(cfg, reader=reader, on_progress=on_progress, on_error=on_error).load(raw=raw)
    if result is None:
        return None
    return result.data if raw else result.text


async def describe_site(cfg: LoaderConfig) -> Union[SiteDescriptor, FlatDescriptor]:
    """Читает только дескриптор сайта (для команды ``info``)."""
    async with RpcReader.from_config(cfg) as reader:
        return await SiteResolver(reader, cfg.schedule.resilient).describe(cfg.site, cfg.mode)
