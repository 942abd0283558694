"""site_loader.resolver: Однократное чтение дескриптора сайта."""

from __future__ import annotations

from typing import Protocol, Union

from site_loader.config import RetryProfile
from site_loader.errors import EmptySiteError, ResolveFailure
from site_loader.logger import logger
from site_loader.remote.models import FlatDescriptor, NodeAddress, SiteDescriptor
from site_loader.remote.retry import RETRYABLE, call_with_retry
from site_loader.utils import format_bytes, short_address

__all__ = ["SiteSource", "SiteResolver"]


class SiteSource(Protocol):
    async def get_site_info(self, master: NodeAddress) -> SiteDescriptor: ...

    async def get_chunk_count(self, master: NodeAddress) -> int: ...


class SiteResolver:
    """Возвращает параметры обхода для мастер-адреса сайта."""

    def __init__(self, source: SiteSource, profile: RetryProfile) -> None:
        self.source = source
        self.profile = profile

    async def resolve(self, master: NodeAddress) -> SiteDescriptor:
        try:
            info = await call_with_retry(
                lambda: self.source.get_site_info(master), self.profile, label="site info"
            )
        except RETRYABLE as exc:
            raise ResolveFailure(master) from exc
        logger.info(
            "Root: %s, depth: %d, size: %s",
            short_address(info.root_address), info.depth, format_bytes(info.total_size),
        )
        return info

    async def resolve_flat(self, master: NodeAddress) -> FlatDescriptor:
        try:
            count = await call_with_retry(
                lambda: self.source.get_chunk_count(master), self.profile, label="chunk count"
            )
        except RETRYABLE as exc:
            raise ResolveFailure(master) from exc
        if count == 0:
            raise EmptySiteError(master)
        logger.info("Flat site: %d chunks", count)
        return FlatDescriptor(count=count)

    async def describe(self, master: NodeAddress, mode: str) -> Union[SiteDescriptor, FlatDescriptor]:
        if mode == "flat":
            return await self.resolve_flat(master)
        return await self.resolve(master)
