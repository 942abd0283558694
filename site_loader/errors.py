"""site_loader.errors: Типизированные ошибки загрузчика."""

from __future__ import annotations

from typing import Sequence

from site_loader.utils import short_address

__all__ = [
    "SiteLoaderError",
    "RemoteCallError",
    "FetchFailure",
    "ScanFailure",
    "MalformedNodeError",
    "TimeoutFailure",
    "ResolveFailure",
    "EmptySiteError",
    "IncompleteLoadError",
    "InvalidTransition",
]


class SiteLoaderError(Exception):
    """Базовый класс всех ошибок SiteLoader."""


class RemoteCallError(SiteLoaderError):
    """Одна неудачная попытка удалённого вызова (подлежит повтору)."""


class FetchFailure(SiteLoaderError):
    """Лист не прочитан после исчерпания бюджета попыток."""

    def __init__(self, address: bytes, attempts: int = 0) -> None:
        self.address = address
        self.attempts = attempts
        super().__init__(f"fetch failed for {short_address(address)} after {attempts} attempt(s)")


class ScanFailure(SiteLoaderError):
    """Внутренний узел дерева не прочитан: загрузка прерывается целиком."""

    def __init__(self, address: bytes) -> None:
        self.address = address
        super().__init__(f"scan failed at node {short_address(address)}")


class MalformedNodeError(SiteLoaderError):
    """Длина полезной нагрузки внутреннего узла не кратна ширине адреса."""

    def __init__(self, address: bytes, length: int) -> None:
        self.address = address
        self.length = length
        super().__init__(f"node {short_address(address)} has malformed payload of {length} bytes")


class TimeoutFailure(SiteLoaderError):
    """Истёк дедлайн ожидания в режиме overlapped."""

    def __init__(self, loaded: int, total: int) -> None:
        self.loaded = loaded
        self.total = total
        super().__init__(f"timeout: {loaded}/{total} chunks loaded")


class ResolveFailure(SiteLoaderError):
    """Не удалось прочитать дескриптор сайта."""

    def __init__(self, address: bytes) -> None:
        self.address = address
        super().__init__(f"cannot resolve site {short_address(address)}")


class EmptySiteError(SiteLoaderError):
    def __init__(self, address: bytes) -> None:
        self.address = address
        super().__init__(f"no chunks published at {short_address(address)}")


class IncompleteLoadError(SiteLoaderError):
    """Строгий режим: хотя бы один лист окончательно не загружен."""

    def __init__(self, missing: Sequence[int]) -> None:
        self.missing = list(missing)
        super().__init__(f"{len(self.missing)} chunk(s) permanently failed: {self.missing}")


class InvalidTransition(SiteLoaderError):
    def __init__(self, index: int, old: object, new: object) -> None:
        self.index = index
        self.old = old
        self.new = new
        super().__init__(f"chunk #{index}: illegal status change {old} -> {new}")
