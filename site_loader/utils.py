"""site_loader.utils: Вспомогательные функции для адресов и размеров."""

from __future__ import annotations

import re
from typing import List, Sequence

__all__: Sequence[str] = (
    "ADDRESS_WIDTH",
    "to_hex",
    "from_hex",
    "parse_address",
    "short_address",
    "split_addresses",
    "format_bytes",
)

#: ширина адреса узла в байтах
ADDRESS_WIDTH = 20

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def to_hex(data: bytes) -> str:
    """Возвращает ``0x``-представление байтов."""
    return "0x" + data.hex()


def from_hex(value: str) -> bytes:
    """Разбирает hex-строку с префиксом ``0x`` или без него."""
    text = value[2:] if value[:2].lower() == "0x" else value
    if len(text) % 2:
        text = "0" + text
    return bytes.fromhex(text)


def parse_address(value: str) -> bytes:
    """Проверяет и разбирает адрес узла вида ``0x`` + 40 hex-символов."""
    if not _ADDRESS_RE.match(value):
        raise ValueError(f"invalid node address: {value!r}")
    return bytes.fromhex(value[2:])


def short_address(address: bytes) -> str:
    """Короткая форма адреса для логов: ``0x12345678…``."""
    return to_hex(address)[:10] + "…"


def split_addresses(payload: bytes) -> List[bytes]:
    """Делит полезную нагрузку внутреннего узла на адреса фиксированной ширины."""
    return [payload[i : i + ADDRESS_WIDTH] for i in range(0, len(payload), ADDRESS_WIDTH)]


def format_bytes(size: int) -> str:
    """Человекочитаемый размер: ``1536 -> '1.5 KB'``."""
    if size <= 0:
        return "0 B"
    value = float(size)
    for unit in ("B", "KB", "MB"):
        if value < 1024:
            return f"{value:.1f}".rstrip("0").rstrip(".") + f" {unit}"
        value /= 1024
    return f"{value:.1f}".rstrip("0").rstrip(".") + " GB"
