# File: site_loader/assembler.py
"""site_loader.assembler: Сборка загруженных фрагментов в один буфер по индексам."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Optional, Tuple, Union

from site_loader.remote.models import LoadState

__all__ = ["Assembly", "assemble", "assemble_state"]

Pieces = Union[Mapping[int, bytes], Iterable[Tuple[int, bytes]]]


@dataclass(slots=True)
class Assembly:
    """Собранный буфер и сведения о пропущенных фрагментах."""

    data: bytes
    chunk_count: int
    missing: List[int] = field(default_factory=list)
    expected_size: Optional[int] = None

    @property
    def complete(self) -> bool:
        return not self.missing

    @property
    def shortfall(self) -> int:
        """Сколько байт не хватает до объявленного размера (0, если размер не известен)."""
        if self.expected_size is None:
            return 0
        return max(0, self.expected_size - len(self.data))


def assemble(pieces: Pieces) -> bytes:
    """Сортирует фрагменты по индексу и склеивает без разделителей."""
    items = list(pieces.items()) if isinstance(pieces, Mapping) else list(pieces)
    items.sort(key=lambda item: item[0])
    for (prev, _), (cur, _) in zip(items, items[1:]):
        if prev == cur:
            raise ValueError(f"duplicate chunk index {cur}")
    return b"".join(payload for _, payload in items)


def assemble_state(state: LoadState, expected_size: Optional[int] = None) -> Assembly:
    """Собирает всё, что загрузилось, и перечисляет пропущенные индексы."""
    completed = state.completed()
    return Assembly(
        data=assemble(completed),
        chunk_count=len(completed),
        missing=state.missing,
        expected_size=expected_size,
    )
