"""site_loader.encoding: Выбор текстового декодера для собранного документа."""

from __future__ import annotations

import re
from typing import Mapping, Optional

from site_loader.config import KOREAN_CHARSETS
from site_loader.logger import logger

__all__ = ["EncodingDetector", "decode"]

PREVIEW_BYTES = 2000


class EncodingDetector:
    """
    Ищет объявление ``charset=`` в начале документа.

    Превью декодируется побайтово (latin-1), поэтому ошибок декодирования
    в нём не бывает. Если объявлена одна из региональных кодировок, весь
    буфер декодируется ею, иначе как UTF-8. Некорректные байты заменяются.
    """

    def __init__(
        self,
        charsets: Optional[Mapping[str, str]] = None,
        preview_bytes: int = PREVIEW_BYTES,
    ) -> None:
        self.charsets = {k.lower(): v for k, v in (charsets or KOREAN_CHARSETS).items()}
        self.preview_bytes = preview_bytes
        names = "|".join(re.escape(name) for name in sorted(self.charsets, key=len, reverse=True))
        self._pattern = re.compile(rf"charset=[\"']?({names})", re.IGNORECASE)

    def detect(self, data: bytes) -> str:
        """Имя кодека Python для *data*."""
        preview = data[: self.preview_bytes].decode("latin-1")
        match = self._pattern.search(preview)
        if match:
            declared = match.group(1).lower()
            logger.info("Encoding detected: %s", declared)
            return self.charsets[declared]
        return "utf-8"

    def decode(self, data: bytes) -> str:
        return data.decode(self.detect(data), errors="replace")


def decode(data: bytes) -> str:
    """Декодирует *data* детектором с настройками по умолчанию."""
    return EncodingDetector().decode(data)
