# site_loader/report/json_report.py

"""
Генерация JSON-отчёта о загрузке для проекта SiteLoader.

Сериализация объекта LoadResult в файл.
"""
from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict

from site_loader.engine import LoadResult
from site_loader.utils import to_hex


def summarize(result: LoadResult) -> Dict[str, Any]:
    """Словарь со сводкой загрузки, пригодный для JSON."""
    descriptor = asdict(result.descriptor)
    if "root_address" in descriptor:
        descriptor["root_address"] = to_hex(descriptor["root_address"])
    state = result.state
    return {
        "site_address": result.site_address,
        "strategy": result.strategy,
        "descriptor": descriptor,
        "encoding": result.encoding,
        "counts": {
            "scanned": state.scanned,
            "loaded": state.loaded,
            "failed": state.failed,
            "total": state.total,
        },
        "bytes": {
            "assembled": len(result.data),
            "expected": result.assembly.expected_size,
            "shortfall": result.assembly.shortfall,
        },
        "missing": result.missing,
        "chunks": [
            {
                "index": chunk.index,
                "address": to_hex(chunk.address),
                "status": chunk.status.value,
                "size": len(chunk.payload) if chunk.payload is not None else None,
            }
            for _, chunk in sorted(state.chunks.items())
        ],
    }


def render_json(result: LoadResult, output_path: Path | str, *, pretty: bool = True) -> Path:
    """
    Сохраняет отчёт result в формате JSON по указанному пути.

    :param result: объект LoadResult
    :param output_path: путь к JSON-файлу
    :return: Path сохранённого файла
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    with output.open("w", encoding="utf-8") as f:
        json.dump(summarize(result), f, ensure_ascii=False, indent=2 if pretty else None)

    return output
