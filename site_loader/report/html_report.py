"""site_loader.report.html_report: Генерация HTML-отчёта с помощью Jinja2."""

from __future__ import annotations

import math
from pathlib import Path
from typing import Any, Union

from jinja2 import Environment, FileSystemLoader, select_autoescape

from site_loader.engine import LoadResult
from site_loader.report.json_report import summarize
from site_loader.utils import format_bytes

#: каталог шаблонов, поставляемый вместе с пакетом
DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"


def render_html(
    result: LoadResult,
    template_dir: Union[Path, str, None],
    output_path: Union[Path, str],
) -> Path:
    """Рендерит HTML-отчёт (сетку статусов фрагментов) и сохраняет его.

    Args:
        result: объект LoadResult.
        template_dir: директория с Jinja2-шаблонами (None: встроенная).
        output_path: путь к итоговому HTML-файлу.

    Returns:
        Path до сохранённого HTML-файла.
    """
    template_dir = Path(template_dir) if template_dir else DEFAULT_TEMPLATE_DIR
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    env = Environment(
        loader=FileSystemLoader(str(template_dir)),
        autoescape=select_autoescape(["html", "xml", "j2"]),
    )
    env.filters["bytes"] = format_bytes
    template = env.get_template("report.html.j2")

    summary = summarize(result)
    context: dict[str, Any] = {
        **summary,
        "columns": min(10, max(1, math.ceil(math.sqrt(len(summary["chunks"]))))),
    }

    output_path.write_text(template.render(**context), encoding="utf-8")
    return output_path
