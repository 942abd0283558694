"""site_loader.report: Отчёты о загрузке (JSON и HTML), используемые CLI и тестами."""

from site_loader.report.html_report import render_html
from site_loader.report.json_report import render_json, summarize

__all__ = ["render_json", "render_html", "summarize"]
