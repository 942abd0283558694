# === FILE: site_loader/cli.py ===
#!/usr/bin/env python3
"""
Точка входа для запуска загрузчика SiteLoader через командную строку.

Команды:
  load      Загрузить сайт, собрать и вывести/сохранить документ
  info      Показать дескриптор сайта
  config    Показать текущую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (default: configs/default.yaml, если есть)
  --rpc-url URL       JSON-RPC эндпоинт (override rpc_url)
  --site ADDRESS      Адрес мастер-узла сайта (override site_address)
  --mode MODE         tree или flat
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (stderr, если не указан)
  --log-format FORMAT Формат логирования

Команда load опции:
  --out PATH          Сохранить документ в файл
  --raw               Не декодировать, вывести сырые байты
  --strategy NAME     phased или overlapped
  --load-timeout SEC  Дедлайн ожидания загрузки (overlapped)
  --strict            Ошибка, если какой-либо фрагмент не загружен
  --json PATH         Сохранить JSON-отчёт о загрузке
  --html PATH         Сохранить HTML-отчёт о загрузке
  --template DIR      Папка с Jinja2-шаблонами
  --quiet             Не выводить прогресс

Пример:
  site-loader --rpc-url https://rpc.example --site 0x… load --out index.html --json report.json
"""
import asyncio
import json
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Optional

import click

from site_loader import __version__
from site_loader.config import LoaderConfig, _DEFAULT_CFG, read_config_data
from site_loader.engine import describe_site, start_load
from site_loader.errors import SiteLoaderError
from site_loader.logger import init_logging
from site_loader.remote.models import Progress
from site_loader.report.html_report import render_html
from site_loader.report.json_report import render_json
from site_loader.utils import to_hex

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


def build_config(config_path: Optional[Path], **overrides: Any) -> LoaderConfig:
    """Конфиг из файла (если есть) с перекрытием параметрами командной строки."""
    data: Dict[str, Any] = {}
    if config_path is not None or _DEFAULT_CFG.exists():
        data = read_config_data(config_path)
    data.update({k: v for k, v in overrides.items() if v is not None})
    return LoaderConfig(**data)


def with_schedule(cfg: LoaderConfig, **overrides: Any) -> LoaderConfig:
    """Копия конфига с изменёнными полями политики планирования."""
    changes = {k: v for k, v in overrides.items() if v is not None}
    if not changes:
        return cfg
    data = cfg.model_dump(mode="json")
    data["schedule"].update(changes)
    return LoaderConfig(**data)


def print_progress(progress: Progress) -> None:
    total = "?" if progress.total is None else progress.total
    click.echo(
        f'[{progress.phase}] scanned {progress.scanned} | loaded {progress.loaded}/{total}'
        f' | failed {progress.failed}',
        err=True,
    )


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='SiteLoader, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Путь к файлу конфигурации YAML/JSON.'
)
@click.option('--rpc-url', 'rpc_url', default=None, help='JSON-RPC эндпоинт')
@click.option('--site', 'site_address', default=None, help='Адрес мастер-узла сайта')
@click.option('--mode', type=click.Choice(['tree', 'flat']), default=None, help='Режим адресации')
@click.option(
    '--log-level', 'log_level',
    default='WARNING', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Уровень логирования'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Путь к файлу логов (stderr, если не указан)'
)
@click.option(
    '--log-format', 'log_format',
    default='%(asctime)s %(levelname)s %(message)s',
    show_default=True,
    help='Строка формата для логов'
)
@click.pass_context
def cli(ctx, config_path, rpc_url, site_address, mode, log_level, log_file, log_format):
    """Группа команд SiteLoader CLI."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )
    try:
        cfg = build_config(config_path, rpc_url=rpc_url, site_address=site_address, mode=mode)
    except Exception as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


@cli.command('load', context_settings=CONTEXT_SETTINGS)
@click.option(
    '--out', '-o', 'out_path',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить документ в файл'
)
@click.option('--raw', is_flag=True, help='Не декодировать, вывести сырые байты')
@click.option('--strategy', type=click.Choice(['phased', 'overlapped']), default=None, help='Стратегия планирования')
@click.option('--load-timeout', 'load_timeout', type=float, default=None, help='Дедлайн ожидания загрузки (секунд)')
@click.option('--strict', is_flag=True, help='Ошибка при любом незагруженном фрагменте')
@click.option(
    '--json', '-j', 'json_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить JSON-отчёт в файл'
)
@click.option(
    '--html', '-h', 'html_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить HTML-отчёт в файл'
)
@click.option(
    '--template', '-t', 'template_dir',
    default=None,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help='Папка с Jinja2-шаблонами (по умолчанию встроенная)'
)
@click.option('--quiet', '-q', is_flag=True, help='Не выводить прогресс')
@click.pass_context
def load(ctx, out_path, raw, strategy, load_timeout, strict, json_output, html_output, template_dir, quiet):
    """Загрузить сайт и вывести документ."""
    try:
        cfg = with_schedule(ctx.obj['config'], strategy=strategy, load_timeout=load_timeout, strict=strict or None)
    except Exception as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')
    on_progress = None if quiet or not cfg.show_status else print_progress
    click.echo(f'Loading {cfg.site_address} via {cfg.endpoint}', err=True)
    try:
        result = asyncio.run(start_load(cfg, raw=raw, on_progress=on_progress))
    except SiteLoaderError as e:
        print_error(f'Загрузка не удалась: {e}')
    except Exception as e:
        print_error(f'Ошибка при загрузке: {e}')

    if result.missing:
        click.secho(
            f'Внимание: {len(result.missing)} фрагмент(ов) не загружено: {result.missing}',
            fg='yellow', err=True,
        )

    if out_path:
        if raw:
            out_path.write_bytes(result.data)
        else:
            out_path.write_text(result.text, encoding='utf-8')
        click.echo(f'Document: {out_path}', err=True)
    elif raw:
        click.get_binary_stream('stdout').write(result.data)
    else:
        click.echo(result.text, nl=False)

    if json_output:
        try:
            saved_json = render_json(result, json_output)
            click.echo(f'JSON report: {saved_json}', err=True)
        except Exception as e:
            print_error(f'Ошибка при сохранении JSON: {e}')

    if html_output:
        try:
            saved_html = render_html(result, template_dir, html_output)
            click.echo(f'HTML report: {saved_html}', err=True)
        except Exception as e:
            print_error(f'Ошибка при сохранении HTML: {e}')


@cli.command('info', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def info(ctx):
    """Показать дескриптор сайта в JSON."""
    cfg = ctx.obj['config']
    try:
        descriptor = asyncio.run(describe_site(cfg))
    except SiteLoaderError as e:
        print_error(f'Не удалось прочитать дескриптор: {e}')
    except Exception as e:
        print_error(f'Ошибка при чтении дескриптора: {e}')
    data = asdict(descriptor)
    if 'root_address' in data:
        data['root_address'] = to_hex(data['root_address'])
    click.echo(json.dumps(data, indent=2))


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON."""
    cfg = ctx.obj['config']
    click.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()
