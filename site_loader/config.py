# === FILE: site_loader/config.py ===
"""
Модуль для загрузки и валидации конфигурации загрузчика SiteLoader.
Используется Pydantic для описания схемы и проверки данных.
"""
from __future__ import annotations

import codecs
import errno
import json
import os
from pathlib import Path
from typing import Any, Dict, Literal, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    ValidationError,
    field_validator,
    model_validator,
)

from site_loader.utils import parse_address

Strategy = Literal["phased", "overlapped"]

#: объявленные в документе кодировки -> кодек Python
KOREAN_CHARSETS: Dict[str, str] = {
    "euc-kr": "cp949",
    "cp949": "cp949",
    "ks_c_5601-1987": "cp949",
}


class RetryProfile(BaseModel):
    """Бюджет попыток и параметры экспоненциальной задержки."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    max_attempts: int = Field(3, ge=1, description="Число попыток, включая первую.")
    base_delay: float = Field(0.2, ge=0, description="Задержка перед второй попыткой (секунд).")
    max_delay: float = Field(2.0, ge=0, description="Верхняя граница задержки (секунд).")
    jitter: float = Field(0.0, ge=0, description="Максимальная случайная добавка (секунд).")


LIGHT_PROFILE = RetryProfile(max_attempts=2, base_delay=0.2, max_delay=2.0)
RESILIENT_PROFILE = RetryProfile(max_attempts=10, base_delay=1.0, max_delay=10.0, jitter=0.5)


class SchedulePolicy(BaseModel):
    """Стратегия планирования загрузки листьев."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    strategy: Strategy = Field("phased", description="phased (best-effort) или overlapped (бесконечные повторы).")
    light: RetryProfile = Field(LIGHT_PROFILE, description="Профиль для первого прохода.")
    resilient: RetryProfile = Field(RESILIENT_PROFILE, description="Профиль для сканирования и повторов.")
    retry_rounds: int = Field(5, ge=0, description="Число раундов повторов (phased).")
    round_delay: float = Field(0.5, ge=0, description="Пауза перед раундом r: round_delay * r.")
    retry_pacing: float = Field(0.1, ge=0, description="Пауза между элементами раунда.")
    worker_delay: float = Field(0.2, ge=0, description="Пауза между загрузками фонового воркера.")
    poll_interval: float = Field(0.5, gt=0, description="Период опроса завершения (overlapped).")
    load_timeout: float = Field(120.0, gt=0, description="Дедлайн ожидания загрузки (overlapped).")
    strict: bool = Field(False, description="Ошибка, если какой-либо лист не загружен (phased).")


class MethodNames(BaseModel):
    """Имена удалённых методов; позволяют подключать нестандартные контракты."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    site_info: str = Field("getCurrentSiteInfo", min_length=1)
    chunk_count: str = Field("getCurrentChunkCount", min_length=1)
    resolve_chunk: str = Field("resolveCurrentChunk", min_length=1)
    read: str = Field("read", min_length=1)


class LoaderConfig(BaseModel):
    """Конфигурация одного запуска загрузки."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    rpc_url: HttpUrl = Field(..., description="JSON-RPC эндпоинт.")
    site_address: str = Field(..., description="Адрес мастер-узла сайта (0x + 40 hex).")
    mode: Literal["tree", "flat"] = Field("tree", description="Дерево узлов или плоский список.")
    request_timeout: float = Field(15.0, gt=0, description="Таймаут на один запрос (секунд).")
    preview_bytes: int = Field(2000, ge=1, description="Размер превью для поиска charset.")
    charsets: Dict[str, str] = Field(
        default_factory=lambda: dict(KOREAN_CHARSETS),
        description="Региональные кодировки: объявленное имя -> кодек Python.",
    )
    methods: MethodNames = Field(default_factory=MethodNames)
    schedule: SchedulePolicy = Field(default_factory=SchedulePolicy)
    show_status: bool = Field(True, description="Выводить прогресс в stderr (CLI).")

    @field_validator("rpc_url", mode="before")
    def _strip_trailing_slash(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.rstrip("/")
        return v

    @field_validator("site_address")
    def _check_address(cls, v: str) -> str:
        parse_address(v)
        return v.lower()

    @field_validator("charsets")
    def _lower_charsets(cls, v: Dict[str, str]) -> Dict[str, str]:
        return {k.lower(): codec for k, codec in v.items()}

    @model_validator(mode="after")
    def _check_codecs(self) -> LoaderConfig:
        for codec in self.charsets.values():
            try:
                codecs.lookup(codec)
            except LookupError as exc:
                raise ValueError(f"Неизвестный кодек: {codec}") from exc
        return self

    @property
    def site(self) -> bytes:
        return parse_address(self.site_address)

    @property
    def endpoint(self) -> str:
        return str(self.rpc_url).rstrip("/")


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def read_config_data(path: Union[str, Path, None]) -> dict[str, Any]:
    """Читает YAML или JSON в словарь без проверки схемы."""
    if path is None:
        if not _DEFAULT_CFG.exists():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(_DEFAULT_CFG))
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return _read_yaml(path_obj)
    if suffix == ".json":
        return _read_json(path_obj)
    raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")


def load_config(path: Union[str, Path, None], **overrides: Any) -> LoaderConfig:
    """
    Читает YAML или JSON и возвращает проверенный объект LoaderConfig.
    Непустые ``overrides`` перекрывают значения верхнего уровня из файла.
    При отсутствии файла конфига бросает FileNotFoundError.
    """
    data = read_config_data(path)
    data.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return LoaderConfig(**data)
    except ValidationError:
        raise
