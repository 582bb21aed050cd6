from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from agenda.domain.models import BusinessHours
from agenda.services.slots import business_hours_from_settings

load_dotenv()


@dataclass(frozen=True)
class BusinessHoursSettings:
    start_of_day: Optional[str]
    end_of_day: Optional[str]
    slot_minutes: int
    extended: bool

    def to_business_hours(self) -> BusinessHours:
        return business_hours_from_settings(
            self.start_of_day,
            self.end_of_day,
            self.slot_minutes,
            extended=self.extended,
        )


@dataclass(frozen=True)
class StoreSettings:
    url: Optional[str]
    timeout_seconds: float

    @property
    def is_remote(self) -> bool:
        return bool(self.url)


@dataclass(frozen=True)
class LoggingSettings:
    level: str
    log_dir: Path


@dataclass(frozen=True)
class AppSettings:
    business_hours: BusinessHoursSettings
    store: StoreSettings
    logging: LoggingSettings


def _int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _float_from_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _bool_from_env(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    extended = _bool_from_env("AGENDA_EXTENDED_HOURS")
    business_hours = BusinessHoursSettings(
        start_of_day=os.getenv("AGENDA_START_OF_DAY") or None,
        end_of_day=os.getenv("AGENDA_END_OF_DAY") or None,
        slot_minutes=_int_from_env("AGENDA_SLOT_MINUTES", 60),
        extended=extended,
    )

    store = StoreSettings(
        url=os.getenv("AGENDA_STORE_URL") or None,
        timeout_seconds=_float_from_env("AGENDA_STORE_TIMEOUT_SECONDS", 10.0),
    )

    logging_settings = LoggingSettings(
        level=os.getenv("AGENDA_LOG_LEVEL", "INFO").upper(),
        log_dir=Path(os.getenv("AGENDA_LOG_DIR", str(Path.cwd() / "logs"))),
    )

    return AppSettings(business_hours=business_hours, store=store, logging=logging_settings)
