"""
Настройки приложения и конфигурация логирования.
"""

import logging
import logging.config
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(module)s.%(funcName)s:%(lineno)d - %(message)s"


class FrontDeskSettings(BaseSettings):
    """Настройки службы приема (переменные окружения FRONT_DESK_*)."""

    model_config = SettingsConfigDict(
        env_prefix="FRONT_DESK_", env_file=".env", extra="ignore"
    )

    data_dir: str = "data"
    storage_backend: Literal["memory", "json"] = "memory"
    proximity_window_hours: float = Field(3, gt=0)
    recent_movements_limit: int = Field(10, ge=0)
    upcoming_reservations_limit: int = Field(5, ge=0)
    system_actor: str = "System"
    front_desk_actor: str = "Receptionist"
    seed_sample_data: bool = True
    log_level: str = "INFO"
    log_file: Optional[str] = None


@lru_cache()
def get_settings() -> FrontDeskSettings:
    return FrontDeskSettings()


def build_logging_config(settings: FrontDeskSettings) -> dict:
    """Собирает словарь для logging.config.dictConfig."""
    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
            "level": settings.log_level,
        },
    }
    if settings.log_file:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "standard",
            "filename": settings.log_file,
            "maxBytes": 1024 * 1024 * 5,  # 5 MB
            "backupCount": 5,
            "level": logging.INFO,
            "encoding": "utf-8",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {"format": LOG_FORMAT},
        },
        "handlers": handlers,
        "loggers": {
            "front_desk": {
                "handlers": list(handlers),
                "level": settings.log_level,
                "propagate": True,
            },
        },
    }


def configure_logging(settings: FrontDeskSettings) -> None:
    if settings.log_file:
        # Создаем директорию для лог-файла, если ее нет
        Path(settings.log_file).parent.mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(build_logging_config(settings))
