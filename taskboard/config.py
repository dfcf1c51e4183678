from pydantic import Field, ValidationError, field_validator
from pydantic_settings import (
    BaseSettings,
    SettingsConfigDict,
    PydanticBaseSettingsSource,
    JsonConfigSettingsSource,
)
from typing import Optional, Tuple, Type
import os
import logging
from pathlib import Path

CONCURRENCY_STRATEGIES = ("lock", "version")
STATION_VALIDATION_MODES = ("strict", "soft")


class Settings(BaseSettings):
    # Server
    host: str = Field(default="0.0.0.0", validation_alias="HOST")
    port: int = Field(default=8080, validation_alias="PORT")
    cors_origins: str = Field(default="http://localhost:3000,http://localhost:5173", validation_alias="CORS_ORIGINS")

    # Logging
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_json: bool = Field(default=False, validation_alias="LOG_JSON")
    log_file: Optional[str] = Field(default=None, validation_alias="LOG_FILE")

    # Database
    database_url: Optional[str] = Field(default=None, validation_alias="DATABASE_URL")
    db_pool_size: int = Field(default=5, validation_alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=10, validation_alias="DB_MAX_OVERFLOW")

    # Ordering
    ordering_concurrency: str = Field(default="lock", validation_alias="ORDERING_CONCURRENCY")
    station_validation: str = Field(default="strict", validation_alias="STATION_VALIDATION")

    # Events
    event_keepalive_seconds: float = Field(default=15.0, gt=0, validation_alias="EVENT_KEEPALIVE_SECONDS")

    # Pfade
    data_dir: str = Field(default="data", validation_alias="DATA_DIR")

    @property
    def effective_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        db_path = os.path.join(self.data_dir, "taskboard.db")
        return f"sqlite:///{db_path}"

    @property
    def soft_station_validation(self) -> bool:
        return self.station_validation == "soft"

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @field_validator("ordering_concurrency")
    @classmethod
    def validate_ordering_concurrency(cls, v: str) -> str:
        if v.lower() not in CONCURRENCY_STRATEGIES:
            raise ValueError(f"ORDERING_CONCURRENCY muss einer der folgenden Werte sein: {list(CONCURRENCY_STRATEGIES)}")
        return v.lower()

    @field_validator("station_validation")
    @classmethod
    def validate_station_validation(cls, v: str) -> str:
        if v.lower() not in STATION_VALIDATION_MODES:
            raise ValueError(f"STATION_VALIDATION muss einer der folgenden Werte sein: {list(STATION_VALIDATION_MODES)}")
        return v.lower()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # Reihenfolge = Vorrang: Argumente, Umgebung, .env, Board-JSON
        config_file = Path(os.environ.get("TASKBOARD_CONFIG_FILE", "config.json"))
        json_source = (JsonConfigSettingsSource(settings_cls, json_file=config_file),) if config_file.is_file() else ()
        return (init_settings, env_settings, dotenv_settings, *json_source)


def load_settings() -> Settings:
    try:
        return Settings()
    except ValidationError as e:
        if not logging.getLogger().handlers:
            logging.basicConfig(level=logging.INFO)
        logging.getLogger("taskboard.config").error(f"Ungültige Einstellungen, verwende Standardwerte: {e}")
        return Settings.model_construct()


settings = load_settings()
