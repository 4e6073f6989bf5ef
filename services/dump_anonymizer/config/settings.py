"""Settings definitions for the dump anonymizer."""

from __future__ import annotations

from functools import lru_cache

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.observability.logger import DEFAULT_LEVEL, coerce_level


class LoggingSettings(BaseSettings):
    """Logging configuration for the anonymizer run."""

    level: str = Field(
        default=DEFAULT_LEVEL.lower(),
        description="Minimum diagnostic severity (trace, debug, info, warn, error).",
        validation_alias=AliasChoices("DUMP_ANONYMIZER_LOG_LEVEL", "LOG_LEVEL"),
    )
    service_name: str = Field(
        default="dump-anonymizer",
        description="Identifier attached to every structured log entry.",
        validation_alias=AliasChoices("DUMP_ANONYMIZER_SERVICE_NAME", "SERVICE_NAME"),
    )

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("level", mode="before")
    @classmethod
    def _fallback_to_info(cls, value: object) -> str:
        if not isinstance(value, (str, int)):
            return DEFAULT_LEVEL.lower()
        _, name = coerce_level(value)
        return name.lower()


class PipelineSettings(BaseSettings):
    """Configuration driving the ordered statement pipeline."""

    queue_capacity: int = Field(
        default=10,
        ge=1,
        description="Maximum number of outstanding result slots before the reader blocks.",
        validation_alias=AliasChoices(
            "DUMP_ANONYMIZER_QUEUE_CAPACITY", "PIPELINE_QUEUE_CAPACITY"
        ),
    )
    max_workers: int | None = Field(
        default=None,
        ge=1,
        description="Number of statement workers; defaults to the executor's own sizing.",
        validation_alias=AliasChoices(
            "DUMP_ANONYMIZER_MAX_WORKERS", "PIPELINE_MAX_WORKERS"
        ),
    )
    flush_unterminated: bool = Field(
        default=False,
        description="Emit a trailing INSERT that never receives its ';' instead of dropping it.",
        validation_alias=AliasChoices(
            "DUMP_ANONYMIZER_FLUSH_UNTERMINATED", "PIPELINE_FLUSH_UNTERMINATED"
        ),
    )
    dialect: str = Field(
        default="mysql",
        description="sqlglot dialect used to parse and render statements.",
        validation_alias=AliasChoices("DUMP_ANONYMIZER_DIALECT", "PIPELINE_DIALECT"),
    )

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


class GeneratorSettings(BaseSettings):
    """Configuration for the synthetic value generators."""

    seed: int | None = Field(
        default=None,
        description="Seed for the Faker instance; makes substitutions reproducible.",
        validation_alias=AliasChoices("DUMP_ANONYMIZER_SEED", "GENERATOR_SEED"),
    )
    locale: str = Field(
        default="en_US",
        description="Faker locale used for generated values.",
        validation_alias=AliasChoices("DUMP_ANONYMIZER_LOCALE", "GENERATOR_LOCALE"),
    )

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


class Settings(BaseSettings):
    """Aggregated settings namespace for the dump anonymizer."""

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    generator: GeneratorSettings = Field(default_factory=GeneratorSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()


__all__ = [
    "GeneratorSettings",
    "LoggingSettings",
    "PipelineSettings",
    "Settings",
    "get_settings",
]
