"""Configuration management using Pydantic Settings."""

import logging
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class ArenaConfig(BaseModel):
    """Competition parameters."""

    starting_cash: float = 25.0
    history_limit: int = 100  # Portfolio value snapshots kept per agent
    competition_days: int = 14
    eliminations_per_cycle: int = Field(default=2, ge=1)
    min_active_for_elimination: int = 3
    summaries_kept: int = 30
    random_seed: int | None = None  # Fixed seed for reproducible rounds

    @model_validator(mode="after")
    def check_survivors(self) -> "ArenaConfig":
        """An elimination must always leave at least one survivor."""
        if self.min_active_for_elimination <= self.eliminations_per_cycle:
            raise ValueError(
                "min_active_for_elimination must exceed eliminations_per_cycle"
            )
        return self


class MarketConfig(BaseModel):
    """Market-data client parameters."""

    base_url: str = "https://query2.finance.yahoo.com/v8/finance/chart"
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    timeout_seconds: float = 15.0
    max_retries: int = 2
    min_request_interval_ms: int = 200
    quote_cache_seconds: int = 15
    analysis_cache_seconds: int = 120
    movers_limit: int = 10


class SchedulerConfig(BaseModel):
    """Job scheduling parameters."""

    timezone: str = "America/New_York"
    trading_round_minutes: int = 30
    daily_summary_hour: int = 17
    elimination_day_of_week: str = "fri"
    elimination_hour: int = 16
    elimination_minute: int = 30


class ApiConfig(BaseModel):
    """HTTP API server parameters."""

    host: str = "0.0.0.0"
    port: int = 3005
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"]
    )
    default_trade_limit: int = 50


class Settings(BaseSettings):
    """Main configuration class."""

    # Paths
    data_dir: Path = Path("data")

    # Secrets
    admin_secret: str = ""
    logfire_token: str = ""

    # Nested configuration sections
    arena: ArenaConfig = Field(default_factory=ArenaConfig)
    market: MarketConfig = Field(default_factory=MarketConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("data_dir", mode="after")
    @classmethod
    def resolve_data_dir(cls, v: Path) -> Path:
        """Resolve data directory to absolute path."""
        return v.resolve()

    def load_yaml_config(self) -> None:
        """Load and merge YAML configuration."""
        config_path = self.data_dir / "config.yaml"

        if not config_path.exists():
            logger.warning(
                f"Config file not found: {config_path}. "
                "Using defaults. Run 'python -m stockracer init' to create it."
            )
            return

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)

            if not yaml_config:
                logger.warning(f"Empty config file: {config_path}")
                return

            for section_name in ["arena", "market", "scheduler", "api"]:
                if section_name in yaml_config:
                    section = getattr(self, section_name)
                    yaml_section = yaml_config[section_name] or {}

                    section_dict = section.model_dump()
                    section_dict.update(yaml_section)

                    new_section = section.__class__(**section_dict)
                    setattr(self, section_name, new_section)

            logger.info(f"Loaded configuration from {config_path}")

        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML config: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to load config: {e}")
            raise


@lru_cache()
def get_settings() -> Settings:
    """Get singleton Settings instance."""
    settings = Settings()
    settings.load_yaml_config()
    return settings
