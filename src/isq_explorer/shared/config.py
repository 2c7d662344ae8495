"""
Configuration Module - Load and validate application settings.
==============================================================

Loads configuration from:
1. config/settings.yaml (defaults)
2. Environment variables from .env file
3. Environment variables from system

Environment variables override YAML defaults.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, Optional
from urllib.parse import quote

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


def _find_project_root() -> Path:
    """Find the project root directory by looking for pyproject.toml."""
    current = Path(__file__).resolve()
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            return parent
    return Path.cwd()


PROJECT_ROOT = _find_project_root()
CONFIG_DIR = PROJECT_ROOT / "config"
DEFAULT_CONFIG_FILE = CONFIG_DIR / "settings.yaml"


# ─────────────────────────────────────────────────────────────────────────────
# Nested Configuration Models
# ─────────────────────────────────────────────────────────────────────────────


class ScrapingConfig(BaseModel):
    """Where and how to scrape the ISQ site."""

    dept_schedule_url: str = "https://banner.unf.edu/pls/nfpo/wksfwbs.p_dept_schd"
    professor_page_url: str = (
        "https://bannerssb.unf.edu/pls/nfpo/wkshisq.p_isq_dept_pub?pv_instr={nnumber}"
    )
    max_workers: int = 8
    rate_limit: float = 0.0
    timeout: int = 30
    max_retries: int = 3
    retry_min_wait: int = 1
    retry_max_wait: int = 10
    user_agent: str = "ISQ-Explorer/0.1.0"

    @field_validator("max_workers")
    @classmethod
    def validate_max_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_workers must be at least 1")
        return v

    def schedule_form_data(self, term_id: int, dept_id: int) -> dict[str, str]:
        """Form fields for the department schedule search."""
        return {
            "pv_term": str(term_id),
            "pv_dept": str(dept_id),
            "pv_ptrm": "",
            "pv_campus": "",
            "pv_sub": "Submit",
        }

    def professor_url(self, nnumber: str) -> str:
        """Profile page URL for an instructor N-number."""
        return self.professor_page_url.format(nnumber=quote(nnumber))


class PathsConfig(BaseModel):
    """Data paths configuration."""

    processed_dir: str = "data/processed"

    def resolve(self, base_path: Path) -> "ResolvedPaths":
        """Resolve paths relative to a base path."""
        return ResolvedPaths(
            processed_dir=base_path / self.processed_dir,
        )


class ResolvedPaths(BaseModel):
    """Resolved absolute paths."""

    processed_dir: Path


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = "INFO"
    format: str = "%(asctime)s | %(levelname)-8s | %(threadName)s | %(name)s | %(message)s"
    rich_console: bool = True
    file: str = ""


# ─────────────────────────────────────────────────────────────────────────────
# Main Settings Class
# ─────────────────────────────────────────────────────────────────────────────


class Settings(BaseSettings):
    """
    Main application settings.

    Loads from:
    1. config/settings.yaml (defaults)
    2. Environment variables

    Environment variables override YAML settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # Top-level environment overrides
    log_level: Optional[str] = Field(default=None, validation_alias="LOG_LEVEL")
    max_workers: Optional[int] = Field(default=None, validation_alias="ISQ_MAX_WORKERS")

    # Nested configurations (from YAML)
    scraping: ScrapingConfig = Field(default_factory=ScrapingConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    _project_root: Path = PROJECT_ROOT
    _resolved_paths: Optional[ResolvedPaths] = None

    @property
    def project_root(self) -> Path:
        return self._project_root

    @property
    def resolved_paths(self) -> ResolvedPaths:
        """Get resolved absolute paths."""
        if self._resolved_paths is None:
            self._resolved_paths = self.paths.resolve(self._project_root)
        return self._resolved_paths

    def get_effective_log_level(self) -> str:
        """Get the effective log level (env override or config)."""
        if self.log_level:
            return self.log_level.upper()
        return self.logging.level.upper()

    def get_effective_max_workers(self) -> int:
        """Get the effective worker count (env override or config)."""
        if self.max_workers:
            return self.max_workers
        return self.scraping.max_workers


def _load_yaml_config(config_path: Path) -> dict[str, Any]:
    """Load configuration from YAML file."""
    if not config_path.exists():
        return {}

    with open(config_path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
        return data if data else {}


def _create_settings(config_path: Optional[Path] = None) -> Settings:
    """Create settings instance by merging YAML defaults with environment."""
    if config_path is None:
        config_path = DEFAULT_CONFIG_FILE

    yaml_config = _load_yaml_config(config_path)
    return Settings(**yaml_config)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get the singleton settings instance.

    Example:
        >>> settings = get_settings()
        >>> settings.scraping.max_workers
        8
    """
    return _create_settings()


def reload_settings() -> Settings:
    """Force reload of settings (clears cache)."""
    get_settings.cache_clear()
    return get_settings()
