"""Configuration module for zettelvc."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from zettelvc import __version__
from zettelvc.exceptions import ConfigurationError

# Load environment variables from the project root .env file.
# Anchored to __file__ so it works regardless of the process CWD.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# User-level config, kept next to (not inside) the default repository
_USER_ENV = Path.home() / ".zettelvc.env"
load_dotenv(_USER_ENV)


logger = logging.getLogger(__name__)

DEFAULT_REPO_PATH = Path.home() / ".zettelvc"
DEFAULT_LOG_DIR = Path.home() / ".cache" / "zettelvc" / "logs"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ZettelConfig(BaseModel):
    """Configuration for the note manager."""

    # Versioned store location; initialized on first use when absent
    repo_path: Path = Field(
        default_factory=lambda: Path(
            os.path.expanduser(os.getenv("ZETTELVC_REPO", str(DEFAULT_REPO_PATH)))
        )
    )
    # Logging
    log_dir: Path = Field(
        default_factory=lambda: Path(
            os.path.expanduser(os.getenv("ZETTELVC_LOG_DIR", str(DEFAULT_LOG_DIR)))
        )
    )
    log_level: str = Field(
        default_factory=lambda: os.getenv("ZETTELVC_LOG_LEVEL", "INFO").upper()
    )
    # Git adapter
    git_timeout: int = Field(
        default_factory=lambda: int(os.getenv("ZETTELVC_GIT_TIMEOUT", "30"))
    )
    git_author_name: str = Field(
        default_factory=lambda: os.getenv("ZETTELVC_GIT_AUTHOR_NAME", "zettelvc")
    )
    git_author_email: str = Field(
        default_factory=lambda: os.getenv(
            "ZETTELVC_GIT_AUTHOR_EMAIL", "zettelvc@localhost"
        )
    )
    # UI
    history_limit: int = Field(
        default_factory=lambda: int(os.getenv("ZETTELVC_HISTORY_LIMIT", "50"))
    )
    export_dir: Path = Field(
        default_factory=lambda: Path(
            os.path.expanduser(os.getenv("ZETTELVC_EXPORT_DIR", "."))
        )
    )
    app_version: str = Field(default=__version__)

    model_config = {"validate_assignment": True}

    @model_validator(mode="after")
    def _validate(self) -> "ZettelConfig":
        """Reject values the rest of the application cannot work with."""
        if self.log_level not in _LOG_LEVELS:
            raise ConfigurationError(
                f"Unknown log level '{self.log_level}'", config_key="log_level"
            )
        if self.git_timeout < 1:
            raise ConfigurationError(
                "git_timeout must be >= 1 second", config_key="git_timeout"
            )
        if self.history_limit < 1:
            raise ConfigurationError(
                "history_limit must be >= 1", config_key="history_limit"
            )
        return self

    def get_log_level(self) -> int:
        """Return the configured level as a logging constant."""
        return getattr(logging, self.log_level, logging.INFO)

    def get_export_dir(self) -> Path:
        """Get the export directory, creating it if needed."""
        self.export_dir.mkdir(parents=True, exist_ok=True)
        return self.export_dir


# Create a global config instance
config = ZettelConfig()
