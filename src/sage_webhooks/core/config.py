"""
SAGE Webhooks configuration management.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

# Placeholder used when no signing secret is configured
DEFAULT_SIGNING_SECRET = "webhook-secret-key"
DEFAULT_USER_AGENT = "SAGE-Webhook/1.0"

CONFIG_PATH = Path(".sage") / "webhooks.yaml"


@dataclass
class WebhookConfig:
    """
    Process-wide webhook delivery configuration.

    Set once at startup. Loaded from .sage/webhooks.yaml and
    WEBHOOK_* environment variables.
    """

    # Fallback secret for endpoints registered without one.
    # Empty means a random secret is generated per endpoint.
    signing_secret: str = ""

    # Delivery settings
    retry_attempts: int = 3
    retry_delay_ms: int = 1000
    timeout_ms: int = 30000
    retry_jitter: float = 0.0  # fraction, e.g. 0.2 for +/-20%
    retry_client_errors: bool = True  # retry 4xx like any other failure
    user_agent: str = DEFAULT_USER_AGENT

    # Endpoint storage (JSON file); None keeps endpoints in memory
    storage_path: Path | None = None

    def validate(self) -> "WebhookConfig":
        """Check value ranges, raising ValueError on misconfiguration."""
        if self.retry_attempts < 0:
            raise ValueError(f"retry_attempts must be >= 0, got {self.retry_attempts}")
        if self.retry_delay_ms < 0:
            raise ValueError(f"retry_delay_ms must be >= 0, got {self.retry_delay_ms}")
        if self.timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be > 0, got {self.timeout_ms}")
        if not 0.0 <= self.retry_jitter < 1.0:
            raise ValueError(f"retry_jitter must be in [0, 1), got {self.retry_jitter}")
        if self.signing_secret == DEFAULT_SIGNING_SECRET:
            logger.warning(
                "Webhook signing secret is the built-in placeholder; "
                "set WEBHOOK_SIGNING_SECRET in production"
            )
        return self

    @classmethod
    def from_env(cls, base: "WebhookConfig | None" = None) -> "WebhookConfig":
        """Create config from environment variables, on top of ``base``."""
        config = base or cls()
        storage_path = os.getenv("WEBHOOK_STORAGE")
        client_errors = os.getenv("WEBHOOK_RETRY_CLIENT_ERRORS")
        return cls(
            signing_secret=os.getenv("WEBHOOK_SIGNING_SECRET", config.signing_secret),
            retry_attempts=int(
                os.getenv("WEBHOOK_RETRY_ATTEMPTS", str(config.retry_attempts))
            ),
            retry_delay_ms=int(
                os.getenv("WEBHOOK_RETRY_DELAY_MS", str(config.retry_delay_ms))
            ),
            timeout_ms=int(os.getenv("WEBHOOK_TIMEOUT_MS", str(config.timeout_ms))),
            retry_jitter=float(
                os.getenv("WEBHOOK_RETRY_JITTER", str(config.retry_jitter))
            ),
            retry_client_errors=(
                client_errors.lower() in ("1", "true", "yes")
                if client_errors
                else config.retry_client_errors
            ),
            user_agent=os.getenv("WEBHOOK_USER_AGENT", config.user_agent),
            storage_path=Path(storage_path) if storage_path else config.storage_path,
        )

    @classmethod
    def from_file(cls, path: Path) -> "WebhookConfig":
        """Load configuration from YAML file."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data.get("webhooks", data))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WebhookConfig":
        """Create config from dictionary."""
        storage_path = data.get("storage_path")
        return cls(
            signing_secret=data.get("signing_secret", ""),
            retry_attempts=data.get("retry_attempts", 3),
            retry_delay_ms=data.get("retry_delay_ms", 1000),
            timeout_ms=data.get("timeout_ms", 30000),
            retry_jitter=data.get("retry_jitter", 0.0),
            retry_client_errors=data.get("retry_client_errors", True),
            user_agent=data.get("user_agent", DEFAULT_USER_AGENT),
            storage_path=Path(storage_path) if storage_path else None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "webhooks": {
                "signing_secret": self.signing_secret,
                "retry_attempts": self.retry_attempts,
                "retry_delay_ms": self.retry_delay_ms,
                "timeout_ms": self.timeout_ms,
                "retry_jitter": self.retry_jitter,
                "retry_client_errors": self.retry_client_errors,
                "user_agent": self.user_agent,
                "storage_path": str(self.storage_path) if self.storage_path else None,
            }
        }

    def save(self, path: Path) -> None:
        """Save configuration to YAML file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False)


# Global config instance
_config: WebhookConfig | None = None


def get_config(project_path: Path | None = None) -> WebhookConfig:
    """
    Get webhook configuration.

    Loads from .sage/webhooks.yaml in the project directory, then applies
    environment overrides. Falls back to defaults if no file is found.
    """
    global _config

    if _config is not None:
        return _config

    if project_path is None:
        project_path = Path.cwd()

    config = WebhookConfig.from_file(project_path / CONFIG_PATH)
    _config = WebhookConfig.from_env(config).validate()

    return _config


def reset_config() -> None:
    """Reset the global config (for testing)."""
    global _config
    _config = None
