"""Core configuration."""

from sage_webhooks.core.config import WebhookConfig, get_config, reset_config

__all__ = ["WebhookConfig", "get_config", "reset_config"]
