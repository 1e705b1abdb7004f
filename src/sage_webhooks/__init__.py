"""
SAGE Webhooks - Outbound webhook delivery.

Notifies third-party HTTP endpoints when domain events occur, with
signed payloads, bounded retries and automatic endpoint disabling.
"""

__version__ = "1.2026.10.0"
__version_tuple__ = (1, 2026, 10, 0)
__author__ = "SAGE Team"

from sage_webhooks.core.config import WebhookConfig, get_config

__all__ = [
    "__version__",
    "__version_tuple__",
    "get_config",
    "WebhookConfig",
]
