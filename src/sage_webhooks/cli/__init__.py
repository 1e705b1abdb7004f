"""SAGE Webhooks command line interface."""

from sage_webhooks.cli.webhooks import webhooks_app

__all__ = ["webhooks_app"]
