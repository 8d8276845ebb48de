# src/basitkargo_bridge/__init__.py
from .pipelines.webhook_handler import WebhookHandler
from .pipelines.backfill import BackfillRunner

__all__ = [
    "WebhookHandler",
    "BackfillRunner",
]
