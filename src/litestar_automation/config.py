"""Configuration for the automation engine.

This module provides the tunables shared by the action runner, the webhook dispatcher
and the plugin.
"""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["AutomationConfig"]


@dataclass
class AutomationConfig:
    """Engine settings.

    Attributes:
        system_user_id: Actor recorded on tasks and activities when neither an assignee
            nor a triggering user is known.
        email_from: Sender address recorded on outbound email log entries.
        owner_field: Entity field written by ASSIGN_OWNER actions.
        webhook_timeout: Seconds allowed for each webhook request attempt.
        webhook_max_retries: Retries after the first attempt on transport errors and 5xx.
        webhook_retry_backoff: Base delay in seconds, doubled after every failed attempt.
        webhook_max_concurrency: Maximum number of webhook requests in flight.

    Example:
        >>> config = AutomationConfig(webhook_timeout=5.0, webhook_max_retries=3)
    """

    system_user_id: str = "system"
    email_from: str = "workflow@system.local"
    owner_field: str = "ownerId"
    webhook_timeout: float = 10.0
    webhook_max_retries: int = 2
    webhook_retry_backoff: float = 0.5
    webhook_max_concurrency: int = 20
