"""Routing of unsolicited pushes into `message` events."""

from .router import PushHandler, SubscriptionRouter, eth_subscription_message

__all__ = [
    "PushHandler",
    "SubscriptionRouter",
    "eth_subscription_message",
]
