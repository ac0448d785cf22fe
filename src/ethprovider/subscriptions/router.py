"""
Push notification routing.

Turns unsolicited payloads from the transport into `message` events.
The router holds no subscription state: subscriptions are created through
ordinary requests and their ids only show up again in pushed payloads.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from typing import Any

from ethprovider.core.exceptions import ValidationError
from ethprovider.core.logging import get_logger
from ethprovider.core.types import ETH_SUBSCRIPTION, ProviderEvent, ProviderMessage
from ethprovider.events import EventBus

PushHandler = Callable[[Any], "ProviderMessage | None"]


def eth_subscription_message(payload: Any) -> ProviderMessage | None:
    """
    Recognize pub/sub notifications.

    Accepts the flat {subscription, result} shape and the JSON-RPC
    notification {method: "eth_subscription", params: {subscription, result}}.
    """
    if not isinstance(payload, Mapping):
        return None
    body = payload
    if payload.get("method") == ETH_SUBSCRIPTION and isinstance(payload.get("params"), Mapping):
        body = payload["params"]
    if "subscription" not in body or "result" not in body:
        return None
    return ProviderMessage(
        type=ETH_SUBSCRIPTION,
        data={"subscription": body["subscription"], "result": body["result"]},
    )


class SubscriptionRouter:
    """
    Demultiplexes raw pushes into `message` events.

    Handlers are tried in registration order; the first one that returns
    a ProviderMessage wins. The pub/sub handler is always registered first.

    Example:
        >>> router = SubscriptionRouter(bus)
        >>> router.on_raw_push({"subscription": "0x9", "result": {"number": "0x1b4"}})
    """

    def __init__(self, bus: EventBus) -> None:
        self._bus = bus
        self._handlers: list[PushHandler] = [eth_subscription_message]
        self._logger = get_logger("subscriptions")

    def register(self, handler: PushHandler) -> None:
        """Add a handler for another message shape."""
        self._handlers.append(handler)

    def unregister(self, handler: PushHandler) -> None:
        self._handlers = [h for h in self._handlers if h is not handler]

    def route(self, payload: Any) -> ProviderMessage | None:
        """Classify a decoded payload without emitting anything."""
        for handler in self._handlers:
            message = handler(payload)
            if message is not None:
                return message
        return None

    def on_raw_push(self, payload: str | bytes | Any) -> list[ProviderMessage]:
        """
        Route one pushed payload (or a batch of them).

        Args:
            payload: Decoded JSON value, or raw str/bytes to decode

        Returns:
            Messages that were published, in order

        Raises:
            ValidationError: If a str/bytes payload is not valid JSON
        """
        decoded = self._decode(payload)
        items = decoded if isinstance(decoded, list) else [decoded]

        published = []
        for item in items:
            message = self.route(item)
            if message is None:
                self._logger.debug(f"Ignoring unrecognized push payload: {item!r}")
                continue
            self._bus.emit(ProviderEvent.MESSAGE, message.to_dict())
            published.append(message)
        return published

    @staticmethod
    def _decode(payload: Any) -> Any:
        if not isinstance(payload, (str, bytes)):
            return payload
        try:
            if isinstance(payload, bytes):
                return json.loads(payload.decode("utf-8"))
            return json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ValidationError(f"Invalid JSON push payload: {e}") from e
