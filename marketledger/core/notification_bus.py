"""Notification bus — ordered, synchronous fan-out of marketplace notifications.

The ledger publishes ``Offered`` and ``Bought`` notifications at commit time;
the bus hashes each one and hands it to every subscriber in subscription
order.  The ledger has no knowledge of who is subscribed.

A subscriber failure is logged and does not prevent delivery to the
remaining subscribers.  It never undoes the operation that was committed.

A handler may call back into the ledger.  Whatever that call publishes is
queued behind the notification being delivered, so every subscriber sees
notifications in publish (commit) order.
"""

from __future__ import annotations

import json
import logging
import threading
from collections import deque
from collections.abc import Callable

from marketledger.core.hasher import canonical_json_bytes, compute_payload_hash
from marketledger.models.notifications import (
    NOTIFICATION_TYPE_MAP,
    NotificationBase,
    NotificationKind,
)

logger = logging.getLogger(__name__)

Handler = Callable[[NotificationBase], None]


class NotificationValidationError(ValueError):
    """Raised when a serialized notification fails validation."""


class NotificationBus:
    """Routes marketplace notifications to subscribers.

    Every published notification is:
    1. Hashed (``payload_hash``)
    2. Delivered to the subscribers of its kind, then to wildcard subscribers
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._handlers: dict[NotificationKind | None, list[Handler]] = {
            kind: [] for kind in NotificationKind
        }
        self._handlers[None] = []
        self._pending: deque[NotificationBase] = deque()
        self._draining = False

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------

    def subscribe(self, handler: Handler, kind: NotificationKind | None = None) -> None:
        """Subscribe *handler* to *kind*, or to every kind when ``None``."""
        with self._lock:
            if handler not in self._handlers[kind]:
                self._handlers[kind].append(handler)

    def unsubscribe(self, handler: Handler, kind: NotificationKind | None = None) -> None:
        """Remove a previously subscribed handler."""
        with self._lock:
            try:
                self._handlers[kind].remove(handler)
            except ValueError:
                pass

    def subscriber_count(self) -> int:
        return sum(len(handlers) for handlers in self._handlers.values())

    # ------------------------------------------------------------------
    # Publish (hash + route)
    # ------------------------------------------------------------------

    def prepare(self, notification: NotificationBase) -> NotificationBase:
        """Return *notification* with its ``payload_hash`` set."""
        payload_fields = notification.model_dump(
            mode="json",
            exclude={"payload_hash", "notification_id", "timestamp_utc"},
        )
        return notification.model_copy(
            update={"payload_hash": compute_payload_hash(payload_fields)}
        )

    def publish(self, notification: NotificationBase) -> NotificationBase:
        """Hash *notification* and deliver it to its subscribers.

        Notifications are queued and delivered one at a time in publish
        order.  A notification published from inside a handler is delivered
        after the current one has reached every subscriber.

        Returns the prepared notification (with ``payload_hash`` set).
        """
        prepared = self.prepare(notification)
        with self._lock:
            self._pending.append(prepared)
            if self._draining:
                return prepared
            self._draining = True

        try:
            self._drain()
        except BaseException:
            with self._lock:
                self._draining = False
            raise
        return prepared

    def _drain(self) -> None:
        while True:
            with self._lock:
                if not self._pending:
                    self._draining = False
                    return
                prepared = self._pending.popleft()
            self._deliver(prepared)

    def _deliver(self, prepared: NotificationBase) -> None:
        with self._lock:
            handlers = list(self._handlers[prepared.kind]) + list(self._handlers[None])

        failures = 0
        for handler in handlers:
            try:
                handler(prepared)
            except Exception as exc:  # noqa: BLE001
                failures += 1
                logger.error(
                    "Subscriber %r failed for %s #%d: %s",
                    handler,
                    prepared.kind.value,
                    prepared.sequence,
                    exc,
                )

        if failures:
            logger.warning(
                "Notification %s: %d/%d subscribers failed",
                prepared.notification_id,
                failures,
                len(handlers),
            )

    # ------------------------------------------------------------------
    # Receive (deserialize + validate)
    # ------------------------------------------------------------------

    def receive(self, raw_json: bytes | str) -> NotificationBase:
        """Deserialize and validate a raw JSON notification.

        Determines the model from ``kind`` and validates every field.
        """
        if isinstance(raw_json, bytes):
            raw_json = raw_json.decode("utf-8")

        try:
            data = json.loads(raw_json)
        except json.JSONDecodeError as exc:
            raise NotificationValidationError(f"Invalid JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise NotificationValidationError(
                f"Notification must be a JSON object, got {type(data).__name__}"
            )

        kind_str = data.get("kind")
        if not kind_str:
            raise NotificationValidationError("Missing kind field")

        try:
            kind = NotificationKind(kind_str)
        except ValueError as exc:
            raise NotificationValidationError(
                f"Unknown notification kind: {kind_str!r}"
            ) from exc

        model_cls = NOTIFICATION_TYPE_MAP[kind]
        try:
            return model_cls.model_validate(data)
        except Exception as exc:
            raise NotificationValidationError(
                f"Notification validation failed: {exc}"
            ) from exc

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    @staticmethod
    def serialize(notification: NotificationBase) -> bytes:
        """Serialize a notification to canonical JSON bytes."""
        return canonical_json_bytes(notification.model_dump(mode="json"))
