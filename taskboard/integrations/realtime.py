"""Change-feed subscriptions: realtime (live) and in-process (stub)."""
import logging
from typing import Any, Callable, Dict, List, Optional

from realtime import AsyncRealtimeClient, RealtimeSubscribeStates

from taskboard.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

PayloadHandler = Callable[[Any], None]
StatusHandler = Callable[[bool], None]


class LocalSubscription:
    """Handle returned by LocalChangeFeed.subscribe."""

    def __init__(self, feed: "LocalChangeFeed", table: str, handler: PayloadHandler, on_status: Optional[StatusHandler]):
        self.feed = feed
        self.table = table
        self.handler = handler
        self.on_status = on_status
        self.active = True

    async def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self.feed._remove(self)
        if self.on_status:
            self.on_status(False)


class LocalChangeFeed:
    """In-process fan-out used in stub mode and tests.

    The stub gateway publishes a payload per mutation; subscribers receive it
    synchronously, the same way the realtime client invokes its callbacks.
    """

    def __init__(self):
        self._subscriptions: Dict[str, List[LocalSubscription]] = {}

    async def subscribe(
        self,
        table: str,
        handler: PayloadHandler,
        on_status: Optional[StatusHandler] = None,
    ) -> LocalSubscription:
        subscription = LocalSubscription(self, table, handler, on_status)
        self._subscriptions.setdefault(table, []).append(subscription)
        if on_status:
            on_status(True)
        return subscription

    def _remove(self, subscription: LocalSubscription) -> None:
        subscribers = self._subscriptions.get(subscription.table, [])
        if subscription in subscribers:
            subscribers.remove(subscription)

    def publish(self, table: str, payload: Dict[str, Any]) -> None:
        """Deliver a payload to every active subscriber of ``table``."""
        for subscription in list(self._subscriptions.get(table, [])):
            if subscription.active:
                subscription.handler(payload)

    def subscriber_count(self, table: str) -> int:
        return len(self._subscriptions.get(table, []))

    def drop_connection(self) -> None:
        """Report every subscription as disconnected (simulates a socket loss)."""
        for subscribers in self._subscriptions.values():
            for subscription in subscribers:
                if subscription.on_status:
                    subscription.on_status(False)

    async def close(self) -> None:
        for subscribers in list(self._subscriptions.values()):
            for subscription in list(subscribers):
                await subscription.unsubscribe()


class RealtimeSubscription:
    """Handle wrapping one realtime channel."""

    def __init__(self, channel, table: str):
        self.channel = channel
        self.table = table
        self.active = True

    async def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        await self.channel.unsubscribe()


class RealtimeChangeFeed:
    """Postgres change subscriptions over the backend's realtime socket."""

    def __init__(self, config: Settings = default_settings):
        if not config.SUPABASE_URL or not config.SUPABASE_ANON_KEY:
            raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY are required in live mode")
        self.schema = config.SUPABASE_SCHEMA
        self.url = self._build_socket_url(config.SUPABASE_URL)
        self._client = AsyncRealtimeClient(self.url, config.SUPABASE_ANON_KEY)
        self._connected = False

    @staticmethod
    def _build_socket_url(base_url: str) -> str:
        base = base_url.rstrip("/")
        if base.startswith("https://"):
            base = "wss://" + base[len("https://"):]
        elif base.startswith("http://"):
            base = "ws://" + base[len("http://"):]
        return f"{base}/realtime/v1"

    async def subscribe(
        self,
        table: str,
        handler: PayloadHandler,
        on_status: Optional[StatusHandler] = None,
    ) -> RealtimeSubscription:
        if not self._connected:
            await self._client.connect()
            self._connected = True

        channel = self._client.channel(f"{table}_channel")
        channel.on_postgres_changes("*", schema=self.schema, table=table, callback=handler)

        def _on_state(state, error=None):
            logger.info("Subscription status for %s: %s", table, state)
            if error:
                logger.error("Subscription error for %s: %s", table, error)
            if on_status:
                on_status(state == RealtimeSubscribeStates.SUBSCRIBED)

        await channel.subscribe(_on_state)
        return RealtimeSubscription(channel, table)

    async def close(self) -> None:
        if self._connected:
            await self._client.close()
            self._connected = False
