"""Wiring of gateways, change feed and store for one application instance."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from taskboard.config import Settings, settings as default_settings
from taskboard.integrations.auth import AuthGateway
from taskboard.integrations.realtime import LocalChangeFeed, RealtimeChangeFeed
from taskboard.integrations.storage import StorageGateway
from taskboard.integrations.supabase import BackendMode, SupabaseGateway
from taskboard.services.board_service import BoardService
from taskboard.services.profile_service import ProfileService
from taskboard.services.task_store import TaskDataStore

logger = logging.getLogger(__name__)

DEFAULT_COLUMNS = ("Por hacer", "En progreso", "Terminado")


@dataclass
class Services:
    """Everything a running app needs, built once per process."""

    config: Settings
    gateway: SupabaseGateway
    feed: Union[LocalChangeFeed, RealtimeChangeFeed]
    storage: StorageGateway
    auth: AuthGateway
    store: TaskDataStore
    board: BoardService
    profiles: ProfileService

    async def close(self) -> None:
        await self.store.teardown()
        await self.feed.close()


def ensure_default_columns(gateway: SupabaseGateway, titles=DEFAULT_COLUMNS) -> None:
    """Give an empty stub board its workflow columns."""
    if gateway.mode != BackendMode.STUB:
        return
    table = gateway.config.COLUMNS_TABLE
    if gateway.stub_rows(table):
        return
    gateway.seed(
        table,
        [{"id": f"col-{index}", "title": title, "position": index} for index, title in enumerate(titles)],
    )


def build_services(config: Settings = default_settings, *, seed_stub: bool = True) -> Services:
    """Construct gateways and the store for the configured backend mode."""
    mode = BackendMode(config.BACKEND_MODE.lower())
    if mode == BackendMode.STUB:
        feed: Optional[Union[LocalChangeFeed, RealtimeChangeFeed]] = LocalChangeFeed()
        gateway = SupabaseGateway(config, feed=feed)
        if seed_stub:
            ensure_default_columns(gateway)
    else:
        feed = RealtimeChangeFeed(config)
        gateway = SupabaseGateway(config)
    logger.info("Backend mode: %s", mode.value)

    storage = StorageGateway(config)
    auth = AuthGateway(config)
    store = TaskDataStore(gateway, feed, config)
    return Services(
        config=config,
        gateway=gateway,
        feed=feed,
        storage=storage,
        auth=auth,
        store=store,
        board=BoardService(gateway, store, config),
        profiles=ProfileService(gateway, storage, auth, store, config),
    )
