"""Application initialization orchestrator."""

from __future__ import annotations

import asyncio
from contextlib import suppress
from typing import TYPE_CHECKING, Optional

from aiohttp import web as aiohttp_web

from core.exceptions import ConfigurationError
from core.logger import get_logger

if TYPE_CHECKING:
    from config import Config
    from database import LocalDatabase, PostgrestClient
    from services import RaffleController

logger = get_logger(__name__)


class ApplicationInitializer:
    """Orchestrates application initialization and lifecycle."""

    def __init__(self, config: Optional["Config"] = None):
        if config is None:
            from config import load_config
            config = load_config()
        self.config = config
        self.local_db: Optional["LocalDatabase"] = None
        self.store: Optional["PostgrestClient"] = None
        self.controller: Optional["RaffleController"] = None
        self.web_runner: Optional[aiohttp_web.AppRunner] = None

    async def initialize(self) -> None:
        """Initialize all application components."""
        self._validate_config()
        await self._init_local_storage()
        self._init_remote_store()
        self._init_controller()
        await self._init_web_server()

    async def run(self) -> None:
        """Resume the session and keep serving until cancelled."""
        result = await self.controller.start()
        if result.ok:
            logger.info(f"🎟️ Active session {result.data.id} (join code: {self.controller.sessions.join_code})")
        else:
            logger.warning("No session yet; use the host API to retry")

        try:
            while True:
                await asyncio.sleep(3600)
        finally:
            await self.cleanup()

    async def cleanup(self) -> None:
        """Cleanup resources."""
        with suppress(Exception):
            if self.controller:
                await self.controller.stop()
        with suppress(Exception):
            if self.web_runner:
                await self.web_runner.cleanup()
        with suppress(Exception):
            if self.store:
                await self.store.close()
        with suppress(Exception):
            if self.local_db:
                await self.local_db.close()
        logger.info("Shutdown complete")

    def _validate_config(self) -> None:
        from config import validate_config

        errors = validate_config(self.config)
        if errors:
            raise ConfigurationError("; ".join(errors))

    async def _init_local_storage(self) -> None:
        from database import open_local_database

        self.local_db = await open_local_database(self.config.local_db_path)
        logger.info(f"✅ Local storage ready at {self.config.local_db_path}")

    def _init_remote_store(self) -> None:
        from database import PostgrestClient

        self.store = PostgrestClient(
            base_url=self.config.api_url,
            api_key=self.config.api_key,
            timeout=self.config.http_timeout,
        )
        logger.info(f"✅ Remote store: {self.config.api_url}")

    def _init_controller(self) -> None:
        from database import LocalStorage
        from services import (
            DrawEngine,
            ParticipantSynchronizer,
            RaffleController,
            ReelAnimator,
            SessionManager,
            WinnerNotifier,
        )

        sessions = SessionManager(
            self.store,
            LocalStorage(self.local_db),
            storage_key=self.config.session_storage_key,
            join_code_length=self.config.join_code_length,
        )
        reel = ReelAnimator(
            repetitions=self.config.reel_repetitions,
            item_height=self.config.reel_item_height,
            duration=self.config.reel_duration,
        )
        self.controller = RaffleController(
            sessions=sessions,
            synchronizer=ParticipantSynchronizer(self.store, interval=self.config.poll_interval),
            engine=DrawEngine(self.store),
            reel=reel,
            notifier=WinnerNotifier(self.config.winner_webhook_url),
        )
        if not self.config.winner_webhook_url:
            logger.info("Winner webhook not configured; notifications disabled")

    async def _init_web_server(self) -> None:
        """Initialize web server."""
        from web import create_app

        app = create_app(self.controller)
        self.web_runner = aiohttp_web.AppRunner(app)
        await self.web_runner.setup()

        site = aiohttp_web.TCPSite(self.web_runner, self.config.web_host, self.config.web_port)
        await site.start()

        logger.info(f"🚀 Host API started on http://{self.config.web_host}:{self.config.web_port}")
