from __future__ import annotations

import asyncio
import logging
import threading
from http import HTTPStatus
from typing import Optional
from urllib.parse import urlsplit

from websockets.asyncio.server import ServerConnection, broadcast, serve
from websockets.exceptions import ConnectionClosed
from websockets.http11 import Request, Response

from contracts.ui_protocol import EVENT_HELLO, STATE_IDLE

from .config import HEALTHZ_PATH, WEBSOCKET_PATH, UIServerConfig
from .events import StickyEventStore, make_event


class UIServer:
    """Streams focus session events to websocket clients from its own thread.

    The event loop and every client connection live on the server thread.
    `publish` may be called from any thread: it records the event for replay
    and schedules the fan-out on the loop, never touching sockets directly.
    """

    def __init__(
        self,
        config: UIServerConfig,
        logger: Optional[logging.Logger] = None,
    ):
        self._config = config
        self._logger = logger or logging.getLogger("ui_server")
        self._sticky = StickyEventStore()
        self._clients: set[ServerConnection] = set()
        self._thread: Optional[threading.Thread] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._shutdown: Optional[asyncio.Future[None]] = None
        self._ready = threading.Event()
        self._failure: Optional[BaseException] = None

    @property
    def host(self) -> str:
        return self._config.host

    @property
    def port(self) -> int:
        return self._config.port

    @property
    def url(self) -> str:
        return self._config.websocket_url

    @property
    def client_count(self) -> int:
        return len(self._clients)

    @property
    def is_running(self) -> bool:
        return (
            self._thread is not None
            and self._thread.is_alive()
            and self._failure is None
        )

    def start(self, timeout_seconds: float = 5.0) -> None:
        if self.is_running:
            self._logger.warning("UI server is already running")
            return

        self._failure = None
        self._ready.clear()
        self._thread = threading.Thread(
            target=self._thread_main,
            daemon=True,
            name="ui-server",
        )
        self._thread.start()

        if not self._ready.wait(timeout_seconds):
            raise RuntimeError(f"UI server did not start within {timeout_seconds:.1f}s")
        if self._failure is not None:
            self._thread.join(timeout_seconds)
            self._thread = None
            raise RuntimeError(f"UI server startup failed: {self._failure}") from self._failure

    def stop(self, timeout_seconds: float = 5.0) -> None:
        thread = self._thread
        if thread is None:
            return

        loop, shutdown = self._loop, self._shutdown
        if loop is not None and shutdown is not None:
            try:
                loop.call_soon_threadsafe(_resolve, shutdown)
            except RuntimeError:
                self._logger.debug("UI server loop already closed")

        thread.join(timeout=timeout_seconds)
        if thread.is_alive():
            self._logger.error("UI server thread did not stop within %.1fs", timeout_seconds)
        self._thread = None

    def publish(self, event_type: str, **payload) -> None:
        message = make_event(event_type, **payload)
        self._sticky.remember(event_type, message)

        loop = self._loop
        if loop is None or not self.is_running:
            return
        try:
            loop.call_soon_threadsafe(self._fan_out, message)
        except RuntimeError:
            self._logger.debug("Dropped %s event: UI server loop is closing", event_type)

    def _fan_out(self, message: str) -> None:
        if self._clients:
            broadcast(self._clients, message)

    def _thread_main(self) -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self._loop = loop
        try:
            loop.run_until_complete(self._serve_until_shutdown())
        except Exception as error:  # pragma: no cover - needs an unavailable port
            self._failure = error
            self._logger.error("UI server failed: %s", error, exc_info=True)
        finally:
            self._loop = None
            self._shutdown = None
            self._ready.set()
            loop.run_until_complete(loop.shutdown_asyncgens())
            loop.close()

    async def _serve_until_shutdown(self) -> None:
        self._shutdown = asyncio.get_running_loop().create_future()
        # Leaving the context closes every client with 1001 (going away).
        async with serve(
            self._handle_client,
            host=self._config.host,
            port=self._config.port,
            process_request=self._route_http,
            logger=self._logger,
        ):
            self._logger.info("Live updates at %s", self._config.websocket_url)
            self._ready.set()
            await self._shutdown

    async def _handle_client(self, connection: ServerConnection) -> None:
        self._clients.add(connection)
        self._logger.info("Live update client connected: %s", connection.remote_address)
        try:
            await connection.send(
                make_event(EVENT_HELLO, state=STATE_IDLE, message="Live updates connected")
            )
            for message in self._sticky.snapshot():
                await connection.send(message)
            async for message in connection:
                self._logger.debug("Ignoring client message: %s", message)
        except ConnectionClosed as error:
            self._logger.debug("Connection closed during replay: %s", error)
        finally:
            self._clients.discard(connection)
            self._logger.info(
                "Live update client disconnected: %s",
                connection.remote_address,
            )

    def _route_http(
        self,
        connection: ServerConnection,
        request: Request,
    ) -> Optional[Response]:
        path = urlsplit(request.path).path
        if path == WEBSOCKET_PATH:
            return None
        if path == HEALTHZ_PATH:
            return connection.respond(HTTPStatus.OK, "ok\n")
        return connection.respond(HTTPStatus.NOT_FOUND, "not found\n")


def _resolve(future: asyncio.Future[None]) -> None:
    if not future.done():
        future.set_result(None)
