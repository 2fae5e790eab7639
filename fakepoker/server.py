"""HTTP and WebSocket front end of the game server."""

from __future__ import annotations

import argparse
import asyncio
import logging
import weakref
from collections.abc import Mapping

from aiohttp import WSMsgType, web

from fakepoker.config import get_config
from fakepoker.game import Game
from fakepoker.hub import Hub, Session
from fakepoker.repository import Repository, open_database
from fakepoker.service import Service

__all__ = ["cors_headers", "create_app", "main"]

log = logging.getLogger(__name__)

_DEFAULT_ALLOW_HEADERS = (
    "Host, User-Agent, Accept, Accept-Language, Accept-Encoding, Sec-WebSocket-Version, "
    "Origin, Sec-WebSocket-Extensions, Sec-WebSocket-Key, Sec-GPC, Connection, "
    "Sec-Fetch-Dest, Sec-Fetch-Mode, Sec-Fetch-Site, Pragma, Cache-Control, Upgrade, "
)
_EXPOSE_HEADERS = (
    "Content-Type, Authorization, Connection, Upgrade, Sec-Websocket-Version, "
    "Sec-Websocket-Key, Sec-WebSocket-Extensions, Sec-WebSocket-Protocol"
)
_CONTENT_SECURITY_POLICY = (
    "default-src 'self' ws: wss: 'unsafe-inline' data: gap: ; script-src *; "
    "connect-src ws: wss: ; img-src *; style-src *;"
)


def cors_headers(request_headers: Mapping[str, str]) -> dict[str, str]:
    """Return the permissive CORS and CSP headers for a request with ``request_headers``."""
    lowered = {key.lower(): value for key, value in request_headers.items()}
    origin = lowered.get("origin", "")
    requested = lowered.get("access-control-request-headers", "")
    return {
        "Access-Control-Allow-Origin": origin or "*",
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
        "Access-Control-Allow-Headers": requested or _DEFAULT_ALLOW_HEADERS,
        "Access-Control-Expose-Headers": _EXPOSE_HEADERS,
        "Vary": "Origin",
        "Content-Security-Policy": _CONTENT_SECURITY_POLICY,
    }


def create_app(service: Service, hub: Hub) -> web.Application:
    """Build the web application serving ``/ws`` for game clients."""
    sockets: weakref.WeakSet[web.WebSocketResponse] = weakref.WeakSet()

    async def websocket(request: web.Request) -> web.StreamResponse:
        headers = cors_headers(request.headers)
        if request.method == "OPTIONS":
            log.info("preflight request from %s", request.headers.get("Origin", ""))
            return web.Response(status=200, headers=headers)
        log.info("new connection from %s to %s", request.remote, request.rel_url)

        ws = web.WebSocketResponse()
        ws.headers.update(headers)
        loop = asyncio.get_running_loop()
        outbox: asyncio.Queue[bytes] = asyncio.Queue()

        def send(payload: bytes) -> None:
            loop.call_soon_threadsafe(outbox.put_nowait, payload)

        session = Session(send=send, remote_address=request.remote or "")
        service.new_connection(session)

        async def pump() -> None:
            while True:
                payload = await outbox.get()
                try:
                    await ws.send_str(payload.decode("utf-8"))
                except Exception:
                    log.debug("dropping output for closed session %s", session.remote_address)
                    return

        writer: asyncio.Task[None] | None = None
        try:
            await ws.prepare(request)
            sockets.add(ws)
            writer = asyncio.create_task(pump())
            async for message in ws:
                if message.type == WSMsgType.TEXT:
                    data = message.data.encode("utf-8")
                elif message.type == WSMsgType.BINARY:
                    data = message.data
                else:
                    continue
                try:
                    await asyncio.to_thread(service.handle_message, session, data)
                except Exception:
                    log.exception("message from %s broke the session", session.remote_address)
                    break
        finally:
            if writer is not None:
                writer.cancel()
            await ws.close()
            await asyncio.to_thread(service.closed_connection, session)
            hub.unregister(session)
        return ws

    async def root(request: web.Request) -> web.Response:
        log.info("request to %s with headers %s", request.rel_url, dict(request.headers))
        return web.Response(status=200)

    async def close_sockets(app: web.Application) -> None:
        for ws in list(sockets):
            await ws.close()

    app = web.Application()
    app.router.add_route("*", "/ws", websocket)
    app.router.add_route("*", "/{tail:.*}", root)
    app.on_shutdown.append(close_sockets)
    return app


def main(argv: list[str] | None = None) -> int:
    """Run the game server until interrupted."""
    parser = argparse.ArgumentParser(prog="fakepoker", description="Run the game server.")
    parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(asctime)s %(levelname)s %(name)s:%(lineno)d %(message)s",
    )

    config = get_config()
    repository = Repository(open_database(":memory:"))
    repository.migrate()
    hub = Hub()
    game = Game(repository, hub, config)
    service = Service(repository, hub, game, config)

    app = create_app(service, hub)

    async def stop_game(app: web.Application) -> None:
        game.stop()

    app.on_shutdown.append(stop_game)
    web.run_app(app, port=config.port)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())