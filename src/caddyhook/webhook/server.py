"""aiohttp server exposing the GitHub webhook endpoint.

Endpoints:
    POST {hook_path}  — GitHub deliveries (signature required)
    GET  /health      — liveness (no auth)

Authenticated deliveries always get 200, with the dispatch outcome in the
body, so GitHub does not redeliver after a failed reload.
"""

from __future__ import annotations

from aiohttp import web

from caddyhook import __version__
from caddyhook.logging import get_logger
from caddyhook.webhook.router import EventDispatcher, WebhookParseError, WebhookSignatureError

log = get_logger("caddyhook.webhook.server")

DISPATCHER_KEY = web.AppKey("dispatcher", EventDispatcher)


async def handle_health(request: web.Request) -> web.Response:
    """GET /health — no auth required."""
    return web.json_response({"status": "ok", "version": __version__})


async def handle_hook(request: web.Request) -> web.Response:
    """POST {hook_path} — verify and dispatch one delivery."""
    dispatcher = request.app[DISPATCHER_KEY]
    body = await request.read()

    try:
        result = await dispatcher.handle(request.headers, body)
    except WebhookSignatureError as exc:
        log.warning("webhook_unauthorized", remote=request.remote, error=str(exc))
        return web.json_response({"status": "unauthorized"}, status=401)
    except WebhookParseError as exc:
        log.warning("webhook_invalid", remote=request.remote, error=str(exc))
        return web.json_response({"status": "invalid", "error": str(exc)}, status=400)

    if result.status == "error":
        log.error(
            "webhook_processing_failed",
            github_event=result.event,
            delivery_id=result.delivery_id,
            error=result.error,
        )
    return web.json_response(result.to_dict())


def create_app(dispatcher: EventDispatcher, hook_path: str = "/hook") -> web.Application:
    """Build the aiohttp application."""
    app = web.Application()
    app[DISPATCHER_KEY] = dispatcher
    app.router.add_get("/health", handle_health)
    app.router.add_post(hook_path, handle_hook)
    return app


async def run_server(app: web.Application, host: str, port: int) -> web.AppRunner:
    """Start serving *app* on host:port and return the runner.

    Raises:
        OSError: The listening socket could not be bound.
    """
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    try:
        await site.start()
    except OSError:
        await runner.cleanup()
        raise
    log.info("server_listening", host=host, port=port)
    return runner
