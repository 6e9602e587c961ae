"""Main entry point for caddyhook."""

import asyncio

from aiohttp import web

from caddyhook import __version__
from caddyhook.config import Settings, get_settings
from caddyhook.logging import get_logger, setup_logging
from caddyhook.orchestrator import ReloadOrchestrator
from caddyhook.runtime.client import DockerRuntimeClient
from caddyhook.webhook.router import WebhookRouter
from caddyhook.webhook.server import create_app, run_server


def build_app(settings: Settings) -> web.Application:
    """Wire runtime client, orchestrator and router into the HTTP app."""
    runtime = DockerRuntimeClient(settings.docker_sock, timeout=settings.docker_timeout)
    orchestrator = ReloadOrchestrator(settings, runtime)

    router = WebhookRouter(settings.github_secretkey.get_secret_value())
    router.on_push(orchestrator.push_callback)

    return create_app(router, hook_path=settings.hook_path)


async def serve(settings: Settings) -> None:
    """Serve until cancelled."""
    log = get_logger("caddyhook.main")
    runner = await run_server(build_app(settings), settings.host, settings.port)
    try:
        await asyncio.Event().wait()
    finally:
        log.info("server_stopping")
        await runner.cleanup()


def main() -> None:
    """Application entry point."""
    settings = get_settings()
    setup_logging(settings)
    log = get_logger("caddyhook.main")

    log.info(
        "starting_caddyhook",
        version=__version__,
        environment=settings.environment,
        caddyfile=settings.caddyfile_path,
        container=settings.caddy_container,
        docker_sock=settings.docker_sock,
        tracked_ref=settings.tracked_ref,
    )

    try:
        asyncio.run(serve(settings))
    except OSError as exc:
        log.critical("server_bind_failed", host=settings.host, port=settings.port, error=str(exc))
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        log.info("shutdown_requested")


if __name__ == "__main__":
    main()
