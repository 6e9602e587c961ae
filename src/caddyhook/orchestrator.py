"""Push → re-pin Caddyfile → reload Caddy.

Flow for one push delivery:
1. Ignore pushes to anything but the tracked ref (case-insensitive)
2. Rewrite the commit pins in the Caddyfile; failures are logged only
3. Run ``caddy reload`` detached inside the Caddy container

Only step 3 can fail the delivery. No state survives between deliveries.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any

from caddyhook.logging import get_logger
from caddyhook.patcher import ConfigPatchError, InvalidRevisionError, update_config
from caddyhook.runtime.client import ContainerRuntimeError

if TYPE_CHECKING:
    from caddyhook.config import Settings
    from caddyhook.runtime.client import ContainerRuntime
    from caddyhook.webhook.events import PushEvent

log = get_logger("caddyhook.orchestrator")


@dataclass
class ReloadResult:
    """Outcome of handling one push event."""

    status: str  # "skipped" | "completed"
    ref: str
    revision: str
    config_patched: bool = False
    replacements: int = 0
    patch_error: str | None = None
    exec_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class ReloadOrchestrator:
    """Applies push events to the Caddyfile and the running Caddy."""

    def __init__(self, settings: Settings, runtime: ContainerRuntime) -> None:
        self._settings = settings
        self._runtime = runtime

    def is_tracked(self, ref: str) -> bool:
        return ref.casefold() == self._settings.tracked_ref.casefold()

    async def handle_push(self, event: PushEvent) -> ReloadResult:
        """Process one push event.

        Raises:
            ContainerRuntimeError: The reload inside the container failed.
        """
        result = ReloadResult(status="skipped", ref=event.ref, revision=event.after)

        if not self.is_tracked(event.ref):
            log.info("push_ignored_ref", ref=event.ref, tracked_ref=self._settings.tracked_ref)
            return result

        log.info("push_received", ref=event.ref, commit=event.after)

        try:
            result.replacements = update_config(self._settings.caddyfile_path, event.after)
            result.config_patched = True
            log.info(
                "caddyfile_updated",
                path=self._settings.caddyfile_path,
                replacements=result.replacements,
            )
        except (InvalidRevisionError, ConfigPatchError) as exc:
            # Reload is attempted regardless of patch outcome
            result.patch_error = str(exc)
            log.error("caddyfile_update_failed", path=self._settings.caddyfile_path, error=str(exc))

        try:
            result.exec_id = await self._runtime.reload_service(
                self._settings.caddy_container,
                self._settings.reload_command,
            )
        except ContainerRuntimeError as exc:
            log.error(
                "caddy_reload_failed",
                container=self._settings.caddy_container,
                step=exc.step,
                error=str(exc),
            )
            raise

        result.status = "completed"
        log.info("caddy_reload_triggered", container=self._settings.caddy_container)
        return result

    async def push_callback(self, delivery_id: str, event_name: str, event: PushEvent) -> ReloadResult:
        """Router callback for ``push`` events."""
        return await self.handle_push(event)
