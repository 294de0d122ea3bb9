"""Application runtime scaffolding for the self-role bot process."""

from __future__ import annotations

import asyncio
import logging
import math
import time
from typing import Any, Awaitable, Callable, Optional

from aiohttp import web

from discord.ext import commands

from shared import health as healthmod
from shared.config import (
    get_bot_name,
    get_bot_version,
    get_env_name,
    get_log_channel_id,
    get_log_level,
    get_port,
    get_role_store_path,
    is_health_server_enabled,
)
from shared.logging import get_trace_id, set_trace_id, setup_logging
from modules.selfroles.store import RoleRegistry

log = logging.getLogger("selfroles.runtime")

_ACTIVE_RUNTIME: "Runtime | None" = None


async def create_app(*, runtime: "Runtime | None" = None) -> web.Application:
    """Create and configure the aiohttp application used by the runtime."""

    static_fields = {"env": get_env_name(), "bot": get_bot_name()}
    access_logger = setup_logging(
        level=get_log_level(),
        static_fields=static_fields,
        access_logger_name="aiohttp.access",
    )

    healthmod.set_component("runtime", True)

    @web.middleware
    async def tracing_middleware(
        request: web.Request, handler: Callable[[web.Request], Awaitable[web.StreamResponse]]
    ) -> web.StreamResponse:
        trace = set_trace_id()
        started = time.perf_counter()
        status = 500
        try:
            response = await handler(request)
            status = getattr(response, "status", status)
            response.headers["X-Trace-Id"] = trace
            return response
        finally:
            duration_ms = int((time.perf_counter() - started) * 1000)
            access_logger.info(
                "http_request",
                extra={
                    "trace": trace,
                    "path": request.path,
                    "method": request.method,
                    "status": status,
                    "ms": duration_ms,
                },
            )

    app = web.Application(middlewares=[tracing_middleware])

    def _identity() -> dict[str, Any]:
        return {
            "bot": get_bot_name(),
            "env": get_env_name(),
            "version": get_bot_version(),
        }

    async def root(_: web.Request) -> web.Response:
        payload = {"ok": True, **_identity(), "trace": get_trace_id()}
        return web.json_response(payload)

    async def ready(_: web.Request) -> web.Response:
        components = healthmod.components_snapshot()
        ok = healthmod.overall_ready()
        return web.json_response({"ok": ok, "components": components}, status=200 if ok else 503)

    async def healthz(_: web.Request) -> web.Response:
        if runtime is None:
            payload: dict[str, Any] = {"ok": True, **_identity()}
            healthy = True
        else:
            payload, healthy = runtime.health_payload()
            payload.update(_identity())
        payload["endpoint"] = "healthz"
        return web.json_response(payload, status=200 if healthy else 503)

    app.router.add_get("/", root)
    app.router.add_get("/ready", ready)
    app.router.add_get("/healthz", healthz)

    return app


def set_active_runtime(runtime: "Runtime | None") -> None:
    """Set the active runtime used by module-level helpers."""

    global _ACTIVE_RUNTIME
    _ACTIVE_RUNTIME = runtime


def get_active_runtime() -> "Runtime | None":
    """Return the active runtime instance if one has been registered."""

    return _ACTIVE_RUNTIME


def _trim_message(message: str, *, limit: int = 1800) -> str:
    text = message.strip()
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "…"


class Scheduler:
    """Very small asyncio task supervisor for background jobs."""

    def __init__(self) -> None:
        self._tasks: list[asyncio.Task] = []

    def spawn(self, coro: Awaitable, *, name: Optional[str] = None) -> asyncio.Task:
        # Reject cleanups pile up over a long uptime; forget the finished ones.
        self._tasks = [task for task in self._tasks if not task.done()]
        if name is not None:
            task = asyncio.create_task(coro, name=name)
        else:
            task = asyncio.create_task(coro)
        task.add_done_callback(self._report)
        self._tasks.append(task)
        return task

    @property
    def pending(self) -> int:
        return sum(1 for task in self._tasks if not task.done())

    @staticmethod
    def _report(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error(
                "scheduled task error",
                exc_info=(type(exc), exc, exc.__traceback__),
                extra={"task": task.get_name()},
            )

    async def shutdown(self) -> None:
        for task in self._tasks:
            if task.done():
                continue
            task.cancel()
        for task in self._tasks:
            if task.done():
                continue
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception:  # pragma: no cover - best-effort cleanup
                log.exception("scheduler task error during shutdown")
        self._tasks.clear()


class Runtime:
    """Container object that wires the bot, registry, health server, and scheduler."""

    def __init__(self, bot: commands.Bot, *, registry: Optional[RoleRegistry] = None) -> None:
        self.bot = bot
        self.registry = registry
        self.scheduler = Scheduler()
        self._web_app: Optional[web.Application] = None
        self._web_runner: Optional[web.AppRunner] = None
        self._web_site: Optional[web.TCPSite] = None
        set_active_runtime(self)

    async def start_webserver(self, *, port: Optional[int] = None) -> None:
        if self._web_site is not None:
            return
        port = port if port is not None else get_port()

        app = await create_app(runtime=self)

        self._web_app = app
        self._web_runner = web.AppRunner(app)
        await self._web_runner.setup()
        self._web_site = web.TCPSite(self._web_runner, host="0.0.0.0", port=port)
        await self._web_site.start()
        log.info("web server listening", extra={"port": port})

    def health_payload(self) -> tuple[dict, bool]:
        components = healthmod.components_snapshot()
        connected = bool(components.get("discord", {}).get("ok", False))
        payload: dict[str, Any] = {
            "ok": connected,
            "connected": connected,
            "latency_ms": None,
            "store": self.registry.stats() if self.registry is not None else None,
        }
        latency = getattr(self.bot, "latency", None)
        if isinstance(latency, (int, float)) and math.isfinite(latency):
            payload["latency_ms"] = round(latency * 1000, 1)
        return payload, connected

    async def shutdown_webserver(self) -> None:
        site, runner = self._web_site, self._web_runner
        self._web_site = None
        self._web_runner = None
        self._web_app = None
        if site is not None:
            await site.stop()
        if runner is not None:
            await runner.cleanup()

    async def send_log_message(self, message: str) -> None:
        channel_id = get_log_channel_id()
        if not channel_id:
            return
        content = _trim_message(str(message))
        if not content:
            return
        await self.bot.wait_until_ready()
        channel = self.bot.get_channel(channel_id)
        if channel is None:
            try:
                channel = await self.bot.fetch_channel(channel_id)
            except Exception:
                log.exception("failed to fetch log channel", extra={"channel_id": channel_id})
                return
        try:
            await channel.send(content)
        except Exception:
            log.exception("failed to send log message", extra={"channel_id": channel_id})

    def open_registry(self) -> RoleRegistry:
        """Load the role registry from disk unless one was injected."""

        if self.registry is None:
            self.registry = RoleRegistry.load_or_create(get_role_store_path())
        healthmod.set_component("role_store", True)
        return self.registry

    async def load_extensions(self) -> None:
        """Load all feature modules into the shared bot instance."""

        from cogs import app_admin
        from modules import selfroles

        registry = self.open_registry()
        await app_admin.setup(self.bot)
        await selfroles.setup(self.bot, registry=registry, scheduler=self.scheduler)

    async def start(self, token: str) -> None:
        if is_health_server_enabled():
            await self.start_webserver()
        else:
            log.info("web server disabled via ENABLE_HEALTH_SERVER")
        await self.load_extensions()
        await self.bot.start(token)

    async def close(self) -> None:
        await self.shutdown_webserver()
        await self.scheduler.shutdown()
        set_active_runtime(None)
