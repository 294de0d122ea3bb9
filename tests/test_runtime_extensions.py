import asyncio

import discord
from discord.ext import commands

from modules.common import runtime as rt
from modules.selfroles.store import RoleRegistry
from shared import health as healthmod


def test_load_extensions_registers_commands(monkeypatch, store_path):
    monkeypatch.setattr(rt, "get_role_store_path", lambda: str(store_path))

    async def runner() -> commands.Bot:
        bot = commands.Bot(command_prefix="~", intents=discord.Intents.default())
        runtime = rt.Runtime(bot)
        try:
            await runtime.load_extensions()
            assert isinstance(runtime.registry, RoleRegistry)
            return bot
        finally:
            await runtime.close()

    bot = asyncio.run(runner())

    for name in ("ping", "list", "add", "remove", "create_role", "allow_role", "deny_role"):
        assert bot.get_command(name) is not None, name
    assert bot.get_command("help") is not None
    assert healthmod.components_snapshot()["role_store"]["ok"] is True


def test_open_registry_reads_configured_path(monkeypatch, store_path):
    monkeypatch.setattr(rt, "get_role_store_path", lambda: str(store_path))
    runtime = rt.Runtime(bot=None)
    try:
        registry = runtime.open_registry()
    finally:
        rt.set_active_runtime(None)

    assert registry.path == store_path
    assert store_path.exists()
