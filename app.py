from __future__ import annotations

import asyncio
import logging

import discord
from discord.ext import commands

from shared.config import (
    get_command_prefix,
    get_discord_token,
    get_env_name,
    get_log_level,
)
from shared.logfmt import LogTemplates
from shared import health as healthmod
from modules.common.command_errors import handle_command_error
from modules.common.runtime import Runtime

logging.basicConfig(
    level=get_log_level(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger("selfroles.app")

INTENTS = discord.Intents.default()
INTENTS.message_content = True
INTENTS.members = True

PREFIX = get_command_prefix()

bot = commands.Bot(command_prefix=PREFIX, intents=INTENTS)

runtime = Runtime(bot)


@bot.event
async def on_ready():
    healthmod.set_component("discord", True)
    await bot.change_presence(activity=discord.Game(f"{PREFIX}help"))
    log.info(
        'Bot ready as %s | env=%s | prefix="%s"',
        bot.user,
        get_env_name(),
        PREFIX,
    )
    store = runtime.registry.stats() if runtime.registry is not None else {}
    await runtime.send_log_message(
        LogTemplates.ready(
            user=str(bot.user),
            prefix=PREFIX,
            guilds=len(bot.guilds),
            store=store,
        )
    )


@bot.event
async def on_connect():
    healthmod.set_component("discord", True)


@bot.event
async def on_resumed():
    healthmod.set_component("discord", True)


@bot.event
async def on_disconnect():
    healthmod.set_component("discord", False)


@bot.event
async def on_command_error(ctx: commands.Context, error: Exception):
    await handle_command_error(ctx, error, runtime=runtime)


async def main() -> None:
    token = get_discord_token()
    if not token:
        raise RuntimeError("DISCORD_TOKEN not set")
    try:
        await runtime.start(token)
    finally:
        await runtime.close()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
