"""App-level utility commands registered under the cogs namespace."""

from __future__ import annotations

import logging

from discord.ext import commands

log = logging.getLogger("selfroles.app_admin")


class AppAdmin(commands.Cog):
    """Lightweight utilities to confirm the bot is alive."""

    def __init__(self, bot: commands.Bot) -> None:
        self.bot = bot

    @commands.command(
        name="ping",
        help="Quick check to confirm the bot is responsive.",
    )
    async def ping(self, ctx: commands.Context) -> None:
        log.debug("ping", extra={"author": getattr(ctx.author, "id", None)})
        await ctx.send("Pong!")


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(AppAdmin(bot))
