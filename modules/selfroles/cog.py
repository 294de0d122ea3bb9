"""Discord cog exposing the self-assignable role commands."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from discord.ext import commands

from .guard import OK_EMOJI, RoleGuard
from .store import RoleRegistry

if TYPE_CHECKING:
    from modules.common.runtime import Scheduler

log = logging.getLogger("selfroles.cog")


class SelfRoles(commands.Cog):
    """Self-service role assignment backed by an admin-managed allow-list."""

    def __init__(
        self,
        bot: commands.Bot,
        registry: RoleRegistry,
        *,
        scheduler: "Scheduler",
        delete_after: float = 5.0,
    ) -> None:
        self.bot = bot
        self.registry = registry
        self.scheduler = scheduler
        self.delete_after = delete_after

    def guard(self, ctx: commands.Context) -> RoleGuard:
        return RoleGuard(
            ctx,
            self.registry,
            scheduler=self.scheduler,
            delete_after=self.delete_after,
        )

    @staticmethod
    async def _send_ok(ctx: commands.Context) -> None:
        await ctx.message.add_reaction(OK_EMOJI)

    @commands.command(
        name="list",
        help="Lists roles you're allowed to assign to yourself",
        ignore_extra=False,
    )
    @commands.guild_only()
    async def list_roles(self, ctx: commands.Context) -> None:
        await self.guard(ctx).list_roles()

    @commands.command(
        name="add",
        usage="{role name}",
        help="Adds a role to you if you're allowed to have it",
        ignore_extra=False,
    )
    @commands.guild_only()
    async def add_role(self, ctx: commands.Context, role: str) -> None:
        await self.guard(ctx).add_role(role)
        await self._send_ok(ctx)

    @commands.command(
        name="remove",
        usage="{role name}",
        help="Removes one of your roles",
        ignore_extra=False,
    )
    @commands.guild_only()
    async def remove_role(self, ctx: commands.Context, role: str) -> None:
        await self.guard(ctx).remove_role(role)
        await self._send_ok(ctx)

    @commands.command(
        name="create_role",
        usage="{role name}",
        help="Create a role with the given name",
        ignore_extra=False,
    )
    @commands.guild_only()
    @commands.has_permissions(manage_roles=True)
    async def create_role(self, ctx: commands.Context, role: str) -> None:
        await self.guard(ctx).create_role(role)
        await self._send_ok(ctx)

    @commands.command(
        name="alias_role",
        usage="{role name} {alias name}",
        help="Add an alias for a role",
        ignore_extra=False,
    )
    @commands.guild_only()
    @commands.has_permissions(manage_roles=True)
    async def alias_role(self, ctx: commands.Context, role: str, alias: str) -> None:
        await self.guard(ctx).alias_role(role, alias)
        await self._send_ok(ctx)

    @commands.command(
        name="remove_alias",
        usage="{alias name}",
        help="Remove an alias for a role",
        ignore_extra=False,
    )
    @commands.guild_only()
    @commands.has_permissions(manage_roles=True)
    async def remove_alias(self, ctx: commands.Context, alias: str) -> None:
        await self.guard(ctx).remove_alias(alias)
        await self._send_ok(ctx)

    @commands.command(
        name="allow_role",
        usage="{role name}",
        help="Allow users to assign a role to themselves",
        ignore_extra=False,
    )
    @commands.guild_only()
    @commands.has_permissions(manage_roles=True)
    async def allow_role(self, ctx: commands.Context, role: str) -> None:
        await self.guard(ctx).allow_role(role)
        await self._send_ok(ctx)

    @commands.command(
        name="deny_role",
        usage="{role name}",
        help="Deny users to assign a role to themselves (if it was previously allowed)",
        ignore_extra=False,
    )
    @commands.guild_only()
    @commands.has_permissions(manage_roles=True)
    async def deny_role(self, ctx: commands.Context, role: str) -> None:
        await self.guard(ctx).deny_role(role)
        await self._send_ok(ctx)


__all__ = ["SelfRoles"]
