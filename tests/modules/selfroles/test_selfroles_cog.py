import asyncio

import discord
import pytest
from discord.ext import commands

from modules import selfroles
from modules.selfroles.guard import RoleRequestRejected

PRIVILEGED = ("create_role", "alias_role", "remove_alias", "allow_role", "deny_role")


async def _loaded_bot(registry, scheduler) -> commands.Bot:
    bot = commands.Bot(command_prefix="~", intents=discord.Intents.default())
    await selfroles.setup(bot, registry=registry, scheduler=scheduler)
    return bot


def test_setup_registers_all_commands(registry, scheduler):
    async def runner() -> None:
        bot = await _loaded_bot(registry, scheduler)
        names = {command.name for command in bot.get_cog("SelfRoles").get_commands()}
        assert names == {"list", "add", "remove", *PRIVILEGED}

        for name in PRIVILEGED:
            command = bot.get_command(name)
            assert len(command.checks) == 2, name
            assert command.ignore_extra is False

        for name in ("list", "add", "remove"):
            assert len(bot.get_command(name).checks) == 1, name

    asyncio.run(runner())


def test_alias_role_takes_two_arguments(registry, scheduler):
    async def runner() -> None:
        bot = await _loaded_bot(registry, scheduler)
        command = bot.get_command("alias_role")
        assert list(command.clean_params) == ["role", "alias"]
        assert command.usage == "{role name} {alias name}"

    asyncio.run(runner())


def test_add_command_reacts_ok_on_success(fake_discord, registry, scheduler):
    role = fake_discord.Role(1, "Gamer")
    member = fake_discord.Member()
    guild = fake_discord.Guild(roles=[role], members=[member])
    ctx = fake_discord.Context(guild, member, "~add Gamer")
    registry.add_role(1)

    async def runner() -> None:
        bot = await _loaded_bot(registry, scheduler)
        cog = bot.get_cog("SelfRoles")
        await cog.add_role.callback(cog, ctx, "Gamer")

    asyncio.run(runner())

    assert ctx.message.reactions == ["✅"]
    assert [held.id for held in member.roles] == [1]


def test_list_command_sends_no_ok_reaction(fake_discord, registry, scheduler):
    guild = fake_discord.Guild()
    ctx = fake_discord.Context(guild, fake_discord.Member(), "~list")

    async def runner() -> None:
        bot = await _loaded_bot(registry, scheduler)
        cog = bot.get_cog("SelfRoles")
        await cog.list_roles.callback(cog, ctx)

    asyncio.run(runner())

    assert ctx.message.reactions == []
    assert ctx.sent[0]["embed"].title == "Available Roles"


def test_rejected_command_skips_ok_reaction(fake_discord, registry, scheduler):
    guild = fake_discord.Guild()
    ctx = fake_discord.Context(guild, fake_discord.Member(), "~remove Ghost")

    async def runner() -> None:
        bot = await _loaded_bot(registry, scheduler)
        cog = bot.get_cog("SelfRoles")
        with pytest.raises(RoleRequestRejected):
            await cog.remove_role.callback(cog, ctx, "Ghost")

    asyncio.run(runner())

    assert ctx.message.reactions == ["❌"]
