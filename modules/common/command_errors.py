"""Reply and logging policy for command failures raised by the dispatcher."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from discord.ext import commands
from discord.ext.commands.view import StringView

from modules.selfroles.guard import NOT_IN_GUILD, RoleRequestRejected, signal_rejection
from modules.selfroles.store import RoleStoreError
from shared.config import get_reject_delete_after_sec
from shared.logfmt import LogTemplates, human_reason, user_label

if TYPE_CHECKING:
    from modules.common.runtime import Runtime

log = logging.getLogger("selfroles.app")

MISSING_PERMISSIONS = "You need the Manage Roles permission to do that."


def required_arguments(command: commands.Command) -> int:
    return sum(1 for param in command.clean_params.values() if param.required)


def max_arguments(command: commands.Command) -> int:
    return len(command.clean_params)


def count_arguments(ctx: commands.Context) -> int:
    """Count the words following the invoked command, honouring quotes."""

    content = getattr(ctx.message, "content", "") or ""
    head = f"{ctx.prefix or ''}{ctx.invoked_with or ''}"
    remainder = content[len(head):] if content.startswith(head) else ""

    view = StringView(remainder)
    count = 0
    while True:
        view.skip_ws()
        if view.eof:
            break
        try:
            word = view.get_quoted_word()
        except commands.ArgumentParsingError:
            break
        if word is None:
            break
        count += 1
    return count


def argument_error_text(ctx: commands.Context, error: commands.CommandError) -> str | None:
    command = ctx.command
    if command is None:
        return None
    given = count_arguments(ctx)
    if isinstance(error, commands.MissingRequiredArgument):
        return f"Need {required_arguments(command)} arguments, but only got {given}."
    if isinstance(error, commands.TooManyArguments):
        return f"Max arguments allowed is {max_arguments(command)}, but got {given}."
    return None


async def handle_command_error(
    ctx: commands.Context, error: Exception, *, runtime: "Runtime"
) -> None:
    command_name = getattr(ctx.command, "name", None) or "-"
    author_id = getattr(ctx.author, "id", None)

    if isinstance(error, commands.CommandNotFound):
        return

    if isinstance(error, RoleRequestRejected):
        log.info(
            "role request rejected",
            extra={"command": command_name, "user": author_id, "reason": error.reason},
        )
        return

    if isinstance(error, (commands.MissingRequiredArgument, commands.TooManyArguments)):
        text = argument_error_text(ctx, error)
        if text:
            await ctx.reply(text, mention_author=False)
        return

    if isinstance(error, commands.NoPrivateMessage):
        await signal_rejection(
            ctx,
            NOT_IN_GUILD,
            scheduler=runtime.scheduler,
            delete_after=float(get_reject_delete_after_sec()),
        )
        log.info(
            "role request rejected",
            extra={"command": command_name, "user": author_id, "reason": NOT_IN_GUILD},
        )
        return

    if isinstance(error, commands.MissingPermissions):
        await ctx.reply(MISSING_PERMISSIONS, mention_author=False)
        return

    original = getattr(error, "original", None)
    if isinstance(original, RoleStoreError):
        log.critical(
            "role registry write failed; shutting down",
            exc_info=(type(original), original, original.__traceback__),
            extra={"command": command_name},
        )
        try:
            await runtime.send_log_message(
                LogTemplates.store_failure(command=command_name, reason=human_reason(original))
            )
        finally:
            await runtime.bot.close()
        return

    log.warning(
        "cmd error: cmd=%s user=%s err=%r",
        command_name,
        author_id,
        error,
    )
    try:
        await runtime.send_log_message(
            LogTemplates.cmd_error(
                command=command_name,
                user=user_label(getattr(ctx, "guild", None), author_id),
                reason=human_reason(original or error),
            )
        )
    except Exception:
        log.exception("failed to send command error to log channel")
