"""Self-assignable roles extension."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from discord.ext import commands

from shared.config import get_reject_delete_after_sec, get_role_store_path

from .cog import SelfRoles
from .guard import RoleRequestRejected
from .store import RoleRegistry, RoleStoreError

if TYPE_CHECKING:
    from modules.common.runtime import Scheduler

__all__ = ["RoleRegistry", "RoleRequestRejected", "RoleStoreError", "SelfRoles", "setup"]


async def setup(
    bot: commands.Bot,
    *,
    registry: Optional[RoleRegistry] = None,
    scheduler: Optional["Scheduler"] = None,
) -> None:
    """Load the SelfRoles cog, opening the configured registry when none is given."""

    if registry is None:
        registry = RoleRegistry.load_or_create(get_role_store_path())
    if scheduler is None:
        from modules.common.runtime import Scheduler, get_active_runtime

        runtime = get_active_runtime()
        scheduler = runtime.scheduler if runtime is not None else Scheduler()

    await bot.add_cog(
        SelfRoles(
            bot,
            registry,
            scheduler=scheduler,
            delete_after=float(get_reject_delete_after_sec()),
        )
    )
    logging.getLogger("selfroles.cog").info("SelfRoles cog loaded", extra=registry.stats())
