from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import discord
import pytest

from modules.selfroles.store import RoleRegistry


def http_error(status: int = 403, text: str = "Missing Permissions") -> discord.HTTPException:
    response = SimpleNamespace(status=status, reason="Forbidden")
    return discord.Forbidden(response, text)


class FakeRole:
    def __init__(self, role_id: int, name: str) -> None:
        self.id = role_id
        self.name = name
        self.mention = f"<@&{role_id}>"

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"FakeRole({self.id}, {self.name!r})"


class FakeMessage:
    _next_id = 9000

    def __init__(self, content: str = "", author: Any = None) -> None:
        FakeMessage._next_id += 1
        self.id = FakeMessage._next_id
        self.content = content
        self.author = author
        self.reactions: list[str] = []
        self.deleted = False
        self.reaction_error: Exception | None = None
        self.delete_error: Exception | None = None

    async def add_reaction(self, emoji: str) -> None:
        if self.reaction_error is not None:
            raise self.reaction_error
        self.reactions.append(emoji)

    async def delete(self) -> None:
        if self.delete_error is not None:
            raise self.delete_error
        self.deleted = True


class FakeMember:
    def __init__(self, member_id: int = 42, name: str = "tester", roles=None) -> None:
        self.id = member_id
        self.name = name
        self.display_name = name
        self.roles: list[FakeRole] = list(roles or [])
        self.grant_error: Exception | None = None
        self.revoke_error: Exception | None = None
        self.calls: list[tuple[str, int, str | None]] = []

    async def add_roles(self, role: FakeRole, *, reason: str | None = None) -> None:
        self.calls.append(("add", role.id, reason))
        if self.grant_error is not None:
            raise self.grant_error
        self.roles.append(role)

    async def remove_roles(self, role: FakeRole, *, reason: str | None = None) -> None:
        self.calls.append(("remove", role.id, reason))
        if self.revoke_error is not None:
            raise self.revoke_error
        self.roles = [held for held in self.roles if held.id != role.id]


class FakeGuild:
    def __init__(self, roles=None, members=None, guild_id: int = 7000) -> None:
        self.id = guild_id
        self.name = "Test Guild"
        self.roles: list[FakeRole] = list(roles or [])
        self._members = {member.id: member for member in (members or [])}
        self.create_error: Exception | None = None
        self.created: list[tuple[str, str | None]] = []
        self._next_role_id = 5000

    def get_role(self, role_id: int) -> FakeRole | None:
        for role in self.roles:
            if role.id == role_id:
                return role
        return None

    def get_member(self, member_id: int) -> FakeMember | None:
        return self._members.get(member_id)

    async def fetch_member(self, member_id: int) -> FakeMember:
        member = self._members.get(member_id)
        if member is None:
            raise discord.NotFound(SimpleNamespace(status=404, reason="Not Found"), "Unknown Member")
        return member

    async def create_role(self, *, name: str, reason: str | None = None) -> FakeRole:
        self.created.append((name, reason))
        if self.create_error is not None:
            raise self.create_error
        self._next_role_id += 1
        role = FakeRole(self._next_role_id, name)
        self.roles.append(role)
        return role


class FakeContext:
    def __init__(self, guild: FakeGuild | None, author: Any, content: str = "") -> None:
        self.guild = guild
        self.author = author
        self.message = FakeMessage(content, author)
        self.prefix = "~"
        self.invoked_with: str | None = None
        self.command = None
        self.replies: list[FakeMessage] = []
        self.sent: list[dict[str, Any]] = []

    async def reply(self, content: str, *, mention_author: bool = True) -> FakeMessage:
        message = FakeMessage(content)
        self.replies.append(message)
        return message

    async def send(self, content: str | None = None, *, embed: discord.Embed | None = None):
        self.sent.append({"content": content, "embed": embed})
        return FakeMessage(content or "")

    @property
    def reply_texts(self) -> list[str]:
        return [message.content for message in self.replies]


class FakeScheduler:
    """Collects spawned coroutines so tests can run or discard them."""

    def __init__(self) -> None:
        self.spawned: list[tuple[Any, str | None]] = []

    def spawn(self, coro, *, name: str | None = None):
        self.spawned.append((coro, name))
        return SimpleNamespace(name=name)

    async def drain(self) -> None:
        pending, self.spawned = self.spawned, []
        for coro, _name in pending:
            await coro

    def close(self) -> None:
        for coro, _name in self.spawned:
            coro.close()
        self.spawned = []


@pytest.fixture
def registry(store_path) -> RoleRegistry:
    return RoleRegistry.create(store_path)


@pytest.fixture
def scheduler():
    fake = FakeScheduler()
    yield fake
    fake.close()


@pytest.fixture
def fake_discord():
    """Factory namespace for building guild/member/context fakes."""

    return SimpleNamespace(
        Role=FakeRole,
        Member=FakeMember,
        Guild=FakeGuild,
        Context=FakeContext,
        Message=FakeMessage,
        http_error=http_error,
    )
