"""JSON-backed registry of self-assignable roles and their aliases."""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

log = logging.getLogger("selfroles.store")

_MAX_ROLE_ID = 2**64
_FIELDS = frozenset({"allowed_roles", "aliases"})


class RoleStoreError(RuntimeError):
    """Raised when the registry cannot be written to disk."""


class RoleStoreFormatError(ValueError):
    """Raised when a stored document does not match the registry schema."""


def _parse_role_id(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise RoleStoreFormatError(f"role id must be an integer, got {value!r}")
    if value < 0 or value >= _MAX_ROLE_ID:
        raise RoleStoreFormatError(f"role id out of range: {value}")
    return value


def _parse_document(payload: object) -> tuple[list[int], dict[str, int]]:
    if not isinstance(payload, Mapping):
        raise RoleStoreFormatError("registry document must be a JSON object")
    keys = set(payload.keys())
    if keys != _FIELDS:
        missing = sorted(_FIELDS - keys)
        unknown = sorted(keys - _FIELDS)
        raise RoleStoreFormatError(f"registry fields mismatch: missing={missing} unknown={unknown}")

    raw_roles = payload["allowed_roles"]
    if not isinstance(raw_roles, list):
        raise RoleStoreFormatError("allowed_roles must be a list")
    roles: list[int] = []
    for raw in raw_roles:
        role_id = _parse_role_id(raw)
        if role_id not in roles:
            roles.append(role_id)

    raw_aliases = payload["aliases"]
    if not isinstance(raw_aliases, Mapping):
        raise RoleStoreFormatError("aliases must be an object")
    aliases: dict[str, int] = {}
    for alias, raw in raw_aliases.items():
        if not isinstance(alias, str):
            raise RoleStoreFormatError(f"alias must be a string, got {alias!r}")
        aliases[alias] = _parse_role_id(raw)

    return roles, aliases


class RoleRegistry:
    """Allow-list of role ids plus an alias table, saved on every change.

    All reads and writes take the same re-entrant lock, so a mutation and its
    file write are never interleaved with another access. ``remove_role``
    drops the role and every alias pointing at it before the single save.
    """

    def __init__(
        self,
        path: str | os.PathLike[str],
        *,
        allowed_roles: Optional[List[int]] = None,
        aliases: Optional[Dict[str, int]] = None,
    ) -> None:
        self.path = Path(path)
        self._allowed_roles: List[int] = list(allowed_roles or [])
        self._aliases: Dict[str, int] = dict(aliases or {})
        self._lock = threading.RLock()

    # ------------------------------------------------------------------ reads

    def get_allowed_roles(self) -> Tuple[int, ...]:
        with self._lock:
            return tuple(self._allowed_roles)

    def get_aliases(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._aliases)

    def resolve_alias(self, name: str) -> Optional[int]:
        with self._lock:
            return self._aliases.get(name)

    def is_allowed(self, role_id: int) -> bool:
        with self._lock:
            return role_id in self._allowed_roles

    def has_alias(self, alias: str) -> bool:
        with self._lock:
            return alias in self._aliases

    def aliases_for(self, role_id: int) -> List[str]:
        with self._lock:
            return sorted(alias for alias, target in self._aliases.items() if target == role_id)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "path": str(self.path),
                "allowed_roles": len(self._allowed_roles),
                "aliases": len(self._aliases),
            }

    # -------------------------------------------------------------- mutations

    def add_role(self, role_id: int) -> bool:
        """Allow ``role_id``; returns ``False`` when it was already allowed."""

        with self._lock:
            if role_id in self._allowed_roles:
                return False
            self._allowed_roles.append(role_id)
            self.save()
        log.info("role allowed", extra={"role_id": role_id})
        return True

    def remove_role(self, role_id: int) -> bool:
        """Deny ``role_id`` and drop every alias that targets it."""

        with self._lock:
            if role_id not in self._allowed_roles:
                return False
            self._allowed_roles.remove(role_id)
            dropped = [alias for alias, target in self._aliases.items() if target == role_id]
            for alias in dropped:
                del self._aliases[alias]
            self.save()
        log.info("role denied", extra={"role_id": role_id, "aliases_dropped": len(dropped)})
        return True

    def add_alias(self, role_id: int, alias: str) -> bool:
        """Point ``alias`` at ``role_id``.

        Only allowed roles can be aliased; for any other role this is a no-op
        that returns ``False``. An existing alias with the same name is
        replaced.
        """

        with self._lock:
            if role_id not in self._allowed_roles:
                return False
            self._aliases[alias] = role_id
            self.save()
        log.info("alias set", extra={"alias": alias, "role_id": role_id})
        return True

    def remove_alias(self, alias: str) -> bool:
        with self._lock:
            existed = self._aliases.pop(alias, None) is not None
            self.save()
        if existed:
            log.info("alias removed", extra={"alias": alias})
        return existed

    # ------------------------------------------------------------ persistence

    def to_document(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "allowed_roles": list(self._allowed_roles),
                "aliases": dict(self._aliases),
            }

    def save(self) -> None:
        """Rewrite the whole registry file via a temp file and rename."""

        with self._lock:
            payload = json.dumps(self.to_document(), indent=4, ensure_ascii=False)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                tmp_path.write_text(payload + "\n", encoding="utf-8")
                tmp_path.replace(self.path)
            except OSError as exc:
                raise RoleStoreError(f"failed to write role registry to {self.path}: {exc}") from exc

    @classmethod
    def create(cls, path: str | os.PathLike[str]) -> "RoleRegistry":
        registry = cls(path)
        registry.save()
        log.info("role registry created", extra={"path": str(registry.path)})
        return registry

    @classmethod
    def load_or_create(cls, path: str | os.PathLike[str]) -> "RoleRegistry":
        """Load the registry at ``path``, starting fresh if it is missing or unreadable."""

        target = Path(path)
        try:
            raw = target.read_text(encoding="utf-8")
        except FileNotFoundError:
            return cls.create(target)
        except (OSError, UnicodeDecodeError):
            log.warning("role registry unreadable; starting fresh", exc_info=True, extra={"path": str(target)})
            return cls.create(target)

        try:
            roles, aliases = _parse_document(json.loads(raw))
        except ValueError as exc:
            log.warning(
                "role registry invalid; starting fresh",
                extra={"path": str(target), "error": str(exc)},
            )
            return cls.create(target)

        registry = cls(target, allowed_roles=roles, aliases=aliases)
        log.info(
            "role registry loaded",
            extra={"path": str(target), "allowed_roles": len(roles), "aliases": len(aliases)},
        )
        return registry


__all__ = ["RoleRegistry", "RoleStoreError", "RoleStoreFormatError"]
