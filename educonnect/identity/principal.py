"""Authenticated caller reconstructed from a verified token on every request."""

from __future__ import annotations

from dataclasses import dataclass

from educonnect.authz.resources import Role


@dataclass(frozen=True)
class Principal:
    """
    Small, immutable identity used by the guard.

    `school_id` is None only for platform admins; every other role is bound
    to exactly one school for the lifetime of the account.
    """

    id: int
    role: Role
    school_id: int | None

    @property
    def is_platform_admin(self) -> bool:
        return self.role is Role.platform_admin

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serializable dict."""
        return {
            "id": self.id,
            "role": self.role.value,
            "school_id": self.school_id,
        }
