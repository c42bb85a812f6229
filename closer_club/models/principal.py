from __future__ import annotations

from dataclasses import dataclass

ROLE_ADMIN = "admin"
ROLE_TEAM_LEADER = "team_leader"
ROLE_AGENT = "agent"


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity extracted from a validated JWT.

    ``user_id`` is the identity service's subject string; agents are
    students, so it doubles as the student id on completion records.
    """

    user_id: str
    roles: frozenset[str]

    def has_any_role(self, roles: set[str] | frozenset[str]) -> bool:
        return bool(self.roles & roles)

    def is_admin(self) -> bool:
        return ROLE_ADMIN in self.roles
