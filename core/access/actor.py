"""
Actor identity and role capabilities.

A request's user is resolved into an Actor exactly once; services receive
the Actor and ask it for capabilities instead of branching on roles.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet

from core.errors import Forbidden
from database.models.users import User, UserRole


class Capability(str, Enum):
    """Operations an actor may invoke."""

    # Candidate assignments
    ASSIGNMENT_CREATE = "assignment:create"
    ASSIGNMENT_VIEW = "assignment:view"
    ASSIGNMENT_UPDATE = "assignment:update"
    ASSIGNMENT_DELETE = "assignment:delete"
    ASSIGNMENT_STATS = "assignment:stats"
    ASSIGNMENT_VIEW_MINE = "assignment:view_mine"

    # Agent scope administration
    AGENT_ASSIGNMENT_MANAGE = "agent_assignment:manage"
    AGENT_ASSIGNMENT_VIEW_OWN = "agent_assignment:view_own"
    AGENT_DASHBOARD = "agent:dashboard"

    # Matching and search
    MATCH_RUN = "match:run"
    SEARCH_RUN = "search:run"


_STAFF: FrozenSet[Capability] = frozenset(
    {
        Capability.ASSIGNMENT_CREATE,
        Capability.ASSIGNMENT_VIEW,
        Capability.ASSIGNMENT_UPDATE,
        Capability.ASSIGNMENT_DELETE,
        Capability.ASSIGNMENT_STATS,
        Capability.AGENT_ASSIGNMENT_MANAGE,
        Capability.MATCH_RUN,
        Capability.SEARCH_RUN,
    }
)

# Role to capability mapping
ROLE_CAPABILITIES: dict[UserRole, FrozenSet[Capability]] = {
    UserRole.SUPERADMIN: _STAFF,
    UserRole.ADMIN: _STAFF,
    UserRole.AGENT: frozenset(
        {
            # Creates and tracks work items within its own scope
            Capability.ASSIGNMENT_CREATE,
            Capability.ASSIGNMENT_VIEW,
            Capability.ASSIGNMENT_UPDATE,
            Capability.ASSIGNMENT_DELETE,
            Capability.ASSIGNMENT_STATS,
            Capability.ASSIGNMENT_VIEW_MINE,
            Capability.AGENT_ASSIGNMENT_VIEW_OWN,
            Capability.AGENT_DASHBOARD,
            Capability.MATCH_RUN,
            Capability.SEARCH_RUN,
        }
    ),
    UserRole.HR: frozenset(
        {
            # Works the items assigned to it, never creates or deletes them
            Capability.ASSIGNMENT_VIEW,
            Capability.ASSIGNMENT_UPDATE,
            Capability.ASSIGNMENT_STATS,
            Capability.ASSIGNMENT_VIEW_MINE,
            Capability.SEARCH_RUN,
        }
    ),
    UserRole.CANDIDATE: frozenset({Capability.SEARCH_RUN}),
}


@dataclass(frozen=True)
class Actor:
    """The caller of an operation: who they are and what they may do."""

    id: int
    role: UserRole
    capabilities: FrozenSet[Capability] = field(default_factory=frozenset)

    @classmethod
    def for_role(cls, id: int, role: UserRole) -> "Actor":
        return cls(id=id, role=role, capabilities=ROLE_CAPABILITIES.get(role, frozenset()))

    @property
    def is_admin(self) -> bool:
        """Admins and superadmins act without scope restrictions on assignments."""
        return self.role in (UserRole.ADMIN, UserRole.SUPERADMIN)

    @property
    def is_superadmin(self) -> bool:
        return self.role == UserRole.SUPERADMIN

    @property
    def is_agent(self) -> bool:
        return self.role == UserRole.AGENT

    @property
    def is_hr(self) -> bool:
        return self.role == UserRole.HR

    @property
    def is_candidate(self) -> bool:
        return self.role == UserRole.CANDIDATE

    def can(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def require(self, capability: Capability) -> None:
        """
        Raise Forbidden unless the actor holds the capability.

        Raises:
            Forbidden: Capability not granted to the actor's role
        """
        if capability not in self.capabilities:
            raise Forbidden(
                f"Role '{self.role.value}' may not perform '{capability.value}'",
                details={"capability": capability.value},
            )


def resolve_actor(user: User) -> Actor:
    """Resolve a loaded user into an Actor with its role's capabilities."""
    return Actor.for_role(user.id, user.role)
