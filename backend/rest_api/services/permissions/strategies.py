"""
Permission Strategy implementations.
Strategy Pattern for role-based access control.

Each strategy decides, for one role, whether an action is allowed on a
resource given who owns it.
"""

from abc import ABC, abstractmethod

from shared.config.constants import Actions, Roles


class PermissionStrategy(ABC):
    """Abstract base for permission strategies."""

    @property
    @abstractmethod
    def role_name(self) -> str:
        """Return the role this strategy handles."""
        ...

    @abstractmethod
    def allows(self, identity_id: str, action: str, resource_owner: str | None = None) -> bool:
        """Check if the identity may perform `action` on a resource owned by `resource_owner`."""
        ...


class CustomerStrategy(PermissionStrategy):
    """
    Customers act only on resources they own.

    A missing owner means "no specific resource" (e.g. placing a new order),
    which is allowed for customer-level actions.
    """

    @property
    def role_name(self) -> str:
        return Roles.CUSTOMER

    def allows(self, identity_id: str, action: str, resource_owner: str | None = None) -> bool:
        if action in Actions.ADMIN_ONLY or action in Actions.STAFF_ONLY:
            return False
        return resource_owner is None or resource_owner == identity_id


class StaffStrategy(PermissionStrategy):
    """Staff act on any resource but never perform admin-only actions."""

    @property
    def role_name(self) -> str:
        return Roles.STAFF

    def allows(self, identity_id: str, action: str, resource_owner: str | None = None) -> bool:
        return action not in Actions.ADMIN_ONLY


class AdminStrategy(PermissionStrategy):
    """Admins can do everything."""

    @property
    def role_name(self) -> str:
        return Roles.ADMIN

    def allows(self, identity_id: str, action: str, resource_owner: str | None = None) -> bool:
        return True


STRATEGY_REGISTRY: dict[str, PermissionStrategy] = {
    Roles.CUSTOMER: CustomerStrategy(),
    Roles.STAFF: StaffStrategy(),
    Roles.ADMIN: AdminStrategy(),
}


def get_strategy(role: str) -> PermissionStrategy:
    """Strategy for a role. Unknown roles get customer rights."""
    return STRATEGY_REGISTRY.get(role, STRATEGY_REGISTRY[Roles.CUSTOMER])
