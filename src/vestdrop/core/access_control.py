"""
Role-based access control for the airdrop contract.

Roles are plain address sets. The contract asks a single question,
``has_role(role, account)``, so any oracle with that method can stand in
for this implementation.

Security:
- Only DEFAULT_ADMIN holders can grant or revoke roles
- Audit trail of role changes
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Set

from .exceptions import AccessControlUnauthorizedAccount, InvalidAddress
from .interfaces import is_zero_address

logger = logging.getLogger(__name__)


class Role(Enum):
    """Roles understood by the airdrop contract."""
    DEFAULT_ADMIN = "default_admin"
    ADMIN = "admin"


def _role_name(role: Role | str) -> str:
    return role.value if isinstance(role, Role) else str(role)


@dataclass
class RoleBasedAccessControl:
    """
    Role membership store with admin-gated grants.

    The constructor's admin receives both DEFAULT_ADMIN (role management)
    and ADMIN (campaign operations).
    """

    admin_address: str = ""

    # Role assignments: role -> set of addresses
    roles: Dict[str, Set[str]] = field(default_factory=dict)

    # Audit log
    role_changes: List[Dict[str, Any]] = field(default_factory=list)

    def __post_init__(self) -> None:
        for role in Role:
            if role.value not in self.roles:
                self.roles[role.value] = set()

        if self.admin_address:
            if is_zero_address(self.admin_address):
                raise InvalidAddress("admin is zero address")
            admin = self.admin_address.lower()
            self.admin_address = admin
            self.roles[Role.DEFAULT_ADMIN.value].add(admin)
            self.roles[Role.ADMIN.value].add(admin)

    def has_role(self, role: Role | str, account: str) -> bool:
        """Check if an address holds a role."""
        if not account:
            return False
        return account.lower() in self.roles.get(_role_name(role), set())

    def check_role(self, role: Role | str, account: str) -> None:
        """
        Require that ``account`` holds ``role``.

        Raises:
            AccessControlUnauthorizedAccount: If it does not
        """
        if not self.has_role(role, account):
            logger.warning(
                "Access denied: role not assigned",
                extra={
                    "event": "rbac.role_not_assigned",
                    "address": (account or "")[:10],
                    "required_role": _role_name(role),
                },
            )
            raise AccessControlUnauthorizedAccount(account, _role_name(role))

    def grant_role(self, caller: str, role: Role | str, account: str, timestamp: int = 0) -> bool:
        """
        Grant a role to an address.

        Returns:
            True if membership changed, False if the account already held it

        Raises:
            AccessControlUnauthorizedAccount: If caller is not a DEFAULT_ADMIN
            InvalidAddress: If account is the null address
        """
        self.check_role(Role.DEFAULT_ADMIN, caller)
        if is_zero_address(account):
            raise InvalidAddress("account is zero address")

        name = _role_name(role)
        account_norm = account.lower()
        members = self.roles.setdefault(name, set())
        if account_norm in members:
            return False
        members.add(account_norm)

        self.role_changes.append({
            "action": "grant",
            "role": name,
            "address": account_norm,
            "admin": caller.lower(),
            "timestamp": timestamp,
        })
        logger.info(
            "Role granted",
            extra={
                "event": "rbac.role_granted",
                "role": name,
                "address": account_norm[:10],
                "admin": caller[:10],
            },
        )
        return True

    def revoke_role(self, caller: str, role: Role | str, account: str, timestamp: int = 0) -> bool:
        """
        Revoke a role from an address.

        Returns:
            True if membership changed, False if the account did not hold it
        """
        self.check_role(Role.DEFAULT_ADMIN, caller)

        name = _role_name(role)
        account_norm = (account or "").lower()
        members = self.roles.get(name, set())
        if account_norm not in members:
            return False
        members.discard(account_norm)

        self.role_changes.append({
            "action": "revoke",
            "role": name,
            "address": account_norm,
            "admin": caller.lower(),
            "timestamp": timestamp,
        })
        logger.info(
            "Role revoked",
            extra={
                "event": "rbac.role_revoked",
                "role": name,
                "address": account_norm[:10],
                "admin": caller[:10],
            },
        )
        return True

    def get_role_members(self, role: Role | str) -> Set[str]:
        """Get all addresses with a given role."""
        return self.roles.get(_role_name(role), set()).copy()

    def get_user_roles(self, address: str) -> Set[str]:
        """Get all roles assigned to an address."""
        address_norm = address.lower()
        return {
            role
            for role, members in self.roles.items()
            if address_norm in members
        }

    # ==================== Snapshots ====================

    def get_state(self) -> Dict[str, Any]:
        return {
            "roles": copy.deepcopy(self.roles),
            "role_changes": copy.deepcopy(self.role_changes),
        }

    def restore_state(self, state: Dict[str, Any]) -> None:
        self.roles = copy.deepcopy(state.get("roles", {}))
        self.role_changes = copy.deepcopy(state.get("role_changes", []))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "admin_address": self.admin_address,
            "roles": {role: sorted(members) for role, members in self.roles.items()},
            "role_changes": copy.deepcopy(self.role_changes),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RoleBasedAccessControl":
        # Membership comes from the stored sets only; a revoked founding admin stays revoked
        rbac = cls(
            roles={role: set(members) for role, members in data.get("roles", {}).items()},
            role_changes=[dict(change) for change in data.get("role_changes", [])],
        )
        rbac.admin_address = data.get("admin_address", "")
        return rbac
