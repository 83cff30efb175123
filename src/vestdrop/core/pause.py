"""
Global pause switch for the airdrop contract.

While paused, every gated entry point fails with EnforcedPause. Only holders
of the pauser role (checked through an injected role oracle) can toggle it.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Optional

from .access_control import Role
from .exceptions import AccessControlUnauthorizedAccount, EnforcedPause, ExpectedPause
from .interfaces import RoleOracle

logger = logging.getLogger(__name__)


def _default_state() -> Dict[str, Any]:
    return {
        "is_paused": False,
        "paused_by": None,
        "paused_timestamp": None,
        "reason": None,
    }


class PauseGuard:
    """
    Tracks the pause state and who set it.

    Unlike a one-shot toggle, pausing an already paused contract is an error
    (EnforcedPause), as is unpausing one that is running (ExpectedPause).
    """

    def __init__(self, role_oracle: RoleOracle, pauser_role: Role | str = Role.ADMIN):
        self.role_oracle = role_oracle
        self.pauser_role = pauser_role.value if isinstance(pauser_role, Role) else pauser_role
        self._state: Dict[str, Any] = _default_state()

    def _require_pauser(self, caller: str) -> None:
        if not self.role_oracle.has_role(self.pauser_role, caller):
            logger.warning(
                "Pause toggle rejected for %s", caller,
                extra={"event": "pause.unauthorized", "caller": (caller or "")[:10]},
            )
            raise AccessControlUnauthorizedAccount(caller, self.pauser_role)

    def pause(self, caller: str, now: int, reason: str = "Manual emergency pause") -> None:
        """Pause operations if the caller is authorized and the contract is running."""
        self._require_pauser(caller)
        self.require_not_paused()
        self._state = {
            "is_paused": True,
            "paused_by": caller.lower(),
            "paused_timestamp": now,
            "reason": reason,
        }
        logger.warning("Emergency pause activated by %s. Reason: %s", caller, reason)

    def unpause(self, caller: str, now: int, reason: str = "Manual unpause") -> None:
        """Unpause operations if the caller is authorized and the contract is paused."""
        self._require_pauser(caller)
        if not self._state["is_paused"]:
            raise ExpectedPause("contract is not paused")
        self._state = _default_state()
        logger.info("Operations unpaused by %s at %s. Reason: %s", caller, now, reason)

    def require_not_paused(self) -> None:
        if self._state["is_paused"]:
            raise EnforcedPause("contract is paused")

    def is_paused(self) -> bool:
        return bool(self._state["is_paused"])

    def paused_by(self) -> Optional[str]:
        return self._state["paused_by"]

    def get_state(self) -> Dict[str, Any]:
        return copy.deepcopy(self._state)

    def restore_state(self, state: Dict[str, Any]) -> None:
        self._state = {**_default_state(), **copy.deepcopy(state)}
