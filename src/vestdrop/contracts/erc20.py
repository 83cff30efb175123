"""
In-memory ERC20 token.

Serves as the fungible-asset collaborator of the airdrop contract:
- balance_of / transfer / approve / transfer_from
- owner-only minting so deployments and tests can fund the admin
- pause switch, which makes every balance move fail (useful to exercise
  aborted airdrop operations)
- Transfer and Approval events

Security features:
- Zero address checks
- Balance underflow prevention
- Allowance validation
"""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List

from ..core.exceptions import TokenOperationError
from ..core.interfaces import ZERO_ADDRESS, is_zero_address

logger = logging.getLogger(__name__)

UINT256_MAX = 2**256 - 1


@dataclass
class TokenEvent:
    """Represents an ERC20 event."""

    event_type: str  # "Transfer" or "Approval"
    from_address: str
    to_address: str
    value: int


@dataclass
class ERC20Token:
    """
    Fungible token with balances and allowances kept in dictionaries.

    Every failing call raises TokenOperationError before touching state.
    """

    name: str
    symbol: str
    decimals: int = 18
    total_supply: int = 0

    address: str = ""

    # Owner (for minting permissions)
    owner: str = ""

    balances: Dict[str, int] = field(default_factory=dict)
    allowances: Dict[str, Dict[str, int]] = field(default_factory=dict)

    events: List[TokenEvent] = field(default_factory=list)

    paused: bool = False

    def __post_init__(self) -> None:
        if not self.address:
            # Derive an address from name/symbol
            addr_input = f"{self.name}{self.symbol}{time.time_ns()}".encode()
            addr_hash = hashlib.sha3_256(addr_input).digest()
            self.address = f"0x{addr_hash[-20:].hex()}"
        self.address = self.address.lower()
        self.owner = self.owner.lower()

    # ==================== View Functions ====================

    def balance_of(self, account: str) -> int:
        return self.balances.get(account.lower(), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get(owner.lower(), {}).get(spender.lower(), 0)

    # ==================== State-Changing Functions ====================

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """
        Transfer tokens from sender to recipient.

        Args:
            sender: Address sending tokens
            recipient: Address receiving tokens
            amount: Amount to transfer (0 is allowed)

        Returns:
            True if successful

        Raises:
            TokenOperationError: If transfer fails
        """
        self._require_not_paused()
        sender_norm = sender.lower()
        recipient_norm = recipient.lower()
        self._validate_address(recipient_norm, "recipient")
        self._validate_amount(amount)

        sender_balance = self.balances.get(sender_norm, 0)
        if sender_balance < amount:
            raise TokenOperationError(
                f"{self.symbol}: transfer amount exceeds balance ({amount} > {sender_balance})",
                details={"from": sender_norm, "amount": amount, "balance": sender_balance},
            )

        self._move(sender_norm, recipient_norm, amount)
        logger.debug(
            "ERC20 transfer",
            extra={
                "event": "erc20.transfer",
                "token": self.symbol,
                "from": sender_norm[:10],
                "to": recipient_norm[:10],
                "amount": amount,
            },
        )
        return True

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        """Set the allowance of spender over owner's tokens."""
        self._require_not_paused()
        owner_norm = owner.lower()
        spender_norm = spender.lower()
        self._validate_address(spender_norm, "spender")
        self._validate_amount(amount)

        self.allowances.setdefault(owner_norm, {})[spender_norm] = amount
        self.events.append(TokenEvent("Approval", owner_norm, spender_norm, amount))
        return True

    def transfer_from(self, spender: str, from_addr: str, to_addr: str, amount: int) -> bool:
        """
        Transfer tokens using an allowance.

        Raises:
            TokenOperationError: If allowance or balance is insufficient
        """
        self._require_not_paused()
        spender_norm = spender.lower()
        from_norm = from_addr.lower()
        to_norm = to_addr.lower()
        self._validate_address(to_norm, "recipient")
        self._validate_amount(amount)

        current_allowance = self.allowance(from_norm, spender_norm)
        if current_allowance < amount:
            raise TokenOperationError(
                f"{self.symbol}: insufficient allowance ({current_allowance} < {amount})",
                details={"owner": from_norm, "spender": spender_norm, "amount": amount},
            )
        from_balance = self.balances.get(from_norm, 0)
        if from_balance < amount:
            raise TokenOperationError(
                f"{self.symbol}: transfer amount exceeds balance ({amount} > {from_balance})",
                details={"from": from_norm, "amount": amount, "balance": from_balance},
            )

        # Unlimited allowances are not consumed
        if current_allowance != UINT256_MAX:
            self.allowances[from_norm][spender_norm] = current_allowance - amount
        self._move(from_norm, to_norm, amount)
        return True

    def mint(self, minter: str, to: str, amount: int) -> bool:
        """Mint new tokens (owner only)."""
        self._require_not_paused()
        if minter.lower() != self.owner:
            raise TokenOperationError(f"{self.symbol}: caller is not owner")
        to_norm = to.lower()
        self._validate_address(to_norm, "recipient")
        self._validate_amount(amount)
        if self.total_supply + amount > UINT256_MAX:
            raise TokenOperationError(f"{self.symbol}: total supply overflow")

        self.total_supply += amount
        self.balances[to_norm] = self.balances.get(to_norm, 0) + amount
        self.events.append(TokenEvent("Transfer", ZERO_ADDRESS, to_norm, amount))

        logger.info(
            "ERC20 mint",
            extra={
                "event": "erc20.mint",
                "token": self.symbol,
                "to": to_norm[:10],
                "amount": amount,
                "new_supply": self.total_supply,
            },
        )
        return True

    def pause(self, caller: str) -> bool:
        """Pause token transfers (owner only)."""
        if caller.lower() != self.owner:
            raise TokenOperationError(f"{self.symbol}: caller is not owner")
        self.paused = True
        return True

    def unpause(self, caller: str) -> bool:
        """Unpause token transfers (owner only)."""
        if caller.lower() != self.owner:
            raise TokenOperationError(f"{self.symbol}: caller is not owner")
        self.paused = False
        return True

    # ==================== Helpers ====================

    def _move(self, from_norm: str, to_norm: str, amount: int) -> None:
        self.balances[from_norm] = self.balances.get(from_norm, 0) - amount
        self.balances[to_norm] = self.balances.get(to_norm, 0) + amount
        self.events.append(TokenEvent("Transfer", from_norm, to_norm, amount))

    def _validate_address(self, address: str, role: str) -> None:
        if is_zero_address(address):
            raise TokenOperationError(f"{self.symbol}: {role} is zero address")

    def _validate_amount(self, amount: int) -> None:
        if not isinstance(amount, int) or isinstance(amount, bool):
            raise TokenOperationError(f"{self.symbol}: amount must be an integer")
        if amount < 0:
            raise TokenOperationError(f"{self.symbol}: amount cannot be negative")
        if amount > UINT256_MAX:
            raise TokenOperationError(f"{self.symbol}: amount exceeds uint256")

    def _require_not_paused(self) -> None:
        if self.paused:
            raise TokenOperationError(f"{self.symbol}: token is paused")

    # ==================== Serialization ====================

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "total_supply": self.total_supply,
            "address": self.address,
            "owner": self.owner,
            "balances": dict(self.balances),
            "allowances": {k: dict(v) for k, v in self.allowances.items()},
            "paused": self.paused,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "ERC20Token":
        token = cls(
            name=data["name"],
            symbol=data["symbol"],
            decimals=data.get("decimals", 18),
            total_supply=data.get("total_supply", 0),
            address=data.get("address", ""),
            owner=data.get("owner", ""),
            paused=data.get("paused", False),
        )
        token.balances = dict(data.get("balances", {}))
        token.allowances = {k: dict(v) for k, v in data.get("allowances", {}).items()}
        return token


class ERC20Factory:
    """
    Creates tokens and resolves them by address.

    An instance is callable, so it can be handed to the airdrop contract as
    its token resolver.
    """

    def __init__(self) -> None:
        self.deployed_tokens: Dict[str, ERC20Token] = {}

    def create_token(
        self,
        creator: str,
        name: str,
        symbol: str,
        decimals: int = 18,
        initial_supply: int = 0,
        mint_to: str | None = None,
        address: str = "",
    ) -> ERC20Token:
        """
        Create and register a new token.

        Raises:
            TokenOperationError: If parameters are invalid
        """
        if not name:
            raise TokenOperationError("ERC20Factory: name cannot be empty")
        if not symbol:
            raise TokenOperationError("ERC20Factory: symbol cannot be empty")
        if decimals < 0 or decimals > 18:
            raise TokenOperationError("ERC20Factory: invalid decimals")
        if initial_supply < 0:
            raise TokenOperationError("ERC20Factory: invalid initial supply")

        token = ERC20Token(
            name=name, symbol=symbol, decimals=decimals, owner=creator, address=address
        )
        if token.address in self.deployed_tokens:
            raise TokenOperationError(f"ERC20Factory: address {token.address} already in use")
        if initial_supply > 0:
            token.mint(creator, mint_to or creator, initial_supply)

        self.deployed_tokens[token.address] = token
        logger.info(
            "ERC20 token created",
            extra={
                "event": "erc20.created",
                "address": token.address,
                "symbol": symbol,
                "initial_supply": initial_supply,
                "creator": creator[:10],
            },
        )
        return token

    def get_token(self, address: str) -> ERC20Token | None:
        if not address:
            return None
        return self.deployed_tokens.get(address.lower())

    def __call__(self, address: str) -> ERC20Token | None:
        return self.get_token(address)
