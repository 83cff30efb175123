"""
vestdrop Contracts.

- AirdropERC20: campaign-based vesting airdrop
- ERC20: fungible token used as the distributed asset
"""

from .airdrop import AirdropERC20
from .erc20 import ERC20Factory, ERC20Token, TokenEvent

__all__ = [
    "AirdropERC20",
    "ERC20Factory",
    "ERC20Token",
    "TokenEvent",
]
