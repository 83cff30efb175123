"""
vestdrop - Campaign-Based Vesting Airdrops

Distributes a fixed-supply token to large recipient lists under linear
time-release schedules, organized into independent campaigns.

Main Components:
- Contracts: the AirdropERC20 entry points and an in-memory ERC20 token
- Core: campaign registry, allocation ledger, vesting math, roles and pause
"""

__version__ = "0.1.0"
__author__ = "vestdrop Development Team"

__all__ = []
