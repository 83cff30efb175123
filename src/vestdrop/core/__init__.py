"""
vestdrop Core Module

Building blocks of the airdrop contract:
- Campaign registry and allocation ledger
- Linear vesting calculator
- Role-based access control and the pause switch
- Error conditions, events, configuration and logging
"""

__all__ = []
