"""
vestdrop Configuration

Deployment settings are read from environment variables. Testnet and mainnet
differ only in the default vesting start delay policy: mainnet caps the delay
between finalization and vesting start unless explicitly disabled.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

# Hard per-call cap on add_recipients batch length
MAX_RECIPIENTS_PER_BATCH = 100

# Default cap applied on mainnet (30 days)
DEFAULT_MAX_VESTING_START_DELAY = 86400 * 30


class NetworkType(Enum):
    TESTNET = "testnet"
    MAINNET = "mainnet"


class VestingStartDelayPolicy(Enum):
    """Whether finalization limits how far in the future vesting may start."""
    NONE = "none"
    ENFORCED_MAXIMUM = "enforced_maximum"


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


@dataclass(frozen=True)
class AirdropConfig:
    """Constructor-time settings of one airdrop deployment."""

    network: NetworkType = NetworkType.TESTNET
    vesting_start_delay_policy: VestingStartDelayPolicy = VestingStartDelayPolicy.NONE
    max_vesting_start_delay: int = 0
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def __post_init__(self) -> None:
        if self.vesting_start_delay_policy is VestingStartDelayPolicy.ENFORCED_MAXIMUM:
            if self.max_vesting_start_delay <= 0:
                raise ConfigurationError(
                    "max_vesting_start_delay must be positive when the delay cap is enforced"
                )

    @property
    def max_start_delay(self) -> Optional[int]:
        """Delay cap in seconds, or None when no cap applies."""
        if self.vesting_start_delay_policy is VestingStartDelayPolicy.ENFORCED_MAXIMUM:
            return self.max_vesting_start_delay
        return None

    @classmethod
    def with_max_start_delay(cls, seconds: int, **kwargs) -> "AirdropConfig":
        return cls(
            vesting_start_delay_policy=VestingStartDelayPolicy.ENFORCED_MAXIMUM,
            max_vesting_start_delay=seconds,
            **kwargs,
        )


def _parse_network(value: str) -> NetworkType:
    try:
        return NetworkType(value.strip().lower())
    except ValueError as exc:
        raise ConfigurationError(f"Unknown network: {value!r}") from exc


def _parse_delay(value: str, network: NetworkType) -> tuple[VestingStartDelayPolicy, int]:
    raw = value.strip().lower()
    if not raw:
        if network is NetworkType.MAINNET:
            return VestingStartDelayPolicy.ENFORCED_MAXIMUM, DEFAULT_MAX_VESTING_START_DELAY
        return VestingStartDelayPolicy.NONE, 0
    if raw == "none":
        return VestingStartDelayPolicy.NONE, 0
    try:
        seconds = int(raw)
    except ValueError as exc:
        raise ConfigurationError(
            f"VESTDROP_MAX_VESTING_START_DELAY must be 'none' or seconds, got {value!r}"
        ) from exc
    if seconds <= 0:
        raise ConfigurationError("VESTDROP_MAX_VESTING_START_DELAY must be positive")
    return VestingStartDelayPolicy.ENFORCED_MAXIMUM, seconds


def load_config(environ: Optional[Mapping[str, str]] = None) -> AirdropConfig:
    """
    Build an AirdropConfig from environment variables.

    Args:
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        Parsed configuration

    Raises:
        ConfigurationError: If a value cannot be parsed
    """
    env = os.environ if environ is None else environ
    network = _parse_network(env.get("VESTDROP_NETWORK", "testnet"))
    policy, delay = _parse_delay(env.get("VESTDROP_MAX_VESTING_START_DELAY", ""), network)
    log_level = env.get("VESTDROP_LOG_LEVEL", "INFO").strip().upper() or "INFO"
    if log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        raise ConfigurationError(f"Unknown log level: {log_level!r}")
    log_file = env.get("VESTDROP_LOG_FILE", "").strip() or None

    config = AirdropConfig(
        network=network,
        vesting_start_delay_policy=policy,
        max_vesting_start_delay=delay,
        log_level=log_level,
        log_file=log_file,
    )
    logger.debug(
        "Loaded airdrop configuration",
        extra={
            "event": "config.loaded",
            "network": network.value,
            "delay_policy": policy.value,
            "max_vesting_start_delay": delay,
        },
    )
    return config
