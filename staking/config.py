"""
config.py - Pool parameters and deployment

PoolConfig bundles the construction parameters of a pool. DEFAULT_CONFIG
matches the reference deployment: an 8-decimal token, a minimum stake of 50
whole tokens and a 20% APR.

deploy_pool() wires a pool together the way a deployment does: the deployer
becomes DEFAULT_ADMIN of a fresh RoleRegistry, an optional manager receives
MANAGER, and the pool is constructed over the given custodian.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Mapping, Optional
import json

from .core import MAX_APR, Role, TooBigValue, ValidationError, require_amount
from .access import RoleRegistry
from .clock import Clock
from .pool import StakingPool


@dataclass(frozen=True, slots=True)
class PoolConfig:
    """
    Construction parameters of a StakingPool.

    Attributes:
        min_stake_amount: Smallest stake in token base units
        apr: Annual rate in basis points (0..MAX_APR)
        token_decimals: Decimals of the staked token
    """
    min_stake_amount: int
    apr: int
    token_decimals: int = 8

    def __post_init__(self):
        require_amount(self.min_stake_amount, "min_stake_amount")
        require_amount(self.apr, "apr")
        require_amount(self.token_decimals, "token_decimals")
        if self.apr > MAX_APR:
            raise TooBigValue(self.apr, MAX_APR)

    @property
    def one_token(self) -> int:
        return 10 ** self.token_decimals

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'PoolConfig':
        """
        Build a config from a plain mapping.

        min_stake_amount may be given in base units, or in whole tokens as
        min_stake_tokens. Missing keys fall back to DEFAULT_CONFIG.
        """
        unknown = set(data) - {"min_stake_amount", "min_stake_tokens", "apr", "token_decimals"}
        if unknown:
            raise ValidationError(f"unknown config keys: {sorted(unknown)}")
        if "min_stake_amount" in data and "min_stake_tokens" in data:
            raise ValidationError("give min_stake_amount or min_stake_tokens, not both")

        decimals = data.get("token_decimals", DEFAULT_CONFIG.token_decimals)
        if "min_stake_tokens" in data:
            min_stake = require_amount(data["min_stake_tokens"], "min_stake_tokens") * 10 ** decimals
        else:
            min_stake = data.get("min_stake_amount", DEFAULT_CONFIG.min_stake_amount)

        return cls(
            min_stake_amount=min_stake,
            apr=data.get("apr", DEFAULT_CONFIG.apr),
            token_decimals=decimals,
        )


DEFAULT_CONFIG = PoolConfig(
    min_stake_amount=50 * 10 ** 8,
    apr=20_00,
    token_decimals=8,
)


def load_config(path: str) -> PoolConfig:
    """Read a PoolConfig from a JSON file holding a single object."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValidationError(f"config file {path} must contain a JSON object")
    return PoolConfig.from_mapping(data)


def deploy_pool(
    config: PoolConfig,
    custodian,
    deployer: str,
    manager: Optional[str] = None,
    clock: Optional[Clock] = None,
    verbose: bool = False,
) -> StakingPool:
    """
    Deploy a pool with a fresh RoleRegistry.

    The deployer holds DEFAULT_ADMIN only; MANAGER goes to manager when one
    is given.
    """
    roles = RoleRegistry(admin=deployer)
    if manager is not None:
        roles.grant_role(deployer, Role.MANAGER, manager)
    return StakingPool(
        custodian=custodian,
        min_stake_amount=config.min_stake_amount,
        apr=config.apr,
        access=roles,
        clock=clock,
        deployer=deployer,
        verbose=verbose,
    )
