"""
test_config.py - Unit tests for pool configuration and deployment
"""

import json
import pytest

from staking import (
    PoolConfig, DEFAULT_CONFIG, load_config, deploy_pool,
    TokenLedger, LedgerCustodian, ManualClock, Role,
    TooBigValue, ValidationError, NegativeValue,
    EVENT_MIN_STAKE_CHANGED, EVENT_RATE_PARAM_CHANGED,
)


class TestPoolConfig:

    def test_default_deployment_parameters(self):
        assert DEFAULT_CONFIG.token_decimals == 8
        assert DEFAULT_CONFIG.min_stake_amount == 50 * 10**8
        assert DEFAULT_CONFIG.apr == 2_000
        assert DEFAULT_CONFIG.one_token == 10**8

    def test_apr_limit(self):
        PoolConfig(min_stake_amount=0, apr=10_000)
        with pytest.raises(TooBigValue):
            PoolConfig(min_stake_amount=0, apr=10_001)

    def test_negative_rejected(self):
        with pytest.raises(NegativeValue):
            PoolConfig(min_stake_amount=-1, apr=0)

    def test_from_mapping_defaults(self):
        assert PoolConfig.from_mapping({}) == DEFAULT_CONFIG

    def test_from_mapping_whole_tokens(self):
        config = PoolConfig.from_mapping({"min_stake_tokens": 10, "token_decimals": 6, "apr": 500})
        assert config.min_stake_amount == 10 * 10**6
        assert config.apr == 500

    def test_from_mapping_rejects_unknown_keys(self):
        with pytest.raises(ValidationError, match="unknown"):
            PoolConfig.from_mapping({"aprr": 1})

    def test_from_mapping_rejects_both_minimums(self):
        with pytest.raises(ValidationError):
            PoolConfig.from_mapping({"min_stake_amount": 1, "min_stake_tokens": 1})


class TestLoadConfig:

    def test_load_json(self, tmp_path):
        path = tmp_path / "pool.json"
        path.write_text(json.dumps({"min_stake_amount": 123, "apr": 1_500}))
        config = load_config(str(path))
        assert config.min_stake_amount == 123
        assert config.apr == 1_500
        assert config.token_decimals == 8

    def test_load_requires_object(self, tmp_path):
        path = tmp_path / "pool.json"
        path.write_text("[1, 2]")
        with pytest.raises(ValidationError):
            load_config(str(path))


class TestDeployPool:

    def test_roles_and_parameters(self):
        token = TokenLedger()
        pool = deploy_pool(DEFAULT_CONFIG, LedgerCustodian(token, "pool"),
                           deployer="deployer", manager="manager", clock=ManualClock(0))
        assert pool.access.has_role("deployer", Role.DEFAULT_ADMIN)
        assert not pool.access.has_role("deployer", Role.MANAGER)
        assert pool.access.has_role("manager", Role.MANAGER)
        assert pool.apr == 2_000
        assert pool.min_stake_amount == 50 * 10**8

        deploy = pool.receipts[0]
        assert deploy.operation == "deploy"
        assert deploy.caller == "deployer"
        assert [e.name for e in deploy.events] == [EVENT_MIN_STAKE_CHANGED, EVENT_RATE_PARAM_CHANGED]

    def test_without_manager(self):
        pool = deploy_pool(DEFAULT_CONFIG, LedgerCustodian(TokenLedger(), "pool"),
                           deployer="deployer", clock=ManualClock(0))
        assert pool.access.members(Role.MANAGER) == set()
