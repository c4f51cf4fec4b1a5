"""Unit tests for config loading, env interpolation, and validation."""
from __future__ import annotations

from dataclasses import FrozenInstanceError, replace
from pathlib import Path

import pytest

from lending_ledger import (
    RAY,
    ConfigError,
    DEFAULT_ASSETS,
    LedgerConfig,
    TrackedAsset,
    default_config,
    load_config,
)
from lending_ledger.config import _interpolate_env, _validate

from tests.factories import A_USDC, DAI, NULL, USDC, WETH


VALID_YAML = """\
assets:
  - symbol: USDC
    name: USD Coin
    decimals: 6
    address: "0xaf88d065e77c8cC2239327C5EDb3A432268e5831"
    a_token: "0x625E7708f30cA75bfd92586e17077590C60eb4cD"
constants:
  snapshot_interval: 900
enforce_ordering: false
"""


@pytest.fixture
def sample_yaml_path(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(VALID_YAML)
    return path


class TestInterpolateEnv:
    def test_simple_substitution(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LEDGER_ADDR", USDC)
        assert _interpolate_env("${LEDGER_ADDR}") == USDC

    def test_missing_var_becomes_empty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NONEXISTENT_LEDGER_VAR", raising=False)
        assert _interpolate_env("${NONEXISTENT_LEDGER_VAR}") == ""

    def test_nested_structures(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SYM", "USDC")
        result = _interpolate_env({"assets": [{"symbol": "${SYM}", "decimals": 6}]})
        assert result == {"assets": [{"symbol": "USDC", "decimals": 6}]}

    def test_non_string_passthrough(self) -> None:
        assert _interpolate_env(42) == 42
        assert _interpolate_env(None) is None


class TestLoadConfig:
    def test_loads_valid_yaml(self, sample_yaml_path: Path) -> None:
        cfg = load_config(sample_yaml_path)
        assert isinstance(cfg, LedgerConfig)
        assert len(cfg.assets) == 1
        assert cfg.assets[0].symbol == "USDC"
        assert cfg.snapshot_interval == 900
        assert cfg.enforce_ordering is False
        assert cfg.ray == RAY

    def test_addresses_are_lowercased(self, sample_yaml_path: Path) -> None:
        cfg = load_config(sample_yaml_path)
        assert cfg.assets[0].address == USDC
        assert cfg.assets[0].a_token == A_USDC

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nonexistent.yaml")

    def test_project_config_matches_defaults(self) -> None:
        cfg = load_config()
        assert cfg.assets == DEFAULT_ASSETS
        assert cfg.enforce_ordering is True

    def test_env_interpolation_in_yaml(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("DAI_ADDRESS", DAI)
        path = tmp_path / "config.yaml"
        path.write_text(
            "assets:\n"
            "  - symbol: DAI\n"
            "    name: Dai\n"
            "    decimals: 18\n"
            '    address: "${DAI_ADDRESS}"\n'
            '    a_token: "0x82E64f49Ed5EC1bC6e43DAD4FC8Af9bb3A2312EE"\n'
        )
        cfg = load_config(path)
        assert cfg.is_tracked(DAI)

    def test_invalid_address_raises_config_error(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text(
            "assets:\n"
            "  - symbol: BAD\n"
            "    address: \"0x1234\"\n"
            f"    a_token: \"{A_USDC}\"\n"
        )
        with pytest.raises(ConfigError, match="BAD"):
            load_config(path)

    def test_empty_file_has_no_assets(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("")
        with pytest.raises(ConfigError, match="At least one"):
            load_config(path)


class TestValidation:
    def test_default_config_is_valid(self) -> None:
        _validate(default_config())

    def test_non_positive_constants_rejected(self) -> None:
        for name in ("ray", "seconds_in_year", "snapshot_interval"):
            with pytest.raises(ConfigError, match=name):
                _validate(replace(default_config(), **{name: 0}))

    def test_duplicate_address_rejected(self) -> None:
        cfg = LedgerConfig(assets=DEFAULT_ASSETS + (DEFAULT_ASSETS[0],))
        with pytest.raises(ConfigError, match="more than once"):
            _validate(cfg)

    def test_null_address_asset_rejected(self) -> None:
        asset = TrackedAsset(address=NULL, a_token=A_USDC, symbol="X", name="X", decimals=0)
        with pytest.raises(ConfigError, match="null address"):
            _validate(LedgerConfig(assets=(asset,)))

    def test_missing_symbol_rejected(self) -> None:
        asset = replace(DEFAULT_ASSETS[1], symbol="")
        with pytest.raises(ConfigError, match="no symbol"):
            _validate(LedgerConfig(assets=(asset,)))

    def test_config_error_is_value_error(self) -> None:
        assert issubclass(ConfigError, ValueError)


class TestLedgerConfig:
    def test_frozen(self) -> None:
        cfg = default_config()
        with pytest.raises(FrozenInstanceError):
            cfg.ray = 1  # type: ignore[misc]

    def test_asset_lookup_accepts_mixed_case(self) -> None:
        cfg = default_config()
        asset = cfg.asset_for("0x82aF49447D8a07e3bd95BD0d56f35241523fBab1")
        assert asset is not None
        assert asset.symbol == "WETH"
        assert asset.address == WETH

    def test_untracked_asset(self) -> None:
        cfg = default_config()
        assert cfg.asset_for(DAI) is None
        assert not cfg.is_tracked(DAI)

    def test_a_token_lookup(self) -> None:
        cfg = default_config()
        assert cfg.asset_for_a_token(A_USDC).address == USDC
        assert cfg.asset_for_a_token(USDC) is None

    def test_is_null(self) -> None:
        cfg = default_config()
        assert cfg.is_null(NULL)
        assert not cfg.is_null(USDC)
