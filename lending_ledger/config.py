"""Configuration loader: reads a YAML file, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from .core import (
    NULL_ADDRESS,
    RAY,
    SECONDS_IN_HOUR,
    SECONDS_IN_YEAR,
    AddressLike,
    ConfigError,
    canonical_address,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TrackedAsset:
    address: str
    a_token: str
    symbol: str
    name: str
    decimals: int


@dataclass(frozen=True)
class LedgerConfig:
    assets: tuple[TrackedAsset, ...] = ()
    ray: int = RAY
    seconds_in_year: int = SECONDS_IN_YEAR
    snapshot_interval: int = SECONDS_IN_HOUR
    null_address: str = NULL_ADDRESS
    enforce_ordering: bool = True

    def asset_for(self, address: AddressLike) -> Optional[TrackedAsset]:
        """Return the tracked asset for a reserve address, or None."""
        key = canonical_address(address)
        for asset in self.assets:
            if asset.address == key:
                return asset
        return None

    def asset_for_a_token(self, address: AddressLike) -> Optional[TrackedAsset]:
        """Return the tracked asset whose aToken is ``address``, or None."""
        key = canonical_address(address)
        for asset in self.assets:
            if asset.a_token == key:
                return asset
        return None

    def is_tracked(self, address: AddressLike) -> bool:
        return self.asset_for(address) is not None

    def is_null(self, address: AddressLike) -> bool:
        return canonical_address(address) == self.null_address


# ---------------------------------------------------------------------------
# Built-in reserves (Aave v3 on Arbitrum)
# ---------------------------------------------------------------------------

DEFAULT_ASSETS: tuple[TrackedAsset, ...] = (
    TrackedAsset(
        address="0x82af49447d8a07e3bd95bd0d56f35241523fbab1",
        a_token="0xe50fa9b3c56ffb159cb0fca61f5c9d750e8128c8",
        symbol="WETH",
        name="Wrapped Ether",
        decimals=18,
    ),
    TrackedAsset(
        address="0xaf88d065e77c8cc2239327c5edb3a432268e5831",
        a_token="0x625e7708f30ca75bfd92586e17077590c60eb4cd",
        symbol="USDC",
        name="USD Coin",
        decimals=6,
    ),
    TrackedAsset(
        address="0xfd086bc7cd5c481dcc9c85ebe478a1c0b69fcbb9",
        a_token="0x6ab707aca953edaefbc4fd23ba73294241490620",
        symbol="USDT",
        name="Tether USD",
        decimals=6,
    ),
)


def default_config() -> LedgerConfig:
    """Configuration tracking the WETH, USDC and USDT reserves."""
    cfg = LedgerConfig(assets=DEFAULT_ASSETS)
    _validate(cfg)
    return cfg


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_assets(raw: list[dict[str, Any]]) -> tuple[TrackedAsset, ...]:
    assets: list[TrackedAsset] = []
    for a in raw:
        try:
            assets.append(
                TrackedAsset(
                    address=canonical_address(str(a.get("address", ""))),
                    a_token=canonical_address(str(a.get("a_token", ""))),
                    symbol=str(a.get("symbol", "")),
                    name=str(a.get("name", "")),
                    decimals=int(a.get("decimals", 18)),
                )
            )
        except ValueError as exc:
            raise ConfigError(f"Asset '{a.get('symbol', '?')}': {exc}") from exc
    return tuple(assets)


def _build_config(raw: dict[str, Any]) -> LedgerConfig:
    constants = raw.get("constants", {}) or {}
    try:
        null_address = canonical_address(str(constants.get("null_address", NULL_ADDRESS)))
    except ValueError as exc:
        raise ConfigError(f"null_address: {exc}") from exc
    return LedgerConfig(
        assets=_build_assets(raw.get("assets", []) or []),
        ray=int(constants.get("ray", RAY)),
        seconds_in_year=int(constants.get("seconds_in_year", SECONDS_IN_YEAR)),
        snapshot_interval=int(constants.get("snapshot_interval", SECONDS_IN_HOUR)),
        null_address=null_address,
        enforce_ordering=bool(raw.get("enforce_ordering", True)),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> LedgerConfig:
    """Load and validate ledger configuration from YAML + .env.

    Args:
        config_path: Path to the YAML file. Defaults to ``config.yaml`` in the
            project root (one level up from the package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = _build_config(raw)

    _validate(cfg)
    logger.info("Configuration loaded from %s (%d tracked assets)", config_path, len(cfg.assets))
    return cfg


def _validate(cfg: LedgerConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.assets:
        raise ConfigError("At least one tracked asset must be configured")

    for name in ("ray", "seconds_in_year", "snapshot_interval"):
        if getattr(cfg, name) <= 0:
            raise ConfigError(f"{name} must be positive, got {getattr(cfg, name)}")

    seen: set[str] = set()
    for asset in cfg.assets:
        if not asset.symbol:
            raise ConfigError(f"Asset {asset.address} has no symbol")
        if asset.decimals < 0:
            raise ConfigError(f"Asset '{asset.symbol}' has negative decimals")
        for address in (asset.address, asset.a_token):
            if address in seen:
                raise ConfigError(f"Address {address} is configured more than once")
            if address == cfg.null_address:
                raise ConfigError(f"Asset '{asset.symbol}' uses the null address")
            seen.add(address)
