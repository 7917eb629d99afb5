"""Shared configuration loader for dogeord."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlparse

import yaml

from .networks import Network, get_network
from .errors import InvalidInput


class ConfigurationError(RuntimeError):
    """Raised when configuration is invalid."""


DEFAULT_CONFIG_PATH = Path.home() / ".dogeord.yaml"
DEFAULT_API_URL = "https://wallet-api.dogeord.io"
DEFAULT_API_TIMEOUT = 30.0
DEFAULT_FEE_KOINU = 10_000_000
DEFAULT_COMMIT_VALUE_KOINU = 100_000
_CONFIG_PATH_OVERRIDE: Path | None = None


@dataclass
class APIConfig:
    """Connection details for the wallet API (UTXO lookup and broadcast)."""

    base_url: str = DEFAULT_API_URL
    timeout: float = DEFAULT_API_TIMEOUT


@dataclass
class WalletConfig:
    """Key and fee settings for building inscription chains."""

    wif: str | None = None
    network: Network = field(default_factory=lambda: get_network("mainnet"))
    fee: int = DEFAULT_FEE_KOINU
    commit_value: int = DEFAULT_COMMIT_VALUE_KOINU


@dataclass
class InscriberConfig:
    api: APIConfig
    wallet: WalletConfig


def set_default_config_path(path: str | Path | None) -> None:
    """Remember a user-supplied config path for future loads."""

    global _CONFIG_PATH_OVERRIDE
    _CONFIG_PATH_OVERRIDE = Path(path).expanduser() if path else None


def _load_config_file(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigurationError(f"Config file not found: {path}")
        return {}

    try:
        loaded = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as exc:  # pragma: no cover - delegated to PyYAML
        raise ConfigurationError(f"Invalid YAML in config file {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigurationError(f"Expected {path} to contain a YAML object with 'api'/'wallet' sections")
    return loaded


def _section(file_config: dict[str, Any], name: str, path: Path) -> dict[str, Any]:
    section = file_config.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"Expected '{name}' to be a mapping in {path}")
    return section


def _coerce_int(raw: Any, *, source: str) -> int | None:
    if raw is None:
        return None
    try:
        value = int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid integer in {source}: {raw}") from exc
    if value < 0:
        raise ConfigurationError(f"Negative value in {source}: {raw}")
    return value


def _coerce_float(raw: Any, *, source: str) -> float | None:
    if raw is None:
        return None
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid number in {source}: {raw}") from exc


def _first_value(*values: Any, default: Any = None) -> Any:
    for value in values:
        if value is not None:
            return value
    return default


def _validate_url(raw: str) -> str:
    parsed = urlparse(raw)
    if parsed.scheme not in {"http", "https"} or not parsed.hostname:
        raise ConfigurationError(f"Invalid wallet API URL: {raw}")
    return raw.rstrip("/")


def load_config(
    *,
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> InscriberConfig:
    """Load configuration from overrides, environment variables and optional YAML.

    Overrides win over ``DOGEORD_*`` environment variables, which win over the
    ``api``/``wallet`` sections of the YAML file.
    """

    env_map = os.environ if env is None else env
    explicit_path = config_path is not None or _CONFIG_PATH_OVERRIDE is not None
    path = (
        Path(config_path).expanduser()
        if config_path is not None
        else _CONFIG_PATH_OVERRIDE or DEFAULT_CONFIG_PATH
    )

    file_config = _load_config_file(path, required=explicit_path)
    api_section = _section(file_config, "api", path)
    wallet_section = _section(file_config, "wallet", path)
    override_map = dict(overrides or {})

    base_url = _first_value(
        override_map.get("api_url"), env_map.get("DOGEORD_API_URL"), api_section.get("url"), DEFAULT_API_URL
    )
    timeout = _first_value(
        _coerce_float(override_map.get("timeout"), source="overrides"),
        _coerce_float(env_map.get("DOGEORD_API_TIMEOUT"), source="environment"),
        _coerce_float(api_section.get("timeout"), source=f"{path} api.timeout"),
        DEFAULT_API_TIMEOUT,
    )

    network_name = _first_value(
        override_map.get("network"), env_map.get("DOGEORD_NETWORK"), wallet_section.get("network"), "mainnet"
    )
    try:
        network = get_network(network_name)
    except InvalidInput as exc:
        raise ConfigurationError(str(exc)) from exc

    fee = _first_value(
        _coerce_int(override_map.get("fee"), source="overrides"),
        _coerce_int(env_map.get("DOGEORD_FEE"), source="environment"),
        _coerce_int(wallet_section.get("fee"), source=f"{path} wallet.fee"),
        DEFAULT_FEE_KOINU,
    )
    commit_value = _first_value(
        _coerce_int(override_map.get("commit_value"), source="overrides"),
        _coerce_int(env_map.get("DOGEORD_COMMIT_VALUE"), source="environment"),
        _coerce_int(wallet_section.get("commit_value"), source=f"{path} wallet.commit_value"),
        DEFAULT_COMMIT_VALUE_KOINU,
    )
    if commit_value == 0:
        raise ConfigurationError("Commit value must be greater than zero")

    wif = _first_value(override_map.get("wif"), env_map.get("DOGEORD_WIF"), wallet_section.get("wif"))

    return InscriberConfig(
        api=APIConfig(base_url=_validate_url(str(base_url)), timeout=float(timeout)),
        wallet=WalletConfig(wif=wif, network=network, fee=fee, commit_value=commit_value),
    )
