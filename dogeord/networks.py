"""Dogecoin network parameters used for address and key encoding."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import InvalidInput


@dataclass(frozen=True)
class Network:
    name: str
    p2pkh_version: int
    p2sh_version: int
    wif_version: int


DOGECOIN_MAINNET = Network(name="mainnet", p2pkh_version=0x1E, p2sh_version=0x16, wif_version=0x9E)
DOGECOIN_TESTNET = Network(name="testnet", p2pkh_version=0x71, p2sh_version=0xC4, wif_version=0xF1)

NETWORKS = {network.name: network for network in (DOGECOIN_MAINNET, DOGECOIN_TESTNET)}


def get_network(name: str | Network) -> Network:
    """Resolve a network by name (``mainnet`` or ``testnet``)."""

    if isinstance(name, Network):
        return name
    try:
        return NETWORKS[name.strip().lower()]
    except KeyError as exc:
        raise InvalidInput(f"Unknown network: {name!r} (expected one of {', '.join(NETWORKS)})") from exc
