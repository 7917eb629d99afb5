from __future__ import annotations

import pytest
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed, decode_dss_signature

from dogeord.errors import InvalidInput
from dogeord.keys import (
    SECP256K1_ORDER,
    PrivateKey,
    address_to_script_pubkey,
    base58_check_decode,
    base58_check_encode,
    base58_decode,
    base58_encode,
)
from dogeord.networks import DOGECOIN_MAINNET, DOGECOIN_TESTNET, get_network
from dogeord.script import p2pkh_script_pubkey, p2sh_script_pubkey, sha256d


def test_generator_key_matches_known_hash() -> None:
    key = PrivateKey.from_secret(1)

    assert key.public_key.hex() == "0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"
    assert key.pubkey_hash.hex() == "751e76e8199196d454941c45d1b3a323f1433bd6"
    assert key.script_pubkey == p2pkh_script_pubkey(key.pubkey_hash)


def test_mainnet_address_starts_with_d() -> None:
    key = PrivateKey.from_secret(0x1234567890ABCDEF)

    address = key.address(DOGECOIN_MAINNET)

    assert address.startswith("D")
    assert address_to_script_pubkey(address, DOGECOIN_MAINNET) == key.script_pubkey


def test_wif_round_trip_on_both_networks() -> None:
    key = PrivateKey.generate()

    for network in (DOGECOIN_MAINNET, DOGECOIN_TESTNET):
        restored = PrivateKey.from_wif(key.to_wif(network), network)
        assert restored.secret == key.secret
        assert restored.public_key == key.public_key


def test_mainnet_wif_starts_with_q() -> None:
    # Compressed mainnet WIFs use version 0x9e and always begin with "Q".
    assert PrivateKey.from_secret(7).to_wif(DOGECOIN_MAINNET).startswith("Q")


def test_wif_for_wrong_network_is_rejected() -> None:
    wif = PrivateKey.from_secret(5).to_wif(DOGECOIN_TESTNET)

    with pytest.raises(InvalidInput):
        PrivateKey.from_wif(wif, DOGECOIN_MAINNET)


def test_uncompressed_wif_keeps_compression_flag() -> None:
    key = PrivateKey.from_secret(9, compressed=False)

    restored = PrivateKey.from_wif(key.to_wif())

    assert restored.compressed is False
    assert len(restored.public_key) == 65


def test_secret_out_of_range_is_rejected() -> None:
    with pytest.raises(InvalidInput):
        PrivateKey.from_secret(0)
    with pytest.raises(InvalidInput):
        PrivateKey.from_secret(SECP256K1_ORDER)


def test_base58_preserves_leading_zeros() -> None:
    data = b"\x00\x00\x01\x02"

    assert base58_encode(data).startswith("11")
    assert base58_decode(base58_encode(data)) == data


def test_base58_check_detects_corruption() -> None:
    encoded = base58_check_encode(b"\x42" * 20, 0x1E)
    version, payload = base58_check_decode(encoded)
    assert (version, payload) == (0x1E, b"\x42" * 20)

    corrupted = encoded[:-1] + ("2" if encoded[-1] != "2" else "3")
    with pytest.raises(InvalidInput):
        base58_check_decode(corrupted)


def test_p2sh_address_maps_to_p2sh_script() -> None:
    address = base58_check_encode(b"\x07" * 20, DOGECOIN_MAINNET.p2sh_version)

    assert address.startswith("A") or address.startswith("9")
    assert address_to_script_pubkey(address) == p2sh_script_pubkey(b"\x07" * 20)


@pytest.mark.parametrize("address", ["", "   "])
def test_empty_address_is_rejected(address: str) -> None:
    with pytest.raises(InvalidInput):
        address_to_script_pubkey(address)


def test_testnet_address_is_rejected_on_mainnet() -> None:
    address = PrivateKey.from_secret(3).address(DOGECOIN_TESTNET)

    assert address.startswith("n")
    with pytest.raises(InvalidInput):
        address_to_script_pubkey(address, DOGECOIN_MAINNET)


def test_sign_digest_is_low_s_and_verifies() -> None:
    key = PrivateKey.generate()
    digest = sha256d(b"dogeord")

    for _ in range(8):
        signature = key.sign_digest(digest)
        _, s = decode_dss_signature(signature)
        assert s <= SECP256K1_ORDER // 2
        key.verifying_key.verify(signature, digest, ec.ECDSA(Prehashed(hashes.SHA256())))


def test_sign_digest_requires_32_bytes() -> None:
    with pytest.raises(ValueError):
        PrivateKey.from_secret(2).sign_digest(b"short")


def test_get_network_by_name() -> None:
    assert get_network("Testnet") is DOGECOIN_TESTNET
    assert get_network(DOGECOIN_MAINNET) is DOGECOIN_MAINNET
    with pytest.raises(InvalidInput):
        get_network("regtest")
