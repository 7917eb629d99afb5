"""Key handling: Base58Check, WIF private keys, signing and address scripts.

Elliptic-curve math is delegated to ``cryptography``'s secp256k1 support.
Signatures are produced over an already-computed 32-byte signature hash and
normalized to low-S form, which Dogecoin relay policy requires.
"""

from __future__ import annotations

from typing import Tuple

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import (
    Prehashed,
    decode_dss_signature,
    encode_dss_signature,
)
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from .errors import InvalidInput
from .networks import DOGECOIN_MAINNET, Network
from .script import hash160, p2pkh_script_pubkey, p2sh_script_pubkey, sha256d

b58_digits = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"

SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


def base58_encode(data: bytes) -> str:
    value = int.from_bytes(data, "big")
    output = []
    while value > 0:
        value, remainder = divmod(value, 58)
        output.append(b58_digits[remainder])
    leading_zero_count = len(data) - len(data.lstrip(b"\x00"))
    return b58_digits[0] * leading_zero_count + "".join(reversed(output))


def base58_decode(value: str) -> bytes:
    number = 0
    for character in value:
        index = b58_digits.find(character)
        if index == -1:
            raise InvalidInput(f"Invalid Base58 character: {character!r}")
        number = number * 58 + index
    body = number.to_bytes((number.bit_length() + 7) // 8, "big") if number else b""
    padding = len(value) - len(value.lstrip(b58_digits[0]))
    return b"\x00" * padding + body


def base58_check_encode(payload: bytes, version: int) -> str:
    """Encode ``payload`` with a one-byte version prefix and 4-byte checksum."""

    data = bytes([version]) + payload
    return base58_encode(data + sha256d(data)[:4])


def base58_check_decode(value: str) -> Tuple[int, bytes]:
    """Decode a Base58Check string into ``(version, payload)``, verifying the checksum."""

    raw = base58_decode(value)
    if len(raw) < 5:
        raise InvalidInput(f"Base58Check string too short: {value!r}")
    data, checksum = raw[:-4], raw[-4:]
    if sha256d(data)[:4] != checksum:
        raise InvalidInput(f"Base58Check checksum mismatch for {value!r}")
    return data[0], data[1:]


def address_to_script_pubkey(address: str, network: Network = DOGECOIN_MAINNET) -> bytes:
    """Return the locking script paying ``address`` (P2PKH or P2SH)."""

    if not address or not address.strip():
        raise InvalidInput("Receiver address must not be empty")
    version, payload = base58_check_decode(address.strip())
    if len(payload) != 20:
        raise InvalidInput(f"Address {address!r} does not carry a 20-byte hash")
    if version == network.p2pkh_version:
        return p2pkh_script_pubkey(payload)
    if version == network.p2sh_version:
        return p2sh_script_pubkey(payload)
    raise InvalidInput(f"Address {address!r} is not a {network.name} P2PKH or P2SH address")


class PrivateKey:
    """A secp256k1 signing key with Dogecoin WIF and address helpers."""

    def __init__(self, key: ec.EllipticCurvePrivateKey, compressed: bool = True) -> None:
        self._key = key
        self.compressed = compressed

    @classmethod
    def generate(cls) -> "PrivateKey":
        return cls(ec.generate_private_key(ec.SECP256K1()))

    @classmethod
    def from_secret(cls, secret: int | bytes, compressed: bool = True) -> "PrivateKey":
        if isinstance(secret, bytes):
            secret = int.from_bytes(secret, "big")
        if not 0 < secret < SECP256K1_ORDER:
            raise InvalidInput("Private key secret is out of range for secp256k1")
        return cls(ec.derive_private_key(secret, ec.SECP256K1()), compressed=compressed)

    @classmethod
    def from_wif(cls, wif: str, network: Network = DOGECOIN_MAINNET) -> "PrivateKey":
        version, payload = base58_check_decode(wif.strip())
        if version != network.wif_version:
            raise InvalidInput(f"WIF key is not for Dogecoin {network.name} (version 0x{version:02x})")
        if len(payload) == 33 and payload[-1] == 0x01:
            return cls.from_secret(payload[:32], compressed=True)
        if len(payload) == 32:
            return cls.from_secret(payload, compressed=False)
        raise InvalidInput("WIF payload has an unexpected length")

    @property
    def secret(self) -> int:
        return self._key.private_numbers().private_value

    def to_wif(self, network: Network = DOGECOIN_MAINNET) -> str:
        payload = self.secret.to_bytes(32, "big")
        if self.compressed:
            payload += b"\x01"
        return base58_check_encode(payload, network.wif_version)

    @property
    def public_key(self) -> bytes:
        point_format = PublicFormat.CompressedPoint if self.compressed else PublicFormat.UncompressedPoint
        return self._key.public_key().public_bytes(Encoding.X962, point_format)

    @property
    def verifying_key(self) -> ec.EllipticCurvePublicKey:
        return self._key.public_key()

    @property
    def pubkey_hash(self) -> bytes:
        return hash160(self.public_key)

    @property
    def script_pubkey(self) -> bytes:
        """P2PKH locking script for this key; change and funding coins use it."""
        return p2pkh_script_pubkey(self.pubkey_hash)

    def address(self, network: Network = DOGECOIN_MAINNET) -> str:
        return base58_check_encode(self.pubkey_hash, network.p2pkh_version)

    def sign_digest(self, digest: bytes) -> bytes:
        """Sign a 32-byte digest and return a strict-DER, low-S signature."""

        if len(digest) != 32:
            raise ValueError(f"Signature hash must be 32 bytes, got {len(digest)}")
        der = self._key.sign(digest, ec.ECDSA(Prehashed(hashes.SHA256())))
        r, s = decode_dss_signature(der)
        if s > SECP256K1_ORDER // 2:
            s = SECP256K1_ORDER - s
        return encode_dss_signature(r, s)

    def __repr__(self) -> str:
        return f"PrivateKey(pubkey={self.public_key.hex()})"
