"""Inscription envelope, packing, lock scripts and chain assembly.

The public entry point is :func:`inscribe`, which turns a content type and
payload into a signed chain of P2SH commit transactions followed by a final
transfer to the receiver.
"""

from dogeord.ordinals.chain import (
    COMMIT_VALUE,
    DEFAULT_FEE,
    ChainAssembler,
    ChainState,
    InscriptionResult,
    inscribe,
)
from dogeord.ordinals.envelope import (
    ENVELOPE_MARKER,
    MAX_CHUNK_LEN,
    EnvelopeOp,
    chunk_payload,
    decode_envelope,
    encode_envelope,
    extract_envelope_ops,
)
from dogeord.ordinals.lock_scripts import (
    CommitLink,
    build_lock_script,
    build_unlock_script,
    p2sh_script_pubkey,
)
from dogeord.ordinals.packer import (
    MAX_PAYLOAD_LEN,
    PartialScript,
    PartialScriptPacker,
    next_partial_script,
    pack_envelope,
)
from dogeord.ordinals.signer import sign_chain_link, sign_funding_inputs

__all__ = [
    "COMMIT_VALUE",
    "DEFAULT_FEE",
    "ENVELOPE_MARKER",
    "MAX_CHUNK_LEN",
    "MAX_PAYLOAD_LEN",
    "ChainAssembler",
    "ChainState",
    "CommitLink",
    "EnvelopeOp",
    "InscriptionResult",
    "PartialScript",
    "PartialScriptPacker",
    "build_lock_script",
    "build_unlock_script",
    "chunk_payload",
    "decode_envelope",
    "encode_envelope",
    "extract_envelope_ops",
    "inscribe",
    "next_partial_script",
    "p2sh_script_pubkey",
    "pack_envelope",
    "sign_chain_link",
    "sign_funding_inputs",
]
