import pytest

from dogeord.errors import (
    BroadcastError,
    ChainStepError,
    ExternalServiceError,
    InscriptionError,
    InsufficientFunds,
    InvalidInput,
    SigningError,
    format_broadcast_hint,
)


@pytest.mark.parametrize(
    "reason, fragment",
    [
        ("66: min relay fee not met", "--fee"),
        ("bad-txns-inputs-missingorspent", "dogeord balance"),
        ("Missing inputs", "resync"),
        ("mandatory-script-verify-flag-failed (Signature must be zero)", "signature"),
        ("64: dust", "commit value"),
        ("64: too-long-mempool-chain", "confirm"),
    ],
)
def test_format_broadcast_hint_recognises_node_rejections(reason: str, fragment: str) -> None:
    hint = format_broadcast_hint(reason)

    assert hint is not None
    assert fragment in hint


def test_format_broadcast_hint_accepts_error_instances() -> None:
    error = BroadcastError("min relay fee not met", tx_index=2)

    assert format_broadcast_hint(error) is not None
    assert format_broadcast_hint("something unusual") is None
    assert format_broadcast_hint(None) is None


def test_broadcast_error_message_names_position() -> None:
    error = BroadcastError("dust", tx_index=3, accepted_txids=["a", "b", "c"])

    assert str(error) == "Broadcast rejected at chain transaction #3: dust"
    assert error.accepted_txids == ["a", "b", "c"]
    assert isinstance(error, ExternalServiceError)


def test_chain_step_errors_gain_position_once_attached() -> None:
    error = InsufficientFunds(required=10, available=3)
    assert "chain transaction" not in str(error)

    attached = error.at_step(4, ["tx0", "tx1"])

    assert attached is error
    assert str(error).endswith("(chain transaction #4)")
    assert error.built == ["tx0", "tx1"]


def test_error_hierarchy() -> None:
    assert issubclass(InvalidInput, ValueError)
    assert issubclass(InvalidInput, InscriptionError)
    assert issubclass(SigningError, ChainStepError)
    assert issubclass(InsufficientFunds, InscriptionError)
    assert issubclass(InscriptionError, RuntimeError)
