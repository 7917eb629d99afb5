"""Error taxonomy shared by the inscription builders and service clients."""

from __future__ import annotations

from typing import Sequence


class InscriptionError(RuntimeError):
    """Base class for every error raised by dogeord."""


class InvalidInput(InscriptionError, ValueError):
    """Raised before any signing or network work when caller input is unusable."""


class ChainStepError(InscriptionError):
    """An error tied to a specific transaction position in an inscription chain.

    ``tx_index`` is the zero-based position of the transaction being built when
    the failure happened; ``built`` holds the transactions completed before it.
    Completed transactions are never rolled back, so callers can inspect them.
    """

    def __init__(self, message: str, *, tx_index: int | None = None, built: Sequence = ()) -> None:
        super().__init__(message)
        self.tx_index = tx_index
        self.built = list(built)

    def at_step(self, tx_index: int, built: Sequence) -> "ChainStepError":
        self.tx_index = tx_index
        self.built = list(built)
        return self

    def __str__(self) -> str:
        message = super().__str__()
        if self.tx_index is None:
            return message
        return f"{message} (chain transaction #{self.tx_index})"


class InsufficientFunds(ChainStepError):
    """Raised when the coin ledger cannot cover outputs plus fee."""

    def __init__(self, required: int, available: int, **kwargs) -> None:
        super().__init__(
            f"Insufficient funds: need {required} koinu, ledger holds {available} koinu",
            **kwargs,
        )
        self.required = required
        self.available = available


class SigningError(ChainStepError):
    """Raised when an input cannot be matched to the coin or link it spends."""


class ExternalServiceError(InscriptionError):
    """Base for failures reported by the coin source or broadcast sink."""


class APITransportError(ExternalServiceError):
    """Raised when the wallet API is unreachable or returns malformed data."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class IndexerError(ExternalServiceError):
    """Raised when the UTXO lookup fails or returns an unexpected shape."""


class BroadcastError(ExternalServiceError):
    """Raised when a chain transaction is rejected by the relay.

    ``accepted_txids`` lists the transactions that were already accepted; every
    transaction after ``tx_index`` remains unsent and depends on outputs of the
    accepted ones, so the chain needs manual reconciliation.
    """

    def __init__(
        self,
        reason: str,
        *,
        tx_index: int | None = None,
        accepted_txids: Sequence[str] = (),
    ) -> None:
        location = f" at chain transaction #{tx_index}" if tx_index is not None else ""
        super().__init__(f"Broadcast rejected{location}: {reason}")
        self.reason = reason
        self.tx_index = tx_index
        self.accepted_txids = list(accepted_txids)


def format_broadcast_hint(reason: str | BroadcastError | None) -> str | None:
    """Return a human-friendly hint for common relay rejections.

    Only well-known node policy messages are recognised; anything else returns
    ``None`` and the raw reason should be shown on its own.
    """

    if reason is None:
        return None
    message = reason.reason if isinstance(reason, BroadcastError) else str(reason)
    lowered = message.lower()

    if "min relay fee not met" in lowered or "insufficient fee" in lowered:
        return "The relay wants a higher fee. Raise --fee (or wallet.fee in ~/.dogeord.yaml) and rebuild the chain."
    if "missing inputs" in lowered or "missingorspent" in lowered or "bad-txns-inputs" in lowered:
        return (
            "An input is unknown or already spent. Run `dogeord balance` to resync coins; if earlier "
            "chain transactions were accepted, the remaining ones must be rebuilt from them."
        )
    if "mandatory-script-verify-flag-failed" in lowered or "non-mandatory-script-verify-flag" in lowered:
        return "The node rejected a signature or unlocking script; check that the key matches the funding address."
    if "dust" in lowered:
        return "An output is below the dust threshold; increase the commit value."
    if "too-long-mempool-chain" in lowered:
        return "Too many unconfirmed ancestors; wait for earlier chain transactions to confirm before continuing."
    return None
