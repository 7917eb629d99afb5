"""HTTP client for the wallet API: UTXO lookup and transaction broadcast.

Both responses are checked against an explicit schema before use. A payload
that does not match is rejected outright rather than partially consumed.

UTXO lookup::

    GET {base_url}/address/btc-utxo?address=<address>
    {"result": [{"txId": str, "outputIndex": int, "scriptPk": hex, "satoshis": int}, ...]}

Broadcast::

    POST {base_url}/tx/broadcast  {"rawTx": hex}
    {"status": "1", "result": txid}  or  {"status": "0", "message": reason}
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List

import requests
from requests import RequestException, Response

from .config import APIConfig
from .errors import APITransportError, IndexerError

logger = logging.getLogger(__name__)

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


@dataclass(frozen=True)
class UTXORecord:
    """One spendable output as reported by the coin source."""

    txid: str
    vout: int
    script: bytes
    value: int

    @classmethod
    def from_json(cls, item: Any) -> "UTXORecord":
        if not isinstance(item, dict):
            raise IndexerError(f"UTXO entry must be an object, got {type(item).__name__}")
        txid = item.get("txId")
        vout = item.get("outputIndex")
        script_hex = item.get("scriptPk")
        value = item.get("satoshis")
        if not isinstance(txid, str) or len(txid) != 64 or not set(txid) <= _HEX_DIGITS:
            raise IndexerError(f"UTXO entry has an invalid txId: {txid!r}")
        if not isinstance(vout, int) or isinstance(vout, bool) or vout < 0:
            raise IndexerError(f"UTXO entry {txid} has an invalid outputIndex: {vout!r}")
        if not isinstance(script_hex, str):
            raise IndexerError(f"UTXO entry {txid}:{vout} has no scriptPk")
        try:
            script = bytes.fromhex(script_hex)
        except ValueError as exc:
            raise IndexerError(f"UTXO entry {txid}:{vout} has a non-hex scriptPk") from exc
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise IndexerError(f"UTXO entry {txid}:{vout} has an invalid satoshis value: {value!r}")
        return cls(txid=txid.lower(), vout=vout, script=script, value=value)


@dataclass(frozen=True)
class BroadcastReceipt:
    """Outcome of submitting one transaction."""

    accepted: bool
    txid: str | None = None
    reason: str | None = None

    @classmethod
    def from_json(cls, payload: Any) -> "BroadcastReceipt":
        if not isinstance(payload, dict) or "status" not in payload:
            raise APITransportError("Broadcast response must be an object with a 'status' field")
        if str(payload["status"]) == "1":
            txid = payload.get("result")
            if not isinstance(txid, str) or not txid:
                raise APITransportError("Accepted broadcast response carries no transaction id")
            return cls(accepted=True, txid=txid)
        reason = payload.get("message")
        return cls(accepted=False, reason=str(reason) if reason is not None else "unknown rejection")


class WalletAPIClient:
    """Thin client over the wallet API's UTXO and broadcast endpoints.

    It satisfies both the coin source (:meth:`fetch_utxos`) and the broadcast
    sink (:meth:`broadcast`) used by :mod:`dogeord.wallet`. The base URL and
    timeout come from :class:`dogeord.config.APIConfig`.
    """

    def __init__(self, config: APIConfig | None = None, session: requests.Session | None = None) -> None:
        self.config = config or APIConfig()
        self._session = session or requests.Session()
        self._base_url = self.config.base_url.rstrip("/")

    def fetch_utxos(self, address: str) -> List[UTXORecord]:
        """Return the current spendable outputs of ``address``."""

        payload = self._request("GET", "/address/btc-utxo", params={"address": address}, error_cls=IndexerError)
        if not isinstance(payload, dict):
            raise IndexerError("UTXO response must be a JSON object")
        result = payload.get("result")
        if result is None:
            message = payload.get("message") or "no 'result' field"
            raise IndexerError(f"Could not fetch UTXOs for {address}: {message}")
        if not isinstance(result, list):
            raise IndexerError("UTXO response 'result' must be a list")
        records = [UTXORecord.from_json(item) for item in result]
        logger.info("Fetched %d UTXOs for %s", len(records), address)
        return records

    def broadcast(self, raw_tx: str) -> BroadcastReceipt:
        """Submit one signed transaction and report whether the relay accepted it."""

        payload = self._request("POST", "/tx/broadcast", json={"rawTx": raw_tx}, error_cls=APITransportError)
        receipt = BroadcastReceipt.from_json(payload)
        if receipt.accepted:
            logger.info("Broadcasted transaction %s", receipt.txid)
        else:
            logger.warning("Relay rejected transaction: %s", receipt.reason)
        return receipt

    def _request(self, method: str, path: str, *, error_cls: type[Exception], **kwargs: Any) -> Any:
        url = f"{self._base_url}{path}"
        logger.debug("%s %s", method, url)
        try:
            response = self._session.request(
                method,
                url,
                headers={"accept": "application/json"},
                timeout=self.config.timeout,
                **kwargs,
            )
        except RequestException as exc:
            logger.error(
                "Wallet API connection failed: %s",
                exc,
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
            raise error_cls(
                f"Wallet API request to {url} failed; check connectivity and DOGEORD_API_URL (or api.url in ~/.dogeord.yaml)."
            ) from exc
        self._raise_for_status(response, error_cls)
        try:
            return response.json()
        except ValueError as exc:
            logger.debug("Wallet API JSON parse error: %s", response.text, exc_info=True)
            raise error_cls(f"Wallet API returned malformed JSON from {url}") from exc

    def _raise_for_status(self, response: Response, error_cls: type[Exception]) -> None:
        if response.ok:
            return
        logger.error("Wallet API HTTP error %s from %s", response.status_code, response.url)
        logger.error("Wallet API error body: %s", response.text)
        if issubclass(error_cls, APITransportError):
            raise error_cls(f"Wallet API returned HTTP {response.status_code}", status_code=response.status_code)
        raise error_cls(f"Wallet API returned HTTP {response.status_code}")
