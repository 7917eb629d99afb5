"""Command line interface for the dogeord inscription tooling."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Sequence

from .config import ConfigurationError, InscriberConfig, load_config, set_default_config_path
from .errors import BroadcastError, InscriptionError, format_broadcast_hint
from .keys import PrivateKey
from .networks import NETWORKS, get_network
from .ordinals import InscriptionResult, decode_envelope, extract_envelope_ops
from .transaction import Transaction
from .wallet import InscriptionWallet

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

PREVIEW_LIMIT = 200


class CLIError(RuntimeError):
    """Raised when CLI arguments are invalid."""


def _add_config_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", default=None, help="Path to a dogeord YAML config (default: ~/.dogeord.yaml)")
    parser.add_argument("--network", choices=sorted(NETWORKS), default=None, help="Dogecoin network")
    parser.add_argument("--api-url", default=None, help="Wallet API base URL (overrides DOGEORD_API_URL)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Dogecoin inscription CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    new_key_parser = subparsers.add_parser("new-key", help="generate a fresh signing key")
    new_key_parser.add_argument("--network", choices=sorted(NETWORKS), default="mainnet", help="Dogecoin network")
    new_key_parser.add_argument("--json", dest="as_json", action="store_true", help="Emit JSON instead of text")

    address_parser = subparsers.add_parser("address", help="show the address of the configured key")
    _add_config_arguments(address_parser)

    balance_parser = subparsers.add_parser("balance", help="fetch spendable coins and show the balance")
    _add_config_arguments(balance_parser)
    balance_parser.add_argument("--json", dest="as_json", action="store_true", help="Emit JSON instead of text")

    inscribe_parser = subparsers.add_parser("inscribe", help="build and broadcast an inscription chain")
    _add_config_arguments(inscribe_parser)
    inscribe_parser.add_argument("--content-type", required=True, help="MIME type of the content (e.g. text/plain)")
    source = inscribe_parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--file", type=Path, help="Read the payload from this file")
    source.add_argument("--text", help="Use this UTF-8 text as the payload")
    inscribe_parser.add_argument("--to", dest="receiver", default=None, help="Receiver address (default: own address)")
    inscribe_parser.add_argument("--fee", type=int, default=None, help="Flat fee per transaction in koinu")
    inscribe_parser.add_argument(
        "--commit-value", type=int, default=None, help="Value of each commit output in koinu"
    )
    inscribe_parser.add_argument(
        "--dry-run", action="store_true", help="Build and sign the chain but do not broadcast it"
    )
    inscribe_parser.add_argument("--json", dest="as_json", action="store_true", help="Emit JSON instead of text")

    decode_parser = subparsers.add_parser("decode", help="recover an inscription from raw chain transactions")
    decode_parser.add_argument("raw_tx", nargs="*", help="Raw transaction hex, in chain order")
    decode_parser.add_argument(
        "--file", type=Path, default=None, help="Read raw transaction hex from a file, one per line"
    )
    decode_parser.add_argument("--output", type=Path, default=None, help="Write the payload to this file")
    decode_parser.add_argument("--json", dest="as_json", action="store_true", help="Emit JSON instead of text")

    return parser


def _config_from_args(args: argparse.Namespace) -> InscriberConfig:
    if getattr(args, "config", None):
        set_default_config_path(args.config)
    overrides = {
        "api_url": getattr(args, "api_url", None),
        "network": getattr(args, "network", None),
        "fee": getattr(args, "fee", None),
        "commit_value": getattr(args, "commit_value", None),
    }
    return load_config(overrides={key: value for key, value in overrides.items() if value is not None})


def _wallet_from_args(args: argparse.Namespace) -> InscriptionWallet:
    return InscriptionWallet.from_config(_config_from_args(args))


def _read_payload(args: argparse.Namespace) -> bytes:
    if args.file is not None:
        try:
            return args.file.read_bytes()
        except OSError as exc:
            raise CLIError(f"Could not read {args.file}: {exc}") from exc
    return args.text.encode("utf-8")


def _preview(payload: bytes) -> str:
    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError:
        return f"<{len(payload)} bytes of binary data>"
    if len(text) > PREVIEW_LIMIT:
        return text[:PREVIEW_LIMIT] + "..."
    return text


def _print_result(result: InscriptionResult, *, broadcast: bool, as_json: bool) -> None:
    if as_json:
        output: dict[str, Any] = dict(result.summary())
        output["broadcast"] = broadcast
        output["raw_transactions"] = result.raw_transactions
        print(json.dumps(output, indent=2))
        return
    summary = result.summary()
    verb = "Broadcast" if broadcast else "Built (not broadcast)"
    print(f"{verb} inscription chain of {summary['transactions']} transactions ({summary['total_bytes']} bytes)")
    for index, txid in enumerate(summary["txids"]):
        print(f"  #{index:<3} {txid}")
    print(f"Inscription txid: {result.txid}")
    print(f"Remaining balance: {summary['remaining_balance']} koinu")
    if not broadcast:
        for raw in result.raw_transactions:
            print(raw)


def cmd_new_key(args: argparse.Namespace) -> None:
    network = get_network(args.network)
    key = PrivateKey.generate()
    entry = {"network": network.name, "address": key.address(network), "wif": key.to_wif(network)}
    if args.as_json:
        print(json.dumps(entry, indent=2))
        return
    print(f"Address: {entry['address']}")
    print(f"WIF:     {entry['wif']}")


def cmd_address(args: argparse.Namespace) -> None:
    print(_wallet_from_args(args).address)


def cmd_balance(args: argparse.Namespace) -> None:
    wallet = _wallet_from_args(args)
    ledger = wallet.sync()
    if args.as_json:
        print(
            json.dumps(
                {
                    "address": wallet.address,
                    "balance": ledger.balance,
                    "coins": [
                        {"txid": coin.outpoint.txid, "vout": coin.outpoint.index, "value": coin.value}
                        for coin in ledger
                    ],
                },
                indent=2,
            )
        )
        return
    print(f"{wallet.address}: {ledger.balance} koinu in {len(ledger)} coins")


def cmd_inscribe(args: argparse.Namespace) -> None:
    payload = _read_payload(args)
    wallet = _wallet_from_args(args)
    wallet.sync()
    if args.dry_run:
        result = wallet.build_inscription(args.content_type, payload, args.receiver, commit=False)
        _print_result(result, broadcast=False, as_json=args.as_json)
        return
    try:
        result = wallet.inscribe(args.content_type, payload, args.receiver)
    except BroadcastError as exc:
        hint = format_broadcast_hint(exc.reason)
        if exc.accepted_txids:
            print("Already accepted before the failure:", file=sys.stderr)
            for txid in exc.accepted_txids:
                print(f"  {txid}", file=sys.stderr)
        if hint:
            raise CLIError(f"{exc}\nhint: {hint}") from exc
        raise
    _print_result(result, broadcast=True, as_json=args.as_json)


def cmd_decode(args: argparse.Namespace) -> None:
    raw_txs = list(args.raw_tx)
    if args.file is not None:
        try:
            raw_txs.extend(line.strip() for line in args.file.read_text().splitlines() if line.strip())
        except OSError as exc:
            raise CLIError(f"Could not read {args.file}: {exc}") from exc
    if len(raw_txs) < 2:
        raise CLIError("decode needs the whole chain: at least two raw transactions in order")

    transactions = []
    for index, raw in enumerate(raw_txs):
        try:
            transactions.append(Transaction.from_hex(raw))
        except ValueError as exc:
            raise CLIError(f"Transaction #{index} is not valid raw hex: {exc}") from exc

    content_type, payload = decode_envelope(extract_envelope_ops(transactions))
    if args.output is not None:
        args.output.write_bytes(payload)
        logger.info("Wrote %d bytes to %s", len(payload), args.output)

    if args.as_json:
        entry: dict[str, Any] = {
            "content_type": content_type,
            "length": len(payload),
            "inscription_txid": transactions[-1].txid,
            "payload_hex": payload.hex(),
        }
        print(json.dumps(entry, indent=2))
        return
    print(f"inscription {transactions[-1].txid} | content_type {content_type} | length {len(payload)}")
    print(f"  content: {_preview(payload)}")


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        if args.command == "new-key":
            cmd_new_key(args)
        elif args.command == "address":
            cmd_address(args)
        elif args.command == "balance":
            cmd_balance(args)
        elif args.command == "inscribe":
            cmd_inscribe(args)
        elif args.command == "decode":
            cmd_decode(args)
        else:  # pragma: no cover - argparse enforces choices
            raise CLIError(f"Unknown command: {args.command}")
    except KeyboardInterrupt:  # pragma: no cover - interactive use
        logger.info("Interrupted by user")
    except (CLIError, ConfigurationError, InscriptionError) as exc:
        parser.exit(1, f"error: {exc}\n")


if __name__ == "__main__":
    main(sys.argv[1:])
