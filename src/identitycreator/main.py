"""
identitycreator entry point.

Validates the identity given on the command line, then registers it on the
node.  SIGINT / SIGTERM cancel the confirmation wait.

Usage::

    identitycreator aaaaah --testnet --currency geckotest \\
        --address RP1sexQNvjGPohJkK9JnuPDH7V7NboycGj \\
        --content-map '{"deadbeef": "deadbeef"}'
"""

from __future__ import annotations

import argparse
import json
import logging
import signal
import threading
from pathlib import Path
from typing import Any

from identitycreator.address import InvalidAddress
from identitycreator.identity import (
    IdentityRequestBuilder,
    RegistrationError,
    RegistrationOrchestrator,
    ValidationError,
)
from identitycreator.rpc import NameCommitment, NodeConfigError, VerusClient
from identitycreator.settings import settings
from identitycreator.util.logging import setup_logging

logger = logging.getLogger("identitycreator")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="identitycreator",
        description="Commit to and register a Verus identity through a node's RPC.",
    )
    parser.add_argument("name", help="identity name to register")
    parser.add_argument(
        "--address",
        dest="addresses",
        action="append",
        default=[],
        metavar="ADDR",
        help="primary address (repeatable); the first one controls the commitment",
    )
    parser.add_argument("--testnet", action="store_true", default=None, help="use the testnet chain")
    parser.add_argument("--currency", help="currency/chain the identity is created on")
    parser.add_argument("--referral", help="referring identity")
    parser.add_argument("--minimum-signatures", type=int)
    parser.add_argument("--private-address", help="shielded address for the identity")
    parser.add_argument("--content-map", metavar="JSON", help="hex key -> hex value JSON object")
    parser.add_argument("--lookup", choices=["wallet", "raw"], help="transaction lookup used while polling")
    parser.add_argument("--timeout", type=float, metavar="SECONDS", help="give up waiting for confirmation after this long")
    parser.add_argument("--resume-from", type=Path, metavar="FILE", help="commitment JSON saved by an earlier run")
    parser.add_argument("--log-level", default=None)
    return parser


def _build_request(args: argparse.Namespace):
    builder = IdentityRequestBuilder().set_name(args.name)
    builder.set_network(settings.TESTNET if args.testnet is None else args.testnet)
    for address in args.addresses:
        builder.add_primary_address(address)
    if args.currency:
        builder.set_currency_context(args.currency)
    if args.referral:
        builder.set_referral(args.referral)
    if args.minimum_signatures is not None:
        builder.set_minimum_signatures(args.minimum_signatures)
    if args.private_address:
        builder.set_private_address(args.private_address)
    if args.content_map:
        builder.set_content_map(json.loads(args.content_map))
    return builder.validate()


def _commitment_path(name: str) -> Path:
    return Path(f"{name}.commitment.json")


def _load_commitment(path: Path) -> NameCommitment:
    return NameCommitment.model_validate_json(path.read_text(encoding="utf-8"))


def _save_commitment(commitment: NameCommitment, path: Path) -> None:
    path.write_text(json.dumps(commitment.to_rpc(), indent=2), encoding="utf-8")


def _report_resumable(name: str, exc: RegistrationError) -> None:
    """Save the commitment of a failed run so it can be resumed."""
    path = _commitment_path(name)
    try:
        _save_commitment(exc.commitment, path)
    except OSError as save_exc:
        logger.error("cannot save commitment to %s: %s", path, save_exc)
        logger.error(
            "something went wrong in %s: %s (commitment: %s)",
            exc.phase.value,
            exc,
            json.dumps(exc.commitment.to_rpc()),
        )
        return

    logger.error(
        "something went wrong in %s: %s (resume with --resume-from %s)",
        exc.phase.value,
        exc,
        path,
    )


def main(argv: list[str] | None = None) -> int:
    """Entry point for the ``identitycreator`` console script.

    Returns 0 on success, 2 when the request is invalid and 1 when the
    registration itself failed.
    """
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level or settings.LOG_LEVEL)

    try:
        request = _build_request(args)
    except json.JSONDecodeError as exc:
        logger.error("--content-map is not valid JSON: %s", exc)
        return 2
    except (ValidationError, InvalidAddress) as exc:
        logger.error("invalid identity request: %s", exc)
        return 2

    commitment = None
    if args.resume_from:
        try:
            commitment = _load_commitment(args.resume_from)
        except (OSError, ValueError) as exc:
            logger.error("cannot load commitment from %s: %s", args.resume_from, exc)
            return 2

    chain = settings.chain_name(request.testnet)
    logger.info("creating identity %r on %s", request.name, chain)

    cancel = threading.Event()

    def _handle_signal(signum: int, frame: Any) -> None:
        logger.info("Received %s -- cancelling registration...", signal.Signals(signum).name)
        cancel.set()

    previous = {
        sig: signal.signal(sig, _handle_signal) for sig in (signal.SIGINT, signal.SIGTERM)
    }

    try:
        with VerusClient.for_chain(chain, settings) as client:
            orchestrator = RegistrationOrchestrator(
                request,
                client,
                cancel,
                deadline=args.timeout,
                lookup=args.lookup,
                settings=settings,
            )
            record = orchestrator.run(commitment=commitment)
    except NodeConfigError as exc:
        logger.error("cannot configure node RPC: %s", exc)
        return 1
    except RegistrationError as exc:
        if exc.commitment is not None:
            _report_resumable(request.name, exc)
        else:
            logger.error("something went wrong: %s", exc)
        return 1
    except ValueError as exc:
        logger.error("cannot resume: %s", exc)
        return 2
    except Exception:
        logger.exception("unexpected error while registering %r", request.name)
        return 1
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    logger.info(
        "identity `%s` has been created! (txid: %s)",
        record.name_commitment.name_reservation.name,
        record.registration_transaction_id,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
