"""
Identity registration protocol.

Drives one registration through the node:
  1. Submit a name commitment for the request's name
  2. Poll until the commitment transaction is confirmed
  3. Submit the identity registration that spends the commitment

Each ``RegistrationOrchestrator`` handles exactly one run and keeps its
progress in a ``RegistrationRun`` record.
"""

from __future__ import annotations

import enum
import logging
import threading
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Protocol

from identitycreator.identity.errors import (
    RegistrationError,
    RegistrationRpcError,
    RegistrationTimeout,
)
from identitycreator.identity.schemas import IdentityRecord, IdentityRequest
from identitycreator.rpc.errors import RpcError, TransientNotYetVisible
from identitycreator.rpc.schemas import NameCommitment, TransactionInfo
from identitycreator.settings import Settings
from identitycreator.settings import settings as default_settings

logger = logging.getLogger(__name__)


class RegistrationPhase(str, enum.Enum):
    INIT = "init"
    COMMITMENT_SUBMITTED = "commitment_submitted"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    COMMITMENT_CONFIRMED = "commitment_confirmed"
    REGISTRATION_SUBMITTED = "registration_submitted"
    DONE = "done"
    FAILED = "failed"


class NodeClient(Protocol):
    """The node operations a registration needs (see ``VerusClient``)."""

    def registernamecommitment(self, name, control_address, referral=None, parent=None) -> NameCommitment: ...

    def get_transaction(self, txid, include_watch_only=None) -> TransactionInfo: ...

    def get_raw_transaction_verbose(self, txid) -> TransactionInfo: ...

    def registeridentity(
        self,
        commitment,
        primary_addresses,
        minimum_signatures=None,
        private_address=None,
        parent=None,
        content_map=None,
    ) -> str: ...


class Cancellation(Protocol):
    def is_set(self) -> bool: ...

    def wait(self, timeout: float | None = None) -> bool: ...


class RegistrationRun:
    """Tracks the state of a single registration run."""

    def __init__(self, name: str) -> None:
        self.run_id: str = str(uuid.uuid4())
        self.name: str = name
        self.phase: RegistrationPhase = RegistrationPhase.INIT
        self.started_at: str = datetime.now(timezone.utc).isoformat()
        self.finished_at: str | None = None
        self.commitment: NameCommitment | None = None
        self.registration_txid: str | None = None
        self.lookups: int = 0
        self.error: str | None = None
        self.logs: list[str] = []

    def add_log(self, message: str) -> None:
        """Append a timestamped log entry."""
        ts = datetime.now(timezone.utc).strftime("%H:%M:%S")
        self.logs.append(f"[{ts}] {message}")

    def to_status_dict(self) -> dict[str, Any]:
        """Return a JSON-serialisable status summary."""
        return {
            "run_id": self.run_id,
            "name": self.name,
            "phase": self.phase.value,
            "commitment_txid": self.commitment.transaction_id if self.commitment else None,
            "registration_txid": self.registration_txid,
            "lookups": self.lookups,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "error": self.error,
        }


class RegistrationOrchestrator:
    """Run the commit -> confirm -> register protocol for one request.

    Args:
        request: A validated ``IdentityRequest``.
        client: Node client; only invoked, never mutated.
        cancellation: ``threading.Event``-like token.  Once set, no further
            transaction is submitted and the run ends with
            ``RegistrationTimeout(reason="cancelled")``.
        deadline: Optional bound, in seconds, on the confirmation wait.
        poll_interval / visibility_retry_interval / visibility_max_retries /
        lookup: Override the matching settings.
    """

    def __init__(
        self,
        request: IdentityRequest,
        client: NodeClient,
        cancellation: Cancellation | None = None,
        *,
        deadline: float | None = None,
        poll_interval: float | None = None,
        visibility_retry_interval: float | None = None,
        visibility_max_retries: int | None = None,
        lookup: str | None = None,
        settings: Settings | None = None,
    ) -> None:
        cfg = settings or default_settings
        self.request = request
        self.client = client
        self.cancellation = cancellation if cancellation is not None else threading.Event()
        self.deadline = deadline
        self.poll_interval = (
            cfg.CONFIRMATION_POLL_INTERVAL if poll_interval is None else poll_interval
        )
        self.visibility_retry_interval = (
            cfg.VISIBILITY_RETRY_INTERVAL
            if visibility_retry_interval is None
            else visibility_retry_interval
        )
        self.visibility_max_retries = (
            cfg.VISIBILITY_MAX_RETRIES
            if visibility_max_retries is None
            else visibility_max_retries
        )
        self.lookup = lookup or cfg.TX_LOOKUP
        if self.lookup not in ("wallet", "raw"):
            raise ValueError(f"unknown transaction lookup {self.lookup!r}")

        self.run_state = RegistrationRun(request.name)
        self._deadline_at: float | None = None

    @property
    def phase(self) -> RegistrationPhase:
        return self.run_state.phase

    def run(self, commitment: NameCommitment | None = None) -> IdentityRecord:
        """Execute the protocol and return the finished identity.

        Pass *commitment* to resume a run whose name commitment already
        exists; the commitment call is then skipped.
        """
        if commitment is None:
            self._check_cancelled(None)
            commitment = self.submit_commitment()
        else:
            if commitment.name_reservation.name != self.request.name:
                message = (
                    f"commitment is for {commitment.name_reservation.name!r}, "
                    f"not {self.request.name!r}"
                )
                self._record_failure(self.phase, message)
                raise ValueError(message)
            self.run_state.commitment = commitment
            self._advance(
                RegistrationPhase.COMMITMENT_SUBMITTED,
                f"Resuming with commitment {commitment.transaction_id}",
            )

        self.await_confirmation(commitment)
        self._check_cancelled(commitment)
        txid = self.submit_registration(commitment)

        self._advance(RegistrationPhase.DONE, f"Identity registered in {txid}")
        self.run_state.finished_at = datetime.now(timezone.utc).isoformat()
        return IdentityRecord(name_commitment=commitment, registration_transaction_id=txid)

    # ------------------------------------------------------------------
    # Protocol steps
    # ------------------------------------------------------------------

    def submit_commitment(self) -> NameCommitment:
        request = self.request
        try:
            commitment = self.client.registernamecommitment(
                request.name,
                request.controlling_address,
                request.referral,
                request.currency_context,
            )
        except RpcError as exc:
            raise self._fail(RegistrationRpcError(exc, self.phase)) from exc

        self.run_state.commitment = commitment
        self._advance(
            RegistrationPhase.COMMITMENT_SUBMITTED,
            f"Name commitment for {commitment.name_reservation.name!r} "
            f"submitted in {commitment.transaction_id}",
        )
        return commitment

    def await_confirmation(self, commitment: NameCommitment) -> None:
        """Block until *commitment* has at least one confirmation."""
        txid = commitment.transaction_id
        self._advance(
            RegistrationPhase.AWAITING_CONFIRMATION,
            f"Waiting for {txid} to confirm ({self.lookup} lookup)",
        )
        if self.deadline is not None:
            self._deadline_at = time.monotonic() + self.deadline

        retries = 0
        while True:
            self._check_cancelled(commitment)

            self.run_state.lookups += 1
            try:
                info = self._lookup(txid)
            except TransientNotYetVisible as exc:
                if retries >= self.visibility_max_retries:
                    logger.error("waited too long for non-wallet transaction %s, abort", txid)
                    raise self._timeout(
                        "visibility",
                        f"transaction {txid} not visible after {retries} retries",
                        commitment,
                    ) from exc
                if retries == 0:
                    logger.warning("transaction %s not yet in wallet, waiting", txid)
                retries += 1
                self._wait(self.visibility_retry_interval, commitment)
                continue
            except RpcError as exc:
                raise self._fail(RegistrationRpcError(exc, self.phase, commitment)) from exc

            if info.confirmations > 0:
                self._advance(
                    RegistrationPhase.COMMITMENT_CONFIRMED,
                    f"{txid} confirmed ({info.confirmations} confirmations)",
                )
                return

            logger.debug("txid %s not confirmed", txid)
            self._wait(self.poll_interval, commitment)

    def submit_registration(self, commitment: NameCommitment) -> str:
        request = self.request
        try:
            txid = self.client.registeridentity(
                commitment,
                list(request.primary_addresses),
                request.minimum_signatures,
                request.private_address,
                request.currency_context,
                request.content_map,
            )
        except RpcError as exc:
            raise self._fail(RegistrationRpcError(exc, self.phase, commitment)) from exc

        self.run_state.registration_txid = txid
        self._advance(RegistrationPhase.REGISTRATION_SUBMITTED, f"registeridentity returned {txid}")
        logger.info("identity `%s` is created!", commitment.name_reservation.name)
        return txid

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _lookup(self, txid: str) -> TransactionInfo:
        if self.lookup == "raw":
            return self.client.get_raw_transaction_verbose(txid)
        return self.client.get_transaction(txid, include_watch_only=False)

    def _wait(self, interval: float, commitment: NameCommitment) -> None:
        """Sleep for *interval*, ending the run on cancellation or deadline."""
        if self._deadline_at is not None:
            remaining = self._deadline_at - time.monotonic()
            if remaining <= 0:
                raise self._timeout(
                    "deadline",
                    f"{commitment.transaction_id} not confirmed before the deadline",
                    commitment,
                )
            interval = min(interval, remaining)

        if self.cancellation.wait(interval):
            raise self._timeout("cancelled", "registration cancelled", commitment)

    def _advance(self, phase: RegistrationPhase, message: str) -> None:
        self.run_state.phase = phase
        self.run_state.add_log(message)
        logger.debug("%s: %s", phase.value, message)

    def _check_cancelled(self, commitment: NameCommitment | None) -> None:
        if self.cancellation.is_set():
            raise self._timeout("cancelled", "registration cancelled", commitment)

    def _timeout(
        self, reason: str, message: str, commitment: NameCommitment | None
    ) -> RegistrationError:
        return self._fail(RegistrationTimeout(message, reason, self.phase, commitment))

    def _fail(self, error: RegistrationError) -> RegistrationError:
        self._record_failure(error.phase, str(error))
        return error

    def _record_failure(self, phase: RegistrationPhase, message: str) -> None:
        self.run_state.phase = RegistrationPhase.FAILED
        self.run_state.error = message
        self.run_state.finished_at = datetime.now(timezone.utc).isoformat()
        self.run_state.add_log(f"Registration failed in {phase.value}: {message}")
        logger.error("registration of %r failed: %s", self.request.name, message)


def register_identity(
    request: IdentityRequest,
    client: NodeClient,
    cancellation: Cancellation | None = None,
    *,
    deadline: float | None = None,
    commitment: NameCommitment | None = None,
    settings: Settings | None = None,
) -> IdentityRecord:
    """Register *request* on the node behind *client*.

    Raises ``RegistrationError`` on failure.  Errors raised after the name
    commitment exists carry it, so a later call can pass it back in as
    *commitment*.
    """
    orchestrator = RegistrationOrchestrator(
        request,
        client,
        cancellation,
        deadline=deadline,
        settings=settings,
    )
    return orchestrator.run(commitment=commitment)
