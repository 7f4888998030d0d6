"""Error taxonomy for identity validation and registration."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from identitycreator.identity.registration import RegistrationPhase
    from identitycreator.rpc.errors import RpcError
    from identitycreator.rpc.schemas import NameCommitment


class IdentityError(Exception):
    """Base class for everything this package raises about an identity."""


# ---------------------------------------------------------------------------
# Validation (raised before any network activity)
# ---------------------------------------------------------------------------


class ValidationError(IdentityError):
    """The request violates a static invariant."""


class InvalidMinimumSignatures(ValidationError):
    pass


class MissingName(ValidationError):
    pass


class MissingPrimaryAddress(ValidationError):
    pass


class InvalidContentMap(ValidationError):
    pass


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


class RegistrationError(IdentityError):
    """A registration run ended without an identity.

    ``commitment`` is set once the name commitment exists, so the run can be
    resumed with ``register_identity(..., commitment=err.commitment)``.
    """

    def __init__(
        self,
        message: str,
        phase: RegistrationPhase,
        commitment: NameCommitment | None = None,
    ):
        self.phase = phase
        self.commitment = commitment
        super().__init__(message)


class RegistrationRpcError(RegistrationError):
    """The node rejected a call or could not be reached."""

    def __init__(
        self,
        rpc_error: RpcError,
        phase: RegistrationPhase,
        commitment: NameCommitment | None = None,
    ):
        self.rpc_error = rpc_error
        super().__init__(str(rpc_error), phase, commitment)


class RegistrationTimeout(RegistrationError, TimeoutError):
    """Waiting for the commitment gave up.

    ``reason`` is ``"visibility"`` when the node never saw the transaction,
    ``"cancelled"`` when the caller cancelled, and ``"deadline"`` when the
    caller's deadline passed.
    """

    def __init__(
        self,
        message: str,
        reason: str,
        phase: RegistrationPhase,
        commitment: NameCommitment | None = None,
    ):
        self.reason = reason
        super().__init__(message, phase, commitment)
