"""Identity request validation and the registration protocol."""

from identitycreator.identity.builder import (
    IdentityConfig,
    IdentityRequestBuilder,
    validate_config,
)
from identitycreator.identity.errors import (
    IdentityError,
    InvalidContentMap,
    InvalidMinimumSignatures,
    MissingName,
    MissingPrimaryAddress,
    RegistrationError,
    RegistrationRpcError,
    RegistrationTimeout,
    ValidationError,
)
from identitycreator.identity.registration import (
    RegistrationOrchestrator,
    RegistrationPhase,
    RegistrationRun,
    register_identity,
)
from identitycreator.identity.schemas import IdentityRecord, IdentityRequest

__all__ = [
    "IdentityConfig",
    "IdentityError",
    "IdentityRecord",
    "IdentityRequest",
    "IdentityRequestBuilder",
    "InvalidContentMap",
    "InvalidMinimumSignatures",
    "MissingName",
    "MissingPrimaryAddress",
    "RegistrationError",
    "RegistrationOrchestrator",
    "RegistrationPhase",
    "RegistrationRpcError",
    "RegistrationRun",
    "RegistrationTimeout",
    "ValidationError",
    "register_identity",
    "validate_config",
]
