"""WebAuthn device registration and authentication flows."""

from .authentication import AuthenticationFlow, AuthenticationOptions
from .challenge import ChallengeGenerator
from .config import Settings
from .errors import (
    EntropyUnavailable,
    FlowError,
    InvalidInput,
    NotFound,
    StorageError,
    VerificationFailed,
)
from .registration import RegistrationFlow, RegistrationOptions
from .store import DeviceRecord, UserEntity, UserRecord, UserRecordStore
from .verifier import CredentialVerifier, RegistrationResult, WebAuthnVerifier

__all__ = [
    "AuthenticationFlow",
    "AuthenticationOptions",
    "ChallengeGenerator",
    "Settings",
    "EntropyUnavailable",
    "FlowError",
    "InvalidInput",
    "NotFound",
    "StorageError",
    "VerificationFailed",
    "RegistrationFlow",
    "RegistrationOptions",
    "DeviceRecord",
    "UserEntity",
    "UserRecord",
    "UserRecordStore",
    "CredentialVerifier",
    "RegistrationResult",
    "WebAuthnVerifier",
]
