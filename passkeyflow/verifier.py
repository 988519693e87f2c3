"""Adapter that delegates WebAuthn proof checking to py_webauthn."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Protocol

from webauthn import verify_authentication_response, verify_registration_response
from webauthn.helpers import (
    bytes_to_base64url,
    parse_authentication_credential_json,
    parse_registration_credential_json,
)
from webauthn.helpers.exceptions import WebAuthnException
from webauthn.helpers.structs import AttestationFormat

from .errors import VerificationFailed
from .store import DeviceRecord

logger = logging.getLogger(__name__)

# WebAuthnException covers every py_webauthn failure; the rest come from
# malformed client JSON reaching the parsers.
_LIBRARY_ERRORS = (WebAuthnException, KeyError, TypeError, ValueError)


@dataclass
class RegistrationResult:
    """What a successful attestation check tells us about the new credential."""

    credential_id: str
    public_key: bytes
    sign_count: int


class CredentialVerifier(Protocol):
    """What the flows need from a verifier; failures raise ``VerificationFailed``."""

    def validate_registration(
        self,
        credential: Dict[str, Any],
        challenge: bytes,
        origin: str,
        require_attestation: bool,
    ) -> RegistrationResult: ...

    def validate_authentication(
        self,
        credential: Dict[str, Any],
        challenge: bytes,
        origin: str,
        user_id: str,
        device: DeviceRecord,
    ) -> None: ...


class WebAuthnVerifier:
    """Check attestations and assertions against a relying party id."""

    def __init__(self, rp_id: str) -> None:
        self.rp_id = rp_id

    def validate_registration(
        self,
        credential: Dict[str, Any],
        challenge: bytes,
        origin: str,
        require_attestation: bool,
    ) -> RegistrationResult:
        try:
            parsed = parse_registration_credential_json(credential)
            verified = verify_registration_response(
                credential=parsed,
                expected_challenge=challenge,
                expected_rp_id=self.rp_id,
                expected_origin=origin,
            )
        except _LIBRARY_ERRORS as exc:
            logger.debug("Registration response rejected: %s", exc)
            raise VerificationFailed(f"Registration verification failed: {exc}") from exc

        if require_attestation and verified.fmt == AttestationFormat.NONE:
            raise VerificationFailed("Authenticator did not provide an attestation statement")

        return RegistrationResult(
            credential_id=bytes_to_base64url(verified.credential_id),
            public_key=verified.credential_public_key,
            sign_count=verified.sign_count,
        )

    def validate_authentication(
        self,
        credential: Dict[str, Any],
        challenge: bytes,
        origin: str,
        user_id: str,
        device: DeviceRecord,
    ) -> None:
        if not device.registered or device.public_key is None:
            raise VerificationFailed(f"Device '{device.name}' has no registered credential")

        try:
            parsed = parse_authentication_credential_json(credential)
        except _LIBRARY_ERRORS as exc:
            raise VerificationFailed(f"Malformed assertion: {exc}") from exc

        if bytes_to_base64url(parsed.raw_id) != device.credential_id:
            raise VerificationFailed("Assertion was produced by a different credential")

        user_handle = parsed.response.user_handle
        if user_handle and user_handle != user_id.encode("utf-8"):
            raise VerificationFailed("Assertion is bound to a different account")

        try:
            verify_authentication_response(
                credential=parsed,
                expected_challenge=challenge,
                expected_rp_id=self.rp_id,
                expected_origin=origin,
                credential_public_key=device.public_key,
                credential_current_sign_count=device.sign_count,
            )
        except _LIBRARY_ERRORS as exc:
            logger.debug("Authentication response rejected: %s", exc)
            raise VerificationFailed(f"Authentication verification failed: {exc}") from exc


__all__ = ["CredentialVerifier", "RegistrationResult", "WebAuthnVerifier"]
