"""Two-phase authentication against a registered device."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict

from webauthn.helpers import bytes_to_base64url

from .challenge import ChallengeGenerator
from .config import Settings
from .errors import VerificationFailed
from .store import UserRecordStore, validate_user_name
from .verifier import CredentialVerifier

logger = logging.getLogger(__name__)


@dataclass
class AuthenticationOptions:
    challenge: bytes
    credential_id: str
    timeout: int
    rp_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "challenge": bytes_to_base64url(self.challenge),
            "credentialId": self.credential_id,
            "timeout": self.timeout,
            "rpId": self.rp_id,
        }


class AuthenticationFlow:
    def __init__(
        self,
        store: UserRecordStore,
        verifier: CredentialVerifier,
        challenges: ChallengeGenerator,
        settings: Settings,
    ) -> None:
        self.store = store
        self.verifier = verifier
        self.challenges = challenges
        self.settings = settings

    def start(self, user_name: str, device_name: str) -> AuthenticationOptions:
        validate_user_name(user_name)
        logger.info("Starting authentication for %s (device %s)", user_name, device_name)
        with self.store.lock(user_name):
            record = self.store.read(user_name)
            device = record.get_device(device_name)
            device.challenge = self.challenges.new_challenge()
            self.store.write(user_name, record)

        return AuthenticationOptions(
            challenge=device.challenge,
            credential_id=device.credential_id,
            timeout=self.settings.timeout,
            rp_id=self.settings.rp_id,
        )

    def finish(self, user_name: str, device_name: str, credential: Dict[str, Any]) -> None:
        """Burn the pending challenge, then verify the assertion against it."""

        validate_user_name(user_name)
        with self.store.lock(user_name):
            record = self.store.read(user_name)
            device = record.get_device(device_name)
            challenge = device.challenge
            device.challenge = None
            self.store.write(user_name, record)

        if challenge is None:
            raise VerificationFailed(f"No pending authentication for device '{device_name}'")

        try:
            self.verifier.validate_authentication(
                credential,
                challenge,
                self.settings.origin,
                record.user.id,
                device,
            )
        except VerificationFailed:
            logger.warning("Authentication rejected for %s (device %s)", user_name, device_name)
            raise

        logger.info("Authenticated %s with device %s", user_name, device_name)


__all__ = ["AuthenticationFlow", "AuthenticationOptions"]
