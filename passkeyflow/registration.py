"""Two-phase registration of a named authenticator device."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List

from webauthn.helpers import bytes_to_base64url

from .challenge import ChallengeGenerator
from .config import Settings
from .constants import PUBLIC_KEY_CREDENTIAL_TYPE
from .errors import InvalidInput, NotFound, VerificationFailed
from .store import DeviceRecord, UserEntity, UserRecord, UserRecordStore, validate_user_name
from .verifier import CredentialVerifier

logger = logging.getLogger(__name__)


@dataclass
class RegistrationOptions:
    """Creation options handed to ``navigator.credentials.create``."""

    challenge: bytes
    rp_id: str
    rp_name: str
    algorithms: List[int]
    timeout: int
    user: UserEntity
    attestation: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "publicKey": {
                "challenge": bytes_to_base64url(self.challenge),
                "rp": {"id": self.rp_id, "name": self.rp_name},
                "pubKeyCredParams": [
                    {"type": PUBLIC_KEY_CREDENTIAL_TYPE, "alg": alg} for alg in self.algorithms
                ],
                "timeout": self.timeout,
                "user": {
                    "id": bytes_to_base64url(self.user.id.encode("utf-8")),
                    "name": self.user.name,
                    "displayName": self.user.display_name,
                },
                "attestation": self.attestation,
            }
        }


class RegistrationFlow:
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

    def start(
        self,
        user_name: str,
        device_name: str,
        origin: str = "",
        display_name: str = "",
    ) -> RegistrationOptions:
        """Issue a challenge for ``device_name``, creating the user on first use.

        Any existing device of the same name loses its credential until the
        new registration finishes.
        """

        validate_user_name(user_name)
        if not device_name:
            raise InvalidInput("Device name required")

        logger.info("Starting registration for %s (device %s)", user_name, device_name)
        with self.store.lock(user_name):
            try:
                record = self.store.read(user_name)
            except NotFound:
                record = UserRecord(user=UserEntity(id=str(uuid.uuid4()), name=user_name))
                logger.info("Created user %s", user_name)
            record.user.display_name = display_name

            challenge = self.challenges.new_challenge()
            record.put_device(DeviceRecord(name=device_name, origin=origin, challenge=challenge))
            self.store.write(user_name, record)

        return RegistrationOptions(
            challenge=challenge,
            rp_id=self.settings.rp_id,
            rp_name=self.settings.rp_name,
            algorithms=list(self.settings.algorithms),
            timeout=self.settings.timeout,
            user=record.user,
            attestation=self.settings.attestation,
        )

    def finish(self, user_name: str, device_name: str, credential: Dict[str, Any]) -> DeviceRecord:
        """Verify the attestation; a rejected device is removed from the record."""

        validate_user_name(user_name)
        with self.store.lock(user_name):
            record = self.store.read(user_name)
            device = record.get_device(device_name)

            try:
                if device.challenge is None:
                    raise VerificationFailed(f"No pending registration for device '{device_name}'")
                result = self.verifier.validate_registration(
                    credential,
                    device.challenge,
                    self.settings.origin,
                    False,
                )
            except VerificationFailed:
                logger.warning("Registration rejected for %s (device %s); removing device", user_name, device_name)
                record.remove_device(device_name)
                self.store.write(user_name, record)
                raise

            device.challenge = None
            device.credential_id = result.credential_id
            device.public_key = result.public_key
            device.sign_count = result.sign_count
            self.store.write(user_name, record)

        logger.info("Registered device %s for %s", device_name, user_name)
        return device


__all__ = ["RegistrationFlow", "RegistrationOptions"]
