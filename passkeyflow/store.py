"""JSON-backed user record store for the WebAuthn ceremonies."""

from __future__ import annotations

import json
import logging
import os
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from webauthn.helpers import base64url_to_bytes, bytes_to_base64url

from .constants import USERS_COLLECTION
from .errors import InvalidInput, NotFound, StorageError

logger = logging.getLogger(__name__)


def _encode_bytes(value: Optional[bytes]) -> Optional[str]:
    if not value:
        return None
    return bytes_to_base64url(value)


def _decode_bytes(value: Optional[str]) -> Optional[bytes]:
    if not value:
        return None
    return base64url_to_bytes(value)


@dataclass
class UserEntity:
    """Account identity as presented to the authenticator."""

    id: str
    name: str
    display_name: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "name": self.name, "displayName": self.display_name}

    @staticmethod
    def from_dict(data: Dict[str, str]) -> "UserEntity":
        return UserEntity(
            id=data["id"],
            name=data["name"],
            display_name=data.get("displayName") or "",
        )


@dataclass
class DeviceRecord:
    """A named authenticator bound to a user.

    ``challenge`` holds the outstanding challenge, ``None`` when no ceremony
    is pending. ``credential_id`` stays empty until a registration finishes.
    """

    name: str
    origin: str = ""
    challenge: Optional[bytes] = None
    credential_id: str = ""
    public_key: Optional[bytes] = None
    sign_count: int = 0

    @property
    def registered(self) -> bool:
        return bool(self.credential_id)

    def to_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "origin": self.origin,
            "challenge": _encode_bytes(self.challenge),
            "credentialId": self.credential_id,
            "publicKey": _encode_bytes(self.public_key),
            "signCount": self.sign_count,
        }

    @staticmethod
    def from_dict(data: Dict[str, object]) -> "DeviceRecord":
        return DeviceRecord(
            name=str(data["name"]),
            origin=str(data.get("origin") or ""),
            challenge=_decode_bytes(data.get("challenge")),  # type: ignore[arg-type]
            credential_id=str(data.get("credentialId") or ""),
            public_key=_decode_bytes(data.get("publicKey")),  # type: ignore[arg-type]
            sign_count=int(data.get("signCount") or 0),  # type: ignore[arg-type]
        )


@dataclass
class UserRecord:
    """A user and every device registered to it."""

    user: UserEntity
    devices: Dict[str, DeviceRecord] = field(default_factory=dict)

    def get_device(self, device_name: str) -> DeviceRecord:
        device = self.devices.get(device_name)
        if device is None:
            raise NotFound(f"Unknown device '{device_name}' for user '{self.user.name}'")
        return device

    def put_device(self, device: DeviceRecord) -> None:
        if not device.name:
            raise InvalidInput("Device name required")
        self.devices[device.name] = device

    def remove_device(self, device_name: str) -> None:
        self.devices.pop(device_name, None)

    def to_dict(self) -> Dict[str, object]:
        return {
            "user": self.user.to_dict(),
            "devices": {name: device.to_dict() for name, device in self.devices.items()},
        }

    @staticmethod
    def from_dict(data: Dict[str, object]) -> "UserRecord":
        raw_devices = data.get("devices") or {}
        devices = {
            name: DeviceRecord.from_dict(raw)
            for name, raw in raw_devices.items()  # type: ignore[union-attr]
        }
        for name, device in devices.items():
            if name != device.name:
                raise ValueError(f"Device key '{name}' does not match its name '{device.name}'")
        return UserRecord(user=UserEntity.from_dict(data["user"]), devices=devices)  # type: ignore[arg-type]


def validate_user_name(user_name: str) -> str:
    """Reject names that are empty or cannot serve as a file name."""

    if not user_name:
        raise InvalidInput("Username required")
    if user_name.startswith(".") or any(char in user_name for char in ("/", "\\", "\x00")):
        raise InvalidInput(f"Username '{user_name}' contains forbidden characters")
    return user_name


class UserRecordStore:
    """Persist one JSON document per user name under ``<root>/users``."""

    def __init__(self, root: str) -> None:
        self.root = root
        self.collection = os.path.join(root, USERS_COLLECTION)
        # user name -> [lock, number of callers holding or waiting on it]
        self._locks: Dict[str, List[Any]] = {}
        self._locks_guard = threading.Lock()
        self._ensure_collection()

    def _ensure_collection(self) -> None:
        try:
            os.makedirs(self.collection, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot create store at {self.collection}: {exc}") from exc

    def _path(self, user_name: str) -> str:
        return os.path.join(self.collection, f"{validate_user_name(user_name)}.json")

    @contextmanager
    def lock(self, user_name: str) -> Iterator[None]:
        """Serialize read-modify-write cycles for a single user."""

        with self._locks_guard:
            entry = self._locks.setdefault(user_name, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[user_name]

    def exists(self, user_name: str) -> bool:
        return os.path.exists(self._path(user_name))

    def read(self, user_name: str) -> UserRecord:
        path = self._path(user_name)
        try:
            with open(path, "r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except FileNotFoundError as exc:
            raise NotFound(f"Unknown user '{user_name}'") from exc
        except (OSError, ValueError) as exc:
            logger.error("Failed to read record for %s: %s", user_name, exc)
            raise StorageError(f"Cannot read record for '{user_name}'") from exc

        try:
            return UserRecord.from_dict(payload)
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            logger.error("Corrupt record for %s: %s", user_name, exc)
            raise StorageError(f"Corrupt record for '{user_name}'") from exc

    def write(self, user_name: str, record: UserRecord) -> None:
        path = self._path(user_name)
        temp_path = f"{path}.tmp"
        try:
            with open(temp_path, "w", encoding="utf-8") as handle:
                json.dump(record.to_dict(), handle, indent=2)
            os.replace(temp_path, path)
        except (OSError, TypeError, ValueError) as exc:
            if os.path.exists(temp_path):
                os.remove(temp_path)
            logger.error("Failed to write record for %s: %s", user_name, exc)
            raise StorageError(f"Cannot write record for '{user_name}'") from exc


__all__ = ["DeviceRecord", "UserEntity", "UserRecord", "UserRecordStore", "validate_user_name"]
