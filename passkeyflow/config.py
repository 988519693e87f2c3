"""Runtime settings for the passkey service."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Mapping, Optional, Tuple
from urllib.parse import urlparse

from .constants import (
    DEFAULT_ALGORITHMS,
    DEFAULT_ATTESTATION,
    DEFAULT_DATA_DIR,
    DEFAULT_ORIGIN,
    DEFAULT_RP_NAME,
    DEFAULT_TIMEOUT_MS,
)

ENV_PREFIX = "PASSKEYFLOW_"
ATTESTATION_PREFERENCES = ("none", "indirect", "direct", "enterprise")


@dataclass(frozen=True)
class Settings:
    """Canonical origin, relying party and ceremony parameters.

    ``origin`` is the only origin verification accepts; the per-device origin
    sent by clients is recorded but never trusted.
    """

    origin: str = DEFAULT_ORIGIN
    rp_id: str = ""
    rp_name: str = DEFAULT_RP_NAME
    timeout: int = DEFAULT_TIMEOUT_MS
    data_dir: str = DEFAULT_DATA_DIR
    attestation: str = DEFAULT_ATTESTATION
    algorithms: Tuple[int, ...] = field(default=DEFAULT_ALGORITHMS)

    def __post_init__(self) -> None:
        parsed = urlparse(self.origin)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise ValueError(f"Origin must be an http(s) URL, got '{self.origin}'")
        if self.timeout <= 0:
            raise ValueError("Timeout must be a positive number of milliseconds")
        if self.attestation not in ATTESTATION_PREFERENCES:
            raise ValueError(f"Unknown attestation preference '{self.attestation}'")
        if not self.algorithms:
            raise ValueError("At least one signature algorithm is required")
        if not self.rp_id:
            object.__setattr__(self, "rp_id", parsed.hostname)

    def with_overrides(self, **overrides: Optional[object]) -> "Settings":
        """Return a copy with every non-``None`` override applied."""

        changes = {key: value for key, value in overrides.items() if value is not None}
        if "origin" in changes and "rp_id" not in changes:
            # A derived relying party id follows the origin it came from.
            if self.rp_id == urlparse(self.origin).hostname:
                changes["rp_id"] = ""
        return replace(self, **changes)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ

        def _get(name: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + name)
            return value if value else None

        timeout_raw = _get("TIMEOUT")
        try:
            timeout = int(timeout_raw) if timeout_raw is not None else DEFAULT_TIMEOUT_MS
        except ValueError as exc:
            raise ValueError(f"{ENV_PREFIX}TIMEOUT must be an integer, got '{timeout_raw}'") from exc

        return cls(
            origin=_get("ORIGIN") or DEFAULT_ORIGIN,
            rp_id=_get("RP_ID") or "",
            rp_name=_get("RP_NAME") or DEFAULT_RP_NAME,
            timeout=timeout,
            data_dir=_get("DATA_DIR") or DEFAULT_DATA_DIR,
            attestation=_get("ATTESTATION") or DEFAULT_ATTESTATION,
        )


__all__ = ["Settings"]
