"""Random challenge generation."""

from __future__ import annotations

import secrets

from .constants import CHALLENGE_BYTES, MIN_CHALLENGE_BYTES
from .errors import EntropyUnavailable


class ChallengeGenerator:
    """Mint fixed-length challenges from the operating system CSPRNG."""

    def __init__(self, size: int = CHALLENGE_BYTES) -> None:
        if size < MIN_CHALLENGE_BYTES:
            raise ValueError(f"Challenges must be at least {MIN_CHALLENGE_BYTES} bytes")
        self.size = size

    def new_challenge(self) -> bytes:
        try:
            return secrets.token_bytes(self.size)
        except (NotImplementedError, OSError) as exc:
            raise EntropyUnavailable("No secure randomness available") from exc


__all__ = ["ChallengeGenerator"]
