"""FastAPI-powered WebAuthn registration and authentication service."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from .authentication import AuthenticationFlow
from .challenge import ChallengeGenerator
from .config import Settings
from .errors import FlowError
from .registration import RegistrationFlow
from .store import UserRecordStore
from .verifier import CredentialVerifier, WebAuthnVerifier

logger = logging.getLogger(__name__)


class UserRef(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    display_name: str = Field(default="", alias="displayName")


class RegistrationStartRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user: UserRef = Field(default_factory=UserRef)
    device_name: str = Field(default="", alias="deviceName")
    origin: str = ""


class AuthenticationStartRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user: UserRef = Field(default_factory=UserRef)
    device_name: str = Field(default="", alias="deviceName")


class FinishRequest(BaseModel):
    """A PublicKeyCredential JSON object plus the user and device it belongs to.

    Credential members (``id``, ``rawId``, ``response``, ``type`` ...) are kept
    as extra fields and handed to the verifier untouched.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    user: UserRef = Field(default_factory=UserRef)
    device_name: str = Field(default="", alias="deviceName")

    @property
    def credential(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})


class AuthenticationStartResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    challenge: str
    credential_id: str = Field(alias="credentialId")
    timeout: int
    rp_id: str = Field(alias="rpId")


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[UserRecordStore] = None,
    verifier: Optional[CredentialVerifier] = None,
    challenges: Optional[ChallengeGenerator] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    store = store or UserRecordStore(settings.data_dir)
    verifier = verifier or WebAuthnVerifier(settings.rp_id)
    challenges = challenges or ChallengeGenerator()

    registration = RegistrationFlow(store, verifier, challenges, settings)
    authentication = AuthenticationFlow(store, verifier, challenges, settings)

    app = FastAPI(title="passkeyflow", description="Passwordless WebAuthn device registration demo")
    app.state.settings = settings
    app.state.store = store

    @app.exception_handler(FlowError)
    async def flow_error_handler(request: Request, exc: FlowError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})

    @app.get("/health")
    async def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/registration/start", status_code=201)
    def registration_start(request: RegistrationStartRequest) -> Dict[str, Any]:
        options = registration.start(
            request.user.name,
            request.device_name,
            origin=request.origin,
            display_name=request.user.display_name,
        )
        return options.to_dict()

    @app.post("/registration/finish", status_code=201)
    def registration_finish(request: FinishRequest) -> Response:
        registration.finish(request.user.name, request.device_name, request.credential)
        return Response(status_code=201)

    @app.post(
        "/authentication/start",
        status_code=201,
        response_model=AuthenticationStartResponse,
        response_model_by_alias=True,
    )
    def authentication_start(request: AuthenticationStartRequest) -> AuthenticationStartResponse:
        options = authentication.start(request.user.name, request.device_name)
        return AuthenticationStartResponse(**options.to_dict())

    @app.post("/authentication/finish", status_code=201)
    def authentication_finish(request: FinishRequest) -> Response:
        authentication.finish(request.user.name, request.device_name, request.credential)
        return Response(status_code=201)

    return app


__all__ = ["create_app"]
