"""HTTP route definitions for the account service."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..config import get_settings
from ..domain.account import Account
from ..domain.contracts import PUBLIC_SELECT, CreateAccountInput, ListOptions
from ..domain.errors import AccountNotFoundError, ValidationError
from ..domain.service import AccountService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1")

settings = get_settings()


class AccountResponse(BaseModel):
    """Serialised representation of an `Account`; credential fields are never included."""

    account_id: str
    name: str
    email: str
    username: str
    provider: str
    selected_cursor: str
    skype: str | None = None
    firefox: str | None = None
    created_at: str

    @classmethod
    def from_domain(cls, account: Account) -> "AccountResponse":
        """Build a response model from the domain aggregate."""
        return cls(
            account_id=account.account_id,
            name=account.name,
            email=account.email,
            username=account.username,
            provider=account.provider,
            selected_cursor=account.selected_cursor,
            skype=account.skype,
            firefox=account.firefox,
            created_at=account.created_at.isoformat(),
        )


class CreateAccountRequest(BaseModel):
    """Payload accepted when creating an account."""

    name: str = ""
    email: str = ""
    username: str = ""
    provider: str = ""
    password: str = ""
    selected_cursor: str = "1"
    skype: str | None = None
    firefox: str | None = None
    profile: dict[str, Any] | None = None


class AccountListResponse(BaseModel):
    """One page of accounts, newest first."""

    items: list[AccountResponse]
    page: int
    per_page: int


class ChangePasswordRequest(BaseModel):
    password: str = Field(..., min_length=1)


class AuthenticateRequest(BaseModel):
    """Credentials presented for password verification."""

    email: str = Field(..., min_length=1)
    password: str


def get_service(request: Request) -> AccountService:
    """Resolve the `AccountService` stored on the FastAPI application state."""
    service: AccountService = request.app.state.account_service
    return service


def _validation_failed(exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"detail": str(exc), "field": exc.field},
    )


@router.post("/accounts", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
def create_account(
    payload: CreateAccountRequest,
    service: AccountService = Depends(get_service),
) -> AccountResponse | JSONResponse:
    """Create an account; password-based accounts must supply a password."""
    try:
        account = service.create_account(CreateAccountInput(**payload.model_dump()))
    except ValidationError as exc:
        return _validation_failed(exc)
    except ValueError as exc:
        logger.info("account creation refused: %s", exc)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return AccountResponse.from_domain(account)


@router.get("/accounts", response_model=AccountListResponse)
def list_accounts(
    page: int = Query(default=0, ge=0),
    per_page: int = Query(default=settings.default_per_page, ge=1, le=settings.max_per_page),
    service: AccountService = Depends(get_service),
) -> AccountListResponse:
    """Return a page of accounts ordered by creation time, newest first."""
    accounts = service.list_accounts(ListOptions(per_page=per_page, page=page))
    return AccountListResponse(
        items=[AccountResponse.from_domain(account) for account in accounts],
        page=page,
        per_page=per_page,
    )


@router.post("/accounts/authenticate", response_model=AccountResponse)
def authenticate(
    payload: AuthenticateRequest,
    service: AccountService = Depends(get_service),
) -> AccountResponse:
    """Verify a password for the account registered under ``email``."""
    account = service.authenticate({"email": payload.email}, payload.password)
    if account is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid credentials")
    return AccountResponse.from_domain(account)


@router.get("/accounts/{account_id}", response_model=AccountResponse)
def get_account(
    account_id: str,
    service: AccountService = Depends(get_service),
) -> AccountResponse:
    """Retrieve an account without its credential fields."""
    account = service.get_account(account_id, select=PUBLIC_SELECT)
    if account is None:
        logger.info("account lookup missed: account_id=%s", account_id)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="account not found")
    return AccountResponse.from_domain(account)


@router.put("/accounts/{account_id}/password", status_code=status.HTTP_204_NO_CONTENT)
def change_password(
    account_id: str,
    payload: ChangePasswordRequest,
    service: AccountService = Depends(get_service),
) -> Response:
    """Rotate the account's salt and credential."""
    try:
        service.change_password(account_id, payload.password)
    except AccountNotFoundError as exc:
        logger.info("password change for unknown account: account_id=%s", account_id)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="account not found") from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/accounts/{account_id}/profiles/{provider}", response_model=AccountResponse)
def attach_profile(
    account_id: str,
    provider: str,
    profile: dict[str, Any],
    service: AccountService = Depends(get_service),
) -> AccountResponse:
    """Attach or replace an opaque provider profile blob."""
    try:
        account = service.attach_profile(account_id, provider, profile)
    except AccountNotFoundError as exc:
        logger.info("profile attach for unknown account: account_id=%s", account_id)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="account not found") from exc
    except ValueError as exc:
        logger.info("profile attach refused: %s", exc)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return AccountResponse.from_domain(account)
