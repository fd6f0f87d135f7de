"""
Admin login, logout and token verification.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from portfolio_backend.auth import AuthService, TokenClaims
from portfolio_backend.config import Settings, get_settings
from portfolio_backend.dependencies import client_ip, get_auth_service, request_token, require_admin
from portfolio_backend.schemas import LoginRequest

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login")
def login(
    payload: LoginRequest,
    response: Response,
    ip: str = Depends(client_ip),
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    issued = auth.login(payload.username, payload.password, ip)
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=issued.token,
        expires=issued.expires_at,
        path="/",
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite="lax",
    )
    return issued.as_dict()


@router.post("/logout")
def logout(
    response: Response,
    token: str = Depends(request_token),
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    auth.logout(token)
    response.delete_cookie(
        key=settings.auth_cookie_name,
        path="/",
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite="lax",
    )
    return {"message": "Logout successful"}


@router.get("/verify")
def verify(claims: TokenClaims = Depends(require_admin)):
    return claims.as_dict()
