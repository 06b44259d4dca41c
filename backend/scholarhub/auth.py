"""Session handling and FastAPI guard dependencies.

The session store lives in this module and is handed to routes through
the `get_session_store` dependency so tests can swap it. `require_user`
and `require_org` resolve the cookie to a principal and raise
HTTPException(401) when the caller is not logged in with the right type.
"""

from typing import Optional
from fastapi import Depends, HTTPException, Request, Response
from .config import settings
from .services import USER, ORG
from .session_store import SessionStore

store = SessionStore(ttl_seconds=settings.SESSION_TTL_SECONDS, max_entries=settings.SESSION_MAX_ENTRIES)


def get_session_store() -> SessionStore:
    return store


def get_principal(request: Request, sessions: SessionStore = Depends(get_session_store)) -> Optional[dict]:
    """Return the principal bound to the request's session cookie, or None."""
    return sessions.get(request.cookies.get(settings.SESSION_COOKIE_NAME))


def require_user(principal: Optional[dict] = Depends(get_principal)) -> dict:
    """FastAPI dependency that only admits a logged-in user."""
    if not principal or principal.get('type') != USER:
        raise HTTPException(status_code=401, detail='Login required as user.')
    return principal


def require_org(principal: Optional[dict] = Depends(get_principal)) -> dict:
    """FastAPI dependency that only admits a logged-in organisation."""
    if not principal or principal.get('type') != ORG:
        raise HTTPException(status_code=401, detail='Login required as organisation.')
    return principal


def start_session(request: Request, response: Response, principal: dict, sessions: SessionStore) -> None:
    """Replace any current session with one for `principal` and set its cookie."""
    sessions.destroy(request.cookies.get(settings.SESSION_COOKIE_NAME))
    token = sessions.create(principal)
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.SESSION_TTL_SECONDS,
        httponly=True,
        samesite='lax',
        secure=settings.COOKIE_SECURE,
    )


def end_session(request: Request, response: Response, sessions: SessionStore) -> None:
    sessions.destroy(request.cookies.get(settings.SESSION_COOKIE_NAME))
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
