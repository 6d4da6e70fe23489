"""Request-scoped dependencies: the current user, the current shopper, admin gating."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from storefront.config import settings
from storefront.db.models import User
from storefront.db.session import get_db
from storefront.services.sessions import Shopper, ensure_guest_session, get_user_by_session_token


# PUBLIC_INTERFACE
def get_current_user(request: Request, db: Session = Depends(get_db)) -> Optional[User]:
    """The signed-in user behind the auth-session cookie, if any."""
    return get_user_by_session_token(db, request.cookies.get(settings.auth_session_cookie))


# PUBLIC_INTERFACE
def get_shopper(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    user: Optional[User] = Depends(get_current_user),
) -> Shopper:
    """
    Resolve who owns the cart for this request.

    Guests with a missing or stale cookie get a new guest session, and the
    cookie is rewritten on the response.
    """
    if user is not None:
        return Shopper(user=user)

    token = request.cookies.get(settings.guest_session_cookie)
    guest = ensure_guest_session(db, token)
    if guest.session_token != token:
        response.set_cookie(
            key=settings.guest_session_cookie,
            value=guest.session_token,
            max_age=settings.guest_session_ttl_days * 24 * 60 * 60,
            httponly=True,
            samesite="lax",
            path="/",
        )
    return Shopper(guest=guest)


# PUBLIC_INTERFACE
def require_user(user: Optional[User] = Depends(get_current_user)) -> User:
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return user


# PUBLIC_INTERFACE
def require_admin(user: Optional[User] = Depends(get_current_user)) -> User:
    """Gate for the admin console: 401 when signed out, 403 for non-admins."""
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user
