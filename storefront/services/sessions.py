"""
Shopper resolution: signed-in users via auth-session rows, everyone else via a
guest row identified by the guest cookie.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from storefront.config import settings
from storefront.db.models import AuthSession, Cart, Guest, User, utcnow

logger = logging.getLogger(__name__)

AUTH_SESSION_TTL = timedelta(days=30)


@dataclass
class Shopper:
    """Whoever owns the current cart: a user, or a guest session."""

    user: Optional[User] = None
    guest: Optional[Guest] = None

    @property
    def is_guest(self) -> bool:
        return self.user is None


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes for timezone-aware columns.
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _new_token() -> str:
    return secrets.token_urlsafe(32)


# PUBLIC_INTERFACE
def get_user_by_session_token(db: Session, token: Optional[str]) -> Optional[User]:
    """User behind an unexpired auth session, or None."""
    if not token:
        return None
    auth_session = db.execute(select(AuthSession).where(AuthSession.token == token)).scalar_one_or_none()
    if auth_session is None or _aware(auth_session.expires_at) <= utcnow():
        return None
    return db.get(User, auth_session.user_id)


# PUBLIC_INTERFACE
def create_user_session(db: Session, user_id, ttl: timedelta = AUTH_SESSION_TTL) -> AuthSession:
    """Issue an auth session row for `user_id` and commit it."""
    auth_session = AuthSession(user_id=user_id, token=_new_token(), expires_at=utcnow() + ttl)
    db.add(auth_session)
    db.commit()
    return auth_session


# PUBLIC_INTERFACE
def create_guest_session(db: Session) -> Guest:
    """Create a guest row with a random token, valid for the configured TTL."""
    guest = Guest(
        session_token=_new_token(),
        expires_at=utcnow() + timedelta(days=settings.guest_session_ttl_days),
    )
    db.add(guest)
    db.commit()
    return guest


# PUBLIC_INTERFACE
def discard_guest(db: Session, guest_id) -> None:
    """Delete a guest row together with its carts. The caller commits."""
    db.execute(delete(Cart).where(Cart.guest_id == guest_id))
    db.execute(delete(Guest).where(Guest.id == guest_id))


# PUBLIC_INTERFACE
def ensure_guest_session(db: Session, token: Optional[str]) -> Guest:
    """
    Return the guest behind `token`, or a new one.

    A token with no row behind it, or whose row has expired, is stale: the caller
    receives a fresh guest and should replace the cookie. An expired row is
    deleted together with its carts.
    """
    if token:
        guest = db.execute(select(Guest).where(Guest.session_token == token)).scalar_one_or_none()
        if guest is not None and _aware(guest.expires_at) > utcnow():
            return guest
        if guest is not None:
            discard_guest(db, guest.id)
        logger.info("Discarding stale guest session cookie")
    return create_guest_session(db)
