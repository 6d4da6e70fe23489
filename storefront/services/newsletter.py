"""Newsletter signup."""

from __future__ import annotations

import logging

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.db.models import Subscriber
from storefront.forms import NewsletterForm
from storefront.services.common import first_error_message

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def subscribe_to_newsletter(db: Session, payload: dict) -> dict:
    """Add an email to the subscriber list; invalid and already-subscribed emails are rejected."""
    try:
        form = NewsletterForm.model_validate(payload)
    except ValidationError as exc:
        return {"success": False, "error": first_error_message(exc)}

    try:
        existing = db.execute(select(Subscriber.id).where(Subscriber.email == form.email)).first()
        if existing is not None:
            return {"success": False, "error": "This email is already subscribed."}

        db.add(Subscriber(email=form.email))
        db.commit()
        return {"success": True, "message": "Thank you for subscribing!"}
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Newsletter subscription error")
        return {"success": False, "error": "Something went wrong. Please try again."}
