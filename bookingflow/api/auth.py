"""
Request identity.

Authentication happens upstream; the identity provider's proxy forwards the
verified subject in the X-User-Id header, along with the profile claims it
has (X-User-Email, X-User-First-Name, X-User-Last-Name). When claims are
present the user row is created or refreshed from them. Admin rights are
never granted from headers.
"""
import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from bookingflow.database import get_db
from bookingflow.models.domain import User
from bookingflow.services.bookings import BookingRepository

logger = logging.getLogger(__name__)


def get_current_user(
    x_user_id: Optional[str] = Header(None),
    x_user_email: Optional[str] = Header(None),
    x_user_first_name: Optional[str] = Header(None),
    x_user_last_name: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> User:
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    claims = {
        key: value
        for key, value in (
            ("email", x_user_email),
            ("first_name", x_user_first_name),
            ("last_name", x_user_last_name),
        )
        if value
    }
    if claims:
        user = BookingRepository.upsert_user(db, x_user_id, **claims)
        logger.debug("Provisioned user %s from identity claims", x_user_id)
        return user

    user = BookingRepository.get_user(db, x_user_id)
    if user is None:
        logger.warning("Request with unknown user id %s", x_user_id)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Admin privileges required.",
        )
    return user
