import logging
from typing import Optional

from fastapi import Depends, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from spendwise.database.postgres_db import get_db as get_session
from spendwise.database.db_service import get_db_service
from spendwise.errors import AppError, ErrorType
from spendwise.models.schemas import User
from spendwise.services.identity import (
    IdentityProviderClient,
    IdentityProviderError,
    InvalidTokenError,
    display_name,
    get_identity_client,
)
from spendwise.services.profiles import ensure_profile

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(message: str) -> AppError:
    return AppError(
        ErrorType.AUTHENTICATION,
        message,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: Session = Depends(get_session),
    identity: IdentityProviderClient = Depends(get_identity_client),
) -> User:
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Authentication required")

    try:
        identity_user = identity.get_user(credentials.credentials)
    except InvalidTokenError:
        raise _unauthorized("Invalid token")
    except IdentityProviderError:
        logger.warning("Identity provider unavailable while authenticating request")
        raise AppError(
            ErrorType.AUTHENTICATION,
            "Authentication failed",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    user_id = str(identity_user["id"])
    email = identity_user.get("email")
    db = get_db_service(session)
    try:
        profile = ensure_profile(db, user_id, email=email, name=display_name(identity_user))
        session.commit()
    except IntegrityError:
        # A concurrent first request created the profile
        session.rollback()
        profile = db.find_one("profiles", {"id": user_id})
        if profile is None:
            raise

    return User(id=user_id, email=email, name=profile.get("name"))
