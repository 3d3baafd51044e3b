"""
Caller identity.

JWT validation happens in the auth gateway in front of the API; it
forwards the verified Auth0 subject in a header (``X-Auth-Subject`` by
default). This dependency maps that subject to our user id.
"""

import logging

from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from food_ordering.core.config import get_settings
from food_ordering.database import get_db
from food_ordering.exceptions import NotAuthenticatedError
from food_ordering.models import User

logger = logging.getLogger(__name__)


async def get_current_user_id(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> str:
    """
    Resolve the calling user's id.

    Raises:
        NotAuthenticatedError: Header missing or subject unknown
    """
    subject = request.headers.get(get_settings().auth_subject_header)
    if not subject:
        raise NotAuthenticatedError()

    user_id = await db.scalar(select(User.id).where(User.auth0_id == subject))
    if user_id is None:
        logger.warning(f"Rejected unknown auth subject {subject}")
        raise NotAuthenticatedError("Unknown user")

    return user_id
