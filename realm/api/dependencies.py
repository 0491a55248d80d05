"""
Request dependencies shared by the realm routers.

Authentication is handled upstream; the acting player arrives as the
``X-Player-Id`` header and is loaded inside the request's unit of work.
"""

from typing import Annotated

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession
from structlog.contextvars import bind_contextvars

from ..database import get_async_session
from ..error_types import ErrorMessages
from ..exceptions import LoggedHTTPException, create_error_context
from ..models.user import User
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

SessionDep = Annotated[AsyncSession, Depends(get_async_session)]


async def get_current_user(
    request: Request,
    session: SessionDep,
    x_player_id: Annotated[str | None, Header()] = None,
) -> User:
    """Resolve the acting player or answer 401."""
    context = create_error_context(metadata={"path": request.url.path})
    if not x_player_id or not x_player_id.strip().isdigit():
        raise LoggedHTTPException(status_code=401, detail=ErrorMessages.AUTHENTICATION_REQUIRED, context=context)

    user = await session.get(User, int(x_player_id))
    if user is None:
        raise LoggedHTTPException(status_code=401, detail=ErrorMessages.PLAYER_NOT_FOUND, context=context)

    request.state.user_id = user.id
    bind_contextvars(user_id=user.id)
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
