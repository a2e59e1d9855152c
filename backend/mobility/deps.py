from typing import AsyncIterator

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from .config import get_settings
from .database import async_session
from .domain.ledger import RedistributionLedger
from .services.background import OccupancyMonitor
from .utils.auth import TokenClaims, decode_access_token


async def get_session() -> AsyncIterator[AsyncSession]:
    async with async_session() as session:
        yield session


async def get_current_user(authorization: str | None = Header(default=None)) -> TokenClaims:
    if authorization is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authorization header required")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Bearer token required")
    settings = get_settings()
    try:
        return decode_access_token(token, secret=settings.auth_secret, algorithms=[settings.auth_algorithm])
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid token") from exc


async def require_admin(user: TokenClaims = Depends(get_current_user)) -> TokenClaims:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="admin role required")
    return user


def get_ledger(request: Request) -> RedistributionLedger:
    return request.app.state.ledger


def get_occupancy_monitor(request: Request) -> OccupancyMonitor:
    return request.app.state.occupancy_monitor
