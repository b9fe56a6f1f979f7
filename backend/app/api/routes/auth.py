"""
Organizer authentication endpoint.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.auth import AdminLogin, Token
from app.services.auth_service import authenticate_admin

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=Token)
async def login(login_data: AdminLogin, db: AsyncSession = Depends(get_db)):
    """Authenticate an organizer and receive a JWT access token."""
    token = await authenticate_admin(db, login_data)
    return Token(access_token=token)
