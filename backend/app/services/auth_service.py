"""
Organizer authentication: login and first-account bootstrap.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from app.models.admin import AdminUser
from app.schemas.auth import AdminLogin
from app.core.security import hash_password, verify_password, create_access_token
from app.core.logging import get_logger

logger = get_logger(__name__)


async def authenticate_admin(db: AsyncSession, login_data: AdminLogin) -> str:
    """
    Authenticate an organizer and return a JWT access token.
    Raises 401 if credentials are invalid.
    """
    result = await db.execute(select(AdminUser).where(AdminUser.email == login_data.email))
    admin = result.scalar_one_or_none()

    if not admin or not verify_password(login_data.password, admin.hashed_password):
        logger.warning("admin_login_failed", email=login_data.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not admin.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated",
        )

    token = create_access_token(data={"sub": str(admin.id)})
    logger.info("admin_logged_in", admin_id=admin.id)
    return token


async def ensure_admin(db: AsyncSession, email: str, password: str) -> AdminUser:
    """Create the organizer account if it does not exist yet."""
    result = await db.execute(select(AdminUser).where(AdminUser.email == email))
    admin = result.scalar_one_or_none()
    if admin:
        return admin

    admin = AdminUser(email=email, hashed_password=hash_password(password))
    db.add(admin)
    await db.flush()
    await db.refresh(admin)

    logger.info("admin_created", admin_id=admin.id, email=email)
    return admin
