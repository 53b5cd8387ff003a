from fastapi import Depends, HTTPException, Security, status
from fastapi.security import APIKeyHeader
from sqlalchemy.orm import Session
import os

from savepoint.database import get_db
from savepoint.models import User
from savepoint.services.user_service import UserService

# Keep the real key in the environment
API_KEY = os.getenv("SAVEPOINT_API_KEY", "your-secret-key-change-me")

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)
user_id_header = APIKeyHeader(name="X-User-Id", auto_error=False)


async def verify_api_key(api_key: str = Security(api_key_header)):
    """Verify API key for authentication"""
    if not api_key or api_key != API_KEY:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API Key"
        )
    return api_key


async def get_current_user(
    user_id: str = Security(user_id_header),
    db: Session = Depends(get_db)
) -> User:
    """Resolve the acting user from the X-User-Id header"""
    if not user_id or not user_id.isdigit():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid X-User-Id header"
        )
    return UserService(db).get_user(int(user_id))
