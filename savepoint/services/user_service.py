"""
User service.
Creates users and resolves the acting user for every request.
"""
import logging
from sqlalchemy.orm import Session

from savepoint.models import User
from savepoint.database import transaction
from savepoint.repositories.user_repository import UserRepository
from savepoint.exceptions import UserNotFoundException, DuplicateUserException

logger = logging.getLogger("savepoint.users")


class UserService:
    """Service for user management"""

    def __init__(self, db: Session):
        self.db = db
        self.user_repo = UserRepository()

    def create_user(self, username: str) -> User:
        """
        Create a user with an empty gamification profile.

        Raises:
            DuplicateUserException: If the username is taken
        """
        if self.user_repo.get_by_username(self.db, username):
            raise DuplicateUserException(username)

        with transaction(self.db):
            user = self.user_repo.add(self.db, User(username=username, points=0, level=1))

        self.db.refresh(user)
        logger.info(f"Created user {user.id} ({username})")
        return user

    def get_user(self, user_id: int) -> User:
        user = self.user_repo.get_by_id(self.db, user_id)
        if not user:
            raise UserNotFoundException(user_id)
        return user
