"""User service for looking up and registering users."""
from typing import Optional
import logging

from sqlalchemy.orm import Session

from unilearn.models.models import User

# Configure logging
logger = logging.getLogger(__name__)

class UserService:
    """Service for managing users."""

    def __init__(self, db: Session):
        """Initialize the service with a database session."""
        self.db = db

    def get_user(self, user_id: int) -> Optional[User]:
        """Get user by ID."""
        return self.db.query(User).filter(User.id == user_id).first()

    def get_user_by_username(self, username: str) -> Optional[User]:
        """Get user by username."""
        return self.db.query(User).filter(User.username == username).first()

    def get_or_create_user(self, username: str, email: Optional[str] = None) -> User:
        """Get existing user or create a new one."""
        if not username or not username.strip():
            raise ValueError("Username is required")

        user = self.get_user_by_username(username)
        if not user:
            user = User(username=username, email=email, total_cards_studied=0)
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
            logger.info(f"User created: {user.id} ({username})")

        return user
