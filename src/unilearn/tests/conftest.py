"""Test configuration."""
import os
from typing import Generator

import pytest
from faker import Faker

# Set test environment before any imports
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"

# Import after environment setup
from sqlalchemy.orm import Session

from unilearn.models.base import SessionLocal, drop_db, init_db
from unilearn.models.models import Flashcard, FlashcardSet, User

fake = Faker()


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create a fresh database session for each test."""
    init_db()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        drop_db()


@pytest.fixture
def user(db: Session) -> User:
    """Create a test user."""
    user = User(username=fake.unique.user_name(), email=fake.email())
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def other_user(db: Session) -> User:
    """Create a second user who does not own the test set."""
    user = User(username=fake.unique.user_name(), email=fake.email())
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def flashcard_set(db: Session, user: User) -> FlashcardSet:
    """Create a private set with three cards owned by the test user."""
    flashcard_set = FlashcardSet(
        user_id=user.id,
        title="Capitals",
        description="European capitals",
    )
    db.add(flashcard_set)
    db.commit()

    for index, (question, answer) in enumerate(
        [("France", "Paris"), ("Spain", "Madrid"), ("Italy", "Rome")]
    ):
        db.add(
            Flashcard(
                flashcard_set_id=flashcard_set.id,
                question=question,
                answer=answer,
                order_index=index,
            )
        )
    db.commit()
    db.refresh(flashcard_set)
    return flashcard_set
