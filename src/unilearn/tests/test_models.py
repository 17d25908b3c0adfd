"""Tests for database models."""
from datetime import UTC, datetime, timedelta

import pytest
from faker import Faker
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from unilearn.models.base import as_utc
from unilearn.models.models import (
    Flashcard,
    FlashcardSet,
    FlashcardType,
    User,
    UserFlashcardProgress,
    UserFlashcardSetAccess,
)

fake = Faker()


def test_user_creation(db: Session) -> None:
    """Test user creation."""
    user = User(username=fake.unique.user_name())
    db.add(user)
    db.commit()
    db.refresh(user)

    assert user.id is not None
    assert user.email is None
    assert user.total_cards_studied == 0
    assert user.created_at is not None


def test_flashcard_set_creation(db: Session, user: User) -> None:
    """Test flashcard set defaults."""
    flashcard_set = FlashcardSet(user_id=user.id, title="Chemistry")
    db.add(flashcard_set)
    db.commit()
    db.refresh(flashcard_set)

    assert flashcard_set.id is not None
    assert flashcard_set.description == ""
    assert flashcard_set.is_public is False
    assert flashcard_set.is_published is False
    assert flashcard_set.user.id == user.id


def test_flashcard_creation(db: Session, flashcard_set: FlashcardSet) -> None:
    """Test flashcard defaults and ordering."""
    card = Flashcard(
        flashcard_set_id=flashcard_set.id,
        type=FlashcardType.MATCHING,
        question="Match the elements",
        answer="H-Hydrogen, O-Oxygen",
        matching_pairs_json='[{"left": "H", "right": "Hydrogen"}]',
        order_index=10,
    )
    db.add(card)
    db.commit()
    db.refresh(card)
    db.refresh(flashcard_set)

    assert card.type == FlashcardType.MATCHING
    assert card.explanation == ""
    assert [c.question for c in flashcard_set.flashcards] == [
        "France", "Spain", "Italy", "Match the elements",
    ]


def test_progress_defaults_before_flush() -> None:
    """Test unsaved progress records carry the SM-2 starting state."""
    progress = UserFlashcardProgress(user_id=1, flashcard_id=1)

    assert progress.ease_factor == 2.5
    assert progress.interval == 0
    assert progress.repetitions == 0
    assert progress.is_mastered is False
    assert progress.total_reviews == 0
    assert progress.correct_reviews == 0


def test_progress_persistence(db: Session, user: User, flashcard_set: FlashcardSet) -> None:
    """Test progress round trip through the database."""
    due = datetime(2026, 5, 1, 8, 30, tzinfo=UTC)
    progress = UserFlashcardProgress(
        user_id=user.id,
        flashcard_id=flashcard_set.flashcards[0].id,
        ease_factor=2.36,
        interval=6,
        repetitions=2,
        next_review_date=due,
    )
    db.add(progress)
    db.commit()
    db.refresh(progress)

    assert progress.id is not None
    assert progress.ease_factor == pytest.approx(2.36)
    assert as_utc(progress.next_review_date) == due
    assert progress.flashcard.question == "France"
    assert progress.user.id == user.id


def test_progress_unique_per_user_and_card(db: Session, user: User, flashcard_set: FlashcardSet) -> None:
    """Test a user has one progress record per card."""
    card_id = flashcard_set.flashcards[0].id
    db.add(UserFlashcardProgress(user_id=user.id, flashcard_id=card_id))
    db.commit()

    db.add(UserFlashcardProgress(user_id=user.id, flashcard_id=card_id))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_set_access_creation(db: Session, user: User, flashcard_set: FlashcardSet) -> None:
    """Test set access defaults."""
    access = UserFlashcardSetAccess(user_id=user.id, flashcard_set_id=flashcard_set.id)
    db.add(access)
    db.commit()
    db.refresh(access)

    assert access.first_accessed_at is not None
    assert access.last_accessed_at is None
    assert access.access_count == 1
    assert access.is_completed is False
    assert access.cards_studied_count == 0


def test_delete_set_cascades(db: Session, user: User, flashcard_set: FlashcardSet) -> None:
    """Test deleting a set removes its cards, progress and access records."""
    card = flashcard_set.flashcards[0]
    db.add(UserFlashcardProgress(user_id=user.id, flashcard_id=card.id))
    db.add(UserFlashcardSetAccess(user_id=user.id, flashcard_set_id=flashcard_set.id))
    db.commit()

    db.delete(flashcard_set)
    db.commit()

    assert db.query(Flashcard).count() == 0
    assert db.query(UserFlashcardProgress).count() == 0
    assert db.query(UserFlashcardSetAccess).count() == 0


def test_as_utc() -> None:
    """Test naive datetimes are tagged as UTC."""
    naive = datetime(2026, 1, 1, 12, 0)
    aware = naive.replace(tzinfo=UTC)

    assert as_utc(None) is None
    assert as_utc(naive) == aware
    assert as_utc(aware) is aware
    assert as_utc(naive) + timedelta(days=1) == aware + timedelta(days=1)


if __name__ == "__main__":
    pytest.main([__file__])
