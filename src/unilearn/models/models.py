"""Database models for the study backend."""
import enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from unilearn.config import settings
from unilearn.models.base import Base, TimestampMixin, utcnow


class FlashcardType(enum.Enum):
    """Interactive flashcard kinds."""
    SINGLE_CHOICE = "single_choice"  # pick the correct option
    FILL_IN_THE_BLANK = "fill_in_the_blank"
    MATCHING = "matching"  # term/definition pairs
    SEQUENCING = "sequencing"  # restore the order of steps


class User(Base, TimestampMixin):
    """User model."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, nullable=False)
    email = Column(String, nullable=True)
    total_cards_studied = Column(Integer, default=0, nullable=False)

    # Relationships
    flashcard_sets = relationship("FlashcardSet", back_populates="user")
    flashcard_progress = relationship("UserFlashcardProgress", back_populates="user")
    set_accesses = relationship("UserFlashcardSetAccess", back_populates="user")


class FlashcardSet(Base, TimestampMixin):
    """Flashcard set owned by a user."""

    __tablename__ = "flashcard_sets"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(String(1000), nullable=False, default="")
    is_public = Column(Boolean, default=False, nullable=False)  # visible to every student
    is_published = Column(Boolean, default=False, nullable=False)  # False means draft

    # Relationships
    user = relationship("User", back_populates="flashcard_sets")
    flashcards = relationship(
        "Flashcard",
        back_populates="flashcard_set",
        order_by="Flashcard.order_index",
        cascade="all, delete-orphan",
    )
    accesses = relationship(
        "UserFlashcardSetAccess",
        back_populates="flashcard_set",
        cascade="all, delete-orphan",
    )


class Flashcard(Base, TimestampMixin):
    """Single flashcard."""

    __tablename__ = "flashcards"

    id = Column(Integer, primary_key=True)
    flashcard_set_id = Column(Integer, ForeignKey("flashcard_sets.id"), nullable=False, index=True)
    type = Column(Enum(FlashcardType), default=FlashcardType.SINGLE_CHOICE, nullable=False)
    question = Column(String(500), nullable=False)
    answer = Column(String(500), nullable=False)
    options_json = Column(String(2000))  # single choice: ["opt1", "opt2", "correct"]
    matching_pairs_json = Column(String(2000))  # matching: [{"left": "term", "right": "def"}]
    sequence_json = Column(String(2000))  # sequencing: ["step1", "step2"]
    explanation = Column(String(1000), default="")
    order_index = Column(Integer, default=0, nullable=False)

    # Relationships
    flashcard_set = relationship("FlashcardSet", back_populates="flashcards")
    progress = relationship(
        "UserFlashcardProgress",
        back_populates="flashcard",
        cascade="all, delete-orphan",
    )


class UserFlashcardProgress(Base, TimestampMixin):
    """Per-user SM-2 state of a flashcard."""

    __tablename__ = "user_flashcard_progress"
    __table_args__ = (UniqueConstraint("user_id", "flashcard_id"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    flashcard_id = Column(Integer, ForeignKey("flashcards.id"), nullable=False, index=True)

    ease_factor = Column(Float, nullable=False)
    interval = Column(Integer, default=0, nullable=False)  # days
    repetitions = Column(Integer, default=0, nullable=False)  # consecutive successes
    next_review_date = Column(DateTime(timezone=True), index=True)
    last_reviewed_at = Column(DateTime(timezone=True))
    is_mastered = Column(Boolean, default=False, nullable=False)

    total_reviews = Column(Integer, default=0, nullable=False)
    correct_reviews = Column(Integer, default=0, nullable=False)
    first_reviewed_at = Column(DateTime(timezone=True))

    # Relationships
    user = relationship("User", back_populates="flashcard_progress")
    flashcard = relationship("Flashcard", back_populates="progress")

    def __init__(self, **kwargs):
        """Fill the SM-2 starting state so unsaved records are usable."""
        kwargs.setdefault("ease_factor", settings.srs.initial_ease_factor)
        kwargs.setdefault("interval", 0)
        kwargs.setdefault("repetitions", 0)
        kwargs.setdefault("is_mastered", False)
        kwargs.setdefault("total_reviews", 0)
        kwargs.setdefault("correct_reviews", 0)
        super().__init__(**kwargs)

    def __repr__(self) -> str:
        return (
            f"<UserFlashcardProgress user={self.user_id} card={self.flashcard_id} "
            f"ef={self.ease_factor} interval={self.interval} reps={self.repetitions}>"
        )


class UserFlashcardSetAccess(Base, TimestampMixin):
    """User's access record and completion state for a flashcard set."""

    __tablename__ = "user_flashcard_set_access"
    __table_args__ = (UniqueConstraint("user_id", "flashcard_set_id"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    flashcard_set_id = Column(Integer, ForeignKey("flashcard_sets.id"), nullable=False, index=True)
    first_accessed_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    last_accessed_at = Column(DateTime(timezone=True))
    access_count = Column(Integer, default=1, nullable=False)
    is_completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime(timezone=True))
    cards_studied_count = Column(Integer, default=0, nullable=False)  # mastered cards
    total_cards_count = Column(Integer, default=0, nullable=False)

    # Relationships
    user = relationship("User", back_populates="set_accesses")
    flashcard_set = relationship("FlashcardSet", back_populates="accesses")
