"""Flashcard service for sets, cards and spaced repetition study."""
import logging
from datetime import datetime
from typing import List, Optional, Union

from sqlalchemy import and_, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from unilearn.config import settings
from unilearn.models.base import as_utc, utcnow
from unilearn.models.models import (
    Flashcard,
    FlashcardSet,
    FlashcardType,
    User,
    UserFlashcardProgress,
    UserFlashcardSetAccess,
)
from unilearn.models.review_models import ReviewResult, SetStatistics
from unilearn.monitoring import (
    cards_created,
    cards_mastered,
    error_count,
    invalid_quality_total,
    reviews_total,
    sets_completed,
    sets_created,
)
from unilearn.services.spaced_repetition import (
    InvalidQuality,
    SpacedRepetitionService,
    validate_quality,
)

logger = logging.getLogger(__name__)


class FlashcardService:
    """Service for managing flashcard sets and reviewing cards."""

    def __init__(self, db: Session, srs: Optional[SpacedRepetitionService] = None):
        """Initialize the service with a database session."""
        self.db = db
        self.srs = srs or SpacedRepetitionService()

    # Sets

    def get_set(self, set_id: int) -> Optional[FlashcardSet]:
        """Get flashcard set by ID."""
        return self.db.query(FlashcardSet).filter(FlashcardSet.id == set_id).first()

    def get_user_sets(self, user_id: int) -> List[FlashcardSet]:
        """Get all sets owned by the user, newest first."""
        return (
            self.db.query(FlashcardSet)
            .filter(FlashcardSet.user_id == user_id)
            .order_by(FlashcardSet.created_at.desc(), FlashcardSet.id.desc())
            .all()
        )

    def get_public_sets(self) -> List[FlashcardSet]:
        """Get public sets that are published."""
        return (
            self.db.query(FlashcardSet)
            .filter(
                and_(
                    FlashcardSet.is_public == True,
                    FlashcardSet.is_published == True,
                )
            )
            .order_by(FlashcardSet.id)
            .all()
        )

    def create_set(
        self,
        user_id: int,
        title: str,
        description: str = "",
        is_public: bool = False,
        is_published: bool = False,
    ) -> FlashcardSet:
        """Create a new flashcard set for the user."""
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user: raise ValueError(f"User {user_id} not found")
        self._validate_set_fields(title, description)

        flashcard_set = FlashcardSet(
            user_id=user_id,
            title=title.strip(),
            description=description or "",
            is_public=is_public,
            is_published=is_published,
        )
        self.db.add(flashcard_set)
        self.db.commit()
        self.db.refresh(flashcard_set)
        sets_created.inc()

        logger.info(f"Flashcard set created: {flashcard_set.title} by user {user_id}")
        return flashcard_set

    def update_set(
        self,
        set_id: int,
        user_id: int,
        title: Optional[str] = None,
        description: Optional[str] = None,
        is_public: Optional[bool] = None,
        is_published: Optional[bool] = None,
    ) -> FlashcardSet:
        """Update a set owned by the user."""
        flashcard_set = self._get_owned_set(set_id, user_id)
        self._validate_set_fields(
            title if title is not None else flashcard_set.title,
            description if description is not None else flashcard_set.description,
        )

        if title is not None:
            flashcard_set.title = title.strip()
        if description is not None:
            flashcard_set.description = description
        if is_public is not None:
            flashcard_set.is_public = is_public
        if is_published is not None:
            flashcard_set.is_published = is_published
        flashcard_set.updated_at = utcnow()

        self.db.commit()
        self.db.refresh(flashcard_set)
        logger.info(f"Flashcard set updated: {set_id}")
        return flashcard_set

    def delete_set(self, set_id: int, user_id: int) -> bool:
        """Delete a set with its cards and progress. Only the owner may delete it."""
        flashcard_set = self.get_set(set_id)
        if not flashcard_set:
            return False

        if flashcard_set.user_id != user_id:
            logger.warning(
                f"User {user_id} attempted to delete set {set_id} owned by {flashcard_set.user_id}"
            )
            return False

        self.db.delete(flashcard_set)
        self.db.commit()
        logger.info(f"Flashcard set deleted: {set_id}")
        return True

    # Cards

    def get_card(self, card_id: int) -> Optional[Flashcard]:
        """Get flashcard by ID."""
        return self.db.query(Flashcard).filter(Flashcard.id == card_id).first()

    def add_card(
        self,
        set_id: int,
        user_id: int,
        question: str,
        answer: str,
        type: Union[FlashcardType, str] = FlashcardType.SINGLE_CHOICE,
        explanation: str = "",
        options_json: Optional[str] = None,
        matching_pairs_json: Optional[str] = None,
        sequence_json: Optional[str] = None,
    ) -> Flashcard:
        """Append a card to a set owned by the user."""
        flashcard_set = self._get_owned_set(set_id, user_id)
        self._validate_card_fields(question, answer)

        last_index = (
            self.db.query(func.max(Flashcard.order_index))
            .filter(Flashcard.flashcard_set_id == set_id)
            .scalar()
        )
        card = Flashcard(
            flashcard_set_id=set_id,
            type=FlashcardType(type),
            question=question.strip(),
            answer=answer.strip(),
            explanation=explanation or "",
            options_json=options_json,
            matching_pairs_json=matching_pairs_json,
            sequence_json=sequence_json,
            order_index=0 if last_index is None else last_index + 1,
        )
        self.db.add(card)
        flashcard_set.updated_at = utcnow()
        self.db.commit()
        self.db.refresh(card)
        cards_created.inc()

        logger.info(f"Flashcard added to set {set_id}")
        return card

    def update_card(
        self,
        card_id: int,
        user_id: int,
        question: Optional[str] = None,
        answer: Optional[str] = None,
        type: Optional[Union[FlashcardType, str]] = None,
        explanation: Optional[str] = None,
        options_json: Optional[str] = None,
        matching_pairs_json: Optional[str] = None,
        sequence_json: Optional[str] = None,
    ) -> Flashcard:
        """Update a card in a set owned by the user."""
        card = self._get_owned_card(card_id, user_id)
        self._validate_card_fields(
            question if question is not None else card.question,
            answer if answer is not None else card.answer,
        )

        if question is not None:
            card.question = question.strip()
        if answer is not None:
            card.answer = answer.strip()
        if type is not None:
            card.type = FlashcardType(type)
        if explanation is not None:
            card.explanation = explanation
        if options_json is not None:
            card.options_json = options_json
        if matching_pairs_json is not None:
            card.matching_pairs_json = matching_pairs_json
        if sequence_json is not None:
            card.sequence_json = sequence_json

        self.db.commit()
        self.db.refresh(card)
        logger.info(f"Flashcard updated: {card_id}")
        return card

    def delete_card(self, card_id: int, user_id: int) -> bool:
        """Delete a card from a set owned by the user."""
        card = self.get_card(card_id)
        if not card:
            return False
        if card.flashcard_set.user_id != user_id:
            logger.warning(f"User {user_id} attempted to delete card {card_id} they do not own")
            return False

        self.db.delete(card)
        self.db.commit()
        logger.info(f"Flashcard deleted: {card_id}")
        return True

    # Study

    def get_progress(self, user_id: int, card_id: int) -> Optional[UserFlashcardProgress]:
        """Get the user's progress on a card."""
        return (
            self.db.query(UserFlashcardProgress)
            .filter(
                and_(
                    UserFlashcardProgress.user_id == user_id,
                    UserFlashcardProgress.flashcard_id == card_id,
                )
            )
            .first()
        )

    def get_cards_for_review(
        self, user_id: int, set_id: int, now: Optional[datetime] = None
    ) -> List[Flashcard]:
        """Get cards of an accessible set that were never studied or are due."""
        flashcard_set = self._get_accessible_set(set_id, user_id)
        now = now or utcnow()

        cards = (
            self.db.query(Flashcard)
            .filter(Flashcard.flashcard_set_id == flashcard_set.id)
            .order_by(Flashcard.order_index, Flashcard.id)
            .all()
        )
        progress_by_card = {
            progress.flashcard_id: progress
            for progress in self._get_set_progress(user_id, flashcard_set.id)
        }

        due_cards = []
        for card in cards:
            progress = progress_by_card.get(card.id)
            if progress is None or self.srs.is_due_for_review(progress, now):
                due_cards.append(card)
            if len(due_cards) >= settings.study.max_review_batch: break
        return due_cards

    def get_due_progress(
        self, user_id: int, now: Optional[datetime] = None
    ) -> List[UserFlashcardProgress]:
        """Get the user's due progress records, oldest due date first."""
        now = now or utcnow()
        return (
            self.db.query(UserFlashcardProgress)
            .filter(
                and_(
                    UserFlashcardProgress.user_id == user_id,
                    UserFlashcardProgress.next_review_date <= now,
                )
            )
            .order_by(UserFlashcardProgress.next_review_date)
            .limit(settings.study.max_review_batch)
            .all()
        )

    def review_card(
        self, user_id: int, card_id: int, quality: int, now: Optional[datetime] = None
    ) -> ReviewResult:
        """Record a review of a card and reschedule it."""
        try:
            quality = validate_quality(quality)
        except InvalidQuality:
            invalid_quality_total.inc()
            logger.warning(f"User {user_id} sent invalid quality {quality!r} for card {card_id}")
            raise

        card = self._get_accessible_card(card_id, user_id)
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user: raise ValueError(f"User {user_id} not found")
        now = now or utcnow()

        progress = self.get_progress(user_id, card_id)
        was_mastered = progress.is_mastered if progress else False
        was_reviewed = progress is not None and progress.last_reviewed_at is not None

        try:
            if progress is None:
                progress = UserFlashcardProgress(user_id=user_id, flashcard_id=card_id)
                self.db.add(progress)

            self.srs.review(progress, quality, now)

            passed = quality >= self.srs.settings.pass_threshold
            if progress.first_reviewed_at is None:
                progress.first_reviewed_at = now
            progress.total_reviews += 1
            if passed:
                progress.correct_reviews += 1
            progress.updated_at = now
            progress.is_mastered = passed and self.srs.is_mastered(progress)

            became_mastered = not was_mastered and progress.is_mastered

            if not was_reviewed:
                user.total_cards_studied = (user.total_cards_studied or 0) + 1

            set_completed = self._track_set_access(user_id, card.flashcard_set_id, now)

            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            error_count.labels(error_type=type(e).__name__).inc()
            logger.error(f"Failed to save review of card {card_id} by user {user_id}: {e}")
            raise

        reviews_total.labels(outcome="passed" if passed else "failed").inc()
        if became_mastered:
            cards_mastered.inc()
        logger.info(f"Card {card_id} reviewed by user {user_id} with quality {quality}")

        return ReviewResult(
            flashcard_id=card_id,
            quality=quality,
            next_review_date=as_utc(progress.next_review_date),
            interval_days=progress.interval,
            ease_factor=progress.ease_factor,
            repetitions=progress.repetitions,
            is_mastered=progress.is_mastered,
            became_mastered=became_mastered,
            set_completed=set_completed,
        )

    def get_set_access(self, user_id: int, set_id: int) -> Optional[UserFlashcardSetAccess]:
        """Get the user's access record for a set."""
        return (
            self.db.query(UserFlashcardSetAccess)
            .filter(
                and_(
                    UserFlashcardSetAccess.user_id == user_id,
                    UserFlashcardSetAccess.flashcard_set_id == set_id,
                )
            )
            .first()
        )

    def get_set_statistics(
        self, user_id: int, set_id: int, now: Optional[datetime] = None
    ) -> Optional[SetStatistics]:
        """Summarize the user's progress over a set."""
        flashcard_set = self.get_set(set_id)
        if not flashcard_set:
            return None
        if flashcard_set.user_id != user_id and not flashcard_set.is_public:
            logger.warning(f"User {user_id} requested statistics of private set {set_id}")
            raise ValueError(f"Flashcard set {set_id} not found or access denied")
        now = now or utcnow()

        total_cards = (
            self.db.query(Flashcard)
            .filter(Flashcard.flashcard_set_id == set_id)
            .count()
        )
        progress_list = self._get_set_progress(user_id, set_id)
        access = self.get_set_access(user_id, set_id)

        return SetStatistics(
            set_id=set_id,
            total_cards=total_cards,
            reviewed_cards=sum(1 for p in progress_list if p.last_reviewed_at is not None),
            mastered_cards=sum(1 for p in progress_list if p.is_mastered),
            cards_due_for_review=sum(
                1 for p in progress_list
                if p.next_review_date is not None and as_utc(p.next_review_date) <= now
            ),
            is_completed=access.is_completed if access else False,
            last_accessed_at=as_utc(
                (access.last_accessed_at or access.first_accessed_at) if access else None
            ),
        )

    def get_mastered_cards_count(self, user_id: int) -> int:
        """Count the cards the user has mastered."""
        return (
            self.db.query(UserFlashcardProgress)
            .filter(
                and_(
                    UserFlashcardProgress.user_id == user_id,
                    UserFlashcardProgress.is_mastered == True,
                )
            )
            .count()
        )

    # Helpers

    def _track_set_access(
        self,
        user_id: int,
        set_id: int,
        now: datetime,
    ) -> bool:
        """Update the set access record from the set's current cards. Returns True if the set was just completed."""
        # Pending progress changes must be visible to the mastered count
        self.db.flush()
        total_cards = (
            self.db.query(Flashcard)
            .filter(Flashcard.flashcard_set_id == set_id)
            .count()
        )
        access = self.get_set_access(user_id, set_id)
        mastered_cards = (
            self.db.query(UserFlashcardProgress)
            .join(Flashcard, UserFlashcardProgress.flashcard_id == Flashcard.id)
            .filter(
                and_(
                    UserFlashcardProgress.user_id == user_id,
                    UserFlashcardProgress.is_mastered == True,
                    Flashcard.flashcard_set_id == set_id,
                )
            )
            .count()
        )

        if access is None:
            access = UserFlashcardSetAccess(
                user_id=user_id,
                flashcard_set_id=set_id,
                first_accessed_at=now,
                last_accessed_at=now,
                access_count=1,
                total_cards_count=total_cards,
                cards_studied_count=mastered_cards,
                is_completed=False,
            )
            self.db.add(access)
            logger.info(f"Set access created for user {user_id}, set {set_id}")
        else:
            access.cards_studied_count = mastered_cards
            access.total_cards_count = total_cards
            access.last_accessed_at = now
            access.access_count += 1

        if (
            not access.is_completed
            and access.total_cards_count > 0
            and access.cards_studied_count >= access.total_cards_count
        ):
            access.is_completed = True
            access.completed_at = now
            sets_completed.inc()
            logger.info(
                f"Flashcard set completed: user {user_id}, set {set_id}, "
                f"mastered {access.cards_studied_count}/{access.total_cards_count}"
            )
            return True
        return False

    def _get_set_progress(self, user_id: int, set_id: int) -> List[UserFlashcardProgress]:
        return (
            self.db.query(UserFlashcardProgress)
            .join(Flashcard, UserFlashcardProgress.flashcard_id == Flashcard.id)
            .filter(
                and_(
                    UserFlashcardProgress.user_id == user_id,
                    Flashcard.flashcard_set_id == set_id,
                )
            )
            .all()
        )

    def _get_owned_set(self, set_id: int, user_id: int) -> FlashcardSet:
        flashcard_set = self.get_set(set_id)
        if not flashcard_set:
            raise ValueError(f"Flashcard set {set_id} not found")
        if flashcard_set.user_id != user_id:
            logger.warning(f"User {user_id} attempted to modify set {set_id} owned by {flashcard_set.user_id}")
            raise ValueError(f"Flashcard set {set_id} is not owned by user {user_id}")
        return flashcard_set

    def _get_owned_card(self, card_id: int, user_id: int) -> Flashcard:
        card = self.get_card(card_id)
        if not card:
            raise ValueError(f"Flashcard {card_id} not found")
        if card.flashcard_set.user_id != user_id:
            logger.warning(f"User {user_id} attempted to modify card {card_id} they do not own")
            raise ValueError(f"Flashcard {card_id} is not owned by user {user_id}")
        return card

    def _get_accessible_set(self, set_id: int, user_id: int) -> FlashcardSet:
        """Own sets and public sets can be studied."""
        flashcard_set = (
            self.db.query(FlashcardSet)
            .filter(
                and_(
                    FlashcardSet.id == set_id,
                    or_(FlashcardSet.user_id == user_id, FlashcardSet.is_public == True),
                )
            )
            .first()
        )
        if not flashcard_set:
            raise ValueError(f"Flashcard set {set_id} not found or access denied")
        return flashcard_set

    def _get_accessible_card(self, card_id: int, user_id: int) -> Flashcard:
        card = (
            self.db.query(Flashcard)
            .join(FlashcardSet, Flashcard.flashcard_set_id == FlashcardSet.id)
            .filter(
                and_(
                    Flashcard.id == card_id,
                    or_(FlashcardSet.user_id == user_id, FlashcardSet.is_public == True),
                )
            )
            .first()
        )
        if not card:
            raise ValueError(f"Flashcard {card_id} not found or access denied")
        return card

    def _validate_set_fields(self, title: Optional[str], description: Optional[str]) -> None:
        if not title or not title.strip():
            raise ValueError("Set title is required")
        if len(title) > settings.study.max_title_length:
            raise ValueError(f"Set title must not exceed {settings.study.max_title_length} characters")
        if description and len(description) > settings.study.max_description_length:
            raise ValueError(
                f"Set description must not exceed {settings.study.max_description_length} characters"
            )

    def _validate_card_fields(self, question: Optional[str], answer: Optional[str]) -> None:
        if not question or not question.strip():
            raise ValueError("Question is required")
        if not answer or not answer.strip():
            raise ValueError("Answer is required")
        if len(question) > settings.study.max_question_length:
            raise ValueError(f"Question must not exceed {settings.study.max_question_length} characters")
        if len(answer) > settings.study.max_answer_length:
            raise ValueError(f"Answer must not exceed {settings.study.max_answer_length} characters")
