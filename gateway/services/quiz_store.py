"""
Quiz persistence behind one interface.

``SqlQuizStore`` is the durable backend (any SQLAlchemy URL), ``InMemoryQuizStore``
the development fallback. Callers must not care which one is active: both
return the same shapes, sort ``list`` results newest first and apply the same
filter semantics (see ``QuizFilters``).
"""
import abc
import logging
import threading
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from ..models.orm import QuizRecord
from ..models.quiz import Quiz, QuizFilters, QuizSummary

logger = logging.getLogger(__name__)


class QuizStore(abc.ABC):
    @abc.abstractmethod
    def get(self, quiz_id: str) -> Optional[Quiz]:
        ...

    @abc.abstractmethod
    def save(self, quiz_id: str, quiz: Quiz) -> Quiz:
        ...

    @abc.abstractmethod
    def list(self, filters: Optional[QuizFilters] = None) -> List[QuizSummary]:
        ...

    @abc.abstractmethod
    def delete(self, quiz_id: str) -> bool:
        """Remove a quiz; False when there was nothing to remove."""

    def exists(self, quiz_id: str) -> bool:
        return self.get(quiz_id) is not None


def _newest_first(summaries: List[QuizSummary]) -> List[QuizSummary]:
    return sorted(summaries, key=lambda s: s.created_at, reverse=True)


class InMemoryQuizStore(QuizStore):
    def __init__(self):
        self._quizzes: Dict[str, Quiz] = {}
        self._lock = threading.Lock()

    def get(self, quiz_id: str) -> Optional[Quiz]:
        with self._lock:
            quiz = self._quizzes.get(quiz_id)
        return quiz.model_copy(deep=True) if quiz else None

    def save(self, quiz_id: str, quiz: Quiz) -> Quiz:
        stored = quiz.model_copy(update={"id": quiz_id}, deep=True)
        with self._lock:
            self._quizzes[quiz_id] = stored
        return stored.model_copy(deep=True)

    def list(self, filters: Optional[QuizFilters] = None) -> List[QuizSummary]:
        filters = filters or QuizFilters()
        with self._lock:
            quizzes = list(self._quizzes.values())
        return _newest_first([QuizSummary.from_quiz(q) for q in quizzes if filters.matches(q)])

    def delete(self, quiz_id: str) -> bool:
        with self._lock:
            return self._quizzes.pop(quiz_id, None) is not None


class SqlQuizStore(QuizStore):
    """Quizzes as JSON documents in a SQL table, with indexed metadata columns."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def get(self, quiz_id: str) -> Optional[Quiz]:
        with self.session_factory() as db:
            record = db.get(QuizRecord, quiz_id)
            return Quiz.model_validate(record.document) if record else None

    def save(self, quiz_id: str, quiz: Quiz) -> Quiz:
        stored = quiz.model_copy(update={"id": quiz_id})
        with self.session_factory() as db:
            db.merge(QuizRecord(
                id=quiz_id,
                title=stored.title,
                subject=stored.subject,
                topic=stored.topic,
                question_count=len(stored.questions),
                created_at=stored.created_at,
                updated_at=stored.updated_at,
                document=stored.to_document(),
            ))
            db.commit()
        return stored

    def list(self, filters: Optional[QuizFilters] = None) -> List[QuizSummary]:
        filters = filters or QuizFilters()
        # Filtering happens in Python so every backend lowercases the same way.
        stmt = select(QuizRecord).order_by(QuizRecord.created_at.desc())
        with self.session_factory() as db:
            records = db.execute(stmt).scalars().all()
        summaries = []
        for record in records:
            meta = {k: v for k, v in record.document.items() if k != "questions"}
            summary = QuizSummary.model_validate({**meta, "questionCount": record.question_count})
            if filters.matches(summary):
                summaries.append(summary)
        return _newest_first(summaries)

    def delete(self, quiz_id: str) -> bool:
        with self.session_factory() as db:
            record = db.get(QuizRecord, quiz_id)
            if record is None:
                return False
            db.delete(record)
            db.commit()
        return True
