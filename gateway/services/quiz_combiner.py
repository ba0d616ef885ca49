"""
Merge questions from several stored quizzes into one throwaway quiz.
"""
import logging
import random
import time
from datetime import datetime, timezone
from typing import List, MutableSequence, Optional, TypeVar

from ..core.errors import NotFoundError
from ..models.quiz import CombinedQuiz, Quiz
from .quiz_store import QuizStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

_system_random = random.SystemRandom()


def fisher_yates(items: MutableSequence[T], rng: random.Random) -> MutableSequence[T]:
    """Uniform in-place shuffle: every permutation is equally likely."""
    for i in range(len(items) - 1, 0, -1):
        j = rng.randint(0, i)
        items[i], items[j] = items[j], items[i]
    return items


def _combined_title(quizzes: List[Quiz]) -> str:
    if len(quizzes) == 1:
        return f"{quizzes[0].title} (Shuffled)"
    return f"Combined Quiz: {', '.join(q.title for q in quizzes)}"


def _combined_subject(quizzes: List[Quiz]) -> str:
    subjects: List[str] = []
    for quiz in quizzes:
        if quiz.subject.lower() not in (s.lower() for s in subjects):
            subjects.append(quiz.subject)
    return ", ".join(subjects)


def combine_quizzes(
    store: QuizStore,
    quiz_ids: List[str],
    question_count: Optional[int] = None,
    shuffle: bool = True,
    rng: Optional[random.Random] = None,
) -> CombinedQuiz:
    """All-or-nothing: one unknown id aborts the merge and every missing id is reported."""
    rng = rng or _system_random
    found = {quiz_id: store.get(quiz_id) for quiz_id in dict.fromkeys(quiz_ids)}
    missing = [quiz_id for quiz_id, quiz in found.items() if quiz is None]
    if missing:
        raise NotFoundError(f"Quizzes not found: {', '.join(missing)}", missing=missing)
    quizzes = list(found.values())

    questions = []
    for quiz in quizzes:
        for question in quiz.questions:
            tagged = question.to_document()
            tagged["sourceQuiz"] = quiz.id
            tagged["sourceTitle"] = quiz.title
            questions.append(tagged)

    if shuffle:
        fisher_yates(questions, rng)
    # Truncate after shuffling so a capped result is a uniform random subset.
    if question_count is not None and question_count < len(questions):
        questions = questions[:question_count]
    for index, question in enumerate(questions, start=1):
        question["id"] = f"q{index}"

    logger.info("Combined %d quizzes into %d questions", len(quizzes), len(questions))
    return CombinedQuiz(
        id=f"combined-{int(time.time() * 1000)}",
        title=_combined_title(quizzes),
        subject=_combined_subject(quizzes),
        description=f"{len(questions)} questions from {len(quizzes)} quizzes",
        questions=questions,
        source_quizzes=[q.id for q in quizzes],
        question_count=len(questions),
        created_at=datetime.now(timezone.utc),
    )
