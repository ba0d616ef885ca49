"""
Built-in quizzes shipped with the gateway. Ids are fixed so reseeding is idempotent.
"""
import logging
from datetime import datetime, timezone
from typing import List

from ..models.quiz import Quiz
from .quiz_store import QuizStore

logger = logging.getLogger(__name__)

_SEEDED_AT = datetime(2025, 1, 1, tzinfo=timezone.utc)

SEED_QUIZZES: List[dict] = [
    {
        "id": "physics-kinematics-basics",
        "title": "Kinematics Basics",
        "subject": "Physics",
        "topic": "Kinematics",
        "difficulty": "easy",
        "description": "Displacement, velocity and acceleration in one dimension.",
        "tags": ["motion", "mechanics"],
        "author": "OpenNotes",
        "questions": [
            {
                "id": "q1",
                "type": "mcq",
                "question": "What is the SI unit of acceleration?",
                "options": ["m/s", "m/s^2", "N", "kg m/s"],
                "correctAnswers": [1],
                "explanation": "Acceleration is the rate of change of velocity: (m/s)/s.",
            },
            {
                "id": "q2",
                "type": "tf",
                "question": "An object moving at constant speed in a circle has zero acceleration.",
                "correctAnswer": False,
                "explanation": "Its direction changes, so there is centripetal acceleration.",
            },
            {
                "id": "q3",
                "type": "frq",
                "question": "A car goes from 0 to 20 m/s in 4 s. What is its average acceleration in m/s^2?",
                "correctAnswers": ["5", "5 m/s^2", "5 m/s2"],
                "hint": "Divide the change in velocity by the elapsed time.",
            },
        ],
    },
    {
        "id": "chemistry-atomic-structure",
        "title": "Atomic Structure",
        "subject": "Chemistry",
        "topic": "Atoms",
        "difficulty": "easy",
        "description": "Subatomic particles and the periodic table.",
        "tags": ["atoms", "periodic table"],
        "author": "OpenNotes",
        "questions": [
            {
                "id": "q1",
                "type": "fitb",
                "question": "The number of ___ in the nucleus defines the element.",
                "blanks": ["protons"],
            },
            {
                "id": "q2",
                "type": "matching",
                "question": "Match each particle with its charge.",
                "leftItems": ["proton", "neutron", "electron"],
                "rightItems": ["-1", "0", "+1"],
                "correctPairs": {"0": 2, "1": 1, "2": 0},
            },
        ],
    },
]


def seed_quizzes(store: QuizStore) -> int:
    """Store any missing built-in quiz; returns how many were added."""
    added = 0
    for document in SEED_QUIZZES:
        if store.exists(document["id"]):
            continue
        quiz = Quiz.model_validate({**document, "createdAt": _SEEDED_AT, "updatedAt": _SEEDED_AT})
        store.save(quiz.id, quiz)
        added += 1
    if added:
        logger.info("Seeded %d built-in quizzes", added)
    return added
