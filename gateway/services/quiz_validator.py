"""
Structural checks applied to a quiz before it is stored.

Only creation goes through here; combined quizzes are built from documents
that already passed. Every violation is collected so a client can fix all of
them in one round trip.

Per-kind rules exist for ``mcq`` and ``frq`` only. ``tf``, ``fitb`` and
``matching`` questions need nothing beyond a recognized type, which keeps
already-stored quizzes of those kinds loadable.
"""
from datetime import datetime
from typing import Any, Callable, Dict, List

import pydantic

from ..core.errors import ValidationError
from ..models.quiz import QUESTION_TYPES, Quiz

QuestionRule = Callable[[Dict[str, Any]], List[str]]


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _check_mcq(question: Dict[str, Any]) -> List[str]:
    problems = []
    options = question.get("options")
    if not isinstance(options, list) or sum(1 for o in options if _non_empty_str(o)) < 2:
        problems.append("multiple choice needs at least 2 non-empty options")
    answers = question.get("correctAnswers")
    if not isinstance(answers, list) or len(answers) < 1:
        problems.append("multiple choice needs at least 1 correct answer")
    return problems


def _check_frq(question: Dict[str, Any]) -> List[str]:
    answers = question.get("correctAnswers")
    if not isinstance(answers, list) or not any(_non_empty_str(a) for a in answers):
        return ["free response needs at least 1 accepted answer"]
    return []


QUESTION_RULES: Dict[str, QuestionRule] = {
    "mcq": _check_mcq,
    "frq": _check_frq,
}


def validate_quiz(payload: Any) -> List[str]:
    """Return every structural problem in ``payload``; empty when it is valid."""
    if not isinstance(payload, dict):
        return ["Quiz must be a JSON object"]

    errors = []
    if not _non_empty_str(payload.get("title")):
        errors.append("Title is required")
    if not _non_empty_str(payload.get("subject")):
        errors.append("Subject is required")

    questions = payload.get("questions")
    if not isinstance(questions, list) or not questions:
        errors.append("At least one question is required")
        return errors

    seen_ids: Dict[str, int] = {}
    for index, question in enumerate(questions, start=1):
        if not isinstance(question, dict):
            errors.append(f"Question {index}: must be an object")
            continue
        question_id = question.get("id")
        if _non_empty_str(question_id):
            if question_id in seen_ids:
                errors.append(
                    f"Question {index}: id '{question_id}' is already used by question {seen_ids[question_id]}"
                )
            else:
                seen_ids[question_id] = index
        kind = question.get("type")
        if kind not in QUESTION_TYPES:
            errors.append(f"Question {index}: type must be one of {', '.join(sorted(QUESTION_TYPES))}")
            continue
        rule = QUESTION_RULES.get(kind)
        if rule:
            errors.extend(f"Question {index}: {problem}" for problem in rule(question))
    return errors


def _describe(error: Dict[str, Any]) -> str:
    loc = list(error.get("loc", ()))
    if len(loc) >= 2 and loc[0] == "questions" and isinstance(loc[1], int):
        # Drop the discriminator tag pydantic inserts after the index.
        field = ".".join(str(part) for part in loc[3:]) or "question"
        return f"Question {loc[1] + 1}: {field}: {error['msg']}"
    field = ".".join(str(part) for part in loc) or "quiz"
    return f"{field}: {error['msg']}"


def build_quiz(payload: Dict[str, Any], quiz_id: str, author: str, now: datetime) -> Quiz:
    """Validate ``payload`` and turn it into a ``Quiz`` ready to store."""
    errors = validate_quiz(payload)
    if errors:
        raise ValidationError(errors, message="Quiz is invalid")

    taken = {q["id"] for q in payload["questions"] if _non_empty_str(q.get("id"))}
    questions = []
    for index, question in enumerate(payload["questions"], start=1):
        question = dict(question)
        if not _non_empty_str(question.get("id")):
            # Positional id, skipping any a client already claimed.
            n = index
            while f"q{n}" in taken:
                n += 1
            question["id"] = f"q{n}"
            taken.add(question["id"])
        questions.append(question)

    document = {
        key: payload.get(key)
        for key in ("title", "subject", "topic", "difficulty", "description")
        if payload.get(key) is not None
    }
    document.update(
        id=quiz_id,
        tags=payload.get("tags") or [],
        questions=questions,
        author=author,
        createdAt=now,
        updatedAt=now,
    )
    try:
        return Quiz.model_validate(document)
    except pydantic.ValidationError as exc:
        raise ValidationError([_describe(e) for e in exc.errors()], message="Quiz is invalid")
