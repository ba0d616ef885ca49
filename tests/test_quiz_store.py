from datetime import datetime, timedelta, timezone

import pytest

from gateway.core.database import init_db, make_engine, make_sessionmaker
from gateway.models.quiz import Quiz, QuizFilters
from gateway.services.quiz_store import InMemoryQuizStore, SqlQuizStore
from gateway.services.seed import SEED_QUIZZES, seed_quizzes

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


def sql_store():
    engine = make_engine("sqlite://")
    init_db(engine)
    return SqlQuizStore(make_sessionmaker(engine))


@pytest.fixture(params=["memory", "sql"])
def store(request):
    return InMemoryQuizStore() if request.param == "memory" else sql_store()


def make_quiz(quiz_id, title="Quiz", subject="Physics", topic=None, tags=(), day=0, questions=2):
    created = T0 + timedelta(days=day)
    return Quiz.model_validate({
        "id": quiz_id,
        "title": title,
        "subject": subject,
        "topic": topic,
        "tags": list(tags),
        "author": "tester",
        "createdAt": created,
        "updatedAt": created,
        "questions": [
            {"id": f"q{i}", "type": "tf", "question": f"Statement {i}", "correctAnswer": True}
            for i in range(1, questions + 1)
        ],
    })


def test_save_and_get_round_trip(store):
    store.save("a", make_quiz("a", title="Vectors", questions=3))
    quiz = store.get("a")
    assert quiz.title == "Vectors"
    assert [q.id for q in quiz.questions] == ["q1", "q2", "q3"]
    assert store.exists("a")
    assert store.get("missing") is None


def test_save_overwrites(store):
    store.save("a", make_quiz("a", title="Old"))
    store.save("a", make_quiz("a", title="New"))
    assert store.get("a").title == "New"
    assert len(store.list()) == 1


def test_list_returns_summaries_newest_first(store):
    store.save("old", make_quiz("old", day=0, questions=1))
    store.save("new", make_quiz("new", day=2, questions=4))
    store.save("mid", make_quiz("mid", day=1))
    summaries = store.list()
    assert [s.id for s in summaries] == ["new", "mid", "old"]
    assert summaries[0].question_count == 4
    assert "questions" not in summaries[0].to_document()
    assert summaries[0].to_document()["questionCount"] == 4


def test_subject_filter_is_exact_and_case_insensitive(store):
    store.save("p", make_quiz("p", subject="Physics"))
    store.save("ap", make_quiz("ap", subject="Astrophysics"))
    store.save("pc", make_quiz("pc", subject="Physics II"))
    assert [s.id for s in store.list(QuizFilters(subject="physics"))] == ["p"]
    assert [s.id for s in store.list(QuizFilters(subject="PHYSICS"))] == ["p"]


def test_subject_filter_lowercases_non_ascii(store):
    store.save("e", make_quiz("e", subject="Éducation"))
    store.save("ö", make_quiz("ö", subject="Ökologie", day=1))
    assert [s.id for s in store.list(QuizFilters(subject="éducation"))] == ["e"]
    assert [s.id for s in store.list(QuizFilters(subject="ÉDUCATION"))] == ["e"]
    assert [s.id for s in store.list(QuizFilters(subject="ökologie"))] == ["ö"]


def test_topic_filter_is_substring(store):
    store.save("k", make_quiz("k", topic="Kinematics in 2D"))
    store.save("d", make_quiz("d", topic="Dynamics", day=1))
    store.save("n", make_quiz("n", day=2))
    assert [s.id for s in store.list(QuizFilters(topic="kinemat"))] == ["k"]


def test_search_matches_title_subject_topic_or_tag(store):
    store.save("t", make_quiz("t", title="Wave Motion", subject="Physics"))
    store.save("s", make_quiz("s", title="Acids", subject="Chemistry", day=1))
    store.save("g", make_quiz("g", title="Cells", subject="Biology", tags=["Mitosis"], day=2))
    store.save("o", make_quiz("o", title="Bonds", subject="Chemistry", topic="Covalent", day=3))
    assert [s.id for s in store.list(QuizFilters(search="wave"))] == ["t"]
    assert [s.id for s in store.list(QuizFilters(search="CHEM"))] == ["o", "s"]
    assert [s.id for s in store.list(QuizFilters(search="mitosis"))] == ["g"]
    assert [s.id for s in store.list(QuizFilters(search="valent"))] == ["o"]
    assert store.list(QuizFilters(search="geology")) == []


def test_filters_combine(store):
    store.save("a", make_quiz("a", subject="Chemistry", topic="Organic"))
    store.save("b", make_quiz("b", subject="Chemistry", topic="Inorganic", day=1))
    store.save("c", make_quiz("c", subject="Biology", topic="Organic", day=2))
    result = store.list(QuizFilters(subject="chemistry", topic="organic", search="chem"))
    assert [s.id for s in result] == ["b", "a"]


def test_delete(store):
    store.save("a", make_quiz("a"))
    assert store.delete("a") is True
    assert store.get("a") is None
    assert store.delete("a") is False


def test_in_memory_store_returns_copies():
    store = InMemoryQuizStore()
    store.save("a", make_quiz("a", title="Original"))
    fetched = store.get("a")
    fetched.title = "Changed"
    assert store.get("a").title == "Original"


def test_seeding_is_idempotent(store):
    assert seed_quizzes(store) == len(SEED_QUIZZES)
    assert seed_quizzes(store) == 0
    ids = {s.id for s in store.list()}
    assert ids == {doc["id"] for doc in SEED_QUIZZES}
