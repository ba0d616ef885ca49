"""
Quiz document models.

Documents travel over the wire with camelCase keys; attributes are snake_case.
"""
import enum
from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SCHEMA_VERSION = 1


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> Dict[str, Any]:
        """Dump to a JSON-ready dict using wire (camelCase) keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class QuestionType(str, enum.Enum):
    """Recognized question kinds."""
    MCQ = "mcq"
    TRUE_FALSE = "tf"
    FILL_BLANK = "fitb"
    MATCHING = "matching"
    FREE_RESPONSE = "frq"


QUESTION_TYPES = frozenset(t.value for t in QuestionType)


class QuestionBase(CamelModel):
    id: Optional[str] = None
    question: str = ""
    explanation: Optional[str] = None
    points: int = Field(default=1, ge=0)
    hint: Optional[str] = None


class McqQuestion(QuestionBase):
    type: Literal["mcq"] = "mcq"
    options: List[str] = Field(default_factory=list)
    correct_answers: List[int] = Field(default_factory=list)


class TrueFalseQuestion(QuestionBase):
    type: Literal["tf"] = "tf"
    correct_answer: Optional[bool] = None


class FillBlankQuestion(QuestionBase):
    type: Literal["fitb"] = "fitb"
    blanks: List[str] = Field(default_factory=list)


class MatchingQuestion(QuestionBase):
    type: Literal["matching"] = "matching"
    left_items: List[str] = Field(default_factory=list)
    right_items: List[str] = Field(default_factory=list)
    correct_pairs: Dict[int, int] = Field(default_factory=dict)


class FreeResponseQuestion(QuestionBase):
    """Free response; correct_answers are accepted variants used for self-evaluation."""
    type: Literal["frq"] = "frq"
    correct_answers: List[str] = Field(default_factory=list)


Question = Annotated[
    Union[McqQuestion, TrueFalseQuestion, FillBlankQuestion, MatchingQuestion, FreeResponseQuestion],
    Field(discriminator="type"),
]


class QuizBase(CamelModel):
    title: str
    subject: str
    topic: Optional[str] = None
    difficulty: Optional[str] = None
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class Quiz(QuizBase):
    """A stored quiz. Question order is significant."""
    id: str
    schema_version: int = SCHEMA_VERSION
    questions: List[Question] = Field(default_factory=list)
    author: str = "anonymous"
    created_at: datetime
    updated_at: datetime


class QuizSummary(QuizBase):
    """Quiz metadata without question bodies."""
    id: str
    schema_version: int = SCHEMA_VERSION
    author: str = "anonymous"
    created_at: datetime
    updated_at: datetime
    question_count: int

    @classmethod
    def from_quiz(cls, quiz: Quiz) -> "QuizSummary":
        data = quiz.model_dump(exclude={"questions"})
        return cls(**data, question_count=len(quiz.questions))


class QuizFilters(BaseModel):
    """List filters: subject is exact (case-insensitive), topic and search are substrings."""
    subject: Optional[str] = None
    topic: Optional[str] = None
    search: Optional[str] = None

    def matches(self, quiz: QuizBase) -> bool:
        if self.subject and quiz.subject.lower() != self.subject.lower():
            return False
        if self.topic and self.topic.lower() not in (quiz.topic or "").lower():
            return False
        if self.search:
            needle = self.search.lower()
            haystack = [quiz.title, quiz.subject, quiz.topic or ""] + list(quiz.tags)
            if not any(needle in field.lower() for field in haystack):
                return False
        return True


class QuizListResponse(CamelModel):
    quizzes: List[QuizSummary]
    count: int


class ShuffleRequest(CamelModel):
    quiz_ids: List[str] = Field(..., min_length=1)
    question_count: Optional[int] = Field(default=None, ge=1)
    shuffle: bool = True


class CombinedQuiz(CamelModel):
    """An ephemeral quiz assembled from several stored quizzes. Never persisted."""
    id: str
    title: str
    subject: str
    description: str
    questions: List[Dict[str, Any]]
    source_quizzes: List[str]
    question_count: int
    is_temporary: Literal[True] = True
    created_at: datetime
