import math
from enum import Enum
from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from .config import settings

MIN_MAX_NUMBER = 10
MAX_MAX_NUMBER = 200
DEFAULT_MAX_NUMBER = 20
MAX_QUESTION_COUNT = 20

class Difficulty(str, Enum):
    EASY = "easy"
    MODERATE = "moderate"
    ADVANCED = "advanced"

class Operation(str, Enum):
    ADD = "add"
    SUB = "sub"
    MUL = "mul"
    DIV = "div"

OPERATION_SYMBOLS = {
    Operation.ADD: "+",
    Operation.SUB: "−",
    Operation.MUL: "×",
    Operation.DIV: "÷",
}

OPERATION_WORDS = {
    Operation.ADD: "addition",
    Operation.SUB: "subtraction",
    Operation.MUL: "multiplication",
    Operation.DIV: "division",
}

def clamp_max_number(value: Any) -> int:
    """Coerce a requested bound to a number and clamp it into [10, 200].

    Missing or non-numeric values fall back to the default of 20.
    """
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        number = DEFAULT_MAX_NUMBER
    if not math.isfinite(number):
        number = DEFAULT_MAX_NUMBER
    return int(min(max(number, MIN_MAX_NUMBER), MAX_MAX_NUMBER))

def _coerce_difficulty(value: Any) -> Any:
    if value is None:
        return Difficulty.EASY
    if isinstance(value, Difficulty):
        return value
    return str(value).strip().lower()

class Fact(BaseModel):
    model_config = ConfigDict(frozen=True)

    operation: Operation
    operand_a: int = Field(ge=0)
    operand_b: int = Field(ge=0)
    answer: int = Field(ge=0)

    @model_validator(mode="after")
    def check_arithmetic(self) -> "Fact":
        a, b = self.operand_a, self.operand_b
        if self.operation == Operation.SUB and a < b:
            raise ValueError("subtraction needs operand_a >= operand_b")
        if self.operation == Operation.DIV and b < 1:
            raise ValueError("division needs a divisor of at least 1")
        if self.operation == Operation.ADD:
            expected = a + b
        elif self.operation == Operation.SUB:
            expected = a - b
        elif self.operation == Operation.MUL:
            expected = a * b
        else:
            expected = a // b if a % b == 0 else None
        if expected != self.answer:
            raise ValueError(f"answer {self.answer} does not match {a} {OPERATION_SYMBOLS[self.operation]} {b}")
        return self

    @property
    def equation_text(self) -> str:
        return f"{self.operand_a} {OPERATION_SYMBOLS[self.operation]} {self.operand_b} = ?"

class Question(BaseModel):
    id: str
    fact: Fact
    narrative: Optional[str] = None
    narration_source: Optional[str] = None
    attempts: int = 0
    solved: bool = False

    @property
    def prompt(self) -> str:
        return self.narrative or self.fact.equation_text

class QuizConfig(BaseModel):
    difficulty: Difficulty = Difficulty.EASY
    operations: List[Operation] = Field(default_factory=list)
    question_count: int = Field(default_factory=lambda: settings.default_question_count, ge=1, le=MAX_QUESTION_COUNT)
    max_number: int = DEFAULT_MAX_NUMBER
    include_word_problems: bool = False

    @field_validator("difficulty", mode="before")
    @classmethod
    def normalize_difficulty(cls, value: Any) -> Any:
        return _coerce_difficulty(value)

    @field_validator("max_number", mode="before")
    @classmethod
    def clamp_bound(cls, value: Any) -> int:
        return clamp_max_number(value)

class SessionState(str, Enum):
    BUILDING = "building"
    ACTIVE = "active"
    COMPLETE = "complete"

class SubmitOutcome(str, Enum):
    NO_ANSWER = "no_answer"
    INCORRECT = "incorrect"
    CORRECT = "correct"

class Score(BaseModel):
    correct: int = 0
    total_attempts: int = 0

class SubmitResult(BaseModel):
    outcome: SubmitOutcome
    attempts: int
    current_index: int
    completed: bool = False
    score: Score

class QuizSummary(BaseModel):
    question_count: int
    correct: int
    total_attempts: int
    accuracy_percent: int
    first_try_correct: int
    message: str

class QuestionView(BaseModel):
    id: str
    index: int
    total: int
    prompt: str
    operation: Operation
    word_problem: bool
    narration_source: Optional[str] = None
    attempts: int

class AnswerKeyEntry(BaseModel):
    index: int
    prompt: str
    answer: int

class WordProblemRequest(BaseModel):
    difficulty: Difficulty = Difficulty.EASY
    max_number: int = DEFAULT_MAX_NUMBER

    @field_validator("difficulty", mode="before")
    @classmethod
    def normalize_difficulty(cls, value: Any) -> Any:
        return _coerce_difficulty(value)

    @field_validator("max_number", mode="before")
    @classmethod
    def clamp_bound(cls, value: Any) -> int:
        return clamp_max_number(value)

class WordProblemResponse(BaseModel):
    prompt: str
    answer: int
    note: Optional[str] = None

class StartSessionResponse(BaseModel):
    session_id: str
    state: SessionState
    question: Optional[QuestionView] = None

class CurrentQuestionResponse(BaseModel):
    state: SessionState
    question: Optional[QuestionView] = None
    score: Score

class SessionRequest(BaseModel):
    session_id: str

class SubmitAnswerRequest(BaseModel):
    session_id: str
    answer: Optional[int] = None

    @field_validator("answer", mode="before")
    @classmethod
    def blank_is_absent(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return None
        return value

class RenarrateRequest(BaseModel):
    session_id: str
    index: int = Field(ge=0)
