import uuid
import random
import logging
from typing import Dict, List, Optional
from .models import (
	AnswerKeyEntry,
	Difficulty,
	Question,
	QuestionView,
	QuizConfig,
	QuizSummary,
	Score,
	SessionState,
	SubmitOutcome,
	SubmitResult,
)
from .config import settings
from .services.gemini_client import GeminiNarrator, NarrationError
from .services.operation_selector import select_operation
from .services.synthesizer import synthesize
from .services.word_problems import local_narrative

logger = logging.getLogger("math_quest")

class InvalidStateTransition(RuntimeError):
	"""An operation was attempted in a session state that does not allow it."""

def _summary_message(first_try_correct: int, question_count: int) -> str:
	if first_try_correct == question_count:
		return "Perfect score! 🏆"
	if first_try_correct * 2 >= question_count:
		return "Nice work! Look over the tricky ones and try again. 💪"
	return "Great practice round. Try a new quiz or pick an easier level and build up! 🌱"

class QuizSession:
	"""One learner's run through a fixed set of questions.

	building -> active -> complete, and retry() goes from complete back to
	active over the same facts. start() always builds a fresh set.
	"""

	def __init__(self, rng: Optional[random.Random] = None, narrator: Optional[GeminiNarrator] = None) -> None:
		self.rng = rng or random.Random()
		self.narrator = narrator
		self.state = SessionState.BUILDING
		self.config: Optional[QuizConfig] = None
		self.questions: List[Question] = []
		self.current_index = 0
		self.score = Score()

	def start(self, config: QuizConfig) -> None:
		self.state = SessionState.BUILDING
		self.config = config
		questions: List[Question] = []
		for _ in range(config.question_count):
			op = select_operation(config.difficulty, self.rng, config.operations)
			fact = synthesize(op, config.difficulty, config.max_number, self.rng)
			questions.append(Question(id=str(uuid.uuid4()), fact=fact))
		if config.include_word_problems:
			rate = max(1, settings.word_problem_rate)
			picked = [i for i in range(len(questions)) if self.rng.randint(0, rate - 1) == 0]
			# at least one word problem per set
			for i in picked or [0]:
				self._narrate(questions[i], config.difficulty)
		self.questions = questions
		self.current_index = 0
		self.score = Score()
		self.state = SessionState.ACTIVE
		logger.debug({
			"event": "quiz_started",
			"difficulty": config.difficulty.value,
			"question_count": len(questions),
			"word_problems": sum(1 for q in questions if q.narrative),
		})

	def _narrate(self, question: Question, difficulty: Difficulty) -> None:
		fact = question.fact
		if self.narrator is not None:
			try:
				question.narrative = self.narrator.narrate(fact.operation, fact.operand_a, fact.operand_b, difficulty)
				question.narration_source = "ai"
				return
			except NarrationError as exc:
				logger.warning({"event": "narration_fallback", "reason": str(exc), "question_id": question.id})
		question.narrative = local_narrative(fact)
		question.narration_source = "local"

	def submit_answer(self, value: Optional[int]) -> SubmitResult:
		if self.state != SessionState.ACTIVE:
			raise InvalidStateTransition(f"cannot submit an answer while the session is {self.state.value}")
		question = self.questions[self.current_index]
		if value is None:
			logger.debug({"event": "answer_missing", "question_id": question.id})
			return self._result(SubmitOutcome.NO_ANSWER, question)
		question.attempts += 1
		self.score.total_attempts += 1
		if value != question.fact.answer:
			return self._result(SubmitOutcome.INCORRECT, question)
		question.solved = True
		self.score.correct += 1
		self.current_index += 1
		if self.current_index >= len(self.questions):
			self.state = SessionState.COMPLETE
			logger.debug({"event": "quiz_complete", "correct": self.score.correct, "total_attempts": self.score.total_attempts})
		return self._result(SubmitOutcome.CORRECT, question)

	def _result(self, outcome: SubmitOutcome, question: Question) -> SubmitResult:
		return SubmitResult(
			outcome=outcome,
			attempts=question.attempts,
			current_index=self.current_index,
			completed=self.state == SessionState.COMPLETE,
			score=self.score.model_copy(),
		)

	def retry(self) -> None:
		if self.state != SessionState.COMPLETE:
			raise InvalidStateTransition(f"retry is only allowed once the quiz is complete, not while {self.state.value}")
		for q in self.questions:
			q.attempts = 0
			q.solved = False
		self.current_index = 0
		self.score = Score()
		self.state = SessionState.ACTIVE

	def summary(self) -> QuizSummary:
		if self.state != SessionState.COMPLETE:
			raise InvalidStateTransition(f"summary is only available once the quiz is complete, not while {self.state.value}")
		count = len(self.questions)
		first_try = sum(1 for q in self.questions if q.solved and q.attempts == 1)
		return QuizSummary(
			question_count=count,
			correct=self.score.correct,
			total_attempts=self.score.total_attempts,
			# round half up
			accuracy_percent=(200 * self.score.correct + count) // (2 * count),
			first_try_correct=first_try,
			message=_summary_message(first_try, count),
		)

	def renarrate(self, index: int) -> QuestionView:
		if self.state == SessionState.BUILDING or self.config is None:
			raise InvalidStateTransition("no question set has been built yet")
		if not 0 <= index < len(self.questions):
			raise IndexError(f"question index {index} out of range")
		self._narrate(self.questions[index], self.config.difficulty)
		return self.view(index)

	def view(self, index: int) -> QuestionView:
		q = self.questions[index]
		return QuestionView(
			id=q.id,
			index=index,
			total=len(self.questions),
			prompt=q.prompt,
			operation=q.fact.operation,
			word_problem=q.narrative is not None,
			narration_source=q.narration_source,
			attempts=q.attempts,
		)

	def current_question(self) -> Optional[QuestionView]:
		if self.state != SessionState.ACTIVE:
			return None
		return self.view(self.current_index)

	def answer_key(self) -> List[AnswerKeyEntry]:
		if self.state == SessionState.BUILDING:
			raise InvalidStateTransition("no question set has been built yet")
		return [AnswerKeyEntry(index=i, prompt=q.prompt, answer=q.fact.answer) for i, q in enumerate(self.questions)]

class SessionStore:
	def __init__(self) -> None:
		self.sessions: Dict[str, QuizSession] = {}

	def create_session(self, config: QuizConfig, rng: Optional[random.Random] = None, narrator: Optional[GeminiNarrator] = None) -> str:
		session_id = str(uuid.uuid4())
		session = QuizSession(rng=rng, narrator=narrator)
		session.start(config)
		self.sessions[session_id] = session
		return session_id

	def has_session(self, session_id: str) -> bool:
		return session_id in self.sessions

	def get(self, session_id: str) -> QuizSession:
		return self.sessions[session_id]

	def discard(self, session_id: str) -> None:
		self.sessions.pop(session_id, None)

session_store = SessionStore()
