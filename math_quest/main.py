from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.responses import ORJSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool
from pydantic import ValidationError
import logging
import random
from time import perf_counter
from datetime import datetime, timezone
from typing import List
from .state import InvalidStateTransition, QuizSession, session_store
from .models import (
	AnswerKeyEntry,
	CurrentQuestionResponse,
	QuizConfig,
	QuizSummary,
	QuestionView,
	RenarrateRequest,
	SessionRequest,
	StartSessionResponse,
	SubmitAnswerRequest,
	SubmitResult,
	WordProblemRequest,
)
from .services.gemini_client import GeminiNarrator
from .services.word_problems import build_word_problem
from .config import settings

logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s %(message)s")
logger = logging.getLogger("math_quest")

CORS_HEADERS = {
	"Access-Control-Allow-Origin": "*",
	"Access-Control-Allow-Methods": "POST,OPTIONS",
	"Access-Control-Allow-Headers": "Content-Type",
}

WORD_PROBLEM_PATH = "/api/word-problem"

DIFFICULTY_ERROR = "difficulty must be 'easy' | 'moderate' | 'advanced'."

class QuizCORSMiddleware(CORSMiddleware):
	"""CORS for the quiz routes. The word-problem route answers its own preflight."""

	async def __call__(self, scope, receive, send) -> None:
		if scope["type"] == "http" and scope["path"] == WORD_PROBLEM_PATH:
			await self.app(scope, receive, send)
			return
		await super().__call__(scope, receive, send)

app = FastAPI(default_response_class=ORJSONResponse)

app.add_middleware(
	QuizCORSMiddleware,
	allow_origins=["*"],
	allow_methods=["GET", "POST", "OPTIONS"],
	allow_headers=["Content-Type"],
)

narrator = GeminiNarrator()

def get_narrator() -> GeminiNarrator:
	return narrator

def get_rng() -> random.Random:
	return random.Random()

def _error(status_code: int, message: str) -> ORJSONResponse:
	return ORJSONResponse(status_code=status_code, content={"error": message}, headers=CORS_HEADERS)

def _get_session(session_id: str) -> QuizSession:
	if not session_store.has_session(session_id):
		raise HTTPException(status_code=404, detail="session_not_found")
	return session_store.get(session_id)

def _session_response(session_id: str, session: QuizSession) -> StartSessionResponse:
	return StartSessionResponse(session_id=session_id, state=session.state, question=session.current_question())

@app.on_event("startup")
def on_startup() -> None:
	logger.info({
		"event": "api_startup",
		"utc_time": datetime.now(timezone.utc).isoformat(),
		"model": settings.gemini_model,
		"narration_enabled": bool(settings.gemini_api_key),
		"narration_timeout_s": settings.narration_timeout_seconds,
	})

@app.middleware("http")
async def timing_middleware(request: Request, call_next):
	start = perf_counter()
	response = await call_next(request)
	duration_ms = int((perf_counter() - start) * 1000)
	logger.debug({
		"event": "request_timing",
		"method": request.method,
		"path": request.url.path,
		"status_code": response.status_code,
		"duration_ms": duration_ms,
	})
	return response

@app.exception_handler(InvalidStateTransition)
async def invalid_state_transition_handler(request: Request, exc: InvalidStateTransition):
	logger.info({"event": "invalid_state_transition", "path": request.url.path, "error": str(exc)})
	return ORJSONResponse(status_code=409, content={"error": str(exc)})

@app.options(WORD_PROBLEM_PATH)
def word_problem_preflight():
	return Response(status_code=200, headers=CORS_HEADERS)

@app.api_route(WORD_PROBLEM_PATH, methods=["GET", "PUT", "PATCH", "DELETE"])
def word_problem_wrong_method():
	return _error(405, "Use POST with JSON body.")

@app.post(WORD_PROBLEM_PATH)
async def word_problem(request: Request, narrator: GeminiNarrator = Depends(get_narrator), rng: random.Random = Depends(get_rng)):
	try:
		body = await request.json()
	except ValueError:
		return _error(400, "Invalid JSON.")
	if not isinstance(body, dict):
		body = {}
	try:
		payload = WordProblemRequest.model_validate(body)
	except ValidationError:
		logger.debug({"event": "word_problem_rejected", "difficulty": body.get("difficulty")})
		return _error(400, DIFFICULTY_ERROR)
	# narration is a blocking network call
	result = await run_in_threadpool(build_word_problem, payload, narrator, rng)
	return ORJSONResponse(content=result.model_dump(exclude_none=True), headers=CORS_HEADERS)

@app.post("/api/session/start", response_model=StartSessionResponse)
def start_session(config: QuizConfig | None = None, narrator: GeminiNarrator = Depends(get_narrator), rng: random.Random = Depends(get_rng)):
	config = config or QuizConfig()
	session_id = session_store.create_session(config, rng=rng, narrator=narrator)
	logger.debug({"event": "session_started", "session_id": session_id, "difficulty": config.difficulty.value, "question_count": config.question_count})
	return _session_response(session_id, session_store.get(session_id))

@app.post("/api/session/end")
def end_session(payload: SessionRequest):
	_get_session(payload.session_id)
	session_store.discard(payload.session_id)
	logger.debug({"event": "session_ended", "session_id": payload.session_id})
	return {"session_id": payload.session_id, "ended": True}

@app.get("/api/quiz/current", response_model=CurrentQuestionResponse)
def get_current_question(session_id: str):
	session = _get_session(session_id)
	return CurrentQuestionResponse(state=session.state, question=session.current_question(), score=session.score)

@app.post("/api/quiz/submit", response_model=SubmitResult)
def submit_answer(payload: SubmitAnswerRequest):
	session = _get_session(payload.session_id)
	result = session.submit_answer(payload.answer)
	logger.debug({
		"event": "submit_answer",
		"session_id": payload.session_id,
		"outcome": result.outcome.value,
		"attempts": result.attempts,
		"current_index": result.current_index,
		"completed": result.completed,
	})
	return result

@app.post("/api/quiz/retry", response_model=StartSessionResponse)
def retry_quiz(payload: SessionRequest):
	session = _get_session(payload.session_id)
	session.retry()
	logger.debug({"event": "quiz_retry", "session_id": payload.session_id})
	return _session_response(payload.session_id, session)

@app.post("/api/quiz/new-set", response_model=StartSessionResponse)
def new_question_set(payload: SessionRequest):
	session = _get_session(payload.session_id)
	session.start(session.config or QuizConfig())
	logger.debug({"event": "quiz_new_set", "session_id": payload.session_id})
	return _session_response(payload.session_id, session)

@app.post("/api/quiz/renarrate", response_model=QuestionView)
def renarrate_question(payload: RenarrateRequest):
	session = _get_session(payload.session_id)
	try:
		return session.renarrate(payload.index)
	except IndexError:
		raise HTTPException(status_code=404, detail="question_not_found")

@app.get("/api/quiz/summary", response_model=QuizSummary)
def get_summary(session_id: str):
	return _get_session(session_id).summary()

@app.get("/api/quiz/answer-key", response_model=List[AnswerKeyEntry])
def get_answer_key(session_id: str):
	return _get_session(session_id).answer_key()

def run() -> None:
	import uvicorn
	uvicorn.run(app, host=settings.host, port=settings.port)

if __name__ == "__main__":
	run()
