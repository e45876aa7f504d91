import logging
import random
from ..models import DEFAULT_MAX_NUMBER, Difficulty, Fact, Operation, WordProblemRequest, WordProblemResponse
from .gemini_client import GeminiNarrator, NarrationError
from .operation_selector import select_operation
from .synthesizer import synthesize

logger = logging.getLogger("math_quest")

FALLBACK_NOTE = "AI unavailable; returned local fallback."

LOCAL_TEMPLATES = {
    Operation.ADD: "Kiki has {a} stickers and gets {b} more. How many stickers does she have now?",
    Operation.SUB: "Kiki has {a} apples and gives away {b}. How many apples does she have left?",
    Operation.MUL: "Kiki has {a} bags with {b} marbles in each bag. How many marbles does she have in all?",
    Operation.DIV: "Kiki shares {a} coins equally among {b} friends. How many coins does each friend get?",
}

def local_narrative(fact: Fact) -> str:
    return LOCAL_TEMPLATES[fact.operation].format(a=fact.operand_a, b=fact.operand_b)

def fallback_word_problem(rng: random.Random) -> WordProblemResponse:
    fact = synthesize(Operation.ADD, Difficulty.EASY, DEFAULT_MAX_NUMBER, rng)
    return WordProblemResponse(prompt=local_narrative(fact), answer=fact.answer, note=FALLBACK_NOTE)

def build_word_problem(request: WordProblemRequest, narrator: GeminiNarrator, rng: random.Random) -> WordProblemResponse:
    """Pick an operation, compute the fact locally, then ask the narrator to phrase it.

    The answer always comes from the fact. If narration fails, a fixed easy
    addition fact with a template sentence is returned instead, with a note.
    """
    op = select_operation(request.difficulty, rng)
    fact = synthesize(op, request.difficulty, request.max_number, rng)
    try:
        prompt = narrator.narrate(fact.operation, fact.operand_a, fact.operand_b, request.difficulty)
    except NarrationError as exc:
        logger.warning({"event": "narration_fallback", "reason": str(exc), "operation": op.value, "difficulty": request.difficulty.value})
        return fallback_word_problem(rng)
    logger.debug({"event": "word_problem_generated", "operation": op.value, "difficulty": request.difficulty.value, "max_number": request.max_number})
    return WordProblemResponse(prompt=prompt, answer=fact.answer)
