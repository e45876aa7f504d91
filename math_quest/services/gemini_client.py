import re
import logging
from time import perf_counter
import google.generativeai as genai
from ..config import settings
from ..models import Difficulty, Operation
from .prompt_builder import PromptBuilder

logger = logging.getLogger("math_quest")

class NarrationError(RuntimeError):
    """The phrasing service could not produce a usable word problem."""

class GeminiNarrator:
    """Asks Gemini to phrase an arithmetic fact as a short word problem.

    One call per fact, bounded by a timeout, never retried. Every failure is
    raised as NarrationError so callers can fall back locally.
    """

    def __init__(self, api_key: str | None = None, model_name: str | None = None, timeout_seconds: float | None = None) -> None:
        self.api_key = api_key if api_key is not None else settings.gemini_api_key
        if self.api_key:
            genai.configure(api_key=self.api_key)
        self.model_name = model_name or settings.gemini_model
        self.timeout_seconds = timeout_seconds or settings.narration_timeout_seconds
        self.generation_config = {
            "temperature": settings.narration_temperature,
            "max_output_tokens": settings.narration_max_tokens,
        }
        self.prompt_builder = PromptBuilder()

    def _strip_code_fences(self, text: str) -> str:
        t = text.strip()
        if t.startswith("```"):
            parts = t.split("\n", 1)
            if len(parts) == 2:
                t = parts[1]
            if t.endswith("```"):
                t = t[:-3]
        t = t.strip()
        if len(t) >= 2 and t[0] == t[-1] and t[0] in "\"'":
            t = t[1:-1]
        return t.strip()

    def _extract_text(self, response) -> str:
        # response.text raises ValueError when the candidate has no text part (e.g. blocked)
        try:
            raw_text = response.text or ""
        except (ValueError, AttributeError):
            raw_text = ""
        if not raw_text and getattr(response, "candidates", None):
            try:
                parts = response.candidates[0].content.parts
                raw_text = "".join(getattr(p, "text", "") for p in parts)
            except (AttributeError, IndexError, TypeError):
                raw_text = ""
        return raw_text

    def _mentions(self, text: str, number: int) -> bool:
        if re.search(rf"(?<!\d){number}(?!\d)", text):
            return True
        # the model may spell zero out
        return number == 0 and re.search(r"\bzero\b", text, re.IGNORECASE) is not None

    def narrate(self, op: Operation, operand_a: int, operand_b: int, difficulty: Difficulty) -> str:
        if not self.api_key:
            logger.warning({"event": "gemini_no_api_key", "message": "Narration unavailable"})
            raise NarrationError("no_api_key")
        system_instruction, user_instruction = self.prompt_builder.build(op, operand_a, operand_b, difficulty)
        try:
            logger.debug({"event": "gemini_request", "model": self.model_name, "operation": op.value, "timeout_s": self.timeout_seconds})
            model = genai.GenerativeModel(
                self.model_name,
                generation_config=self.generation_config,
                system_instruction=system_instruction,
            )
            t0 = perf_counter()
            response = model.generate_content(user_instruction, request_options={"timeout": self.timeout_seconds})
            latency_ms = int((perf_counter() - t0) * 1000)
        except Exception as exc:
            logger.warning({"event": "gemini_call_failed", "error": repr(exc)})
            raise NarrationError("call_failed") from exc
        text = self._strip_code_fences(self._extract_text(response))
        logger.debug({"event": "gemini_response", "preview": text[:200], "latency_ms": latency_ms})
        if not text:
            raise NarrationError("empty_narration")
        if not (self._mentions(text, operand_a) and self._mentions(text, operand_b)):
            logger.warning({"event": "gemini_operands_missing", "preview": text[:200]})
            raise NarrationError("operands_missing")
        return text
