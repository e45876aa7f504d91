import os
from pydantic import BaseModel
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseModel):
    gemini_api_key: str | None = os.getenv("GEMINI_API_KEY")
    gemini_model: str = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
    narration_timeout_seconds: float = float(os.getenv("NARRATION_TIMEOUT_SECONDS", "8"))
    narration_temperature: float = float(os.getenv("NARRATION_TEMPERATURE", "0.4"))
    narration_max_tokens: int = int(os.getenv("NARRATION_MAX_TOKENS", "80"))
    default_question_count: int = int(os.getenv("DEFAULT_QUESTION_COUNT", "10"))
    word_problem_rate: int = int(os.getenv("WORD_PROBLEM_RATE", "4"))
    log_level: str = os.getenv("LOG_LEVEL", "DEBUG")
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8000"))

settings = Settings()
