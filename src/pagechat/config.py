from pydantic import BaseModel
from dotenv import load_dotenv
import os

load_dotenv()

class Settings(BaseModel):
    llm_provider: str = os.getenv("LLM_PROVIDER", "gemini")

    gemini_api_key: str | None = os.getenv("GOOGLE_GENAI_API_KEY")
    gemini_model: str = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")
    gemini_base_url: str = os.getenv("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta")

    openai_api_key: str | None = os.getenv("OPENAI_API_KEY")
    openai_model: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

    ollama_base_url: str = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
    ollama_model: str = os.getenv("OLLAMA_MODEL", "llama3.1")

    # Generation parameters shared by every provider
    temperature: float = float(os.getenv("LLM_TEMPERATURE", "0.7"))
    top_p: float = float(os.getenv("LLM_TOP_P", "0.95"))
    top_k: int = int(os.getenv("LLM_TOP_K", "40"))
    max_output_tokens: int = int(os.getenv("LLM_MAX_OUTPUT_TOKENS", "2048"))
    llm_timeout: float = float(os.getenv("LLM_TIMEOUT", "60"))

    crawl_user_agent: str = os.getenv("CRAWL_USER_AGENT", "Mozilla/5.0 (compatible; WebCrawler/1.0)")
    crawl_timeout: float = float(os.getenv("CRAWL_TIMEOUT", "10"))
    max_content_chars: int = int(os.getenv("MAX_CONTENT_CHARS", "4000"))

    history_limit: int = int(os.getenv("HISTORY_LIMIT", "10"))

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

settings = Settings()
