from typing import Literal
from pydantic import Field
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    app_name: str = Field("invoice-lens", alias="APP_NAME")
    app_env: str = Field("dev", alias="APP_ENV")

    # Ollama-compatible vision model endpoint
    ollama_base_url: str = Field("http://127.0.0.1:11434", alias="OLLAMA_BASE_URL")
    ollama_model: str = Field("llama3.2-vision", alias="OLLAMA_MODEL")
    ollama_chat_path: str = Field("/api/chat", alias="OLLAMA_CHAT_PATH")
    ollama_generate_path: str = Field("/api/generate", alias="OLLAMA_GENERATE_PATH")
    ollama_timeout_seconds: float = Field(300.0, alias="OLLAMA_TIMEOUT_SECONDS")

    # Extraction retry policy
    extraction_max_attempts: int = Field(3, alias="EXTRACTION_MAX_ATTEMPTS")
    extraction_retry_delay_ms: int = Field(1000, alias="EXTRACTION_RETRY_DELAY_MS")
    extraction_temperature: float = Field(0.1, alias="EXTRACTION_TEMPERATURE")
    extraction_max_tokens: int = Field(2048, alias="EXTRACTION_MAX_TOKENS")

    # What a multi-page job does when one page exhausts its retries
    page_failure_policy: Literal["skip", "abort"] = Field("skip", alias="PAGE_FAILURE_POLICY")

    # Page images
    pdf_render_scale: float = Field(2.0, alias="PDF_RENDER_SCALE")
    max_image_bytes: int = Field(10 * 1024 * 1024, alias="MAX_IMAGE_BYTES")
    max_image_dimension: int = Field(2048, alias="MAX_IMAGE_DIMENSION")

    # Result cache keyed by upload hash (0 disables)
    result_cache_ttl_seconds: int = Field(24 * 60 * 60, alias="RESULT_CACHE_TTL_SECONDS")

    # CORS allowed origins (comma-separated list for production deployment)
    cors_origins: str = Field("http://localhost:3000,http://127.0.0.1:3000", alias="CORS_ORIGINS")

    # Observability
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

settings = Settings()
