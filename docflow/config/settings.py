from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DOCX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "localhost"
    db_port: int = 5432
    db_database: str = "docflow"
    db_username: str = "docflow"
    db_password: str = "secret"
    db_pool_max_size: int = 10

    # Intake policy
    max_file_size_bytes: int = 50 * 1024 * 1024
    max_batch_size: int = 10
    max_concurrent_submissions: int = 10
    allowed_mime_types: dict[str, str] = Field(
        default_factory=lambda: {
            "application/pdf": ".pdf",
            "text/plain": ".txt",
            "application/rtf": ".rtf",
            DOCX_MIME_TYPE: ".docx",
        }
    )

    # Dispatcher transport
    dispatcher_url: str = "http://localhost:8000"
    dispatcher_timeout_seconds: int = 120
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    files_root: str = "/app/files"
    source_download_timeout_seconds: int = 30

    pdf_engine: str = "pdfplumber"

    # Watchdog for rows stuck in processing
    processing_timeout_seconds: int = 600
    reaper_poll_interval_seconds: int = 30

    ai_provider: str = "openai"
    ai_max_input_chars: int = 4000

    ai_openai_api_key: str = ""
    ai_openai_model_name: str = "gpt-4o-mini"
    ai_openai_timeout_seconds: int = 60

    ai_openai_compatible_base_url: str = ""
    ai_openai_compatible_api_key: str = ""
    ai_openai_compatible_model_name: str = ""
    ai_openai_compatible_timeout_seconds: int = 60

    ai_openrouter_api_key: str = ""
    ai_openrouter_model_name: str = ""
    ai_openrouter_timeout_seconds: int = 60

    ai_groq_api_key: str = ""
    ai_groq_model_name: str = ""
    ai_groq_timeout_seconds: int = 60

    ai_together_api_key: str = ""
    ai_together_model_name: str = ""
    ai_together_timeout_seconds: int = 60

    ai_deepseek_api_key: str = ""
    ai_deepseek_model_name: str = ""
    ai_deepseek_timeout_seconds: int = 60

    ai_ollama_api_key: str = ""
    ai_ollama_model_name: str = ""
    ai_ollama_timeout_seconds: int = 120
