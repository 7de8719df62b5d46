"""
Application configuration loader and it handles:
- Environment variables
- Model provider settings
- Plan loop limits
- Capability defaults

And, the main purpose:
Central place for system configuration.
"""


from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # LLM
    LLM_PROVIDER: str = "groq"  # groq | mock (for no-key dev)
    GROQ_API_KEY: str = ""
    GROQ_BASE_URL: str = "https://api.groq.com/openai/v1"
    LLM_MODEL: str = "llama-3.3-70b-versatile"
    LLM_TEMPERATURE: float = 0.2
    LLM_TIMEOUT_S: float = 40.0
    LLM_MAX_RETRIES: int = 3
    TRANSCRIPTION_MODEL: str = "whisper-large-v3"

    # Plan loop
    MAX_ITERATIONS: int = 15
    PARSE_RETRY_LIMIT: int = 3
    CONFIRMATION_TIMEOUT_S: float = 60.0
    RUN_RETENTION_S: float = 600.0  # how long finished background runs stay readable

    # Capabilities
    PREAPPROVED_TRANSLATION_PAIRS: list[str] = ["en-es", "es-en"]
    SUMMARY_DEFAULT_CONTEXT: str = "This is a scientific article"
    REWRITE_DEFAULT_LENGTH: str = "shorter"

    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()
