from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    SQLITE_FOLDER: str = "./data"
    DEFAULT_DATASET: str = "default"

    # Language model (Ollama chat endpoint)
    OLLAMA_URL: str = "http://localhost:11434/api/chat"
    OLLAMA_MODEL: str = "phi4"
    LLM_TIMEOUT: int = 120
    LLM_TEMPERATURE: float = 0.2

    # Rows read per table for prompt context / relevance scoring
    SAMPLE_ROWS: int = 5
    RELEVANCE_SAMPLE_ROWS: int = 1
    MAX_RESULT_ROWS: int = 1000

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
