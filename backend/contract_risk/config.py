"""Application configuration via environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    debug: bool = False
    cors_origins: list[str] = ["http://localhost:3000"]

    # Google AI (Gemini chat + embeddings)
    # Set GOOGLE_API_KEY for the Gemini API, or USE_VERTEXAI=true for Vertex AI ADC.
    google_api_key: str = ""
    use_vertexai: bool = False
    gcp_project_id: str = ""
    gcp_location: str = "us-central1"

    chat_model: str = "gemini-2.0-flash"
    chat_temperature: float = 0.2
    chat_max_output_tokens: int = 1024
    question_max_output_tokens: int = 200
    analysis_temperature: float = 0.1
    analysis_max_output_tokens: int = 4000
    key_terms_max_output_tokens: int = 500

    embedding_model: str = "text-embedding-004"
    embedding_dimensions: int = 768
    embedding_batch_size: int = 100

    # Vector store / Qdrant
    qdrant_url: str = "http://localhost:6333"
    qdrant_collection: str = "contract_knowledge_base"
    qdrant_api_key: str = ""

    # Ingestion
    knowledge_base_path: str = "data/Knowledge_Base.pdf"
    chunk_size: int = 3500
    chunk_overlap: int = 500
    chunk_separators: list[str] = ["\n\n", "\n", ".", "!", "?", ",", " ", ""]

    @property
    def llm_configured(self) -> bool:
        """True when credentials for the Google AI client are present."""
        return bool(self.google_api_key) or self.use_vertexai


settings = Settings()
