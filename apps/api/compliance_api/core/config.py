"""
Core configuration settings for the Trade Compliance API
"""
from pathlib import Path
from typing import List, Union
from pydantic_settings import BaseSettings
from pydantic import field_validator


class Settings(BaseSettings):
    """Application settings with validation"""
    
    # App settings
    APP_NAME: str = "Trade Compliance API"
    DEBUG: bool = False
    NODE_ENV: str = "development"
    CORS_ORIGINS: Union[str, List[str]] = ["http://localhost:3000", "http://127.0.0.1:3000"]
    
    # OpenAI settings
    OPENAI_API_KEY: str = ""
    OPENAI_EMBEDDING_MODEL: str = "text-embedding-3-small"
    OPENAI_COMPLETION_MODEL: str = "gpt-4.1-mini"
    EXPLANATION_MAX_TOKENS: int = 100
    ORACLE_TIMEOUT_SECONDS: float = 20.0
    
    # Knowledge base storage
    DATA_DIR: str = "data"
    EMBEDDINGS_FILE: str = "embeddings-database.json"
    ITEM_TO_HS_FILE: str = "item-to-hs-mapping.json"
    
    # Ingestion settings
    UPLOAD_DIR: str = "uploads"
    UPLOAD_MAX_SIZE: int = 10 * 1024 * 1024  # 10MB
    CHUNK_SIZE: int = 1000
    EMBEDDING_MAX_CONCURRENCY: int = 8
    RELEVANT_CONTENT_TOP_K: int = 5
    
    # Redis settings
    REDIS_URL: str = "redis://localhost:6379/0"
    EXPLANATION_CACHE_ENABLED: bool = True
    
    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    
    # Monitoring settings
    LOG_LEVEL: str = "INFO"
    
    @field_validator("NODE_ENV")
    def validate_node_env(cls, v):
        if v not in ["development", "staging", "production"]:
            raise ValueError("NODE_ENV must be one of: development, staging, production")
        return v
    
    @field_validator("LOG_LEVEL")
    def validate_log_level(cls, v):
        if v not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            raise ValueError("LOG_LEVEL must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL")
        return v
    
    @field_validator("CHUNK_SIZE", "EMBEDDING_MAX_CONCURRENCY", "RELEVANT_CONTENT_TOP_K")
    def validate_positive(cls, v):
        if v < 1:
            raise ValueError("must be a positive integer")
        return v
    
    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"
    
    @property
    def is_production(self) -> bool:
        return self.NODE_ENV == "production"
    
    @property
    def is_development(self) -> bool:
        return self.NODE_ENV == "development"
    
    @property
    def cors_origins_list(self) -> List[str]:
        """Get CORS_ORIGINS as a list"""
        if isinstance(self.CORS_ORIGINS, str):
            return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]
        return self.CORS_ORIGINS
    
    @property
    def embeddings_path(self) -> Path:
        return Path(self.DATA_DIR) / self.EMBEDDINGS_FILE
    
    @property
    def item_to_hs_path(self) -> Path:
        return Path(self.DATA_DIR) / self.ITEM_TO_HS_FILE
    
    @property
    def upload_path(self) -> Path:
        return Path(self.UPLOAD_DIR)


# Create settings instance with validation
settings = Settings()
