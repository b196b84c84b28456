from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./vocabulary.db"

    # JWT & Security
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 24 * 60  # 1 day
    quiz_session_expire_minutes: int = 2 * 60

    # App Settings
    debug: bool = False
    port: int = 8000
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    # Quiz Settings
    default_quiz_length: int = 10
    max_quiz_length: int = 100
    selection_pool_percent: int = 70  # share of hardest items eligible in multiple choice
    most_mistaken_limit: int = 10

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def cors_origin_list(self):
        """Split the comma separated CORS origins"""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


# Load settings
settings = Settings()
