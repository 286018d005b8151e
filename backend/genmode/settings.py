from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	# Text transform oracle (OpenRouter chat completions)
	openrouter_api_key: str | None = Field(default=None, validation_alias="OPENROUTER_API_KEY")
	openrouter_model: str = Field(default="deepseek/deepseek-r1-0528:free", validation_alias="OPENROUTER_MODEL")
	openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1/chat/completions", validation_alias="OPENROUTER_BASE_URL")
	openrouter_referer: str = Field(default="https://genmode.com", validation_alias="SITE_URL")
	openrouter_title: str = Field(default="GenMode", validation_alias="OPENROUTER_TITLE")
	openrouter_timeout_seconds: float = Field(default=60, validation_alias="OPENROUTER_TIMEOUT_SECONDS")

	# Auth configuration
	jwt_secret_key: str = Field(default="change-me", validation_alias="JWT_SECRET_KEY")
	jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
	access_token_expire_minutes: int = Field(default=120, validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES")

	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# Client side (CLI + session reconciler)
	api_url: str = Field(default="http://127.0.0.1:8000", validation_alias="GENMODE_API_URL")
	cache_path: str = Field(default="~/.genmode/session.json", validation_alias="GENMODE_CACHE_PATH")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
