"""
Load settings from .env. Never log or expose secret values.
All values come from environment variables (populated via .env file).
"""
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Model provider: OpenAI when a key is present, otherwise a local Ollama model
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    openai_model: str = Field(default="gpt-4o", description="OpenAI chat model")
    ollama_model: str = Field(default="llama3.2:3b", description="Ollama chat model")
    ollama_base_url: str = Field(default="http://localhost:11434", description="Ollama server URL")
    model_temperature: float = Field(default=0.0, description="Sampling temperature for either provider")

    # Weather
    openweathermap_api_key: Optional[str] = Field(default=None, description="OpenWeatherMap API key")
    openweathermap_url: str = Field(
        default="https://api.openweathermap.org/data/2.5/weather",
        description="OpenWeatherMap current conditions endpoint",
    )
    weather_timeout_sec: float = Field(default=10.0, description="Timeout for the remote weather request")
    default_city: str = Field(default="Montreal", description="Known place used when nothing else matches")
    client_tool_passthrough: bool = Field(
        default=False, description="Leave calls to client-handled tools for the caller instead of failing the turn"
    )

    # App
    log_level: str = Field(default="INFO", description="Log level")
    api_host: str = Field(default="0.0.0.0", description="FastAPI bind host")
    api_port: int = Field(default=8000, description="FastAPI port")


@lru_cache
def get_settings() -> Settings:
    return Settings()
