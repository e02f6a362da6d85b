"""
Settings Configuration
Pydantic-based configuration for the deep dive research engine
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class DeepDiveSettings(BaseSettings):
    """Research job limits and time budgets (seconds)"""
    max_sources: int = Field(default=12, description="Default candidate count per job")
    min_sources_floor: int = Field(default=6, description="Lower clamp for a user's source preference")
    max_sources_ceiling: int = Field(default=12, description="Upper clamp for a user's source preference")
    lookback_days: int = Field(default=7, description="Candidate recency window")

    max_fetch_per_invocation: int = Field(default=4, description="Fetch batch size per step")
    fetch_timeout: float = Field(default=10.0, description="Per-request fetch timeout")
    min_readable_chars: int = Field(default=1200, description="Minimum extracted text length")
    max_extracted_chars: int = Field(default=20000, description="Stored text cap")
    min_ok_sources: int = Field(default=4, description="OK sources needed to synthesize early")
    min_partial_sources: int = Field(default=2, description="OK sources needed for a partial direct synthesis")

    max_synthesis_sources: int = Field(default=8, description="Sources fed to synthesis")
    excerpt_chars: int = Field(default=3000, description="Per-source excerpt for direct synthesis")
    map_excerpt_chars: int = Field(default=2000, description="Per-source excerpt for map summaries")
    output_tokens: int = Field(default=1200, description="Max output tokens for a report")
    summary_tokens: int = Field(default=200, description="Max output tokens for a map summary")
    direct_timeout: float = Field(default=35.0, description="Hard timeout for one synthesis call")
    map_timeout: float = Field(default=20.0, description="Hard timeout for one map summary call")

    max_attempts: int = Field(default=3, description="Step attempts before forced publish")
    fetch_buffer: float = Field(default=8.0, description="Budget reserve during FETCH")
    synthesis_buffer: float = Field(default=15.0, description="Budget reserve during SYNTHESIZE")
    advance_buffer: float = Field(default=12.0, description="Budget reserve between advanced jobs")

    tick_max_duration: float = Field(default=55.0, description="Whole tick budget")
    max_jobs_per_tick: int = Field(default=3, description="Jobs advanced per tick")
    per_job_floor: float = Field(default=10.0, description="Minimum per-job step budget")
    per_job_ceiling: float = Field(default=45.0, description="Maximum per-job step budget")
    per_job_reserve: float = Field(default=5.0, description="Reserve kept back from the remaining tick budget")

    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="Fetch client identity")

    class Config:
        env_prefix = "DEEP_DIVE_"


class LLMSettings(BaseSettings):
    """LLM configuration"""
    provider: str = Field(default="openai", description="LLM provider: openai, deepseek")
    model_name: Optional[str] = Field(default=None, description="Model name (provider default when empty)")
    temperature: float = Field(default=0.3, description="Generation temperature")
    max_tokens: int = Field(default=1200, description="Max generated tokens")

    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API Key")
    deepseek_api_key: Optional[str] = Field(default=None, description="DeepSeek API Key")
    base_url: Optional[str] = Field(default=None, description="OpenAI-compatible endpoint override")

    class Config:
        env_prefix = "LLM_"


class EmailSettings(BaseSettings):
    """Notification delivery configuration"""
    provider: str = Field(default="log", description="Sender: log, resend")
    resend_api_key: Optional[str] = Field(default=None, description="Resend API Key")
    from_address: str = Field(default="Deep Dive <no-reply@example.com>", description="Sender address")
    app_host: str = Field(default="http://localhost:3000", description="Base URL for footer links")
    outbox_dir: str = Field(default="./data/outbox", description="JSONL outbox for the log sender")
    timeout: float = Field(default=10.0, description="Delivery request timeout")

    class Config:
        env_prefix = "EMAIL_"


class StorageSettings(BaseSettings):
    """Storage configuration"""
    data_dir: str = Field(default="./data", description="Job store and seed data directory")
    jobs_file: str = Field(default="jobs.json", description="Persisted job store file name")
    seed_file: str = Field(default="seed.json", description="Directory and corpus seed file name")
    tokens_file: str = Field(default="tokens.json", description="Persisted link token hashes file name")

    class Config:
        env_prefix = "STORAGE_"


class FeatureFlags(BaseSettings):
    """Global capability switches"""
    deep_research_enabled: bool = Field(default=False, description="Run the deep dive subsystem at all")


class Settings(BaseSettings):
    """Main settings: aggregates every sub-configuration"""

    deep_dive: DeepDiveSettings = Field(default_factory=DeepDiveSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    email: EmailSettings = Field(default_factory=EmailSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    flags: FeatureFlags = Field(default_factory=FeatureFlags)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @classmethod
    def load_from_env_file(cls, env_path: Optional[Path] = None) -> "Settings":
        """Load settings after applying the given .env file (config/.env by default)"""
        if env_path is None:
            env_path = Path(__file__).parent / ".env"

        if env_path.exists():
            from dotenv import load_dotenv
            load_dotenv(env_path)

        return cls(
            deep_dive=DeepDiveSettings(),
            llm=LLMSettings(),
            email=EmailSettings(),
            storage=StorageSettings(),
            flags=FeatureFlags(),
        )


@lru_cache()
def get_settings() -> Settings:
    """Global settings singleton"""
    return Settings.load_from_env_file()


def get_deep_dive_settings() -> DeepDiveSettings:
    return get_settings().deep_dive


def get_llm_settings() -> LLMSettings:
    return get_settings().llm


def get_email_settings() -> EmailSettings:
    return get_settings().email


def get_storage_settings() -> StorageSettings:
    return get_settings().storage
