from pydantic_settings import BaseSettings
from typing import Literal, Optional
from dotenv import load_dotenv
from slowapi import Limiter
from slowapi.util import get_remote_address

# Load .env file if it exists
load_dotenv()


class Settings(BaseSettings):
    # LLM Provider
    llm_provider: Literal["openai", "anthropic", "ollama"] = "openai"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-3-5-sonnet-20241022"
    llm_temperature: float = 0.7
    llm_max_tokens: int = 4096

    # Ollama
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "llama3.2"

    # Jira
    jira_email: str = ""
    jira_api_token: str = ""
    jira_domain: str = ""
    jira_project_key: str = "PROJ"
    jira_base_url: str = ""  # overrides https://<jira_domain>.atlassian.net when set
    jira_story_issue_type_id: str = ""  # used when no story/task type can be resolved
    jira_subtask_issue_type_id: str = ""  # used when no sub-task type can be resolved
    jira_start_date_field: str = "customfield_10015"

    # Deepgram (speech-to-text / text-to-speech)
    deepgram_api_key: Optional[str] = None
    deepgram_stt_model: str = "nova-2"
    deepgram_tts_model: str = "aura-asteria-en"

    # API Settings
    api_key: Optional[str] = None  # Set to enable API key auth; leave unset to disable
    api_host: str = "0.0.0.0"
    api_port: int = 4000
    rate_limit_per_minute: int = 30
    rate_limit_storage_uri: str = "memory://"
    max_request_size_mb: int = 10

    # CORS Settings
    cors_origins: str = ""  # Comma-separated list of allowed origins, or "*" for all

    # Environment
    environment: str = "development"
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def jira_url(self) -> str:
        """Base URL of the Jira Cloud site."""
        if self.jira_base_url:
            return self.jira_base_url.rstrip("/")
        return f"https://{self.jira_domain}.atlassian.net"

    def is_deepgram_configured(self) -> bool:
        return bool(self.deepgram_api_key)


settings = Settings()

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.rate_limit_storage_uri,
    default_limits=[f"{settings.rate_limit_per_minute}/minute"],
)
