"""
Review Bot Configuration Framework

Centralized, immutable configuration for the review pipeline: credentials,
model preferences, collection limits and API endpoints. Built once at startup
and passed explicitly to every component.
"""

import json
import re
from enum import Enum
from typing import Annotated, Any, List, Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# Load .env file into environment variables so CI-native names resolve locally too
load_dotenv()


class LogLevel(str, Enum):
    """Logging levels for the review pipeline."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


DEFAULT_FALLBACK_MODELS = [
    "kimidev-72b-128k",
    "kimidev-72b-32k",
    "kimidev-72b-chat",
    "moonshot-v1-32k",
]

DEFAULT_EXCLUDE_PATTERNS = [
    "node_modules",
    "vendor",
    "dist",
    "build",
    r"\.next",
    r"\.venv",
    r"\.cache",
    "__pycache__",
    "env",
    "venv",
    "target",
    r"\.git",
    r"\.review-bot",
    r"[^/]*\.egg-info",
]

REVIEWER_PERSONA = (
    "You are an expert software engineer. Provide a concise, line-referenced GitHub code "
    "review. Focus on logical errors, best practices, potential improvements, and security "
    "vulnerabilities. Use markdown formatting for code snippets, bullet points for lists, "
    "and clearly separate distinct review points."
)


def _split_list(value: Any, separator: str) -> Any:
    """Accept ``a|b|c`` / ``a b c`` strings or JSON lists for list settings."""
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.startswith("["):
            return json.loads(stripped)
        return [item for item in re.split(separator, stripped) if item]
    return value


class LLMConfig(BaseModel):
    """Model provider (Moonshot, OpenAI-compatible) configuration."""

    model_config = ConfigDict(frozen=True)

    api_base_url: str = Field(
        default="https://api.moonshot.ai/v1",
        description="Base URL holding /models and /chat/completions"
    )
    max_tokens: int = Field(
        default=1024,
        description="Maximum tokens for the review completion",
        ge=1,
        le=100_000
    )
    temperature: float = Field(
        default=0.2,
        description="Sampling temperature for the review",
        ge=0.0,
        le=2.0
    )
    request_timeout: int = Field(
        default=120,
        description="Completion request timeout in seconds",
        ge=5,
        le=600
    )
    retry_attempts: int = Field(
        default=3,
        description="Total completion attempts, first call included",
        ge=1,
        le=10
    )
    retry_base_delay: float = Field(
        default=5.0,
        description="Backoff base in seconds; delay is base * 2^attempt",
        ge=0.0,
        le=120.0
    )
    system_persona: str = Field(
        default=REVIEWER_PERSONA,
        description="System-role message sent ahead of the collected content"
    )


class GitHubAPIConfig(BaseModel):
    """GitHub API configuration."""

    model_config = ConfigDict(frozen=True)

    api_base_url: str = Field(
        default="https://api.github.com",
        description="GitHub API base URL"
    )
    api_version: str = Field(
        default="2022-11-28",
        description="GitHub API version header"
    )
    user_agent: str = Field(
        default="Kimi-Review-Bot/1.0",
        description="User agent for API requests"
    )
    request_timeout: int = Field(
        default=30,
        description="Individual request timeout in seconds",
        ge=5,
        le=120
    )


class ReviewBotSettings(BaseSettings):
    """Main configuration settings for the review bot."""

    # Workflow-level names (MOONSHOT_KEY, FALLBACK_MODELS, ...) are accepted
    # alongside the REVIEW_BOT_ prefixed ones.
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",
        env_prefix="REVIEW_BOT_",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    # ============================================================================
    # CORE CONFIGURATION
    # ============================================================================

    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level"
    )
    enable_dry_run_mode: bool = Field(
        default=False,
        description="Run the whole pipeline but log the comment instead of posting it"
    )
    comment_on_empty: bool = Field(
        default=True,
        description="Post the 'nothing to review' notice when the collected content is empty"
    )
    artifacts_dir: Optional[str] = Field(
        default=".review-bot",
        description="Directory for code_blob.txt and resp.json; empty disables artifacts"
    )

    # ============================================================================
    # CREDENTIALS
    # ============================================================================

    moonshot_key: str = Field(
        default="",
        validation_alias=AliasChoices("REVIEW_BOT_MOONSHOT_KEY", "MOONSHOT_KEY", "moonshot_key"),
        description="Moonshot API key"
    )
    github_token: str = Field(
        default="",
        validation_alias=AliasChoices(
            "REVIEW_BOT_GITHUB_TOKEN", "GH_TOKEN", "GITHUB_TOKEN", "github_token"
        ),
        description="Token allowed to comment on pull requests"
    )

    # ============================================================================
    # MODEL SELECTION AND COLLECTION LIMITS
    # ============================================================================

    fallback_models: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_FALLBACK_MODELS),
        validation_alias=AliasChoices(
            "REVIEW_BOT_FALLBACK_MODELS", "FALLBACK_MODELS", "fallback_models"
        ),
        description="Ordered model preference list; first available wins"
    )
    exclude_patterns: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS),
        validation_alias=AliasChoices(
            "REVIEW_BOT_EXCLUDE_PATTERNS", "EXCLUDE_PATTERNS", "exclude_patterns"
        ),
        description="Regex fragments; a path is excluded when '(fragments)/' matches it"
    )
    max_code_blob_bytes: int = Field(
        default=120_000,
        validation_alias=AliasChoices(
            "REVIEW_BOT_MAX_CODE_BLOB_BYTES", "MAX_CODE_BLOB_BYTES", "max_code_blob_bytes"
        ),
        description="Hard cap on the collected content (~32k tokens)",
        gt=0
    )
    max_single_file_bytes: int = Field(
        default=100_000,
        validation_alias=AliasChoices(
            "REVIEW_BOT_MAX_SINGLE_FILE_BYTES", "MAX_SINGLE_FILE_BYTES", "max_single_file_bytes"
        ),
        description="Files of this size or larger are skipped",
        gt=0
    )

    llm: LLMConfig = Field(
        default_factory=LLMConfig,
        description="Model provider configuration"
    )
    github_api: GitHubAPIConfig = Field(
        default_factory=GitHubAPIConfig,
        description="GitHub API configuration"
    )

    # ============================================================================
    # VALIDATION
    # ============================================================================

    @field_validator("fallback_models", mode="before")
    @classmethod
    def split_fallback_models(cls, v):
        return _split_list(v, r"[\s|,]+")

    @field_validator("exclude_patterns", mode="before")
    @classmethod
    def split_exclude_patterns(cls, v):
        # Whitespace is not a separator here: fragments are regexes.
        return _split_list(v, r"\|")

    @field_validator("fallback_models")
    @classmethod
    def validate_fallback_models(cls, v):
        if not v:
            raise ValueError("At least one fallback model is required")
        return v

    @field_validator("exclude_patterns")
    @classmethod
    def validate_exclude_patterns(cls, v):
        for fragment in v:
            try:
                re.compile(fragment)
            except re.error as e:
                raise ValueError(f"Invalid exclude pattern '{fragment}': {e}")
        return v

    @field_validator("artifacts_dir")
    @classmethod
    def normalize_artifacts_dir(cls, v):
        return v or None


# ============================================================================
# CONFIGURATION FACTORY
# ============================================================================

def get_review_bot_settings(**overrides: Any) -> ReviewBotSettings:
    """
    Build settings from the environment, applying explicit overrides on top.

    Environment variables can override nested settings using double underscore notation:
    - REVIEW_BOT_LLM__MAX_TOKENS=2048
    - REVIEW_BOT_LLM__TEMPERATURE=0.0
    - REVIEW_BOT_GITHUB_API__REQUEST_TIMEOUT=60
    """
    return ReviewBotSettings(**overrides)
