"""
Configuration management for MFDS Regulatory Monitor
"""

import re
import yaml
from pathlib import Path
from typing import Any, Dict, Optional, List
from pydantic import BaseModel, Field, validator
from pydantic_settings import BaseSettings

from .llm_factory import BackendFactory


# Settings fields (read from GEMINI_API_KEY etc.) holding provider credentials.
PROVIDER_KEY_FIELDS = {
    "gemini": ["gemini_api_key", "google_api_key"],
    "openrouter": ["openrouter_api_key"],
}


class AIConfig(BaseModel):
    """Generation backend configuration"""
    provider: str = Field(default="gemini")
    model: Optional[str] = Field(default=None)
    api_key: Optional[str] = Field(default=None)
    timeout: int = Field(default=120, ge=1, le=600)
    structured_output: bool = Field(default=False)

    @validator("provider")
    def validate_provider(cls, v):
        """Validate generation provider"""
        allowed_providers = list(PROVIDER_KEY_FIELDS)
        if v not in allowed_providers:
            raise ValueError(f"AI provider must be one of: {allowed_providers}")
        return v

    @validator("api_key")
    def validate_api_key(cls, v):
        """Validate API key length"""
        if v and len(v.strip()) < 10:
            raise ValueError("AI API key appears to be too short")
        return v

    @validator("model")
    def validate_model(cls, v):
        """Validate model name"""
        if v is not None and not v.strip():
            raise ValueError("AI model cannot be blank")
        return v


class RetrievalConfig(BaseModel):
    """Update retrieval configuration"""
    lookback_days: int = Field(default=90, ge=1, le=365)


class CacheConfig(BaseModel):
    """Result caching configuration"""
    enabled: bool = Field(default=False)
    ttl: int = Field(default=600, ge=1, le=86400)


class APIConfig(BaseModel):
    """API server configuration"""
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000, ge=1, le=65535)
    debug: bool = Field(default=False)
    static_dir: Optional[str] = Field(default="dist")
    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"])

    @validator("host")
    def validate_host(cls, v):
        """Validate host address"""
        if not v:
            raise ValueError("API host cannot be empty")

        if v not in ["0.0.0.0", "127.0.0.1", "localhost"] and not re.match(r"^\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}$", v):
            if not re.match(r"^[a-zA-Z0-9.-]+$", v):
                raise ValueError("Host must be a valid IP address, domain name, or 'localhost'")

        return v


class LoggingConfig(BaseModel):
    """Logging configuration"""
    level: str = Field(default="INFO")
    format: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    file: Optional[str] = Field(default=None)
    max_bytes: int = Field(default=10485760, ge=1024, le=1073741824)  # 1KB to 1GB
    backup_count: int = Field(default=5, ge=0, le=50)

    @validator("level")
    def validate_level(cls, v):
        """Validate logging level"""
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed_levels:
            raise ValueError(f"Log level must be one of: {allowed_levels}")
        return v.upper()


class Config(BaseSettings):
    """Main configuration class"""

    environment: str = Field(default="development")
    debug: bool = Field(default=False)

    ai: AIConfig = Field(default_factory=AIConfig)
    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    # Provider credentials under their conventional variable names
    gemini_api_key: Optional[str] = Field(default=None)
    google_api_key: Optional[str] = Field(default=None)
    openrouter_api_key: Optional[str] = Field(default=None)
    ai_api_key: Optional[str] = Field(default=None)

    app_name: str = Field(default="MFDS Regulatory Monitor")
    app_version: str = Field(default="1.0.0")

    class Config:
        env_file = (".env", ".env.local")
        env_file_encoding = "utf-8"
        case_sensitive = False
        env_nested_delimiter = "__"
        validate_assignment = True
        extra = "ignore"

    @validator("environment")
    def validate_environment(cls, v):
        """Validate environment setting"""
        allowed = ["development", "testing", "staging", "production"]
        if v not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v

    def resolve_api_key(self, provider: Optional[str] = None) -> Optional[str]:
        """
        Find the credential for a provider.

        Order: AI__API_KEY, the provider-specific variables
        (GEMINI_API_KEY, GOOGLE_API_KEY, OPENROUTER_API_KEY), then AI_API_KEY.
        Values may come from the environment, .env or .env.local.
        """
        provider = provider or self.ai.provider
        if self.ai.api_key and provider == self.ai.provider:
            return self.ai.api_key
        for field_name in PROVIDER_KEY_FIELDS.get(provider, []) + ["ai_api_key"]:
            value = getattr(self, field_name)
            if value:
                return value
        return None

    def validate_startup(self, strict: bool = False) -> List[str]:
        """
        Validate configuration at startup.

        Args:
            strict: If True, treat warnings as errors

        Returns:
            List of warning/error messages
        """
        issues = []

        if self.environment == "production":
            if self.debug or self.api.debug:
                issues.append("WARNING: Debug mode should be disabled in production")

        if not self.resolve_api_key():
            issues.append(
                f"WARNING: No API key configured for AI provider '{self.ai.provider}'. "
                "Update retrieval will fail until one is set."
            )

        if self.ai.structured_output and not BackendFactory.supports_structured_output(self.ai.provider, self.ai.model):
            model = self.ai.model or BackendFactory.get_default_model(self.ai.provider)
            issues.append(
                f"INFO: Model '{model}' on provider '{self.ai.provider}' cannot combine search grounding "
                "with structured output; free-text extraction will be used."
            )

        if self.logging.file:
            try:
                log_path = Path(self.logging.file)
                log_path.parent.mkdir(parents=True, exist_ok=True)
                test_file = log_path.parent / ".write_test"
                test_file.touch()
                test_file.unlink()
            except (OSError, PermissionError):
                issues.append(f"ERROR: Cannot write to log file location: {self.logging.file}")

        if self.api.static_dir and not Path(self.api.static_dir).is_dir():
            issues.append(f"INFO: Static directory '{self.api.static_dir}' not found; browser client will not be served.")

        if strict:
            issues = [issue.replace("WARNING", "ERROR", 1) for issue in issues]

        return issues

    def validate_and_fail_on_errors(self) -> None:
        """Validate configuration and raise exception if errors found"""
        issues = self.validate_startup(strict=False)

        errors = [issue for issue in issues if issue.startswith("ERROR")]

        if errors:
            error_msg = "Configuration validation failed:\n" + "\n".join(errors)
            raise ValueError(error_msg)

    def get_validation_summary(self) -> Dict[str, List[str]]:
        """Get validation summary categorized by severity"""
        issues = self.validate_startup(strict=False)

        return {
            "errors": [issue for issue in issues if issue.startswith("ERROR")],
            "warnings": [issue for issue in issues if issue.startswith("WARNING")],
            "info": [issue for issue in issues if issue.startswith("INFO")]
        }

    @classmethod
    def from_file(cls, config_path: str) -> "Config":
        """Load configuration from YAML file"""
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_file, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f) or {}

        return cls(**config_data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary"""
        return self.model_dump()


# Global configuration instance
_config: Optional[Config] = None


def get_config(validate_startup: bool = False) -> Config:
    """
    Get the global configuration instance

    Args:
        validate_startup: If True, run startup validation and fail on errors
    """
    global _config
    if _config is None:
        _config = Config()

        if validate_startup:
            _config.validate_and_fail_on_errors()

    return _config


def set_config(config: Optional[Config]) -> None:
    """Set the global configuration instance"""
    global _config
    _config = config


def load_config(config_path: Optional[str] = None, validate_startup: bool = False) -> Config:
    """
    Load configuration from file or environment

    Args:
        config_path: Path to configuration file (optional)
        validate_startup: If True, run startup validation and fail on errors
    """
    if config_path:
        config = Config.from_file(config_path)
    else:
        config = Config()

    if validate_startup:
        config.validate_and_fail_on_errors()

    set_config(config)
    return config


def print_config_validation() -> None:
    """Print configuration validation summary to console"""
    summary = get_config().get_validation_summary()

    for label, key in [("ERRORS", "errors"), ("WARNINGS", "warnings"), ("INFO", "info")]:
        if summary[key]:
            print(f"{label}:")
            for issue in summary[key]:
                print(f"  {issue}")
            print()

    if not any(summary.values()):
        print("Configuration validation passed with no issues!")


def ensure_valid_config() -> Config:
    """Ensure configuration is valid or raise exception"""
    config = get_config()
    config.validate_and_fail_on_errors()
    return config
