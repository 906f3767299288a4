"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
- Engine components receive config explicitly and never read the environment
"""

import os
from functools import lru_cache
from typing import Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

# Load environment variables from .env file
load_dotenv()


class EngineConfig(BaseModel):
    """Clinical tolerances and safety limits of the evaluation engine."""

    grace_period_days: int = Field(
        default=4, ge=0, description="Days an early dose may still count as valid"
    )
    live_vaccine_spacing_days: int = Field(
        default=28, gt=0, description="Minimum spacing between different-day live vaccines"
    )
    overdue_after_weeks: int = Field(
        default=8, ge=0, description="Weeks past the due date before a dose is overdue"
    )
    forecast_iteration_cap: int = Field(
        default=5, gt=0, description="Maximum simulated doses per series when forecasting"
    )
    visit_grouping_threshold_days: int = Field(
        default=7, ge=0, description="Doses due within this window share a visit"
    )
    default_horizon_months: int = Field(
        default=120, gt=0, description="Forecast horizon when the caller does not give one"
    )


class RulesConfig(BaseModel):
    """Where the active rule set comes from."""

    rules_file: str | None = Field(
        default=None, description="JSON rule set to load instead of the built-in catalogue"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    # Component configs
    engine: EngineConfig = Field(default_factory=EngineConfig)
    rules: RulesConfig = Field(default_factory=RulesConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        v = val.strip().upper()
        return cast(
            Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    def _env_int(name: str, default: int) -> int:
        raw = os.getenv(name)
        if raw is None or not raw.strip():
            return default
        return int(raw)

    # Detect environment
    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    engine_config = EngineConfig(
        grace_period_days=_env_int("GRACE_PERIOD_DAYS", 4),
        live_vaccine_spacing_days=_env_int("LIVE_VACCINE_SPACING_DAYS", 28),
        overdue_after_weeks=_env_int("OVERDUE_AFTER_WEEKS", 8),
        forecast_iteration_cap=_env_int("FORECAST_ITERATION_CAP", 5),
        visit_grouping_threshold_days=_env_int("VISIT_GROUPING_THRESHOLD_DAYS", 7),
        default_horizon_months=_env_int("FORECAST_HORIZON_MONTHS", 120),
    )

    rules_config = RulesConfig(rules_file=os.getenv("VAXENGINE_RULES_FILE") or None)

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        engine=engine_config,
        rules=rules_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def validate_config() -> None:
    """Validate configuration at startup."""
    try:
        config = get_config()
        print(f"✅ Configuration loaded for {config.environment} environment")

        if config.rules.rules_file:
            if not os.path.exists(config.rules.rules_file):
                raise FileNotFoundError(f"Rules file not found: {config.rules.rules_file}")
            print(f"✅ Rules file configured: {config.rules.rules_file}")

    except Exception as e:
        print(f"❌ Configuration validation failed: {e}")
        raise


def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()

    print("\n🔧 CONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level}")

    print("\n💉 ENGINE CONFIGURATION")
    print(f"Grace Period: {config.engine.grace_period_days}d")
    print(f"Live Vaccine Spacing: {config.engine.live_vaccine_spacing_days}d")
    print(f"Overdue After: {config.engine.overdue_after_weeks}w")
    print(f"Forecast Horizon: {config.engine.default_horizon_months}m")
    print(f"Forecast Iteration Cap: {config.engine.forecast_iteration_cap}")
    print(f"Visit Grouping Window: {config.engine.visit_grouping_threshold_days}d")

    print("\n📋 RULES")
    print(f"Source: {config.rules.rules_file or 'built-in catalogue'}")


if __name__ == "__main__":
    # Test configuration loading
    validate_config()
    print_config_summary()
