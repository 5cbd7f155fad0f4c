"""
Configuration management for dep-analytics.

Settings come from defaults, then an optional config file (JSON, YAML or
TOML), then environment variables.
"""

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import toml
import yaml
from rich.console import Console

from .constants import DEFAULT_DIAGNOSTIC_SOURCE, DEFAULT_NPM_CLASSES, SEVERITY_ORDER

console = Console(stderr=True)

CONFIG_FILE_NAMES = [
    ".dep-analytics.json",
    ".dep-analytics.yaml",
    ".dep-analytics.yml",
    ".dep-analytics.toml",
]


@dataclass
class ProviderConfig:
    """Manifest parser settings."""

    npm_dependency_classes: List[str] = field(
        default_factory=lambda: list(DEFAULT_NPM_CLASSES)
    )
    golang_executable: str = "go"
    resolve_go_imports: bool = False


@dataclass
class AnalysisConfig:
    """Analysis backend settings."""

    backend_url: str = "http://localhost:8080"
    api_token: Optional[str] = None
    provider_tokens: Dict[str, str] = field(default_factory=dict)
    connect_timeout: float = 10.0
    read_timeout: float = 60.0
    utm_source: str = ""
    telemetry_id: str = ""


@dataclass
class DiagnosticsConfig:
    """Diagnostics rendering settings."""

    diagnostic_source: str = DEFAULT_DIAGNOSTIC_SOURCE
    # Vulnerabilities at or above this severity are reported as errors
    error_severity_threshold: str = "HIGH"


@dataclass
class SecurityConfig:
    """Manifest input limits."""

    max_file_size_mb: int = 10

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024


@dataclass
class LoggingConfig:
    """Logging configuration."""

    log_level: str = "WARNING"
    enable_json: bool = True


@dataclass
class AnalyticsConfig:
    """Complete configuration."""

    providers: ProviderConfig = field(default_factory=ProviderConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    diagnostics: DiagnosticsConfig = field(default_factory=DiagnosticsConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if data["analysis"]["api_token"]:
            data["analysis"]["api_token"] = "[REDACTED]"
        data["analysis"]["provider_tokens"] = {
            name: "[REDACTED]" for name in data["analysis"]["provider_tokens"]
        }
        return data


SECTIONS = ["providers", "analysis", "diagnostics", "security", "logging"]

_global_config: Optional[AnalyticsConfig] = None


def validate_config_values(config: AnalyticsConfig) -> List[str]:
    """Return a list of problems found in the configuration."""
    errors = []

    if not config.providers.npm_dependency_classes:
        errors.append("providers.npm_dependency_classes must not be empty")
    if not config.providers.golang_executable:
        errors.append("providers.golang_executable must not be empty")

    if not config.analysis.backend_url.startswith(("http://", "https://")):
        errors.append("analysis.backend_url must be an http(s) URL")
    if config.analysis.connect_timeout <= 0:
        errors.append("analysis.connect_timeout must be positive")
    if config.analysis.read_timeout <= 0:
        errors.append("analysis.read_timeout must be positive")

    if config.diagnostics.error_severity_threshold.upper() not in SEVERITY_ORDER:
        errors.append(
            f"diagnostics.error_severity_threshold must be one of {', '.join(SEVERITY_ORDER)}"
        )

    if config.security.max_file_size_mb <= 0:
        errors.append("security.max_file_size_mb must be positive")

    if config.logging.log_level.upper() not in [
        "DEBUG",
        "INFO",
        "WARNING",
        "ERROR",
        "CRITICAL",
    ]:
        errors.append("logging.log_level must be a standard logging level name")

    return errors


def load_config_file(config_path: Path) -> Optional[Dict[str, Any]]:
    """Load config from file."""
    if not config_path.exists():
        return None

    suffix = config_path.suffix.lower()
    try:
        with open(config_path, encoding="utf-8") as f:
            if suffix in [".yaml", ".yml"]:
                return yaml.safe_load(f)
            if suffix == ".toml":
                return toml.load(f)
            if suffix == ".json":
                return json.load(f)
    except (OSError, ValueError, yaml.YAMLError, toml.TomlDecodeError) as e:
        console.print(f"⚠️  Error loading config from {config_path}: {e}", style="yellow")

    return None


def find_config_file() -> Optional[Path]:
    """Find config file in standard locations."""
    locations = [Path.cwd() / name for name in CONFIG_FILE_NAMES]
    user_dir = Path.home() / ".config" / "dep-analytics"
    locations += [
        user_dir / "config.json",
        user_dir / "config.yaml",
        user_dir / "config.toml",
    ]

    for location in locations:
        if location.exists():
            return location

    return None


def load_environment_overrides(config: AnalyticsConfig) -> None:
    """Apply ``DEP_ANALYTICS_*`` and toolchain environment variables."""

    def get_env_bool(key: str, default: bool = False) -> bool:
        value = os.environ.get(key, "").lower()
        return value in ["true", "1", "yes", "on"] if value else default

    def get_env_int(key: str) -> Optional[int]:
        try:
            return int(os.environ[key]) if key in os.environ else None
        except ValueError:
            console.print(f"⚠️  Invalid integer value for {key}, using default", style="yellow")
            return None

    def get_env_float(key: str) -> Optional[float]:
        try:
            return float(os.environ[key]) if key in os.environ else None
        except ValueError:
            console.print(f"⚠️  Invalid float value for {key}, using default", style="yellow")
            return None

    if classes := os.environ.get("DEP_ANALYTICS_NPM_CLASSES"):
        config.providers.npm_dependency_classes = [
            name.strip() for name in classes.split(",") if name.strip()
        ]
    if go := os.environ.get("GOLANG_EXECUTABLE"):
        config.providers.golang_executable = go
    config.providers.resolve_go_imports = get_env_bool(
        "DEP_ANALYTICS_RESOLVE_GO_IMPORTS", config.providers.resolve_go_imports
    )

    if backend_url := os.environ.get("DEP_ANALYTICS_BACKEND_URL"):
        config.analysis.backend_url = backend_url
    if api_token := os.environ.get("DEP_ANALYTICS_API_TOKEN"):
        config.analysis.api_token = api_token
    if snyk_token := os.environ.get("DEP_ANALYTICS_SNYK_TOKEN"):
        config.analysis.provider_tokens["snyk"] = snyk_token
    if connect_timeout := get_env_float("DEP_ANALYTICS_CONNECT_TIMEOUT"):
        config.analysis.connect_timeout = connect_timeout
    if read_timeout := get_env_float("DEP_ANALYTICS_READ_TIMEOUT"):
        config.analysis.read_timeout = read_timeout
    if utm_source := os.environ.get("DEP_ANALYTICS_UTM_SOURCE"):
        config.analysis.utm_source = utm_source
    if telemetry_id := os.environ.get("DEP_ANALYTICS_TELEMETRY_ID"):
        config.analysis.telemetry_id = telemetry_id

    if threshold := os.environ.get("DEP_ANALYTICS_ERROR_SEVERITY"):
        config.diagnostics.error_severity_threshold = threshold.upper()

    if max_file_size := get_env_int("DEP_ANALYTICS_MAX_FILE_SIZE_MB"):
        config.security.max_file_size_mb = max_file_size

    if log_level := os.environ.get("DEP_ANALYTICS_LOG_LEVEL"):
        config.logging.log_level = log_level.upper()
    config.logging.enable_json = get_env_bool(
        "DEP_ANALYTICS_LOG_JSON", config.logging.enable_json
    )


def apply_config_section(
    config: Any, section_data: Dict[str, Any], section_name: str
) -> None:
    """Apply configuration from dictionary to config section."""
    for key, value in section_data.items():
        if hasattr(config, key):
            if isinstance(getattr(config, key), dict) and isinstance(value, dict):
                getattr(config, key).update(value)
            else:
                setattr(config, key, value)
        else:
            console.print(
                f"⚠️  Unknown config key in {section_name}: {key}", style="yellow"
            )


def load_config(config_path: Optional[Path] = None) -> AnalyticsConfig:
    """
    Load configuration from file and environment.

    Args:
        config_path: Explicit config file; searched for when omitted

    Returns:
        AnalyticsConfig: Loaded configuration
    """
    config = AnalyticsConfig()

    config_file = config_path or find_config_file()
    if config_file:
        file_config = load_config_file(config_file) or {}
        # pyproject-style files nest everything under [tool.dep-analytics]
        file_config = file_config.get("tool", {}).get("dep-analytics", file_config)
        for section in SECTIONS:
            if isinstance(file_config.get(section), dict):
                apply_config_section(getattr(config, section), file_config[section], section)

    load_environment_overrides(config)

    validation_errors = validate_config_values(config)
    if validation_errors:
        console.print("⚠️  Configuration validation errors:", style="red")
        for error in validation_errors:
            console.print(f"  • {error}", style="red")

    return config


def get_config() -> AnalyticsConfig:
    """Get the global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = load_config()
    return _global_config


def reset_config() -> None:
    """Reset the global configuration (useful for testing)."""
    global _global_config
    _global_config = None


def create_sample_config() -> str:
    """Generate a sample JSON configuration."""
    sample = asdict(AnalyticsConfig())
    sample["analysis"]["api_token"] = None
    return json.dumps(sample, indent=2)
