"""
Configuration — loads settings from .chatpatch.yaml, environment variables,
and built-in defaults (in that priority order: CLI args > env > YAML > defaults).
"""

import os

import yaml


_DEFAULTS = {
    "project_root": "",
    "model": "gpt-4o-mini",
    "base_url": "https://api.openai.com/v1",
    "api_key": "",
    "temperature": 0.2,
    "request_timeout": 120.0,
    "llm_max_retries": 3,
    "llm_retry_delay": 2.0,
    "max_context_files": 5,
    "listing_max_entries": 400,
    "listing_max_chars": 4000,
    "context_char_budget": 8000,
    "per_file_char_cap": 2000,
    "use_llm_selection": True,
    "log_dir": ".chatpatch/logs",
    "metrics_enabled": True,
}

# Config file search locations
_CONFIG_FILENAMES = [".chatpatch.yaml", ".chatpatch.yml"]


def _find_config_file(explicit_path: str | None = None) -> str | None:
    """Locate the config file: the explicit path if given, else the first
    ``.chatpatch.yaml``/``.chatpatch.yml`` in CWD or the user's home."""
    if explicit_path:
        return explicit_path if os.path.isfile(explicit_path) else None

    candidates = (
        os.path.join(directory, name)
        for directory in (os.getcwd(), os.path.expanduser("~"))
        for name in _CONFIG_FILENAMES
    )
    return next((c for c in candidates if os.path.isfile(c)), None)


def _load_yaml(path: str) -> dict:
    """Load YAML file, returns empty dict on failure."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return {}


class Config:
    """Application configuration.

    Settings are resolved in priority order:
    1. CLI arguments (handled by caller)
    2. Environment variables (``CHATPATCH_*``, plus ``OPENAI_API_KEY``)
    3. .chatpatch.yaml config file
    4. Built-in defaults
    """

    def __init__(self, yaml_data: dict | None = None):
        yd = yaml_data or {}

        # Helper: env var > yaml > default
        def _get(env_key: str, yaml_key: str, cast=str):
            env_val = os.getenv(env_key)
            if env_val is not None:
                return cast(env_val)
            yaml_val = yd.get(yaml_key)
            if yaml_val is not None:
                return cast(yaml_val)
            return _DEFAULTS[yaml_key]

        def _get_bool(env_key: str, yaml_key: str) -> bool:
            env_val = os.getenv(env_key)
            if env_val is not None:
                return env_val.lower() == "true"
            yaml_val = yd.get(yaml_key)
            if yaml_val is not None:
                return bool(yaml_val)
            return _DEFAULTS[yaml_key]

        self.PROJECT_ROOT = _get("CHATPATCH_PROJECT_ROOT", "project_root")

        # Completion provider (any OpenAI-compatible endpoint)
        llm_section = yd.get("llm", {}) if isinstance(yd.get("llm"), dict) else {}
        self.MODEL = os.getenv("CHATPATCH_MODEL") or llm_section.get(
            "model", _DEFAULTS["model"])
        self.BASE_URL = os.getenv("CHATPATCH_BASE_URL") or llm_section.get(
            "base_url", _DEFAULTS["base_url"])
        self.API_KEY = os.getenv("OPENAI_API_KEY") or llm_section.get(
            "api_key", _DEFAULTS["api_key"])
        self.TEMPERATURE = float(llm_section.get("temperature", _DEFAULTS["temperature"]))

        self.REQUEST_TIMEOUT = _get("CHATPATCH_REQUEST_TIMEOUT", "request_timeout",
                                    cast=float)
        self.LLM_MAX_RETRIES = _get("CHATPATCH_LLM_MAX_RETRIES", "llm_max_retries",
                                    cast=int)
        self.LLM_RETRY_DELAY = _get("CHATPATCH_LLM_RETRY_DELAY", "llm_retry_delay",
                                    cast=float)

        # Context selection budgets
        self.MAX_CONTEXT_FILES = _get("CHATPATCH_MAX_CONTEXT_FILES",
                                      "max_context_files", cast=int)
        self.LISTING_MAX_ENTRIES = _get("CHATPATCH_LISTING_MAX_ENTRIES",
                                        "listing_max_entries", cast=int)
        self.LISTING_MAX_CHARS = _get("CHATPATCH_LISTING_MAX_CHARS",
                                      "listing_max_chars", cast=int)
        self.CONTEXT_CHAR_BUDGET = _get("CHATPATCH_CONTEXT_CHAR_BUDGET",
                                        "context_char_budget", cast=int)
        self.PER_FILE_CHAR_CAP = _get("CHATPATCH_PER_FILE_CHAR_CAP",
                                      "per_file_char_cap", cast=int)
        self.USE_LLM_SELECTION = _get_bool("CHATPATCH_USE_LLM_SELECTION",
                                           "use_llm_selection")

        self.LOG_DIR = _get("CHATPATCH_LOG_DIR", "log_dir")
        self.METRICS_ENABLED = _get_bool("CHATPATCH_METRICS_ENABLED",
                                         "metrics_enabled")

    @property
    def project_root(self) -> str:
        """Configured project root, or the current working directory."""
        return self.PROJECT_ROOT or os.getcwd()

    @classmethod
    def load(cls, config_path: str | None = None) -> "Config":
        """Load config from YAML file (if found) + env vars + defaults."""
        path = _find_config_file(config_path)
        yaml_data = _load_yaml(path) if path else {}
        return cls(yaml_data)
