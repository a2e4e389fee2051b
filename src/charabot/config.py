"""Configuration management for charabot"""

import copy
import json
import os
from pathlib import Path
from typing import Optional, Dict, Any, List
import logging

from .models import GenerationSettings, SafetyConfig

DEFAULT_CONFIG: Dict[str, Any] = {
    "providers": {
        "gemini": {
            "api_key": None,
            "default_model": "gemini-1.5-flash",
            "safety": {
                "harassment": "BLOCK_MEDIUM_AND_ABOVE",
                "hate_speech": "BLOCK_MEDIUM_AND_ABOVE",
                "sexually_explicit": "BLOCK_MEDIUM_AND_ABOVE",
                "dangerous_content": "BLOCK_MEDIUM_AND_ABOVE",
            },
        },
        "openai": {
            "api_key": None,
            "default_model": "gpt-4o-mini",
        },
        "ollama": {
            "host": "http://localhost:11434",
            "default_model": "qwen2.5",
        },
    },
    "generation": {
        "max_retries": 3,
        "retry_delay": 1.0,
        "request_timeout": 30.0,
        "max_response_length": 1000,
        "template_probability": 0.05,
        "history_turns": 6,
    },
    "memory": {
        "max_messages": 20,
        "backend": "memory",
    },
    "line": {
        "channel_access_token": None,
        "api_base": "https://api.line.me/v2/bot",
    },
    "server": {
        "host": "localhost",
        "port": 8000,
    },
    "logging": {
        "level": "INFO",
    },
    "default_provider": "gemini",
}

API_KEY_ENV = {
    "gemini": "GEMINI_API_KEY",
    "openai": "OPENAI_API_KEY",
}


class Config:
    """Manages configuration settings"""

    def __init__(self, config_dir: Optional[Path] = None):
        if config_dir is None:
            config_dir = Path.home() / ".config" / "charabot"

        self.config_dir = config_dir
        self.config_file = config_dir / "config.json"
        self.data_dir = config_dir / "data"

        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.data_dir.mkdir(parents=True, exist_ok=True)

        self.logger = logging.getLogger(__name__)
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self):
        """Load configuration from file"""
        if self.config_file.exists():
            try:
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    self._config = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                self.logger.error(f"Failed to load config: {e}")
                self._config = copy.deepcopy(DEFAULT_CONFIG)
        else:
            self._config = copy.deepcopy(DEFAULT_CONFIG)
            self._save_config()

    def _save_config(self):
        """Save configuration to file"""
        try:
            with open(self.config_file, 'w', encoding='utf-8') as f:
                json.dump(self._config, f, indent=2, ensure_ascii=False)
        except OSError as e:
            self.logger.error(f"Failed to save config: {e}")

    @staticmethod
    def _lookup(source: Dict[str, Any], keys: List[str]) -> Any:
        value: Any = source
        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return None
        return value

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation, falling back to built-in defaults"""
        keys = key.split('.')
        value = self._lookup(self._config, keys)
        if value is None:
            value = self._lookup(DEFAULT_CONFIG, keys)
        return default if value is None else value

    def set(self, key: str, value: Any):
        """Set configuration value using dot notation"""
        keys = key.split('.')
        config = self._config

        for k in keys[:-1]:
            if k not in config or not isinstance(config[k], dict):
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value
        self._save_config()

    def delete(self, key: str) -> bool:
        """Delete configuration value"""
        keys = key.split('.')
        config = self._config

        for k in keys[:-1]:
            if k not in config:
                return False
            config = config[k]

        if keys[-1] in config:
            del config[keys[-1]]
            self._save_config()
            return True

        return False

    def list_keys(self, prefix: str = "") -> List[str]:
        """List all configuration keys with optional prefix"""
        def _get_keys(config: dict, current_prefix: str = "") -> List[str]:
            keys = []
            for k, v in config.items():
                full_key = f"{current_prefix}.{k}" if current_prefix else k
                if isinstance(v, dict):
                    keys.extend(_get_keys(v, full_key))
                else:
                    keys.append(full_key)
            return keys

        all_keys = _get_keys(self._config)

        if prefix:
            return [k for k in all_keys if k.startswith(prefix)]
        return all_keys

    def get_api_key(self, provider: str) -> Optional[str]:
        """Get API key for a provider; the environment wins over the file"""
        env_name = API_KEY_ENV.get(provider)
        if env_name and os.getenv(env_name):
            return os.getenv(env_name)
        return self.get(f"providers.{provider}.api_key")

    def get_ollama_host(self) -> str:
        return os.getenv("OLLAMA_HOST") or self.get("providers.ollama.host", "http://localhost:11434")

    def get_line_token(self) -> Optional[str]:
        return os.getenv("LINE_CHANNEL_ACCESS_TOKEN") or self.get("line.channel_access_token")

    def get_provider_config(self, provider: str) -> Dict[str, Any]:
        """Get complete configuration for a provider"""
        return self.get(f"providers.{provider}", {})

    def generation_settings(self) -> GenerationSettings:
        return GenerationSettings(**{**DEFAULT_CONFIG["generation"], **self.get("generation", {})})

    def safety_config(self) -> SafetyConfig:
        return SafetyConfig(**self.get("providers.gemini.safety", {}))
