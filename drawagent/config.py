"""
Settings for drawagent.

Values come from ``settings.yaml`` in the data directory (or an explicit
path) and credentials from the environment. The resulting Settings object is
passed to constructors; nothing reads credentials at import time.
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from . import get_data_dir
from .errors import ConfigurationError

API_KEY_ENV = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
}


@dataclass
class Settings:
    """Everything needed to build a provider and an agent."""
    provider: str = "openai"
    model: Optional[str] = None
    temperature: Optional[float] = 0
    top_k: Optional[int] = None
    top_p: Optional[float] = None
    max_tokens: int = 2048
    stream: bool = False
    max_iterations: int = 15
    timeout: float = 120.0
    max_retries: int = 3
    retry_base_delay: float = 1.0
    allowed_tools: Optional[List[str]] = None
    api_keys: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Settings":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown settings: {', '.join(sorted(unknown))}")
        return cls(**dict(data))

    def api_key_for(self, provider: Optional[str] = None) -> Optional[str]:
        """Configured key for ``provider`` (defaults to the active one)."""
        return self.api_keys.get(provider or self.provider)


def get_config_path() -> Path:
    return get_data_dir() / "config" / "settings.yaml"


def load_config(path: Optional[Path] = None) -> dict:
    """Load settings.yaml as a dict. A missing default file yields {}."""
    config_path = Path(path) if path else get_config_path()
    if not config_path.exists():
        if path:
            raise ConfigurationError(f"Config file '{config_path}' does not exist")
        return {}
    with open(config_path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration must be a mapping at the top level")
    return data


def load_settings(path: Optional[Path] = None, env: Optional[Mapping[str, str]] = None, **overrides) -> Settings:
    """Build Settings from the config file, environment and explicit overrides.

    Overrides whose value is None are ignored. Keys in the config file win
    over environment variables.
    """
    env = os.environ if env is None else env
    data = load_config(path)
    data.update({k: v for k, v in overrides.items() if v is not None})

    api_keys = dict(data.pop("api_keys", None) or {})
    for provider, var in API_KEY_ENV.items():
        if not api_keys.get(provider) and env.get(var):
            api_keys[provider] = env[var]

    settings = Settings.from_dict(data)
    settings.api_keys = api_keys
    return settings


def save_config(config: dict, path: Optional[Path] = None):
    config_path = Path(path) if path else get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        yaml.dump(config, f, default_flow_style=False)
