from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import ValidationError

from ..api.driver import Api
from ..api.models import ApiConfig

DEFAULT_CONFIG_PATH = Path("restrecord.config.yaml")


def load_config(path: Path | None = None) -> Dict[str, Any]:
    cfg_path = path or DEFAULT_CONFIG_PATH
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_api_config(path: Path | None = None, config: Dict[str, Any] | None = None) -> ApiConfig:
    """
    Load the API connection settings.
    
    Args:
        path: Optional path to the YAML config. Defaults to restrecord.config.yaml
        config: Optional already loaded config dict (skips reading the file)
        
    Returns:
        ApiConfig built from the 'api' section
        
    Raises:
        FileNotFoundError: If the config file doesn't exist
        ValueError: If the config structure is invalid
    """
    if config is None:
        config = load_config(path)
    
    # Validate structure
    if not isinstance(config, dict):
        raise ValueError("Config must be a dictionary")
    if "api" not in config:
        raise ValueError("Config must have 'api' section")
    
    api_section = config["api"]
    if not isinstance(api_section, dict):
        raise ValueError("Config 'api' section must be a dictionary")
    for field in ["base_endpoint", "version"]:
        if field not in api_section:
            raise ValueError(f"Config 'api' section missing required field: {field}")
    
    # YAML reads 1.0 as a float; the version is a path segment
    section = dict(api_section)
    section["version"] = str(section["version"])
    section["base_endpoint"] = str(section["base_endpoint"]).rstrip("/")
    
    try:
        return ApiConfig(**section)
    except ValidationError as e:
        raise ValueError(f"Invalid 'api' config: {e}") from e


def create_api(path: Path | None = None) -> Api:
    """Build an Api driver from the config file."""
    return Api.from_config(load_api_config(path))
