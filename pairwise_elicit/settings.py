"""
Session configuration.

Settings come from config/session.yaml, with environment overrides loaded
through python-dotenv so a local .env file works the same as exported
variables.
"""

import os
from pathlib import Path
from typing import Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

CONFIG_DIR = Path(__file__).parent / "config"
SESSION_CONFIG_PATH = CONFIG_DIR / "session.yaml"

PAIRS_PER_ROUND_ENV = "PAIRWISE_PAIRS_PER_ROUND"


class SessionConfig(BaseModel):
    """Validated session settings."""
    pairs_per_round: int = Field(default=3, ge=1, description="Pairs drawn per round")
    max_workers: int = Field(default=4, ge=1, description="Background persistence threads")
    catalog_path: Path = Field(default=CONFIG_DIR / "catalog.yaml", description="Catalog YAML file")


def load_session_config(path: Union[str, Path, None] = None) -> SessionConfig:
    """
    Load session settings from YAML and apply environment overrides.
    
    Args:
        path: Config file to read. Defaults to the bundled config/session.yaml
        
    Raises:
        FileNotFoundError: If the file does not exist
    """
    load_dotenv()
    
    path = Path(path) if path is not None else SESSION_CONFIG_PATH
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    
    catalog_path: Optional[str] = data.get("catalog_path")
    if catalog_path is not None and not Path(catalog_path).is_absolute():
        data["catalog_path"] = path.parent / catalog_path
    
    override = os.getenv(PAIRS_PER_ROUND_ENV)
    if override:
        data["pairs_per_round"] = int(override)
    
    return SessionConfig(**data)
