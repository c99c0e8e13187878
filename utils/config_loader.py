# ============================================================
# FILE: utils/config_loader.py
# ============================================================

import yaml
from pathlib import Path
from typing import Dict, Any


class Config:
    def __init__(self, config_path: str = "config.yaml"):
        self.config_path = Path(config_path)
        self.config = self._load_config()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        config = cls.__new__(cls)
        config.config_path = None
        config.config = data or {}
        return config

    def _load_config(self) -> Dict[str, Any]:
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        with open(self.config_path, 'r') as f:
            return yaml.safe_load(f) or {}

    def get(self, key: str, default=None):
        value = self.config
        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def reload(self):
        if self.config_path is not None:
            self.config = self._load_config()
