import copy
import json
import os
from typing import Any, Callable, Dict, Optional
from umatrack.config import CONFIG_FILE, DEFAULT_CONFIG
from umatrack.services.base_service import IConfigService
from umatrack.logger import logger

class ConfigService(IConfigService):
    def __init__(self, config_path: str = CONFIG_FILE, defaults: Optional[Dict[str, Any]] = None):
        self.config_path = config_path
        self.defaults = defaults if defaults is not None else DEFAULT_CONFIG
        self._config: Dict[str, Any] = copy.deepcopy(self.defaults)
        self._observers = []

    def initialize(self) -> bool:
        self.load()
        return True

    def add_observer(self, callback: Callable[[], None]) -> None:
        self._observers.append(callback)

    def _notify_observers(self) -> None:
        for callback in self._observers:
            try:
                callback()
            except Exception as e:
                logger.error(f"ConfigService: Error notifying observer: {e}")

    def shutdown(self) -> None:
        pass

    def load(self) -> None:
        self._config = copy.deepcopy(self.defaults)
        if not os.path.exists(self.config_path):
            return
        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                stored = json.load(f)
            self._config.update(stored)
            logger.info(f"ConfigService: Loaded {self.config_path}")
        except (OSError, ValueError) as e:
            logger.error(f"ConfigService: Error loading config, using defaults: {e}")

    def save(self) -> bool:
        try:
            with open(self.config_path, "w", encoding="utf-8") as f:
                json.dump(self._config, f, indent=2)
        except (OSError, TypeError) as e:
            logger.error(f"ConfigService: Error saving config: {e}")
            return False
        self._notify_observers()
        return True

    def set(self, key: str, value: Any) -> None:
        self._config[key] = value

    def __getitem__(self, key: str) -> Any:
        return self._config[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __contains__(self, key: str) -> bool:
        return key in self._config

    def get(self, key: str, default: Any = None) -> Any:
        return self._config.get(key, default)

    @property
    def padding(self) -> Dict[str, int]:
        return self._config.get("padding") or {"top": 0, "bottom": 0}

    @property
    def active_character(self) -> str:
        return self._config.get("umamusume", "")
