"""
Option Store
Persisted key-value store for named option records (settings sections,
email template records, site options)
"""
import os
import copy
import json
import logging
import tempfile
import threading
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class OptionStore:
    """JSON file backed option store with last-write-wins semantics per key"""

    def __init__(self, options_file: str = 'data/options.json', defaults: Optional[Dict[str, Any]] = None):
        self.options_file = options_file
        self.defaults = defaults or {}
        self._lock = threading.Lock()
        directory = os.path.dirname(options_file)
        if directory:
            os.makedirs(directory, exist_ok=True)

    def _load(self) -> Dict[str, Any]:
        if not os.path.exists(self.options_file):
            return {}
        try:
            with open(self.options_file, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"[OPTIONS] Error loading options: {e}")
            return {}

    def _save(self, options: Dict[str, Any]) -> bool:
        directory = os.path.dirname(self.options_file) or '.'
        try:
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix='.options-', suffix='.json')
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(options, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.options_file)
            return True
        except OSError as e:
            logger.error(f"[OPTIONS] Error saving options: {e}")
            return False

    def get_option(self, key: str, default: Any = None) -> Any:
        """
        Get a stored option

        Args:
            key: Option name
            default: Returned when the option is not stored

        Returns:
            A copy of the stored value, the configured default for the key, or default
        """
        with self._lock:
            options = self._load()

        if key in options:
            return copy.deepcopy(options[key])
        if key in self.defaults:
            return copy.deepcopy(self.defaults[key])
        return default

    def update_option(self, key: str, value: Any) -> bool:
        """
        Store an option, replacing any previous value

        Returns:
            bool: True if saved successfully
        """
        with self._lock:
            options = self._load()
            options[key] = copy.deepcopy(value)
            saved = self._save(options)

        if saved:
            logger.debug(f"[OPTIONS] Updated option {key}")
        return saved

    def delete_option(self, key: str) -> bool:
        """
        Remove an option

        Returns:
            bool: True if the option existed and was removed
        """
        with self._lock:
            options = self._load()
            if key not in options:
                return False
            del options[key]
            return self._save(options)

    def all_options(self) -> Dict[str, Any]:
        with self._lock:
            return copy.deepcopy(self._load())
