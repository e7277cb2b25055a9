"""File-based storage implementation."""

import json
import logging
import os
import threading

from core.interfaces import Storage

logger = logging.getLogger(__name__)


class FileStorage(Storage):
    """File-based storage implementation.

    One JSON file per user plus one catalog file. Used for local and guest
    progress, and as the whole backend when VOCADRILL_STORAGE=file.
    """

    def __init__(self, config_file: str = None, state_dir: str = None):
        self.config_file = config_file or os.path.expanduser('~/.config/vocadrill/config.json')
        # Project root is one level up from server/
        project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        self.state_dir = state_dir or project_root
        self._lock = threading.Lock()

    def _get_state_file(self, user_id: str) -> str:
        """Get state file path for a user."""
        if user_id == "default":
            return os.path.join(self.state_dir, 'vocadrill_state.json')
        return os.path.join(self.state_dir, f'vocadrill_state_{user_id}.json')

    def _get_catalog_file(self) -> str:
        return os.path.join(self.state_dir, 'vocadrill_catalog.json')

    def _read_json(self, path: str, default):
        if not os.path.exists(path):
            return default
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error reading {path}: {e}")
            return default

    def _write_json(self, path: str, data) -> None:
        os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
        tmp_path = f"{path}.tmp"
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, path)

    def load_config(self) -> dict:
        if not os.path.exists(self.config_file):
            raise FileNotFoundError(
                f"Config file not found at {self.config_file}\n"
                f'Optional keys: {{"catalog_dir": "...", "motivations": ["..."]}}'
            )
        with open(self.config_file, 'r', encoding='utf-8') as f:
            return json.load(f)

    def load_state(self, user_id: str = "default") -> dict | None:
        state = self._read_json(self._get_state_file(user_id), None)
        return state if isinstance(state, dict) else None

    def save_state(self, state: dict, user_id: str = "default") -> None:
        state_file = self._get_state_file(user_id)
        with self._lock:
            try:
                merged = self._read_json(state_file, {})
                if not isinstance(merged, dict):
                    merged = {}
                merged.update(state)
                self._write_json(state_file, merged)
            except OSError as e:
                logger.error(f"Error saving state for {user_id}: {e}")
                raise

    def list_users(self) -> list[str]:
        """List all existing user IDs."""
        users = []
        if os.path.exists(self.state_dir):
            for filename in sorted(os.listdir(self.state_dir)):
                if filename == 'vocadrill_state.json':
                    users.append('default')
                elif filename.startswith('vocadrill_state_') and filename.endswith('.json'):
                    users.append(filename[len('vocadrill_state_'):-len('.json')])
        return users

    def user_exists(self, user_id: str) -> bool:
        """Check if a user exists."""
        return os.path.exists(self._get_state_file(user_id))

    def seed_vocabulary(self, items: list[dict]) -> None:
        """Upsert items keyed by (language, level, category, term)."""
        with self._lock:
            existing = self._read_json(self._get_catalog_file(), [])
            by_key = {
                (i.get('language'), i.get('level'), i.get('category'), i.get('term')): i
                for i in existing if isinstance(i, dict)
            }
            for item in items:
                by_key[(item.get('language'), item.get('level'), item.get('category'), item.get('term'))] = dict(item)
            self._write_json(self._get_catalog_file(), list(by_key.values()))

    def get_vocab_items(self, language: str = None) -> list[dict]:
        items = self._read_json(self._get_catalog_file(), [])
        return [i for i in items if isinstance(i, dict) and (language is None or i.get('language') == language)]

    def get_languages(self) -> list[str]:
        return sorted({i.get('language') for i in self.get_vocab_items() if i.get('language')})
