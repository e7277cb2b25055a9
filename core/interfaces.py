"""Abstract base classes for dependency injection."""

from abc import ABC, abstractmethod


class Storage(ABC):
    """Abstract base class for learner state, config and catalog storage."""

    @abstractmethod
    def load_config(self) -> dict:
        """Load configuration. Returns config dict."""
        pass

    @abstractmethod
    def load_state(self, user_id: str = "default") -> dict | None:
        """Load state for a user. Returns state dict or None if not found."""
        pass

    @abstractmethod
    def save_state(self, state: dict, user_id: str = "default") -> None:
        """Upsert state for a user. Top-level keys missing from state are kept."""
        pass

    @abstractmethod
    def list_users(self) -> list[str]:
        """List all user IDs with saved state."""
        pass

    @abstractmethod
    def user_exists(self, user_id: str) -> bool:
        """Check if a user has saved state."""
        pass

    @abstractmethod
    def seed_vocabulary(self, items: list[dict]) -> None:
        """Seed vocabulary items into storage. items are dicts with
        {term, translation, definition, level, category, language}."""
        pass

    @abstractmethod
    def get_vocab_items(self, language: str = None) -> list[dict]:
        """Get seeded vocabulary items, optionally for one language."""
        pass

    @abstractmethod
    def get_languages(self) -> list[str]:
        """Get distinct languages of the seeded vocabulary."""
        pass
