"""REST API client for the vocadrill server."""

import requests


class VocadrillAPIClient:
    """Client for communicating with the vocadrill REST API."""

    def __init__(self, base_url: str = "http://localhost:8000", user_id: str = "default"):
        self.base_url = base_url.rstrip('/')
        self.user_id = user_id
        self.session = requests.Session()

    def _get(self, endpoint: str, params: dict = None) -> dict:
        """Make a GET request."""
        if params is None:
            params = {}
        params['user_id'] = self.user_id
        response = self.session.get(f"{self.base_url}{endpoint}", params=params)
        response.raise_for_status()
        return response.json()

    def _post(self, endpoint: str, data: dict = None) -> dict:
        """Make a POST request."""
        if data is None:
            data = {}
        data['user_id'] = self.user_id
        response = self.session.post(f"{self.base_url}{endpoint}", json=data)
        response.raise_for_status()
        return response.json()

    def health_check(self) -> dict:
        """Check if the server is running."""
        response = self.session.get(f"{self.base_url}/")
        response.raise_for_status()
        return response.json()

    def get_languages(self) -> list[str]:
        response = self.session.get(f"{self.base_url}/api/languages")
        response.raise_for_status()
        return response.json()['languages']

    def get_categories(self, language: str) -> dict:
        """Categories, levels and modes available for a language."""
        response = self.session.get(f"{self.base_url}/api/categories", params={'language': language})
        response.raise_for_status()
        return response.json()

    def start_session(self, language: str = None, level: str = None, category: str = None,
                      mode: str = None) -> dict:
        """Change the session scope. Only the given fields change."""
        data = {'language': language, 'level': level, 'category': category, 'mode': mode}
        return self._post("/api/session", {k: v for k, v in data.items() if v is not None})

    def get_question(self) -> dict:
        return self._get("/api/question")

    def check_answer(self, answer: str) -> dict:
        """Submit a written answer (write and hard modes)."""
        return self._post("/api/check", {'answer': answer})

    def reveal(self) -> dict:
        """Show the answer and move to the next card."""
        return self._post("/api/reveal")

    def choose(self, index: int) -> dict:
        """Pick a multiple-choice option (flashcard mode)."""
        return self._post("/api/choice", {'index': index})

    def advance(self, token: int) -> dict:
        return self._post("/api/advance", {'token': token})

    def repeat_flashcards(self, failed_only: bool = False) -> dict:
        return self._post("/api/flashcard/repeat", {'failed_only': failed_only})

    def reset_write_session(self) -> dict:
        return self._post("/api/session/reset-write")

    def get_status(self) -> dict:
        """Get counters and level progress."""
        return self._get("/api/status")

    def get_hard_words(self) -> dict:
        """Get words that need more practice."""
        return self._get("/api/hard-words")
