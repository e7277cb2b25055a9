"""PostgreSQL storage implementation."""

import json
import logging
import os
import threading

import psycopg2
from psycopg2.extras import RealDictCursor, execute_values

from core.interfaces import Storage

logger = logging.getLogger(__name__)


class PostgresStorage(Storage):
    """PostgreSQL-based storage implementation."""

    def __init__(self, config_file: str = None, db_url: str = None):
        self.config_file = config_file or os.path.expanduser('~/.config/vocadrill/config.json')
        self.db_url = db_url or os.environ.get(
            'DATABASE_URL',
            'postgresql://localhost:5432/vocadrill'
        )
        self._conn = None
        self._initialized = False
        self._lock = threading.Lock()

    @property
    def conn(self):
        """Lazy connection initialization."""
        if self._conn is None or self._conn.closed:
            self._conn = psycopg2.connect(self.db_url)
            if not self._initialized:
                self._init_db()
                self._initialized = True
        return self._conn

    def _init_db(self):
        """Create tables if they don't exist."""
        with self._conn.cursor() as cur:
            cur.execute("""
                CREATE TABLE IF NOT EXISTS user_state (
                    user_id VARCHAR(255) PRIMARY KEY,
                    state JSONB NOT NULL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            cur.execute("""
                CREATE INDEX IF NOT EXISTS idx_user_state_updated
                ON user_state(updated_at)
            """)
            # Vocabulary catalog (shared across all users)
            cur.execute("""
                CREATE TABLE IF NOT EXISTS vocab_items (
                    language VARCHAR(20) NOT NULL,
                    level VARCHAR(5) NOT NULL,
                    category VARCHAR(100) NOT NULL,
                    term VARCHAR(255) NOT NULL,
                    translation VARCHAR(500) NOT NULL,
                    definition TEXT,
                    PRIMARY KEY (language, level, category, term)
                )
            """)
            # Events log table
            cur.execute("""
                CREATE TABLE IF NOT EXISTS events (
                    id SERIAL PRIMARY KEY,
                    timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    event VARCHAR(50) NOT NULL,
                    user_id VARCHAR(255) NOT NULL,
                    session_key VARCHAR(255),
                    data JSONB
                )
            """)
            cur.execute("""
                CREATE INDEX IF NOT EXISTS idx_events_user_id ON events(user_id)
            """)
            cur.execute("""
                CREATE INDEX IF NOT EXISTS idx_events_event ON events(event)
            """)
        self._conn.commit()

    def _rollback(self):
        """Roll back if a connection is open. A failed connect leaves nothing to undo."""
        if self._conn and not self._conn.closed:
            self._conn.rollback()

    def close(self):
        """Close the database connection."""
        if self._conn and not self._conn.closed:
            self._conn.close()

    def load_config(self) -> dict:
        if not os.path.exists(self.config_file):
            raise FileNotFoundError(
                f"Config file not found at {self.config_file}\n"
                f'Optional keys: {{"catalog_dir": "...", "motivations": ["..."]}}'
            )
        with open(self.config_file, 'r', encoding='utf-8') as f:
            return json.load(f)

    def load_state(self, user_id: str = "default") -> dict | None:
        try:
            with self._lock, self.conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    "SELECT state FROM user_state WHERE user_id = %s",
                    (user_id,)
                )
                row = cur.fetchone()
                if row:
                    return row['state']
                return None
        except psycopg2.Error as e:
            logger.error(f"Error loading state for {user_id}: {e}")
            return None

    def save_state(self, state: dict, user_id: str = "default") -> None:
        # jsonb || keeps top-level keys the new snapshot does not carry
        with self._lock:
            try:
                with self.conn.cursor() as cur:
                    cur.execute("""
                        INSERT INTO user_state (user_id, state, updated_at)
                        VALUES (%s, %s, CURRENT_TIMESTAMP)
                        ON CONFLICT (user_id)
                        DO UPDATE SET state = user_state.state || EXCLUDED.state,
                                      updated_at = CURRENT_TIMESTAMP
                    """, (user_id, json.dumps(state)))
                self.conn.commit()
            except psycopg2.Error as e:
                logger.error(f"Error saving state for {user_id}: {e}")
                self._rollback()
                raise

    def list_users(self) -> list[str]:
        """List all existing user IDs."""
        try:
            with self._lock, self.conn.cursor() as cur:
                cur.execute("SELECT user_id FROM user_state ORDER BY user_id")
                return [row[0] for row in cur.fetchall()]
        except psycopg2.Error as e:
            logger.error(f"Error listing users: {e}")
            return []

    def user_exists(self, user_id: str) -> bool:
        """Check if a user exists."""
        try:
            with self._lock, self.conn.cursor() as cur:
                cur.execute(
                    "SELECT 1 FROM user_state WHERE user_id = %s",
                    (user_id,)
                )
                return cur.fetchone() is not None
        except psycopg2.Error as e:
            logger.error(f"Error checking user {user_id}: {e}")
            return False

    def seed_vocabulary(self, items: list[dict]) -> None:
        rows = [
            (i['language'], i['level'], i['category'], i['term'], i['translation'], i.get('definition'))
            for i in items
        ]
        if not rows:
            return
        with self._lock:
            try:
                with self.conn.cursor() as cur:
                    execute_values(cur, """
                        INSERT INTO vocab_items (language, level, category, term, translation, definition)
                        VALUES %s
                        ON CONFLICT (language, level, category, term)
                        DO UPDATE SET translation = EXCLUDED.translation,
                                      definition = EXCLUDED.definition
                    """, rows)
                self.conn.commit()
            except psycopg2.Error as e:
                logger.error(f"Error seeding vocabulary: {e}")
                self._rollback()
                raise

    def get_vocab_items(self, language: str = None) -> list[dict]:
        try:
            with self._lock, self.conn.cursor(cursor_factory=RealDictCursor) as cur:
                if language:
                    cur.execute("""
                        SELECT term, translation, definition, level, category, language
                        FROM vocab_items WHERE language = %s
                        ORDER BY category, level, term
                    """, (language,))
                else:
                    cur.execute("""
                        SELECT term, translation, definition, level, category, language
                        FROM vocab_items ORDER BY language, category, level, term
                    """)
                return [dict(row) for row in cur.fetchall()]
        except psycopg2.Error as e:
            logger.error(f"Error getting vocabulary: {e}")
            return []

    def get_languages(self) -> list[str]:
        try:
            with self._lock, self.conn.cursor() as cur:
                cur.execute("SELECT DISTINCT language FROM vocab_items ORDER BY language")
                return [row[0] for row in cur.fetchall()]
        except psycopg2.Error as e:
            logger.error(f"Error getting languages: {e}")
            return []

    # Event logging methods
    def log_event(self, event: str, user_id: str, session_key: str = None, **data) -> None:
        """Log an event to the database."""
        with self._lock:
            try:
                with self.conn.cursor() as cur:
                    cur.execute("""
                        INSERT INTO events (event, user_id, session_key, data)
                        VALUES (%s, %s, %s, %s)
                    """, (event, user_id, session_key, json.dumps(data) if data else None))
                self.conn.commit()
            except psycopg2.Error as e:
                logger.error(f"Error logging event: {e}")
                self._rollback()

    def get_user_events(self, user_id: str, event_type: str = None,
                        limit: int = 100) -> list[dict]:
        """Get recent events for a user."""
        try:
            with self._lock, self.conn.cursor(cursor_factory=RealDictCursor) as cur:
                if event_type:
                    cur.execute("""
                        SELECT * FROM events
                        WHERE user_id = %s AND event = %s
                        ORDER BY timestamp DESC LIMIT %s
                    """, (user_id, event_type, limit))
                else:
                    cur.execute("""
                        SELECT * FROM events
                        WHERE user_id = %s
                        ORDER BY timestamp DESC LIMIT %s
                    """, (user_id, limit))
                return [dict(row) for row in cur.fetchall()]
        except psycopg2.Error as e:
            logger.error(f"Error getting user events: {e}")
            return []
