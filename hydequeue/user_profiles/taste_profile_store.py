import sqlite3
import time
from pathlib import Path

from hydequeue.config import settings


class TasteProfileStore:

    # Initialize class state.
    def __init__(self, db_path=None):
        """
        Initialize the store and create its table if needed.

        Exported taste profiles are kept as opaque JSON text, one row per user.
        """
        self.db_path = str(db_path or settings.TASTE_DB_PATH)
        self._init_db()

    # Internal helper to init db.
    def _init_db(self):
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        conn.execute(
            "\n            CREATE TABLE IF NOT EXISTS taste_profiles (\n                user_id TEXT PRIMARY KEY,\n                payload TEXT,\n                updated_at REAL\n            )\n        "
        )
        conn.commit()
        conn.close()

    # Internal helper to conn.
    def _conn(self):
        return sqlite3.connect(self.db_path)

    @staticmethod
    def _require_user_id(user_id):
        uid = str(user_id or "").strip()
        if not uid:
            raise ValueError("user_id required")
        return uid

    # Save an exported profile blob.
    def save_profile(self, user_id, payload):
        """
        Insert or replace the stored blob for a user.
        """
        uid = self._require_user_id(user_id)
        if isinstance(payload, (bytes, bytearray)):
            payload = payload.decode("utf-8")
        conn = self._conn()
        conn.execute(
            "INSERT OR REPLACE INTO taste_profiles (user_id, payload, updated_at) VALUES (?, ?, ?)",
            (uid, str(payload or ""), time.time()),
        )
        conn.commit()
        conn.close()

    # Load profile blob.
    def load_profile(self, user_id):
        uid = self._require_user_id(user_id)
        conn = self._conn()
        row = conn.execute(
            "SELECT payload FROM taste_profiles WHERE user_id=?", (uid,)
        ).fetchone()
        conn.close()
        if not row:
            return None
        return str(row[0] or "") or None

    # Delete profile blob.
    def delete_profile(self, user_id):
        uid = self._require_user_id(user_id)
        conn = self._conn()
        conn.execute("DELETE FROM taste_profiles WHERE user_id=?", (uid,))
        deleted = conn.total_changes > 0
        conn.commit()
        conn.close()
        return bool(deleted)

    # List stored user ids, most recently updated first.
    def list_user_ids(self):
        conn = self._conn()
        rows = conn.execute(
            "SELECT user_id FROM taste_profiles ORDER BY updated_at DESC"
        ).fetchall()
        conn.close()
        return [r[0] for r in rows]
