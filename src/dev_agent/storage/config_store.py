"""
Stored configuration.

Typed key/value settings in the ``config`` table. Values are stored as
text and decoded according to their ``type`` column.
"""

import json
import logging
from typing import Any, Dict, Optional

from dev_agent.exceptions import ValidationError
from dev_agent.storage.database import SchemaStore, utc_timestamp

logger = logging.getLogger(__name__)

VALUE_TYPES = ("string", "number", "boolean", "json")


def encode_value(value: Any) -> tuple:
    """Return (text, type) for a Python value."""
    if isinstance(value, bool):
        return ("true" if value else "false"), "boolean"
    if isinstance(value, (int, float)):
        return str(value), "number"
    if isinstance(value, (dict, list)):
        return json.dumps(value), "json"
    return str(value), "string"


def decode_value(text: str, value_type: str) -> Any:
    """Decode stored text according to its declared type."""
    if value_type == "boolean":
        return text.strip().lower() in ("1", "true", "yes")
    if value_type == "number":
        number = float(text)
        return int(number) if number.is_integer() else number
    if value_type == "json":
        return json.loads(text)
    return text


class ConfigRepository:
    """Read and write typed settings in the store."""

    def __init__(self, store: SchemaStore):
        self.store = store

    def get(self, key: str, default: Any = None) -> Any:
        row = self.store.query_one("SELECT value, type FROM config WHERE key = ?", (key,))
        if row is None:
            return default
        return decode_value(row["value"], row["type"])

    def get_entry(self, key: str) -> Optional[Dict[str, Any]]:
        """Full row for a key, value decoded."""
        row = self.store.query_one("SELECT * FROM config WHERE key = ?", (key,))
        if row is None:
            return None
        row["value"] = decode_value(row["value"], row["type"])
        return row

    def set(
        self,
        key: str,
        value: Any,
        value_type: Optional[str] = None,
        description: Optional[str] = None,
        category: Optional[str] = None,
    ) -> None:
        """Insert or update a setting.

        The category defaults to the first segment of a dotted key.
        """
        text, inferred = encode_value(value)
        value_type = value_type or inferred
        if value_type not in VALUE_TYPES:
            raise ValidationError(
                f"Unsupported config value type '{value_type}'",
                field="type",
                expected_format=" | ".join(VALUE_TYPES),
            )

        category = category or key.split(".", 1)[0]
        now = utc_timestamp()
        self.store.execute(
            """
            INSERT INTO config (key, value, type, description, category, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                type = excluded.type,
                description = COALESCE(excluded.description, config.description),
                updated_at = excluded.updated_at
            """,
            (key, text, value_type, description, category, now, now),
        )
        logger.debug("Stored config key %s", key)

    def delete(self, key: str) -> bool:
        return self.store.execute("DELETE FROM config WHERE key = ?", (key,)) > 0

    def all(self, category: Optional[str] = None) -> Dict[str, Any]:
        """All settings as a flat dict of decoded values."""
        if category:
            rows = self.store.query_all(
                "SELECT key, value, type FROM config WHERE category = ? ORDER BY key",
                (category,),
            )
        else:
            rows = self.store.query_all("SELECT key, value, type FROM config ORDER BY key")
        return {row["key"]: decode_value(row["value"], row["type"]) for row in rows}
