from __future__ import annotations

import json
from typing import Any, Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import SystemSetting
from .repository import SettingsRepository


class MySQLSettingsRepository(SettingsRepository):
    """Key/value settings; values are stored as JSON text."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, key: str) -> Optional[SystemSetting]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT setting_key, setting_value, description, updated_by, updated_at
                FROM system_settings WHERE setting_key=%s
                """,
                (key,),
            )
            r = fetchone(cur)
            if not r:
                return None
            return SystemSetting(
                key=r["setting_key"],
                value=json.loads(r["setting_value"]),
                description=r.get("description"),
                updated_by=int(r["updated_by"]) if r.get("updated_by") is not None else None,
                updated_at=r.get("updated_at"),
            )

    def put(self, key: str, value: Any, *, updated_by: Optional[int] = None, description: Optional[str] = None) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO system_settings(setting_key, setting_value, description, updated_by)
                VALUES(%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    setting_value=VALUES(setting_value),
                    description=COALESCE(VALUES(description), description),
                    updated_by=VALUES(updated_by)
                """,
                (key, json.dumps(value), description, updated_by),
            )
