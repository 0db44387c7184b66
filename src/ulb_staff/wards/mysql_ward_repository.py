from __future__ import annotations

from typing import Dict, Iterable, Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import Ward
from .repository import WardRepository


def _to_ward(row: dict) -> Ward:
    return Ward(
        id=int(row["id"]),
        ward_number=str(row["ward_number"]),
        ward_name=row["ward_name"],
        ulb_id=int(row["ulb_id"]) if row.get("ulb_id") is not None else None,
        clerk_id=int(row["clerk_id"]) if row.get("clerk_id") is not None else None,
    )


class MySQLWardRepository(WardRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, ward_id: int) -> Optional[Ward]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT id, ward_number, ward_name, ulb_id, clerk_id FROM wards WHERE id=%s", (ward_id,))
            row = fetchone(cur)
            return _to_ward(row) if row else None

    def get_many(self, ward_ids: Iterable[int]) -> Dict[int, Ward]:
        clause, params = in_clause("id", ward_ids)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT id, ward_number, ward_name, ulb_id, clerk_id FROM wards WHERE {clause}", tuple(params))
            return {int(r["id"]): _to_ward(r) for r in fetchall(cur)}
