from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, FrozenSet, Mapping, Optional, Sequence

from ..core.enums import AssessmentStatus, ShopStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, where_sql
from .model import NewAssessment, Shop, ShopTaxAssessment
from .repository import AssessmentRepository, ShopRepository

_SELECT = """
    SELECT a.id, a.assessment_number, a.shop_id, a.assessment_year, a.financial_year,
           a.assessed_value, a.rate, a.annual_tax_amount, a.status, a.assessor_id,
           a.approver_id, a.approval_date, a.remarks,
           s.ward_id AS shop_ward_id, s.status AS shop_status
    FROM shop_tax_assessments a
    JOIN shops s ON s.id = a.shop_id
"""

_DRAFT_FIELDS = frozenset({"financial_year", "assessed_value", "rate", "annual_tax_amount", "remarks"})


def _dec(value) -> Optional[Decimal]:
    return Decimal(str(value)) if value is not None else None


def _to_assessment(row: dict) -> ShopTaxAssessment:
    return ShopTaxAssessment(
        id=int(row["id"]),
        assessment_number=row["assessment_number"],
        shop_id=int(row["shop_id"]),
        assessment_year=int(row["assessment_year"]),
        financial_year=row["financial_year"],
        annual_tax_amount=_dec(row["annual_tax_amount"]),
        assessor_id=int(row["assessor_id"]),
        status=AssessmentStatus(row["status"]),
        assessed_value=_dec(row.get("assessed_value")),
        rate=_dec(row.get("rate")),
        approver_id=row.get("approver_id"),
        approval_date=row.get("approval_date"),
        remarks=row.get("remarks"),
        ward_id=int(row["shop_ward_id"]) if row.get("shop_ward_id") is not None else None,
        shop_status=ShopStatus(row["shop_status"]) if row.get("shop_status") else None,
    )


class MySQLShopRepository(ShopRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, shop_id: int) -> Optional[Shop]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT id, shop_number, shop_name, ward_id, status FROM shops WHERE id=%s", (shop_id,))
            row = fetchone(cur)
            if not row:
                return None
            return Shop(
                id=int(row["id"]),
                shop_number=row["shop_number"],
                shop_name=row["shop_name"],
                ward_id=int(row["ward_id"]),
                status=ShopStatus(row["status"]),
            )


class MySQLAssessmentRepository(AssessmentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, assessment_id: int) -> Optional[ShopTaxAssessment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE a.id=%s", (assessment_id,))
            row = fetchone(cur)
            return _to_assessment(row) if row else None

    def find_for_period(self, shop_id: int, assessment_year: int) -> Optional[ShopTaxAssessment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE a.shop_id=%s AND a.assessment_year=%s", (shop_id, assessment_year))
            row = fetchone(cur)
            return _to_assessment(row) if row else None

    def count_numbers(self, prefix: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS cnt FROM shop_tax_assessments WHERE assessment_number LIKE %s",
                (f"{prefix}%",),
            )
            row = fetchone(cur)
            return int(row["cnt"]) if row else 0

    def create(self, data: NewAssessment, *, assessment_number: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO shop_tax_assessments(
                    assessment_number, shop_id, assessment_year, financial_year,
                    assessed_value, rate, annual_tax_amount, status, assessor_id, remarks
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    assessment_number,
                    data.shop_id,
                    data.assessment_year,
                    data.financial_year,
                    data.assessed_value,
                    data.rate,
                    data.annual_tax_amount,
                    AssessmentStatus.DRAFT.value,
                    data.assessor_id,
                    data.remarks,
                ),
            )
            return int(cur.lastrowid)

    def update_fields(self, assessment_id: int, changes: Mapping[str, Any]) -> bool:
        unknown = set(changes) - _DRAFT_FIELDS
        if unknown:
            raise ValueError(f"Unsupported assessment columns: {sorted(unknown)}")
        if not changes:
            return True
        assignments = [f"{column}=%s" for column in changes]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE shop_tax_assessments SET {', '.join(assignments)} WHERE id=%s AND status=%s",
                tuple(list(changes.values()) + [assessment_id, AssessmentStatus.DRAFT.value]),
            )
            return cur.rowcount > 0

    def transition(
        self,
        assessment_id: int,
        *,
        from_status: AssessmentStatus,
        to_status: AssessmentStatus,
        approver_id: Optional[int] = None,
        approval_date: Optional[datetime] = None,
        remarks: Optional[str] = None,
    ) -> bool:
        assignments = ["status=%s"]
        params: list = [to_status.value]
        if approver_id is not None:
            assignments.append("approver_id=%s")
            params.append(approver_id)
        if approval_date is not None:
            assignments.append("approval_date=%s")
            params.append(approval_date)
        if remarks is not None:
            assignments.append("remarks=%s")
            params.append(remarks)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE shop_tax_assessments SET {', '.join(assignments)} WHERE id=%s AND status=%s",
                tuple(params + [assessment_id, from_status.value]),
            )
            return cur.rowcount > 0

    def list_assessments(
        self,
        *,
        ward_ids: Optional[FrozenSet[int]],
        shop_id: Optional[int] = None,
        status: Optional[AssessmentStatus] = None,
        assessment_year: Optional[int] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[ShopTaxAssessment]:
        clauses: list[str] = []
        params: list = []
        # ward scope goes first
        if ward_ids is not None:
            clause, values = in_clause("s.ward_id", sorted(ward_ids))
            clauses.append(clause)
            params.extend(values)
        if shop_id is not None:
            clauses.append("a.shop_id=%s")
            params.append(shop_id)
        if status is not None:
            clauses.append("a.status=%s")
            params.append(status.value)
        if assessment_year is not None:
            clauses.append("a.assessment_year=%s")
            params.append(assessment_year)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + f" {where_sql(clauses)} ORDER BY a.id DESC LIMIT %s OFFSET %s",
                tuple(params + [int(limit), int(offset)]),
            )
            return [_to_assessment(r) for r in fetchall(cur)]
