from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Worksite, WorksiteAssignment
from .repository import WorksiteRepository

_WORKSITE_COLUMNS = "w.worksite_id, w.name, w.address, w.city, w.latitude, w.longitude, w.radius_meters, w.is_active"

_UPDATABLE = {"name", "address", "city", "latitude", "longitude", "radius_meters", "is_active"}


def _to_worksite(r: dict) -> Worksite:
    return Worksite(
        worksite_id=int(r["worksite_id"]),
        name=r["name"],
        address=r["address"],
        city=r.get("city"),
        latitude=float(r["latitude"]),
        longitude=float(r["longitude"]),
        radius_meters=float(r["radius_meters"]),
        is_active=bool(r["is_active"]),
    )


class MySQLWorksiteRepository(WorksiteRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, worksite_id: int) -> Optional[Worksite]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_WORKSITE_COLUMNS} FROM worksites w WHERE w.worksite_id=%s", (int(worksite_id),))
            r = fetchone(cur)
            return _to_worksite(r) if r else None

    def find_active_by_id(self, worksite_id: int) -> Optional[Worksite]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_WORKSITE_COLUMNS} FROM worksites w WHERE w.worksite_id=%s AND w.is_active=1",
                (int(worksite_id),),
            )
            r = fetchone(cur)
            return _to_worksite(r) if r else None

    def find_active_assignments(self, worker_id: int, *, on_date: date) -> Sequence[Worksite]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_WORKSITE_COLUMNS}
                FROM worksite_assignments a
                JOIN worksites w ON w.worksite_id = a.worksite_id
                WHERE a.worker_id=%s
                  AND a.is_active=1
                  AND w.is_active=1
                  AND a.start_date <= %s
                  AND (a.end_date IS NULL OR a.end_date >= %s)
                ORDER BY a.assignment_id
                """,
                (int(worker_id), on_date, on_date),
            )
            seen: set[int] = set()
            out: list[Worksite] = []
            for r in fetchall(cur):
                site = _to_worksite(r)
                if site.worksite_id not in seen:
                    seen.add(site.worksite_id)
                    out.append(site)
            return out

    def list_active(self) -> Sequence[Worksite]:
        return self.list_all(include_inactive=False)

    def list_all(self, *, include_inactive: bool = False, city: Optional[str] = None) -> Sequence[Worksite]:
        clauses: list[str] = []
        params: list[object] = []
        if not include_inactive:
            clauses.append("w.is_active=1")
        if city:
            clauses.append("w.city LIKE %s")
            params.append(f"%{city}%")
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_WORKSITE_COLUMNS} FROM worksites w {where} ORDER BY w.name, w.worksite_id",
                tuple(params),
            )
            return [_to_worksite(r) for r in fetchall(cur)]

    def create(
        self,
        *,
        name: str,
        address: str,
        city: Optional[str],
        latitude: float,
        longitude: float,
        radius_meters: float,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO worksites(name, address, city, latitude, longitude, radius_meters, is_active)
                VALUES(%s,%s,%s,%s,%s,%s,1)
                """,
                (name, address, city, latitude, longitude, radius_meters),
            )
            return int(cur.lastrowid)

    def update(self, worksite_id: int, *, fields: dict) -> bool:
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise ValueError(f"Unknown worksite fields: {sorted(unknown)}")
        if not fields:
            return self.get_by_id(worksite_id) is not None

        names = sorted(fields)
        assignments = ", ".join(f"{name}=%s" for name in names)
        params = [fields[name] for name in names] + [int(worksite_id)]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE worksites SET {assignments} WHERE worksite_id=%s", tuple(params))
            return cur.rowcount > 0

    def set_active(self, worksite_id: int, *, is_active: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE worksites SET is_active=%s WHERE worksite_id=%s",
                (1 if is_active else 0, int(worksite_id)),
            )
            return cur.rowcount > 0

    def assign(self, *, worker_id: int, worksite_id: int, start_date: date, end_date: Optional[date] = None) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO worksite_assignments(worker_id, worksite_id, start_date, end_date, is_active)
                VALUES(%s,%s,%s,%s,1)
                """,
                (int(worker_id), int(worksite_id), start_date, end_date),
            )
            return int(cur.lastrowid)

    def end_assignment(self, *, worker_id: int, worksite_id: int, end_date: date) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE worksite_assignments
                SET is_active=0, end_date=%s
                WHERE worker_id=%s AND worksite_id=%s AND is_active=1
                """,
                (end_date, int(worker_id), int(worksite_id)),
            )
            return cur.rowcount > 0

    def list_assignments(self, worksite_id: int) -> Sequence[WorksiteAssignment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT assignment_id, worker_id, worksite_id, start_date, end_date, is_active
                FROM worksite_assignments
                WHERE worksite_id=%s
                ORDER BY assignment_id
                """,
                (int(worksite_id),),
            )
            return [
                WorksiteAssignment(
                    assignment_id=int(r["assignment_id"]),
                    worker_id=int(r["worker_id"]),
                    worksite_id=int(r["worksite_id"]),
                    start_date=r["start_date"],
                    end_date=r.get("end_date"),
                    is_active=bool(r["is_active"]),
                )
                for r in fetchall(cur)
            ]
