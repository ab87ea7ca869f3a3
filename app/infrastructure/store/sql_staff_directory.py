from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from app.application.ports.staff_directory import StaffDirectoryPort
from app.domain.entities.staff import StaffMember
from app.infrastructure.store.orm import StaffRow


class SqlStaffDirectory(StaffDirectoryPort):
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def list_active_staff(self) -> list[StaffMember]:
        query = select(StaffRow).where(StaffRow.is_active.is_(True)).order_by(StaffRow.name)
        with self._session_factory() as session:
            return [
                StaffMember(id=row.id, name=row.name, role=row.role, is_active=row.is_active)
                for row in session.scalars(query)
            ]

    def add_staff(self, name: str, role: str = "barber") -> StaffMember:
        row = StaffRow(id=uuid.uuid4().hex, name=name.strip(), role=role, is_active=True)
        with self._session_factory() as session:
            session.add(row)
            session.commit()
        return StaffMember(id=row.id, name=row.name, role=row.role, is_active=True)
