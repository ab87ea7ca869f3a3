from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from app.application.ports.complaint_store import ComplaintStorePort
from app.domain.entities.complaint import Complaint, ComplaintStatus
from app.infrastructure.store.orm import ComplaintRow


class SqlComplaintStore(ComplaintStorePort):
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def add(self, customer_name: str, phone: str, message: str, source: str = "whatsapp") -> Complaint:
        row = ComplaintRow(
            id=uuid.uuid4().hex,
            customer_name=customer_name,
            phone=phone,
            message=message,
            status=ComplaintStatus.PENDING.value,
            source=source,
        )
        with self._session_factory() as session:
            session.add(row)
            session.commit()
            return _to_entity(row)

    def list_recent(self, limit: int = 20, status: ComplaintStatus | None = None) -> list[Complaint]:
        query = select(ComplaintRow)
        if status is not None:
            query = query.where(ComplaintRow.status == status.value)
        query = query.order_by(ComplaintRow.created_at.desc()).limit(limit)
        with self._session_factory() as session:
            return [_to_entity(row) for row in session.scalars(query)]


def _to_entity(row: ComplaintRow) -> Complaint:
    return Complaint(
        id=row.id,
        customer_name=row.customer_name,
        phone=row.phone,
        message=row.message,
        status=ComplaintStatus(row.status),
        source=row.source,
        created_at=row.created_at,
    )
