from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from app.application.ports.feedback_store import FeedbackStorePort
from app.domain.entities.feedback import Feedback
from app.infrastructure.store.orm import FeedbackRow


class SqlFeedbackStore(FeedbackStorePort):
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def add(
        self,
        customer_name: str,
        phone: str,
        rating: int,
        comment: str,
        appointment_id: str | None = None,
        barber_id: str | None = None,
        barber_name: str | None = None,
    ) -> Feedback:
        if not 1 <= rating <= 5:
            raise ValueError("rating must be between 1 and 5")
        row = FeedbackRow(
            id=uuid.uuid4().hex,
            customer_name=customer_name,
            phone=phone,
            rating=rating,
            comment=comment,
            appointment_id=appointment_id,
            barber_id=barber_id,
            barber_name=barber_name,
            is_approved=False,
        )
        with self._session_factory() as session:
            session.add(row)
            session.commit()
            return _to_entity(row)

    def list_recent(self, limit: int = 20, approved_only: bool = False) -> list[Feedback]:
        query = select(FeedbackRow)
        if approved_only:
            query = query.where(FeedbackRow.is_approved.is_(True))
        query = query.order_by(FeedbackRow.created_at.desc()).limit(limit)
        with self._session_factory() as session:
            return [_to_entity(row) for row in session.scalars(query)]


def _to_entity(row: FeedbackRow) -> Feedback:
    return Feedback(
        id=row.id,
        customer_name=row.customer_name,
        phone=row.phone,
        rating=row.rating,
        comment=row.comment,
        appointment_id=row.appointment_id,
        barber_id=row.barber_id,
        barber_name=row.barber_name,
        is_approved=bool(row.is_approved),
        created_at=row.created_at,
    )
