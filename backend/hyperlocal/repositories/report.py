"""Report repository."""

from __future__ import annotations

from sqlalchemy import func, select

from hyperlocal.models.report import Report
from hyperlocal.repositories.base import BaseRepository


class ReportRepository(BaseRepository[Report]):
    model = Report

    def _sortable_fields(self):
        return {"id": Report.id, "created_at": Report.created_at}

    def _filterable_fields(self):
        return {"post_id": Report.post_id, "user_id": Report.user_id}

    def count_for_post(self, post_id: int) -> int:
        """Count every report row for ``post_id``, repeats included."""
        stmt = select(func.count(Report.id)).where(Report.post_id == post_id)
        return int(self.session.execute(stmt).scalar_one())

    def list_for_post(self, post_id: int) -> list[Report]:
        return self.list(filters={"post_id": post_id}, sort=["-created_at"])
