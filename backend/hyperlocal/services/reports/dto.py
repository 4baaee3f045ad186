# hyperlocal/services/reports/dto.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from hyperlocal.models.base import ensure_utc
from hyperlocal.models.report import Report


@dataclass(frozen=True, slots=True)
class ReportOut:
    id: int
    post_id: int
    user_id: int
    reason: str
    created_at: datetime | None


@dataclass(frozen=True, slots=True)
class FiledReportOut:
    """
    A freshly filed report and the flag state it left the post in.

    :param report: The stored report.
    :param report_count: Reports on the post, this one included.
    :param flagged: Post flag after the threshold check.
    :param newly_flagged: True when this report performed the transition.
    """

    report: ReportOut
    report_count: int
    flagged: bool
    newly_flagged: bool


def report_to_out(report: Report) -> ReportOut:
    return ReportOut(
        id=report.id,
        post_id=report.post_id,
        user_id=report.user_id,
        reason=report.reason,
        created_at=ensure_utc(report.created_at) if report.created_at else None,
    )
