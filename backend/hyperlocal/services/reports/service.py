# hyperlocal/services/reports/service.py
from __future__ import annotations

import logging

from hyperlocal.models.report import Report
from hyperlocal.services._shared.base import BaseService, ServiceContext
from hyperlocal.services._shared.errors import NotFoundError
from hyperlocal.services.posts.service import validate_content
from hyperlocal.services.reports.dto import FiledReportOut, ReportOut, report_to_out
from hyperlocal.uow.sqlalchemy_uow import SessionFactory

log = logging.getLogger(__name__)

DEFAULT_FLAG_THRESHOLD = 3


class ReportService(BaseService):
    """
    Report intake and the auto-flag rule.

    Every report is stored, repeats by the same user included. When the
    post's report count reaches the threshold the post is flagged in the
    same transaction. Flagging only moves ``false -> true``; an already
    flagged post is left as is.
    """

    def __init__(
        self,
        *,
        flag_threshold: int = DEFAULT_FLAG_THRESHOLD,
        ctx: ServiceContext | None = None,
        session_factory: SessionFactory | None = None,
    ) -> None:
        super().__init__(ctx=ctx, session_factory=session_factory)
        self.flag_threshold = max(1, int(flag_threshold))

    def file_report(self, user_id: int, post_id: int, reason: str) -> FiledReportOut:
        """
        Store a report and apply the threshold rule.

        :raises ValidationError: Reason empty or longer than 500 characters.
        :raises NotFoundError: Unknown post or user.
        :raises AccountBannedError: Banned reporter.
        :raises InvariantViolation: Post on integrity hold.
        """
        reason = validate_content("reason", reason)

        with self.rw_uow() as uow:
            post = self.load_writable_post(uow, post_id, lock=True)
            self.ensure_active_user(uow, user_id)

            report = uow.reports.add(Report(post_id=post_id, user_id=user_id, reason=reason))
            count = uow.reports.count_for_post(post_id)
            newly_flagged = False
            if count >= self.flag_threshold:
                newly_flagged = uow.posts.mark_flagged(post_id) == 1
            out = FiledReportOut(
                report=report_to_out(report),
                report_count=count,
                flagged=newly_flagged or bool(post.is_flagged),
                newly_flagged=newly_flagged,
            )

        log.info(
            "Report filed",
            extra={"post_id": post_id, "user_id": user_id, "count": count},
        )
        if newly_flagged:
            log.info("Post flagged", extra={"post_id": post_id, "count": count})
        return out

    def list_reports(self, post_id: int) -> list[ReportOut]:
        """Reports on a post, newest first."""
        with self.ro_uow() as uow:
            if uow.posts.get(post_id) is None:
                raise NotFoundError("Post", post_id)
            return [report_to_out(r) for r in uow.reports.list_for_post(post_id)]
