"""
Report workflow.

Users report problems with a shared subscription; admins resolve or dismiss
the report. Resolving takes the subscription off the market.
"""

from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from subshare.database.models import Report, ReportStatus, SharedSubscription
from subshare.utils.exceptions import ConflictError, InvalidStateError, NotFoundError, ValidationFailedError
from subshare.utils.logger import get_logger
from subshare.utils.transaction import lock_row, transaction_scope

logger = get_logger(__name__)

CLOSING_STATUSES = (ReportStatus.RESOLVED, ReportStatus.DISMISSED)


def _pending_conflict(subscription_id: int, report_id: Optional[int] = None) -> ConflictError:
    details = {"subscription_id": subscription_id}
    if report_id is not None:
        details["report_id"] = report_id
    return ConflictError("You already have a pending report for this subscription", details)


class ReportService:

    def __init__(self, db: Session):
        self.db = db

    def _pending_report_id(self, reporter_id: int, subscription_id: int) -> Optional[int]:
        row = (
            self.db.query(Report.id)
            .filter(
                Report.reporter_id == reporter_id,
                Report.subscription_id == subscription_id,
                Report.status == ReportStatus.PENDING,
            )
            .first()
        )
        return row.id if row is not None else None

    def create_report(self, reporter_id: int, subscription_id: int, reason: str) -> Report:
        """
        File a report.

        Raises:
            NotFoundError: subscription does not exist
            ConflictError: the reporter already has a pending report on it
        """
        subscription = self.db.query(SharedSubscription).filter(SharedSubscription.id == subscription_id).first()
        if subscription is None:
            raise NotFoundError("Subscription", subscription_id)

        pending_id = self._pending_report_id(reporter_id, subscription_id)
        if pending_id is not None:
            raise _pending_conflict(subscription_id, pending_id)

        report = Report(
            reporter_id=reporter_id,
            subscription_id=subscription_id,
            reason=reason.strip(),
            status=ReportStatus.PENDING,
        )
        try:
            with transaction_scope(self.db):
                self.db.add(report)
                self.db.flush()
        except IntegrityError:
            # A concurrent report for the same pair committed first
            raise _pending_conflict(subscription_id)

        logger.info(f"Report {report.id} filed by user {reporter_id} on subscription {subscription_id}")
        return report

    def resolve_report(
        self,
        report_id: int,
        admin_id: int,
        status: ReportStatus,
        notes: Optional[str] = None,
    ) -> Report:
        """
        Close a pending report as resolved or dismissed.

        A resolved report deactivates and un-verifies the subscription in the
        same transaction.
        """
        if status not in CLOSING_STATUSES:
            raise ValidationFailedError(
                "Status must be resolved or dismissed",
                {"status": getattr(status, "value", str(status))},
            )

        with transaction_scope(self.db):
            report = lock_row(self.db, Report, Report.id == report_id)
            if report is None:
                raise NotFoundError("Report", report_id)
            if report.status != ReportStatus.PENDING:
                raise InvalidStateError(
                    "Report already processed",
                    {"report_id": report_id, "status": report.status.value},
                )

            report.status = status
            report.resolved_by_admin_id = admin_id
            report.resolution_notes = notes

            if status == ReportStatus.RESOLVED:
                subscription = lock_row(
                    self.db, SharedSubscription, SharedSubscription.id == report.subscription_id
                )
                subscription.is_active = False
                subscription.is_verified = False
                logger.warning(f"Subscription {subscription.id} deactivated after report {report_id}")

            self.db.flush()

        logger.info(f"Report {report_id} {status.value} by admin {admin_id}")
        return report

    def get_report(self, report_id: int) -> Report:
        report = self.db.query(Report).filter(Report.id == report_id).first()
        if report is None:
            raise NotFoundError("Report", report_id)
        return report

    def list_reports(self, status: Optional[ReportStatus] = None) -> List[Report]:
        predicates = [Report.status == status] if status is not None else []
        return (
            self.db.query(Report)
            .filter(*predicates)
            .order_by(Report.created_at.desc(), Report.id.desc())
            .all()
        )

    def list_user_reports(self, reporter_id: int) -> List[Report]:
        return (
            self.db.query(Report)
            .filter(Report.reporter_id == reporter_id)
            .order_by(Report.created_at.desc(), Report.id.desc())
            .all()
        )

    def delete_report(self, report_id: int) -> None:
        with transaction_scope(self.db):
            report = self.get_report(report_id)
            self.db.delete(report)

        logger.info(f"Report {report_id} deleted")
