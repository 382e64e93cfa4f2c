"""
Unit tests for subscription verification and reports
"""
from unittest.mock import patch

import pytest

from subshare.database.models import Report, ReportStatus
from subshare.services.reports import ReportService
from subshare.services.verification import VerificationService
from subshare.utils.exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationFailedError,
)


class TestVerification:

    def test_verify_records_admin_and_note(self, db_session, admin, owner, make_subscription):
        subscription = make_subscription(owner, is_verified=False)

        verified = VerificationService(db_session).verify_subscription(
            subscription.id, admin.id, True, note="Login checked"
        )

        assert verified.is_verified is True
        assert verified.verification_note == "Login checked"
        assert verified.verified_by_admin_id == admin.id

    def test_unverify(self, db_session, admin, subscription):
        VerificationService(db_session).verify_subscription(subscription.id, admin.id, False, note="Password changed")
        db_session.refresh(subscription)

        assert subscription.is_verified is False

    def test_unknown_subscription(self, db_session, admin):
        with pytest.raises(NotFoundError):
            VerificationService(db_session).verify_subscription(9999, admin.id, True)

    def test_pending_list_skips_verified_and_inactive(self, db_session, owner, make_subscription):
        waiting = make_subscription(owner, is_verified=False)
        make_subscription(owner, is_verified=True)
        make_subscription(owner, is_verified=False, is_active=False)

        pending = VerificationService(db_session).list_pending_verifications()

        assert [s.id for s in pending] == [waiting.id]


class TestReports:

    def test_create_report(self, db_session, buyer, subscription):
        report = ReportService(db_session).create_report(buyer.id, subscription.id, "  Password does not work  ")

        assert report.status == ReportStatus.PENDING
        assert report.reason == "Password does not work"

    def test_one_pending_report_per_user_and_subscription(self, db_session, buyer, subscription):
        service = ReportService(db_session)
        service.create_report(buyer.id, subscription.id, "Broken")

        with pytest.raises(ConflictError):
            service.create_report(buyer.id, subscription.id, "Still broken")

    def test_racing_duplicate_report_is_a_conflict(self, db_session, buyer, subscription):
        """A racer that missed the pending-report lookup is stopped by the partial unique index"""
        service = ReportService(db_session)
        service.create_report(buyer.id, subscription.id, "Broken")

        with patch.object(service, "_pending_report_id", return_value=None):
            with pytest.raises(ConflictError):
                service.create_report(buyer.id, subscription.id, "Still broken")

        pending = db_session.query(Report).filter(Report.status == ReportStatus.PENDING).count()
        assert pending == 1

    def test_new_report_allowed_once_previous_closed(self, db_session, admin, buyer, subscription):
        service = ReportService(db_session)
        first = service.create_report(buyer.id, subscription.id, "Broken")
        service.resolve_report(first.id, admin.id, ReportStatus.DISMISSED)

        second = service.create_report(buyer.id, subscription.id, "Broken again")

        assert second.id != first.id

    def test_report_on_unknown_subscription(self, db_session, buyer):
        with pytest.raises(NotFoundError):
            ReportService(db_session).create_report(buyer.id, 9999, "Missing")

    def test_resolved_report_takes_subscription_off_market(self, db_session, admin, buyer, subscription):
        service = ReportService(db_session)
        report = service.create_report(buyer.id, subscription.id, "Shared password leaked")

        resolved = service.resolve_report(report.id, admin.id, ReportStatus.RESOLVED, notes="Confirmed")

        assert resolved.status == ReportStatus.RESOLVED
        assert resolved.resolved_by_admin_id == admin.id
        assert resolved.resolution_notes == "Confirmed"
        db_session.refresh(subscription)
        assert subscription.is_active is False
        assert subscription.is_verified is False

    def test_dismissed_report_keeps_subscription(self, db_session, admin, buyer, subscription):
        service = ReportService(db_session)
        report = service.create_report(buyer.id, subscription.id, "Not sure")

        service.resolve_report(report.id, admin.id, ReportStatus.DISMISSED)

        db_session.refresh(subscription)
        assert subscription.is_active is True
        assert subscription.is_verified is True

    def test_cannot_resolve_twice(self, db_session, admin, buyer, subscription):
        service = ReportService(db_session)
        report = service.create_report(buyer.id, subscription.id, "Broken")
        service.resolve_report(report.id, admin.id, ReportStatus.DISMISSED)

        with pytest.raises(InvalidStateError):
            service.resolve_report(report.id, admin.id, ReportStatus.RESOLVED)

    def test_pending_is_not_a_closing_status(self, db_session, admin, buyer, subscription):
        service = ReportService(db_session)
        report = service.create_report(buyer.id, subscription.id, "Broken")

        with pytest.raises(ValidationFailedError):
            service.resolve_report(report.id, admin.id, ReportStatus.PENDING)

    def test_list_and_delete(self, db_session, admin, buyer, subscription):
        service = ReportService(db_session)
        report = service.create_report(buyer.id, subscription.id, "Broken")

        assert [r.id for r in service.list_reports(ReportStatus.PENDING)] == [report.id]
        assert [r.id for r in service.list_user_reports(buyer.id)] == [report.id]

        service.delete_report(report.id)

        with pytest.raises(NotFoundError):
            service.get_report(report.id)
