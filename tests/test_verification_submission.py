"""Tests for token validation, the confirmation page and recorded submissions."""

from datetime import date, timedelta

import pytest

from phone_registry.core.exceptions import (
    ExpiredError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from phone_registry.db.enums import (
    EmploymentStatus,
    IssueAdminStatus,
    IssueType,
    NumberStatus,
    SubmissionAction,
    TokenStatus,
)
from phone_registry.db.models import UserReportedIssue, VerificationSubmissionLog
from phone_registry.services import (
    employee_service,
    number_service,
    verification_submission_service,
)
from phone_registry.services.verification_submission_service import (
    NumberActionInput,
    UnlistedReportInput,
)


@pytest.fixture
def holder_setup(db, make_employee, make_number, make_token):
    applicant = make_employee(department="IT")
    holder = make_employee(full_name="Sun Mei", department="Sales")
    first = make_number(applicant, phone_number="13800000001", purpose="Hotline")
    second = make_number(applicant, phone_number="13800000002")
    for number in (first, second):
        number_service.assign_number(db, number.phone_number, holder.employee_id, date(2024, 2, 1))
    token = make_token(holder)
    return {"holder": holder, "first": first, "second": second, "token": token}


def _action(number, action, **kwargs):
    return NumberActionInput(mobile_number_id=number.id, action=action, **kwargs)


# =============================================================================
# Token validation
# =============================================================================


def test_unknown_token_is_not_found(db):
    with pytest.raises(NotFoundError):
        verification_submission_service.get_info(db, "no-such-token")
    with pytest.raises(NotFoundError):
        verification_submission_service.get_info(db, "")


def test_expired_token_is_rejected_for_info_and_submit(db, make_employee, make_number, make_token):
    holder = make_employee()
    number = make_number(make_employee())
    number_service.assign_number(db, number.phone_number, holder.employee_id, date(2024, 2, 1))
    token = make_token(holder, expires_in=timedelta(seconds=-1))

    with pytest.raises(ExpiredError):
        verification_submission_service.get_info(db, token.token)
    with pytest.raises(ExpiredError):
        verification_submission_service.submit(
            db, token.token, [_action(number, SubmissionAction.CONFIRM_USAGE)], []
        )

    assert db.query(VerificationSubmissionLog).count() == 0


def test_token_flagged_expired_is_rejected(db, holder_setup):
    token = holder_setup["token"]
    token.status = TokenStatus.EXPIRED.value
    db.commit()

    with pytest.raises(ExpiredError):
        verification_submission_service.get_info(db, token.token)


# =============================================================================
# Confirmation page
# =============================================================================


def test_get_info_lists_held_numbers_as_pending(db, holder_setup):
    info = verification_submission_service.get_info(db, holder_setup["token"].token)

    assert info["employee_id"] == holder_setup["holder"].employee_id
    assert info["employee_name"] == "Sun Mei"
    assert [n["phone_number"] for n in info["phone_numbers"]] == ["13800000001", "13800000002"]
    assert {n["status"] for n in info["phone_numbers"]} == {"pending"}
    assert info["phone_numbers"][0]["department"] == "Sales"
    assert info["phone_numbers"][0]["purpose"] == "Hotline"
    assert info["previously_reported_unlisted"] == []


def test_get_info_reflects_previous_answers(db, holder_setup):
    token = holder_setup["token"].token
    verification_submission_service.submit(
        db,
        token,
        [
            _action(holder_setup["first"], SubmissionAction.CONFIRM_USAGE),
            _action(holder_setup["second"], SubmissionAction.REPORT_ISSUE, user_comment="Not mine"),
        ],
        [UnlistedReportInput(phone_number="13911112222", purpose="Personal")],
    )

    info = verification_submission_service.get_info(db, token)

    states = {n["phone_number"]: n for n in info["phone_numbers"]}
    assert states["13800000001"]["status"] == "confirmed"
    assert states["13800000002"]["status"] == "reported"
    assert states["13800000002"]["user_comment"] == "Not mine"
    assert [u["phone_number"] for u in info["previously_reported_unlisted"]] == ["13911112222"]


# =============================================================================
# Submission
# =============================================================================


def test_confirm_sets_last_confirmation_date(db, holder_setup):
    first = holder_setup["first"]

    result = verification_submission_service.submit(
        db,
        holder_setup["token"].token,
        [_action(first, SubmissionAction.CONFIRM_USAGE, purpose="Customer line")],
        [],
    )

    assert result.confirmed_count == 1
    assert first.last_confirmation_date is not None
    assert first.purpose == "Customer line"
    assert first.status == NumberStatus.IN_USE.value


def test_repeated_report_keeps_one_pending_issue(db, holder_setup):
    token = holder_setup["token"].token
    second = holder_setup["second"]

    verification_submission_service.submit(
        db, token, [_action(second, SubmissionAction.REPORT_ISSUE, user_comment="first")], []
    )
    verification_submission_service.submit(
        db, token, [_action(second, SubmissionAction.REPORT_ISSUE, user_comment="second")], []
    )

    issues = db.query(UserReportedIssue).filter_by(mobile_number_id=second.id).all()
    assert len(issues) == 1
    assert issues[0].user_comment == "second"
    assert issues[0].issue_type == IssueType.NUMBER_ISSUE.value
    assert issues[0].original_number_status == NumberStatus.IN_USE.value
    assert issues[0].admin_action_status == IssueAdminStatus.PENDING.value

    logs = db.query(VerificationSubmissionLog).filter_by(mobile_number_id=second.id).all()
    assert len(logs) == 2
    assert second.status == NumberStatus.USER_REPORTED.value


def test_confirm_after_report_keeps_number_reported(db, holder_setup):
    token = holder_setup["token"].token
    second = holder_setup["second"]

    verification_submission_service.submit(
        db, token, [_action(second, SubmissionAction.REPORT_ISSUE)], []
    )
    verification_submission_service.submit(
        db, token, [_action(second, SubmissionAction.CONFIRM_USAGE)], []
    )

    assert second.status == NumberStatus.USER_REPORTED.value
    assert second.last_confirmation_date is not None
    issue = db.query(UserReportedIssue).filter_by(mobile_number_id=second.id).one()
    assert issue.admin_action_status == IssueAdminStatus.PENDING.value
    info = verification_submission_service.get_info(db, token)
    assert {n["phone_number"]: n["status"] for n in info["phone_numbers"]}["13800000002"] == "confirmed"


def test_confirm_never_puts_departed_applicants_number_in_use(
    db, make_employee, make_number, make_token
):
    applicant = make_employee(full_name="Lin Hao", department="IT")
    holder = make_employee(full_name="Zhou Yan", department="Sales")
    number = make_number(applicant, phone_number="13800000009")
    number_service.assign_number(db, number.phone_number, holder.employee_id, date(2024, 2, 1))
    employee_service.change_employment_status(
        db, applicant.employee_id, EmploymentStatus.DEPARTED
    )
    assert number.status == NumberStatus.RISK_PENDING.value
    token = make_token(holder).token

    verification_submission_service.submit(
        db, token, [_action(number, SubmissionAction.REPORT_ISSUE)], []
    )
    verification_submission_service.submit(
        db, token, [_action(number, SubmissionAction.CONFIRM_USAGE)], []
    )

    assert number.status == NumberStatus.USER_REPORTED.value
    assert number.current_employee_id == holder.employee_id
    issue = db.query(UserReportedIssue).filter_by(mobile_number_id=number.id).one()
    assert issue.original_number_status == NumberStatus.RISK_PENDING.value
    assert issue.admin_action_status == IssueAdminStatus.PENDING.value


def test_concurrent_duplicate_issue_becomes_update(db, holder_setup, monkeypatch):
    token = holder_setup["token"]
    holder = holder_setup["holder"]
    second = holder_setup["second"]
    verification_submission_service.submit(
        db, token.token, [_action(second, SubmissionAction.REPORT_ISSUE, user_comment="a")], []
    )

    # First lookup misses, as if the other writer committed after it ran
    real_find = verification_submission_service._find_pending_issue
    calls = []

    def find_after_race(*args):
        calls.append(args)
        if len(calls) == 1:
            return None
        return real_find(*args)

    monkeypatch.setattr(verification_submission_service, "_find_pending_issue", find_after_race)

    issue = verification_submission_service.upsert_pending_issue(
        db,
        token=token,
        employee_id=holder.employee_id,
        issue_type=IssueType.NUMBER_ISSUE,
        mobile_number_id=second.id,
        comment="b",
    )
    db.commit()

    assert len(calls) == 2
    rows = db.query(UserReportedIssue).filter_by(mobile_number_id=second.id).all()
    assert [(row.id, row.user_comment) for row in rows] == [(issue.id, "b")]


def test_submit_for_number_not_held_writes_nothing(db, holder_setup, make_employee, make_number):
    foreign = make_number(make_employee(), phone_number="13700000001")

    with pytest.raises(ValidationError):
        verification_submission_service.submit(
            db,
            holder_setup["token"].token,
            [
                _action(holder_setup["first"], SubmissionAction.CONFIRM_USAGE),
                _action(foreign, SubmissionAction.CONFIRM_USAGE),
            ],
            [],
        )

    assert db.query(VerificationSubmissionLog).count() == 0
    assert holder_setup["first"].last_confirmation_date is None


def test_submit_rejects_unlisted_action_on_listed_number(db, holder_setup):
    with pytest.raises(ValidationError):
        verification_submission_service.submit(
            db,
            holder_setup["token"].token,
            [_action(holder_setup["first"], SubmissionAction.REPORT_UNLISTED)],
            [],
        )


def test_submit_requires_something(db, holder_setup):
    with pytest.raises(ValidationError):
        verification_submission_service.submit(db, holder_setup["token"].token, [], [])


def test_unlisted_report_creates_issue_and_log(db, holder_setup):
    token = holder_setup["token"].token

    result = verification_submission_service.submit(
        db,
        token,
        [],
        [UnlistedReportInput(phone_number=" 13911112222 ", user_comment="Spare SIM")],
    )
    verification_submission_service.submit(
        db,
        token,
        [],
        [UnlistedReportInput(phone_number="13911112222", user_comment="Spare SIM, still used")],
    )

    assert result.unlisted_count == 1
    issues = db.query(UserReportedIssue).filter_by(issue_type=IssueType.UNLISTED_NUMBER.value).all()
    assert len(issues) == 1
    assert issues[0].reported_phone_number == "13911112222"
    assert issues[0].mobile_number_id is None
    assert issues[0].user_comment == "Spare SIM, still used"

    logs = (
        db.query(VerificationSubmissionLog)
        .filter_by(action_type=SubmissionAction.REPORT_UNLISTED.value)
        .all()
    )
    assert len(logs) == 2
    assert all(log.mobile_number_id is None for log in logs)


@pytest.mark.parametrize("phone", ["12345", "23911112222", "13800000001"])
def test_unlisted_report_validation(db, holder_setup, phone):
    # 13800000001 is already listed under the holder
    with pytest.raises(ValidationError):
        verification_submission_service.submit(
            db, holder_setup["token"].token, [], [UnlistedReportInput(phone_number=phone)]
        )


def test_token_remains_usable_after_submit(db, holder_setup):
    token = holder_setup["token"]
    verification_submission_service.submit(
        db, token.token, [_action(holder_setup["first"], SubmissionAction.CONFIRM_USAGE)], []
    )

    db.refresh(token)
    assert token.status == TokenStatus.PENDING.value
    verification_submission_service.get_info(db, token.token)


# =============================================================================
# Issue review
# =============================================================================


def test_resolve_issue(db, holder_setup):
    token = holder_setup["token"].token
    second = holder_setup["second"]
    verification_submission_service.submit(
        db, token, [_action(second, SubmissionAction.REPORT_ISSUE)], []
    )
    issue = db.query(UserReportedIssue).one()

    resolved = verification_submission_service.resolve_issue(
        db, issue.id, IssueAdminStatus.RESOLVED, admin_remarks="Reassigned"
    )
    assert resolved.admin_action_status == IssueAdminStatus.RESOLVED.value
    assert resolved.admin_remarks == "Reassigned"

    with pytest.raises(InvalidStateError):
        verification_submission_service.resolve_issue(db, issue.id, IssueAdminStatus.DISMISSED)

    # A new report after resolution opens a fresh pending issue
    verification_submission_service.submit(
        db, token, [_action(second, SubmissionAction.REPORT_ISSUE)], []
    )
    assert db.query(UserReportedIssue).count() == 2


def test_resolve_issue_validation(db):
    with pytest.raises(ValidationError):
        verification_submission_service.resolve_issue(db, 1, IssueAdminStatus.PENDING)
    with pytest.raises(NotFoundError):
        verification_submission_service.resolve_issue(db, 999, IssueAdminStatus.RESOLVED)
