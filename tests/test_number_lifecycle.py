"""Tests for the mobile number possession lifecycle and risk handling."""

from datetime import date

import pytest

from phone_registry.core.exceptions import (
    ConflictError,
    DataInconsistencyError,
    InvalidStateError,
    NotFoundError,
    PreconditionFailedError,
    ValidationError,
)
from phone_registry.db.enums import EmploymentStatus, NumberStatus, RiskAction
from phone_registry.db.models import NumberApplicantHistory, NumberUsageHistory
from phone_registry.services import employee_service, number_service
from phone_registry.utils.dates import utc_now, utc_today
from phone_registry.utils.pagination import PaginationParams


def _usage_rows(db, number):
    return (
        db.query(NumberUsageHistory)
        .filter(NumberUsageHistory.mobile_number_id == number.id)
        .order_by(NumberUsageHistory.id)
        .all()
    )


# =============================================================================
# Create
# =============================================================================


def test_create_number_starts_idle(db, make_employee):
    applicant = make_employee()

    number = number_service.create_number(
        db,
        phone_number=" 13800000001 ",
        application_date=date(2024, 1, 1),
        applicant_employee_id=applicant.employee_id,
        vendor="China Mobile",
    )

    assert number.phone_number == "13800000001"
    assert number.status == NumberStatus.IDLE.value
    assert number.current_employee_id is None
    assert number.applicant_employee_id == applicant.employee_id


@pytest.mark.parametrize("phone", ["1380000000", "138000000012", "23800000001", "1380000000a"])
def test_create_number_rejects_malformed_phone(db, make_employee, phone):
    applicant = make_employee()
    with pytest.raises(ValidationError):
        number_service.create_number(
            db,
            phone_number=phone,
            application_date=date(2024, 1, 1),
            applicant_employee_id=applicant.employee_id,
        )


def test_create_number_duplicate_conflicts_even_when_soft_deleted(db, make_employee, make_number):
    applicant = make_employee()
    number = make_number(applicant, phone_number="13800000001")
    number.deleted_at = utc_now()
    db.commit()

    with pytest.raises(ConflictError):
        make_number(applicant, phone_number="13800000001")


def test_create_number_resolves_applicant_by_name(db, make_employee):
    applicant = make_employee(full_name="Wang Fang")

    number = number_service.create_number(
        db,
        phone_number="13800000001",
        application_date=date(2024, 1, 1),
        applicant_name="  Wang   Fang ",
    )

    assert number.applicant_employee_id == applicant.employee_id


def test_create_number_ambiguous_applicant_name(db, make_employee):
    make_employee(full_name="Li Wei")
    make_employee(full_name="Li Wei")

    with pytest.raises(ConflictError):
        number_service.create_number(
            db,
            phone_number="13800000001",
            application_date=date(2024, 1, 1),
            applicant_name="Li Wei",
        )


def test_create_number_unknown_applicant(db):
    with pytest.raises(NotFoundError):
        number_service.create_number(
            db,
            phone_number="13800000001",
            application_date=date(2024, 1, 1),
            applicant_employee_id="EMP9999999",
        )
    with pytest.raises(ValidationError):
        number_service.create_number(
            db, phone_number="13800000001", application_date=date(2024, 1, 1)
        )


# =============================================================================
# Assign / unassign
# =============================================================================


def test_assign_unassign_keeps_single_open_interval(db, make_employee, make_number):
    applicant = make_employee()
    first, second = make_employee(), make_employee()
    number = make_number(applicant)

    number_service.assign_number(db, number.phone_number, first.employee_id, date(2024, 2, 1))
    assert number.status == NumberStatus.IN_USE.value
    assert number.current_employee_id == first.employee_id
    rows = _usage_rows(db, number)
    assert len(rows) == 1
    assert rows[0].end_date is None

    number_service.unassign_number(db, number.phone_number, date(2024, 3, 1))
    assert number.status == NumberStatus.IDLE.value
    assert number.current_employee_id is None

    number_service.assign_number(
        db, number.phone_number, second.employee_id, date(2024, 3, 2), purpose="Sales hotline"
    )
    rows = _usage_rows(db, number)
    assert len(rows) == 2
    assert rows[0].employee_id == first.employee_id
    assert rows[0].end_date == date(2024, 3, 1)
    assert rows[1].employee_id == second.employee_id
    assert rows[1].end_date is None
    assert rows[1].purpose == "Sales hotline"
    assert [r for r in rows if r.end_date is None][0].employee_id == number.current_employee_id


def test_assign_requires_idle_number(db, make_employee, make_number):
    applicant, holder = make_employee(), make_employee()
    number = make_number(applicant)
    number_service.assign_number(db, number.phone_number, holder.employee_id, date(2024, 2, 1))

    with pytest.raises(InvalidStateError):
        number_service.assign_number(db, number.phone_number, applicant.employee_id, date(2024, 2, 2))


def test_assign_requires_active_employee(db, make_employee, make_number):
    applicant, leaver = make_employee(), make_employee()
    number = make_number(applicant)
    employee_service.change_employment_status(db, leaver.employee_id, EmploymentStatus.DEPARTED)

    with pytest.raises(PreconditionFailedError):
        number_service.assign_number(db, number.phone_number, leaver.employee_id, date(2024, 2, 1))
    assert number.status == NumberStatus.IDLE.value


def test_assign_unknown_number(db, make_employee):
    holder = make_employee()
    with pytest.raises(NotFoundError):
        number_service.assign_number(db, "13899999999", holder.employee_id, date(2024, 2, 1))


def test_unassign_idle_number_is_invalid(db, make_employee, make_number):
    number = make_number(make_employee())
    with pytest.raises(InvalidStateError):
        number_service.unassign_number(db, number.phone_number, date(2024, 2, 1))


def test_unassign_before_assignment_date_is_rejected(db, make_employee, make_number):
    applicant, holder = make_employee(), make_employee()
    number = make_number(applicant)
    number_service.assign_number(db, number.phone_number, holder.employee_id, date(2024, 2, 1))

    with pytest.raises(ValidationError):
        number_service.unassign_number(db, number.phone_number, date(2024, 1, 31))


def test_unassign_without_open_interval_reports_inconsistency(db, make_employee, make_number):
    applicant, holder = make_employee(), make_employee()
    number = make_number(applicant)
    number_service.assign_number(db, number.phone_number, holder.employee_id, date(2024, 2, 1))

    db.query(NumberUsageHistory).filter(
        NumberUsageHistory.mobile_number_id == number.id
    ).delete()
    db.flush()

    with pytest.raises(DataInconsistencyError):
        number_service.unassign_number(db, number.phone_number, date(2024, 3, 1))


# =============================================================================
# Field updates
# =============================================================================


def test_update_number_fields(db, make_employee, make_number):
    number = make_number(make_employee())

    updated = number_service.update_number(
        db, number.phone_number, {"purpose": "Field team", "vendor": "Unicom", "remarks": "spare"}
    )

    assert updated.purpose == "Field team"
    assert updated.vendor == "Unicom"
    assert updated.remarks == "spare"


def test_update_number_cannot_set_in_use(db, make_employee, make_number):
    number = make_number(make_employee())
    with pytest.raises(InvalidStateError):
        number_service.update_number(db, number.phone_number, {"status": NumberStatus.IN_USE})


def test_update_number_status_of_held_number_requires_unassign(db, make_employee, make_number):
    applicant, holder = make_employee(), make_employee()
    number = make_number(applicant)
    number_service.assign_number(db, number.phone_number, holder.employee_id, date(2024, 2, 1))

    with pytest.raises(InvalidStateError):
        number_service.update_number(db, number.phone_number, {"status": NumberStatus.DEACTIVATED})

    # Non-status fields are still editable while held
    number_service.update_number(db, number.phone_number, {"remarks": "ok"})
    assert number.remarks == "ok"


def test_update_number_deactivate_sets_cancellation_date(db, make_employee, make_number):
    number = make_number(make_employee())

    number_service.update_number(db, number.phone_number, {"status": NumberStatus.DEACTIVATED})

    assert number.status == NumberStatus.DEACTIVATED.value
    assert number.cancellation_date == utc_today()


def test_update_number_reactivation_clears_cancellation_date(db, make_employee, make_number):
    number = make_number(make_employee())
    number_service.update_number(db, number.phone_number, {"status": NumberStatus.DEACTIVATED})

    number_service.update_number(db, number.phone_number, {"status": NumberStatus.IDLE})

    assert number.status == NumberStatus.IDLE.value
    assert number.cancellation_date is None


def test_update_number_rejects_empty_patch(db, make_employee, make_number):
    number = make_number(make_employee())
    with pytest.raises(ValidationError):
        number_service.update_number(db, number.phone_number, {"status": None})


# =============================================================================
# Departure trigger and risk handling
# =============================================================================


@pytest.fixture
def departed_applicant(db, make_employee, make_number):
    """Applicant with one idle, one lent-out and one deactivated number, then departed."""
    applicant, holder = make_employee(), make_employee()
    idle = make_number(applicant, phone_number="13800000001")
    lent = make_number(applicant, phone_number="13800000002")
    cancelled = make_number(applicant, phone_number="13800000003")
    number_service.assign_number(db, lent.phone_number, holder.employee_id, date(2024, 2, 1))
    number_service.update_number(db, cancelled.phone_number, {"status": NumberStatus.DEACTIVATED})

    employee_service.change_employment_status(db, applicant.employee_id, EmploymentStatus.DEPARTED)
    return {
        "applicant": applicant,
        "holder": holder,
        "idle": idle,
        "lent": lent,
        "cancelled": cancelled,
    }


def test_departure_flags_procured_numbers(db, departed_applicant):
    assert departed_applicant["idle"].status == NumberStatus.RISK_PENDING.value
    assert departed_applicant["lent"].status == NumberStatus.RISK_PENDING.value
    assert departed_applicant["cancelled"].status == NumberStatus.DEACTIVATED.value
    # Possession is untouched by the trigger
    assert departed_applicant["lent"].current_employee_id == departed_applicant["holder"].employee_id


def test_risk_pending_numbers_cannot_be_patched(db, departed_applicant):
    with pytest.raises(InvalidStateError):
        number_service.update_number(
            db, departed_applicant["idle"].phone_number, {"status": NumberStatus.IDLE}
        )


def test_handle_risk_change_applicant(db, departed_applicant, operator, make_employee):
    successor = make_employee()
    lent = departed_applicant["lent"]

    number_service.handle_risk(
        db,
        lent.phone_number,
        RiskAction.CHANGE_APPLICANT,
        operator.employee_id,
        new_applicant_employee_id=successor.employee_id,
        remarks="Handed over",
    )

    assert lent.applicant_employee_id == successor.employee_id
    assert lent.status == NumberStatus.IN_USE.value
    history = db.query(NumberApplicantHistory).filter_by(mobile_number_id=lent.id).all()
    assert len(history) == 1
    assert history[0].previous_applicant_employee_id == departed_applicant["applicant"].employee_id
    assert history[0].new_applicant_employee_id == successor.employee_id
    assert history[0].operator_employee_id == operator.employee_id


def test_handle_risk_change_applicant_without_holder_returns_idle(
    db, departed_applicant, operator, make_employee
):
    successor = make_employee()
    idle = departed_applicant["idle"]

    number_service.handle_risk(
        db,
        idle.phone_number,
        RiskAction.CHANGE_APPLICANT,
        operator.employee_id,
        new_applicant_employee_id=successor.employee_id,
    )

    assert idle.status == NumberStatus.IDLE.value


def test_handle_risk_change_applicant_validation(db, departed_applicant, operator):
    idle = departed_applicant["idle"]

    with pytest.raises(ValidationError):
        number_service.handle_risk(db, idle.phone_number, RiskAction.CHANGE_APPLICANT, operator.employee_id)
    with pytest.raises(ValidationError):
        number_service.handle_risk(
            db,
            idle.phone_number,
            RiskAction.CHANGE_APPLICANT,
            operator.employee_id,
            new_applicant_employee_id=departed_applicant["applicant"].employee_id,
        )


def test_handle_risk_reclaim_closes_interval(db, departed_applicant, operator):
    lent = departed_applicant["lent"]

    number_service.handle_risk(db, lent.phone_number, RiskAction.RECLAIM, operator.employee_id)

    assert lent.status == NumberStatus.IDLE.value
    assert lent.current_employee_id is None
    rows = _usage_rows(db, lent)
    assert len(rows) == 1
    assert rows[0].end_date == utc_today()


def test_handle_risk_deactivate(db, departed_applicant, operator):
    lent = departed_applicant["lent"]

    number_service.handle_risk(db, lent.phone_number, RiskAction.DEACTIVATE, operator.employee_id)

    assert lent.status == NumberStatus.DEACTIVATED.value
    assert lent.cancellation_date == utc_today()
    assert lent.current_employee_id is None
    assert _usage_rows(db, lent)[0].end_date == utc_today()


def test_handle_risk_requires_risk_pending(db, make_employee, make_number, operator):
    number = make_number(make_employee())
    with pytest.raises(InvalidStateError):
        number_service.handle_risk(db, number.phone_number, RiskAction.RECLAIM, operator.employee_id)


def test_handle_risk_requires_active_operator(db, departed_applicant):
    with pytest.raises(PreconditionFailedError):
        number_service.handle_risk(
            db,
            departed_applicant["idle"].phone_number,
            RiskAction.RECLAIM,
            departed_applicant["applicant"].employee_id,
        )


# =============================================================================
# Listing and detail
# =============================================================================


def test_list_numbers_excludes_risk_pending(db, departed_applicant, make_employee, make_number):
    other = make_number(make_employee(), phone_number="13900000001")

    items, total = number_service.list_numbers(db, PaginationParams(page=1, limit=10))

    phones = {item["phone_number"] for item in items}
    assert total == 2
    assert phones == {other.phone_number, departed_applicant["cancelled"].phone_number}

    risk_items, risk_total = number_service.list_risk_pending_numbers(
        db, PaginationParams(page=1, limit=10)
    )
    assert risk_total == 2
    assert {item["applicant_status"] for item in risk_items} == {EmploymentStatus.DEPARTED.value}


def test_list_numbers_search_sort_and_page(db, make_employee, make_number):
    applicant = make_employee(full_name="Zhao Lei")
    holder = make_employee(full_name="Chen Jing")
    for suffix in ("1", "2", "3"):
        make_number(applicant, phone_number=f"1380000000{suffix}")
    number_service.assign_number(db, "13800000002", holder.employee_id, date(2024, 2, 1))

    items, total = number_service.list_numbers(db, PaginationParams(page=1, limit=10), search="Chen")
    assert total == 1
    assert items[0]["current_user_name"] == "Chen Jing"
    assert items[0]["applicant_name"] == "Zhao Lei"

    items, total = number_service.list_numbers(
        db, PaginationParams(page=1, limit=2), sort_by="phoneNumber", sort_order="desc"
    )
    assert total == 3
    assert [i["phone_number"] for i in items] == ["13800000003", "13800000002"]

    items, _ = number_service.list_numbers(
        db, PaginationParams(page=2, limit=2), sort_by="phoneNumber", sort_order="desc"
    )
    assert [i["phone_number"] for i in items] == ["13800000001"]

    items, total = number_service.list_numbers(
        db, PaginationParams(page=1, limit=10), status=NumberStatus.IN_USE
    )
    assert total == 1


def test_list_numbers_unknown_sort_key_falls_back(db, make_employee, make_number):
    applicant = make_employee()
    make_number(applicant)
    make_number(applicant)

    items, total = number_service.list_numbers(
        db, PaginationParams(page=1, limit=10), sort_by="nonsense"
    )

    assert total == 2
    assert len(items) == 2


def test_get_number_detail_includes_usage_history(db, make_employee, make_number):
    applicant, first, second = make_employee(), make_employee(), make_employee()
    number = make_number(applicant)
    number_service.assign_number(db, number.phone_number, first.employee_id, date(2024, 2, 1))
    number_service.unassign_number(db, number.phone_number, date(2024, 3, 1))
    number_service.assign_number(db, number.phone_number, second.employee_id, date(2024, 4, 1))

    detail = number_service.get_number_detail(db, number.phone_number)

    assert detail["applicant_name"] == applicant.full_name
    assert detail["current_user_name"] == second.full_name
    assert [h.employee_id for h in detail["usage_history"]] == [
        second.employee_id,
        first.employee_id,
    ]


def test_get_number_detail_not_found(db):
    with pytest.raises(NotFoundError):
        number_service.get_number_detail(db, "13800000001")
