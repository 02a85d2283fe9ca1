from datetime import date
from decimal import Decimal

import pytest

from src.hr_workflow.hr_workflow.core.constants import (
    AUTO_APPROVE_ADMIN_COMMENT,
    AUTO_APPROVE_NO_MANAGER_COMMENT,
    NOTIFICATION_EXCHANGE,
    NOTIFICATION_ROUTING_KEY,
)
from src.hr_workflow.hr_workflow.core.enums import EntryType, RequestStatus, Role
from src.hr_workflow.hr_workflow.core.exceptions import (
    AuthorizationError,
    DuplicateTaskError,
    DuplicateWeekError,
    HoursExceededError,
    InactiveTaskError,
    InvalidStateError,
    NotFoundError,
    UnknownTaskError,
    ValidationError,
)
from src.hr_workflow.hr_workflow.timesheets.model import EntryInput


def test_submit_creates_pending_timesheet_and_notifies_manager(world):
    details = world.timesheet_service.submit(
        employee_id=world.employee_id,
        role=Role.EMPLOYEE,
        submission=world.submission(entries=[(1, "project", "38"), (2, "leave", "8")]),
    )

    assert details.status == RequestStatus.PENDING.value
    assert details.approver_employee_id == world.manager_id
    assert details.approver_name == "Mona Manager"
    assert details.department == "Engineering"
    assert details.reason == "Weekly timesheet for Week 2, 1/2026"
    assert details.summary.total_hours == Decimal("46")
    assert details.summary.overtime_hours == Decimal("0")
    assert [e.task_code for e in details.entries] == ["DEV", "ANNUAL_LEAVE"]

    assert len(world.publisher.events) == 1
    exchange, routing_key, event = world.publisher.events[0]
    assert exchange == NOTIFICATION_EXCHANGE
    assert routing_key == NOTIFICATION_ROUTING_KEY
    assert event["empId"] == world.manager_id
    assert event["type"] == "info"
    assert "Evan Employee" in event["message"]


def test_exactly_168_hours_is_accepted(world):
    details = world.timesheet_service.submit(
        employee_id=world.employee_id,
        role=Role.EMPLOYEE,
        submission=world.submission(entries=[(1, "project", "100"), (2, "leave", "68")]),
    )
    assert details.summary.total_hours == Decimal("168")


def test_more_than_168_hours_is_rejected(world):
    with pytest.raises(HoursExceededError):
        world.timesheet_service.submit(
            employee_id=world.employee_id,
            role=Role.EMPLOYEE,
            submission=world.submission(entries=[(1, "project", "100"), (2, "leave", "68.01")]),
        )
    assert world.timesheets.claims == {}


def test_unknown_and_inactive_tasks_are_rejected(world):
    with pytest.raises(UnknownTaskError):
        world.timesheet_service.submit(
            employee_id=world.employee_id,
            role=Role.EMPLOYEE,
            submission=world.submission(entries=[(99, "project", "8")]),
        )
    with pytest.raises(InactiveTaskError):
        world.timesheet_service.submit(
            employee_id=world.employee_id,
            role=Role.EMPLOYEE,
            submission=world.submission(entries=[(3, "project", "8")]),
        )


def test_submission_needs_at_least_one_entry(world):
    with pytest.raises(ValidationError):
        world.timesheet_service.submit(
            employee_id=world.employee_id,
            role=Role.EMPLOYEE,
            submission=world.submission(entries=[]),
        )


def test_second_submission_for_same_week_is_duplicate(world):
    svc = world.timesheet_service
    svc.submit(employee_id=world.employee_id, role=Role.EMPLOYEE, submission=world.submission())

    with pytest.raises(DuplicateWeekError):
        svc.submit(employee_id=world.employee_id, role=Role.EMPLOYEE, submission=world.submission())


def test_cancelled_week_can_be_resubmitted(world):
    svc = world.timesheet_service
    first = svc.submit(employee_id=world.employee_id, role=Role.EMPLOYEE, submission=world.submission())
    svc.cancel(request_id=first.request_id, employee_id=world.employee_id)

    second = svc.submit(
        employee_id=world.employee_id,
        role=Role.EMPLOYEE,
        submission=world.submission(entries=[(1, "project", "32")]),
    )

    assert second.request_id != first.request_id
    assert second.status == RequestStatus.PENDING.value
    assert world.timesheets.get_entries_by_request_id(first.request_id) == []
    assert world.timesheets.get_week_claim(employee_id=world.employee_id, week_start_date=date(2026, 1, 5)) == (
        second.request_id
    )
    assert world.requests.get_by_id(first.request_id).status == RequestStatus.CANCELLED


def test_employee_without_manager_is_auto_approved_silently(world):
    details = world.timesheet_service.submit(
        employee_id=world.loner_id,
        role=Role.EMPLOYEE,
        submission=world.submission(),
    )

    assert details.status == RequestStatus.APPROVED.value
    assert details.approval_comment == AUTO_APPROVE_NO_MANAGER_COMMENT
    assert "no manager" in details.approval_comment
    assert details.approved_at is not None
    assert world.publisher.events == []


def test_admin_rationale_wins_over_missing_manager(world):
    details = world.timesheet_service.submit(
        employee_id=world.admin_id,
        role=Role.ADMIN,
        submission=world.submission(),
    )

    assert details.status == RequestStatus.APPROVED.value
    assert details.approval_comment == AUTO_APPROVE_ADMIN_COMMENT
    assert world.publisher.events == []


def test_admin_with_manager_is_still_auto_approved(world):
    details = world.timesheet_service.submit(
        employee_id=world.manager_id,
        role=Role.ADMIN,
        submission=world.submission(),
    )
    assert details.status == RequestStatus.APPROVED.value
    assert details.approval_comment == AUTO_APPROVE_ADMIN_COMMENT


def test_failed_auto_approval_leaves_timesheet_pending(world, monkeypatch):
    def boom(**kwargs):
        raise RuntimeError("store hiccup")

    monkeypatch.setattr(world.request_service, "approve", boom)

    details = world.timesheet_service.submit(
        employee_id=world.loner_id,
        role=Role.EMPLOYEE,
        submission=world.submission(),
    )
    assert details.status == RequestStatus.PENDING.value


def test_adjusting_rejected_timesheet_reopens_it(world):
    svc = world.timesheet_service
    created = svc.submit(employee_id=world.employee_id, role=Role.EMPLOYEE, submission=world.submission())
    svc.reject(request_id=created.request_id, approver_id=world.manager_id, reason="Friday hours are missing")

    adjusted = svc.adjust(
        request_id=created.request_id,
        employee_id=world.employee_id,
        entries=[
            EntryInput(task_id=1, entry_type=EntryType.PROJECT, hours=Decimal("45")),
            EntryInput(task_id=2, entry_type=EntryType.LEAVE, hours=Decimal("4")),
        ],
        reason="Added Friday hours",
    )

    assert adjusted.status == RequestStatus.PENDING.value
    assert adjusted.rejection_reason is None
    assert adjusted.reason == "Added Friday hours"
    assert adjusted.summary.overtime_hours == Decimal("5")
    assert adjusted.summary.total_hours == Decimal("49")
    assert len(adjusted.entries) == 2


def test_adjusting_pending_timesheet_keeps_it_pending(world):
    svc = world.timesheet_service
    created = svc.submit(employee_id=world.employee_id, role=Role.EMPLOYEE, submission=world.submission())

    adjusted = svc.adjust(
        request_id=created.request_id,
        employee_id=world.employee_id,
        entries=[EntryInput(task_id=1, entry_type=EntryType.PROJECT, hours=Decimal("20"))],
    )

    assert adjusted.status == RequestStatus.PENDING.value
    assert adjusted.reason == created.reason
    assert adjusted.summary.total_hours == Decimal("20")


def test_only_owner_can_adjust(world):
    svc = world.timesheet_service
    created = svc.submit(employee_id=world.employee_id, role=Role.EMPLOYEE, submission=world.submission())

    with pytest.raises(AuthorizationError):
        svc.adjust(
            request_id=created.request_id,
            employee_id=world.manager_id,
            entries=[EntryInput(task_id=1, entry_type=EntryType.PROJECT, hours=Decimal("8"))],
        )


def test_approved_timesheet_cannot_be_adjusted(world):
    svc = world.timesheet_service
    created = svc.submit(employee_id=world.employee_id, role=Role.EMPLOYEE, submission=world.submission())
    svc.approve(request_id=created.request_id, approver_id=world.manager_id, comment="Looks good")

    with pytest.raises(InvalidStateError):
        svc.adjust(
            request_id=created.request_id,
            employee_id=world.employee_id,
            entries=[EntryInput(task_id=1, entry_type=EntryType.PROJECT, hours=Decimal("8"))],
        )


def test_timesheet_decisions_do_not_publish(world):
    svc = world.timesheet_service
    created = svc.submit(employee_id=world.employee_id, role=Role.EMPLOYEE, submission=world.submission())
    world.publisher.events.clear()

    approved = svc.approve(request_id=created.request_id, approver_id=world.manager_id, comment="ok")

    assert approved.status == RequestStatus.APPROVED.value
    assert approved.approval_comment == "ok"
    assert world.publisher.events == []


def test_timesheet_operations_ignore_other_categories(world):
    leave = world.add_request(type_code="PAID_LEAVE", effective_from=date(2026, 2, 2), effective_to=date(2026, 2, 3))

    with pytest.raises(NotFoundError):
        world.timesheet_service.approve(request_id=leave.request_id, approver_id=world.manager_id)
    with pytest.raises(NotFoundError):
        world.timesheet_service.get_timesheet(leave.request_id)
    assert world.requests.get_by_id(leave.request_id).status == RequestStatus.PENDING


def test_list_my_timesheets_paginates_and_filters_by_overlapping_month(world):
    svc = world.timesheet_service
    for week_start in (date(2026, 1, 12), date(2026, 1, 19), date(2026, 1, 26)):
        svc.submit(
            employee_id=world.employee_id,
            role=Role.EMPLOYEE,
            submission=world.submission(week_start=week_start),
        )

    first_page = svc.list_my_timesheets(employee_id=world.employee_id, page=1, limit=2)
    assert first_page.pagination.total == 3
    assert first_page.pagination.total_pages == 2
    assert len(first_page.data) == 2

    february = svc.list_my_timesheets(employee_id=world.employee_id, year=2026, month=2)
    assert [item.week_start_date for item in february.data] == [date(2026, 1, 26)]
    assert february.data[0].payload.summary.total_hours == Decimal("40")


def test_month_filter_requires_year(world):
    with pytest.raises(ValidationError):
        world.timesheet_service.list_my_timesheets(employee_id=world.employee_id, month=3)


def test_pending_approvals_lists_direct_reports_only(world):
    svc = world.timesheet_service
    mine = svc.submit(employee_id=world.employee_id, role=Role.EMPLOYEE, submission=world.submission())
    svc.submit(employee_id=world.loner_id, role=Role.EMPLOYEE, submission=world.submission())

    pending = svc.list_pending_approvals(approver_id=world.manager_id)

    assert [item.request_id for item in pending.data] == [mine.request_id]
    assert pending.data[0].employee_name == "Evan Employee"
    assert pending.pagination.to_dict() == {"page": 1, "limit": 20, "total": 1, "totalPages": 1}


def test_task_management(world):
    svc = world.timesheet_service

    task = svc.create_task(task_code="qa", task_name="Quality Assurance", task_type="project")
    assert task.task_code == "QA"
    assert task.is_active

    with pytest.raises(DuplicateTaskError):
        svc.create_task(task_code="QA", task_name="Again")
    with pytest.raises(ValidationError):
        svc.create_task(task_code="OPS", task_name="Ops", task_type="overtime")

    updated = svc.update_task(task_id=task.task_id, is_active=False)
    assert updated.is_active is False
    assert updated.task_code == "QA"
    assert updated.task_name == "Quality Assurance"
    assert task.task_id not in {t.task_id for t in svc.list_active_tasks()}
    assert task.task_id in {t.task_id for t in svc.list_all_tasks()}

    with pytest.raises(NotFoundError):
        svc.update_task(task_id=999, task_name="Nope")


def test_broker_failure_never_fails_a_submission(broken_broker_world):
    world = broken_broker_world

    details = world.timesheet_service.submit(
        employee_id=world.employee_id, role=Role.EMPLOYEE, submission=world.submission()
    )

    assert details.status == RequestStatus.PENDING.value
    assert [e.hours for e in world.timesheets.get_entries_by_request_id(details.request_id)] == [Decimal("40")]
    assert world.timesheets.get_week_claim(
        employee_id=world.employee_id, week_start_date=date(2026, 1, 5)
    ) == details.request_id
    assert world.publisher.calls == 1


def test_manager_cannot_decide_own_timesheet(world):
    svc = world.timesheet_service
    own = svc.submit(employee_id=world.manager_id, role=Role.MANAGER, submission=world.submission())
    assert own.status == RequestStatus.PENDING.value

    with pytest.raises(AuthorizationError):
        svc.approve(request_id=own.request_id, approver_id=world.manager_id)
    with pytest.raises(AuthorizationError):
        svc.reject(request_id=own.request_id, approver_id=world.manager_id, reason="Rejecting my own week")
    assert svc.get_timesheet(own.request_id).status == RequestStatus.PENDING.value

    approved = svc.approve(request_id=own.request_id, approver_id=world.admin_id)
    assert approved.status == RequestStatus.APPROVED.value


def test_only_direct_manager_decides_timesheets(world):
    svc = world.timesheet_service
    created = svc.submit(employee_id=world.employee_id, role=Role.EMPLOYEE, submission=world.submission())

    # the admin is not Evan's direct manager
    with pytest.raises(AuthorizationError):
        svc.approve(request_id=created.request_id, approver_id=world.admin_id)
    assert svc.get_timesheet(created.request_id).status == RequestStatus.PENDING.value


def test_hours_beyond_two_decimals_are_rejected(world):
    with pytest.raises(ValidationError):
        world.timesheet_service.submit(
            employee_id=world.employee_id,
            role=Role.EMPLOYEE,
            submission=world.submission(entries=[(1, "project", "0.004")]),
        )
    assert world.timesheets.claims == {}

    details = world.timesheet_service.submit(
        employee_id=world.employee_id,
        role=Role.EMPLOYEE,
        submission=world.submission(entries=[(1, "project", "7.25"), (2, "leave", "0.50")]),
    )
    assert details.summary.total_hours == Decimal("7.75")
