from __future__ import annotations

from flask import Flask, request

from ..common.validators import parse_hours
from ..common.web import (
    current_employee_id,
    current_role,
    json_body,
    login_required,
    ok,
    optional_bool,
    optional_int,
    paged,
    required_date,
    required_int,
    roles_required,
    to_dicts,
)
from ..container import Container
from ..core.enums import EntryType, RequestStatus, Role
from ..core.exceptions import ValidationError
from .model import EntryInput, TimesheetSubmission

PREFIX = "/api/v1/timesheets"


def parse_entries(raw) -> list[EntryInput]:
    if not isinstance(raw, list) or not raw:
        raise ValidationError("At least one timesheet entry is required")

    entries: list[EntryInput] = []
    for i, item in enumerate(raw, start=1):
        if not isinstance(item, dict):
            raise ValidationError(f"Entry {i} must be an object")
        try:
            entry_type = EntryType(str(item.get("entryType") or "").strip().lower())
        except ValueError:
            raise ValidationError(f"Entry {i}: entryType must be 'project' or 'leave'")
        entries.append(
            EntryInput(
                task_id=required_int(item.get("taskId"), f"Entry {i}: taskId"),
                entry_type=entry_type,
                hours=parse_hours(item.get("hours"), f"Entry {i}: hours"),
            )
        )
    return entries


def parse_status(value) -> RequestStatus | None:
    if not value:
        return None
    try:
        return RequestStatus(str(value).strip().upper())
    except ValueError:
        raise ValidationError(f"Unknown status: {value}")


def register(app: Flask, container: Container) -> None:
    service = container.timesheet_service

    @app.route(f"{PREFIX}/submit", methods=["POST"], endpoint="submit_timesheet")
    @login_required
    def submit_timesheet():
        body = json_body()
        submission = TimesheetSubmission(
            year=required_int(body.get("year"), "year"),
            month=required_int(body.get("month"), "month"),
            week_number=required_int(body.get("weekNumber"), "weekNumber"),
            week_start_date=required_date(body.get("weekStartDate"), "weekStartDate"),
            week_end_date=required_date(body.get("weekEndDate"), "weekEndDate"),
            entries=parse_entries(body.get("entries")),
            reason=body.get("reason"),
        )
        details = service.submit(employee_id=current_employee_id(), role=current_role(), submission=submission)
        return ok(details.to_dict(), "Timesheet submitted successfully", 201)

    @app.route(f"{PREFIX}/<int:request_id>/adjust", methods=["PUT"], endpoint="adjust_timesheet")
    @login_required
    def adjust_timesheet(request_id: int):
        body = json_body()
        details = service.adjust(
            request_id=request_id,
            employee_id=current_employee_id(),
            entries=parse_entries(body.get("entries")),
            reason=body.get("reason"),
        )
        return ok(details.to_dict(), "Timesheet adjusted successfully")

    @app.route(f"{PREFIX}/my-timesheets", methods=["GET"], endpoint="my_timesheets")
    @login_required
    def my_timesheets():
        page = service.list_my_timesheets(
            employee_id=current_employee_id(),
            year=optional_int(request.args.get("year"), "year"),
            month=optional_int(request.args.get("month"), "month"),
            status=parse_status(request.args.get("status")),
            page=optional_int(request.args.get("page"), "page"),
            limit=optional_int(request.args.get("limit"), "limit"),
        )
        return paged(page)

    @app.route(f"{PREFIX}/pending-approvals", methods=["GET"], endpoint="pending_timesheet_approvals")
    @roles_required(Role.MANAGER, Role.ADMIN)
    def pending_approvals():
        page = service.list_pending_approvals(
            approver_id=current_employee_id(),
            page=optional_int(request.args.get("page"), "page"),
            limit=optional_int(request.args.get("limit"), "limit"),
        )
        return paged(page)

    @app.route(f"{PREFIX}/<int:request_id>", methods=["GET"], endpoint="get_timesheet")
    @login_required
    def get_timesheet(request_id: int):
        return ok(service.get_timesheet(request_id).to_dict())

    @app.route(f"{PREFIX}/<int:request_id>/approve", methods=["PUT"], endpoint="approve_timesheet")
    @roles_required(Role.MANAGER, Role.ADMIN)
    def approve_timesheet(request_id: int):
        body = json_body()
        details = service.approve(request_id=request_id, approver_id=current_employee_id(), comment=body.get("comment"))
        return ok(details.to_dict(), "Timesheet approved successfully")

    @app.route(f"{PREFIX}/<int:request_id>/reject", methods=["PUT"], endpoint="reject_timesheet")
    @roles_required(Role.MANAGER, Role.ADMIN)
    def reject_timesheet(request_id: int):
        body = json_body()
        details = service.reject(request_id=request_id, approver_id=current_employee_id(), reason=body.get("reason"))
        return ok(details.to_dict(), "Timesheet rejected")

    @app.route(f"{PREFIX}/<int:request_id>/cancel", methods=["PUT"], endpoint="cancel_timesheet")
    @login_required
    def cancel_timesheet(request_id: int):
        details = service.cancel(request_id=request_id, employee_id=current_employee_id())
        return ok(details.to_dict(), "Timesheet cancelled")

    @app.route(f"{PREFIX}/tasks", methods=["GET"], endpoint="list_timesheet_tasks")
    @login_required
    def list_tasks():
        include_inactive = optional_bool(request.args.get("includeInactive"), "includeInactive")
        if include_inactive and current_role() == Role.ADMIN:
            tasks = service.list_all_tasks()
        else:
            tasks = service.list_active_tasks()
        return ok(to_dicts(tasks))

    @app.route(f"{PREFIX}/tasks", methods=["POST"], endpoint="create_timesheet_task")
    @roles_required(Role.ADMIN)
    def create_task():
        body = json_body()
        task = service.create_task(
            task_code=body.get("taskCode"),
            task_name=body.get("taskName"),
            description=body.get("description"),
            task_type=body.get("taskType") or EntryType.PROJECT.value,
        )
        return ok(task.to_dict(), "Task created successfully", 201)

    @app.route(f"{PREFIX}/tasks/<int:task_id>", methods=["PUT"], endpoint="update_timesheet_task")
    @roles_required(Role.ADMIN)
    def update_task(task_id: int):
        body = json_body()
        task = service.update_task(
            task_id=task_id,
            task_name=body.get("taskName"),
            description=body.get("description"),
            is_active=optional_bool(body.get("isActive"), "isActive"),
        )
        return ok(task.to_dict(), "Task updated successfully")
