from __future__ import annotations

from flask import Flask, request

from ..common.web import (
    current_employee_id,
    current_role,
    json_body,
    login_required,
    ok,
    optional_date,
    optional_int,
    paged,
    roles_required,
)
from ..container import Container
from ..core.enums import RequestCategory, RequestStatus, Role
from ..core.exceptions import ValidationError
from .model import RequestFilters

PREFIX = "/api/v1/requests"


def _parse_enum(enum_cls, value, field_name: str):
    if not value:
        return None
    raw = str(value).strip()
    for candidate in (raw, raw.lower(), raw.upper()):
        try:
            return enum_cls(candidate)
        except ValueError:
            continue
    raise ValidationError(f"Unknown {field_name}: {value}")


def register(app: Flask, container: Container) -> None:
    service = container.request_service

    @app.route("/api/v1/request-types", methods=["GET"], endpoint="list_request_types")
    @login_required
    def list_request_types():
        return ok(container.request_type_registry.list_active())

    @app.route(PREFIX, methods=["POST"], endpoint="create_request")
    @login_required
    def create_request():
        body = json_body()
        details = service.create_request(
            requester_id=current_employee_id(),
            type_code=body.get("requestType") or "",
            reason=body.get("reason"),
            effective_from=optional_date(body.get("effectiveFrom"), "effectiveFrom"),
            effective_to=optional_date(body.get("effectiveTo"), "effectiveTo"),
            payload=body.get("payload"),
        )
        return ok(details.to_dict(), "Request created successfully", 201)

    @app.route(PREFIX, methods=["GET"], endpoint="list_requests")
    @login_required
    def list_requests():
        args = request.args
        requester_id = optional_int(args.get("employeeId"), "employeeId")
        # Employees only ever see their own requests.
        if current_role() == Role.EMPLOYEE:
            requester_id = current_employee_id()

        filters = RequestFilters(
            requester_employee_id=requester_id,
            approver_employee_id=optional_int(args.get("approverId"), "approverId"),
            category=_parse_enum(RequestCategory, args.get("category"), "category"),
            request_type_code=(args.get("requestType") or "").strip().upper() or None,
            status=_parse_enum(RequestStatus, args.get("status"), "status"),
            date_from=optional_date(args.get("dateFrom"), "dateFrom"),
            date_to=optional_date(args.get("dateTo"), "dateTo"),
            year=optional_int(args.get("year"), "year"),
            month=optional_int(args.get("month"), "month"),
        )
        page = service.list_requests(
            filters=filters,
            page=optional_int(args.get("page"), "page"),
            limit=optional_int(args.get("limit"), "limit"),
        )
        return paged(page)

    @app.route(f"{PREFIX}/summary", methods=["GET"], endpoint="summarize_requests")
    @login_required
    def summarize_requests():
        requester_id = optional_int(request.args.get("employeeId"), "employeeId")
        if current_role() == Role.EMPLOYEE:
            requester_id = current_employee_id()
        return ok(service.summarize(requester_id=requester_id).to_dict())

    @app.route(f"{PREFIX}/<int:request_id>", methods=["GET"], endpoint="get_request")
    @login_required
    def get_request(request_id: int):
        return ok(service.get_request(request_id).to_dict())

    @app.route(f"{PREFIX}/<int:request_id>", methods=["PUT"], endpoint="update_request")
    @login_required
    def update_request(request_id: int):
        body = json_body()
        details = service.update_request(
            request_id=request_id,
            caller_id=current_employee_id(),
            reason=body.get("reason"),
            effective_from=optional_date(body.get("effectiveFrom"), "effectiveFrom"),
            effective_to=optional_date(body.get("effectiveTo"), "effectiveTo"),
            payload=body.get("payload"),
        )
        return ok(details.to_dict(), "Request updated successfully")

    @app.route(f"{PREFIX}/<int:request_id>/approve", methods=["PUT"], endpoint="approve_request")
    @roles_required(Role.MANAGER, Role.ADMIN)
    def approve_request(request_id: int):
        body = json_body()
        service.approve(request_id=request_id, approver_id=current_employee_id(), comment=body.get("comment"))
        return ok(service.get_request(request_id).to_dict(), "Request approved successfully")

    @app.route(f"{PREFIX}/<int:request_id>/reject", methods=["PUT"], endpoint="reject_request")
    @roles_required(Role.MANAGER, Role.ADMIN)
    def reject_request(request_id: int):
        body = json_body()
        service.reject(request_id=request_id, approver_id=current_employee_id(), reason=body.get("reason"))
        return ok(service.get_request(request_id).to_dict(), "Request rejected")

    @app.route(f"{PREFIX}/<int:request_id>/cancel", methods=["PUT"], endpoint="cancel_request")
    @login_required
    def cancel_request(request_id: int):
        body = json_body()
        service.cancel(request_id=request_id, caller_id=current_employee_id(), comment=body.get("comment"))
        return ok(service.get_request(request_id).to_dict(), "Request cancelled")
