from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .core.constants import NOTIFICATION_EXCHANGE
from .database.connection import DBConfig, DatabaseConnection
from .employees.mysql_employee_repository import MySQLEmployeeDirectory
from .employees.repository import EmployeeDirectory
from .notifications.dispatcher import NotificationDispatcher
from .notifications.email_templates import EmailTemplateRenderer
from .notifications.publisher import NullPublisher, Publisher, RabbitMQPublisher
from .request_types.mysql_request_type_repository import MySQLRequestTypeRepository
from .request_types.repository import RequestTypeRepository
from .request_types.service import RequestTypeRegistry
from .requests.mysql_request_repository import MySQLRequestRepository
from .requests.repository import RequestRepository
from .requests.service import RequestService
from .timesheets.mysql_timesheet_repository import MySQLTimesheetRepository
from .timesheets.repository import TimesheetRepository
from .timesheets.service import TimesheetService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    request_types_repo: RequestTypeRepository
    employees_repo: EmployeeDirectory
    requests_repo: RequestRepository
    timesheets_repo: TimesheetRepository
    publisher: Publisher

    request_type_registry: RequestTypeRegistry
    dispatcher: NotificationDispatcher
    request_service: RequestService
    timesheet_service: TimesheetService


def build_services(
    *,
    request_types_repo: RequestTypeRepository,
    employees_repo: EmployeeDirectory,
    requests_repo: RequestRepository,
    timesheets_repo: TimesheetRepository,
    publisher: Publisher,
    conn: Optional[DatabaseConnection] = None,
    exchange: str = NOTIFICATION_EXCHANGE,
) -> Container:
    registry = RequestTypeRegistry(request_types_repo)
    dispatcher = NotificationDispatcher(
        publisher,
        registry,
        employees_repo,
        EmailTemplateRenderer(),
        exchange=exchange,
    )
    request_service = RequestService(requests_repo, registry, employees_repo, dispatcher)
    timesheet_service = TimesheetService(
        timesheets_repo,
        requests_repo,
        request_service,
        registry,
        employees_repo,
        dispatcher,
    )

    return Container(
        conn=conn,
        request_types_repo=request_types_repo,
        employees_repo=employees_repo,
        requests_repo=requests_repo,
        timesheets_repo=timesheets_repo,
        publisher=publisher,
        request_type_registry=registry,
        dispatcher=dispatcher,
        request_service=request_service,
        timesheet_service=timesheet_service,
    )


def build_publisher(
    *,
    enabled: bool,
    rabbitmq_url: str,
    timeout: float,
) -> Publisher:
    if not enabled:
        return NullPublisher()
    return RabbitMQPublisher(rabbitmq_url, timeout=timeout)


def build_container(
    *,
    db_config: dict,
    publisher: Publisher,
    exchange: str = NOTIFICATION_EXCHANGE,
) -> Container:
    conn = DatabaseConnection(DBConfig.from_settings(db_config))

    return build_services(
        request_types_repo=MySQLRequestTypeRepository(conn),
        employees_repo=MySQLEmployeeDirectory(conn),
        requests_repo=MySQLRequestRepository(conn),
        timesheets_repo=MySQLTimesheetRepository(conn),
        publisher=publisher,
        conn=conn,
        exchange=exchange,
    )
