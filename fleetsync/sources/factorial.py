"""Factorial HR API adapter."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator

from fleetsync.sources.http import fetch_pages, is_optional_module_error

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.factorialhr.com/api/2026-01-01/resources"


class FactorialModel(BaseModel):
    """Base for Factorial payloads; unknown keys are dropped."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)


class Employee(FactorialModel):
    id: int
    first_name: str | None = None
    last_name: str | None = None
    full_name: str | None = None
    email: str | None = None
    login_email: str | None = None
    phone_number: str | None = None
    birthday_on: str | None = None
    address_line_1: str | None = None
    address_line_2: str | None = None
    postal_code: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    active: bool | None = None


class Team(FactorialModel):
    id: int
    name: str | None = None
    employee_ids: list[int] = Field(default_factory=list)

    @field_validator("employee_ids", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class Membership(FactorialModel):
    id: int
    team_id: int | None = None
    employee_id: int | None = None


class CustomField(FactorialModel):
    """Custom-field definition.

    The 2025 API labels fields with ``label``; the 2026 API uses ``label_text``.
    """

    id: int
    label: str | None = None
    label_text: str | None = None
    slug: str | None = None
    name: str | None = None
    field_type: str | None = None


class CustomFieldValue(FactorialModel):
    """Custom-field value attached to an owner.

    2025 shape: ``field_id``, ``employee_id``, ``option_id``, ``value``.
    2026 shape: ``valuable_id``/``valuable_type`` plus typed value slots.
    """

    id: int
    field_id: int | None = None
    custom_field_id: int | None = None
    employee_id: int | None = None
    valuable_id: int | None = None
    valuable_type: str | None = None
    value: str | None = None
    option_id: int | None = None
    single_choice_value: str | None = None
    date_value: str | None = None
    long_text_value: str | None = None
    label: str | None = None


class CustomFieldOption(FactorialModel):
    id: int
    field_id: int | None = None
    custom_field_id: int | None = None
    label: str | None = None
    value: str | None = None


class ContractVersion(FactorialModel):
    id: int
    employee_id: int | None = None
    job_title: str | None = None
    effective_on: str | None = None
    ends_on: str | None = None


class CustomResourceValue(FactorialModel):
    id: int
    resource_id: int | None = None
    attachable_id: int | None = None


class Leave(FactorialModel):
    id: int
    employee_id: int
    start_on: str | None = None
    finish_on: str | None = None
    half_day: str | None = None
    description: str | None = None
    approved: bool | None = None
    leave_type_name: str | None = None


class LeaveType(FactorialModel):
    id: int
    name: str | None = None
    active: bool | None = None


class Document(FactorialModel):
    id: int
    name: str | None = None
    folder_id: int | None = None


class Training(FactorialModel):
    id: int
    name: str | None = None
    status: str | None = None


class AttendanceShift(FactorialModel):
    id: int
    employee_id: int | None = None
    date: str | None = None
    clock_in: str | None = None
    clock_out: str | None = None


ModelT = TypeVar("ModelT", bound=FactorialModel)


class FactorialClient:
    """Paginated read access to the Factorial resources used by the driver sync.

    With an empty API key every fetch returns an empty list.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        *,
        page_size: int = 100,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._page_size = page_size
        self._timeout = timeout
        self._transport = transport
        if not self.enabled:
            logger.warning("FACTORIAL_API_KEY is not set; Factorial calls are disabled")

    @property
    def enabled(self) -> bool:
        return bool(self._api_key)

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "x-api-key": self._api_key,
        }

    async def _fetch_all(
        self,
        path: str,
        model: type[ModelT],
        *,
        params: dict[str, Any] | None = None,
        optional: bool = False,
    ) -> list[ModelT]:
        if not self.enabled:
            return []

        items: list[ModelT] = []
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                async for page in fetch_pages(
                    client,
                    f"{self._base_url}/{path}",
                    headers=self._headers(),
                    params=params,
                    page_size=self._page_size,
                ):
                    items.extend(model.model_validate(item) for item in page)
        except httpx.HTTPStatusError as exc:
            if optional and is_optional_module_error(exc):
                logger.warning(
                    "Factorial module %s unavailable (HTTP %d)",
                    path,
                    exc.response.status_code,
                )
                return []
            raise

        logger.info("Factorial: fetched %d records from %s", len(items), path)
        return items

    async def fetch_employees(self) -> list[Employee]:
        return await self._fetch_all(
            "employees/employees",
            Employee,
            params={"only_managers": "false", "only_active": "true"},
        )

    async def fetch_teams(self) -> list[Team]:
        return await self._fetch_all("teams/teams", Team)

    async def fetch_memberships(self) -> list[Membership]:
        return await self._fetch_all("teams/memberships", Membership, optional=True)

    async def fetch_custom_fields(self) -> list[CustomField]:
        return await self._fetch_all("custom_fields/fields", CustomField)

    async def fetch_custom_field_values(self) -> list[CustomFieldValue]:
        return await self._fetch_all("custom_fields/values", CustomFieldValue)

    async def fetch_custom_field_options(self) -> list[CustomFieldOption]:
        return await self._fetch_all(
            "custom_fields/options", CustomFieldOption, optional=True
        )

    async def fetch_contract_versions(self) -> list[ContractVersion]:
        return await self._fetch_all("contracts/contract_versions", ContractVersion)

    async def fetch_custom_resource_values(self) -> list[CustomResourceValue]:
        return await self._fetch_all(
            "custom_resources/values", CustomResourceValue, optional=True
        )

    async def fetch_leaves(self, start: date, end: date) -> list[Leave]:
        """Fetch leaves overlapping the inclusive ``start``..``end`` range."""
        return await self._fetch_all(
            "timeoff/leaves",
            Leave,
            params={
                "from": start.isoformat(),
                "to": end.isoformat(),
                "include_deleted_leaves": "false",
                "include_leave_type": "true",
            },
        )

    async def fetch_leave_types(self) -> list[LeaveType]:
        return await self._fetch_all("timeoff/leave_types", LeaveType)

    async def fetch_documents(self) -> list[Document]:
        return await self._fetch_all("documents/documents", Document, optional=True)

    async def fetch_trainings(self) -> list[Training]:
        return await self._fetch_all("trainings/trainings", Training, optional=True)

    async def fetch_attendance_shifts(self) -> list[AttendanceShift]:
        return await self._fetch_all(
            "attendance/shifts", AttendanceShift, optional=True
        )
