"""Typed async client for the property-management backend.

Every method performs exactly one HTTP request. There are no retries, no
caching and no batching; transport errors from httpx propagate unchanged.
"""

import logging
from types import TracebackType
from typing import Any

import httpx
from pydantic import TypeAdapter

from dormdesk.models.enums import PaymentStatus
from dormdesk.schemas.invoices import Invoice, InvoiceGenerate, Payment, SlipReview
from dormdesk.schemas.maintenance import (
    MaintenanceRequest,
    MaintenanceRequestCreate,
    MaintenanceStatusUpdate,
)
from dormdesk.schemas.readings import MeterReading, MeterReadingCreate
from dormdesk.schemas.rooms import Building, Contract, Room
from dormdesk.schemas.users import LineLoginRequest, LoginRequest, LoginResponse, StaffUser

logger = logging.getLogger(__name__)


class BackendError(Exception):
    """Non-2xx response from the backend."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def extract_error_message(response: httpx.Response, default: str) -> str:
    """Best-effort human readable message from an error response."""
    try:
        body = response.json()
    except ValueError:
        text = response.text.strip()
        return text or default

    if isinstance(body, dict):
        message = body.get("message")
        if isinstance(message, str) and message:
            return message
        if isinstance(message, list) and message:
            return str(message[0])
        detail = body.get("detail")
        if isinstance(detail, str) and detail:
            return detail
    return default


class BackendClient:
    """One-shot request/response wrapper over the backend REST API."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._http = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._http.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        default_error: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> httpx.Response:
        response = await self._http.request(method, path, params=params, json=json)
        if response.is_error:
            message = extract_error_message(response, default_error)
            logger.debug("%s %s -> %s: %s", method, path, response.status_code, message)
            raise BackendError(response.status_code, message)
        return response

    async def _get_list(self, path: str, model: type, default_error: str, **params: Any) -> list:
        query = {key: value for key, value in params.items() if value}
        response = await self._request("GET", path, default_error, params=query or None)
        return TypeAdapter(list[model]).validate_python(response.json())

    # Auth

    async def login(self, username: str, password: str) -> LoginResponse:
        """Exchange credentials for a bearer token."""
        payload = LoginRequest(username=username, password=password)
        response = await self._request(
            "POST", "/auth/login", "Login failed", json=payload.model_dump(by_alias=True)
        )
        return LoginResponse.model_validate(response.json())

    async def login_line(self, line_user_id: str) -> LoginResponse:
        """Exchange a LINE user id for a bearer token."""
        payload = LineLoginRequest(line_user_id=line_user_id)
        response = await self._request(
            "POST", "/auth/login-line", "LINE login failed", json=payload.model_dump(by_alias=True)
        )
        return LoginResponse.model_validate(response.json())

    async def get_profile(self) -> StaffUser:
        """Profile for the bearer token this client was built with."""
        response = await self._request("GET", "/auth/profile", "Failed to fetch profile")
        return StaffUser.model_validate(response.json())

    async def is_staff(self, line_user_id: str) -> bool:
        """Ask the backend whether a LINE user is mapped to a staff role."""
        response = await self._request(
            "GET",
            "/line/is-staff",
            "Failed to check staff",
            params={"userId": line_user_id},
        )
        try:
            body = response.json()
        except ValueError:
            return False
        return isinstance(body, dict) and bool(body.get("isStaff"))

    # Rooms

    async def get_buildings(self) -> list[Building]:
        """All buildings."""
        return await self._get_list("/buildings", Building, "Failed to fetch buildings")

    async def get_rooms(self) -> list[Room]:
        """All rooms."""
        rooms = await self._get_list("/rooms", Room, "Failed to fetch rooms")
        logger.debug("Fetched %d rooms", len(rooms))
        return rooms

    async def get_contracts(self) -> list[Contract]:
        """All contracts, active and past."""
        return await self._get_list("/contracts", Contract, "Failed to fetch contracts")

    # Meter readings

    async def get_meter_readings(
        self,
        room_id: str | None = None,
        month: int | None = None,
        year: int | None = None,
    ) -> list[MeterReading]:
        """Readings filtered by any combination of room, month and year."""
        return await self._get_list(
            "/meter-readings",
            MeterReading,
            "Failed to fetch meter readings",
            roomId=room_id,
            month=month,
            year=year,
        )

    async def create_meter_reading(self, reading: MeterReadingCreate) -> MeterReading:
        """Record a reading for one room and period."""
        response = await self._request(
            "POST",
            "/meter-readings",
            "Failed to create meter reading",
            json=reading.model_dump(mode="json", by_alias=True),
        )
        return MeterReading.model_validate(response.json())

    # Invoices and payments

    async def generate_invoice(self, room_id: str, month: int, year: int) -> Invoice:
        """Ask the backend to build the invoice for a room and period."""
        payload = InvoiceGenerate(room_id=room_id, month=month, year=year)
        response = await self._request(
            "POST",
            "/invoices/generate",
            "Failed to generate invoice",
            json=payload.model_dump(by_alias=True),
        )
        return Invoice.model_validate(response.json())

    async def get_invoices(self, room_id: str | None = None) -> list[Invoice]:
        """All invoices, optionally for one room."""
        return await self._get_list(
            "/invoices", Invoice, "Failed to fetch invoices", roomId=room_id
        )

    async def get_payments(
        self,
        room: str | None = None,
        status: PaymentStatus | None = None,
    ) -> list[Payment]:
        """Payments filtered by room number and status."""
        return await self._get_list(
            "/payments",
            Payment,
            "Failed to fetch payments",
            room=room,
            status=status.value if status else None,
        )

    async def review_slip(self, review: SlipReview) -> Payment:
        """Verify or reject a payment slip."""
        response = await self._request(
            "POST",
            "/payments/slipok",
            "Failed to confirm slip",
            json=review.model_dump(mode="json", by_alias=True),
        )
        return Payment.model_validate(response.json())

    # Maintenance

    async def get_maintenance_requests(self, room_id: str | None = None) -> list[MaintenanceRequest]:
        """All maintenance tickets, optionally for one room."""
        return await self._get_list(
            "/maintenance-requests",
            MaintenanceRequest,
            "Failed to fetch maintenance requests",
            roomId=room_id,
        )

    async def create_maintenance_request(
        self, request: MaintenanceRequestCreate
    ) -> MaintenanceRequest:
        """Open a maintenance ticket."""
        response = await self._request(
            "POST",
            "/maintenance-requests",
            "Failed to create maintenance request",
            json=request.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
        return MaintenanceRequest.model_validate(response.json())

    async def update_maintenance_status(
        self, request_id: str, update: MaintenanceStatusUpdate
    ) -> MaintenanceRequest:
        """Move a ticket to another status."""
        response = await self._request(
            "PATCH",
            f"/maintenance-requests/{request_id}",
            "Failed to update maintenance request",
            json=update.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
        return MaintenanceRequest.model_validate(response.json())


class ClientFactory:
    """Builds short-lived clients against one backend base URL."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self.transport = transport

    def __call__(self, token: str | None = None) -> BackendClient:
        return BackendClient(
            self.base_url,
            token=token,
            timeout=self.timeout,
            transport=self.transport,
        )
