"""Shared fixtures: an in-process fake backend and an in-memory batch journal."""

import json
import os
from itertools import count

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("LIVE_REFRESH_ENABLED", "false")
os.environ.setdefault("DEBUG", "true")

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from dormdesk.core.database import Base  # noqa: E402
from dormdesk.main import app  # noqa: E402
from dormdesk.services.backend_client import BackendClient, ClientFactory  # noqa: E402
from dormdesk.services.batch import BatchJournal  # noqa: E402
from dormdesk.web.dependencies import get_client_factory, get_journal  # noqa: E402

BACKEND_URL = "http://backend.test"

OWNER = {
    "id": "u1",
    "username": "owner",
    "name": "Owner One",
    "role": "OWNER",
    "permissions": [],
    "lineUserId": "U-owner",
}


class FakeBackend:
    """In-memory stand-in for the property-management REST API."""

    def __init__(self) -> None:
        self.buildings: list[dict] = []
        self.rooms: list[dict] = []
        self.contracts: list[dict] = []
        self.readings: list[dict] = []
        self.invoices: list[dict] = []
        self.payments: list[dict] = []
        self.maintenance: list[dict] = []
        self.users: dict[str, tuple[str, dict]] = {}
        self.staff_line_ids: set[str] = set()

        # Failure hooks
        self.fail_reading_for: set[str] = set()
        self.fail_invoice_for: set[str] = set()
        self.invoice_without_id: set[str] = set()
        self.fail_paths: set[str] = set()

        self.calls: list[tuple[str, str]] = []
        self.bodies: list[tuple[str, str, dict]] = []
        self._ids = count(1)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def client(self, token: str | None = None) -> BackendClient:
        return BackendClient(BACKEND_URL, token=token, transport=self.transport())

    def factory(self) -> ClientFactory:
        return ClientFactory(BACKEND_URL, transport=self.transport())

    def add_user(self, user: dict, password: str = "secret") -> None:
        self.users[user["username"]] = (password, user)

    def posted(self, path: str) -> list[dict]:
        """Bodies of every POST made to ``path``, in order."""
        return [body for method, p, body in self.bodies if method == "POST" and p == path]

    def _user_for_token(self, request: httpx.Request) -> dict | None:
        header = request.headers.get("Authorization", "")
        token = header.removeprefix("Bearer ")
        for _, user in self.users.values():
            if token == f"tok-{user['username']}":
                return user
        return None

    def handle(self, request: httpx.Request) -> httpx.Response:
        method = request.method
        path = request.url.path
        params = request.url.params
        self.calls.append((method, path))
        body = json.loads(request.content) if request.content else {}
        if body:
            self.bodies.append((method, path, body))

        if path in self.fail_paths:
            return httpx.Response(500, json={"message": f"{path} is down"})

        if (method, path) == ("POST", "/auth/login"):
            password, user = self.users.get(body.get("username"), (None, None))
            if user is None or password != body.get("password"):
                return httpx.Response(401, json={"message": "Invalid credentials"})
            return httpx.Response(200, json={"access_token": f"tok-{user['username']}", "user": user})

        if (method, path) == ("POST", "/auth/login-line"):
            for _, user in self.users.values():
                if user.get("lineUserId") == body.get("lineUserId"):
                    return httpx.Response(
                        200, json={"access_token": f"tok-{user['username']}", "user": user}
                    )
            return httpx.Response(401, json={"message": "LINE user is not linked"})

        if (method, path) == ("GET", "/auth/profile"):
            user = self._user_for_token(request)
            if user is None:
                return httpx.Response(401, json={"message": "Unauthorized"})
            return httpx.Response(200, json=user)

        if (method, path) == ("GET", "/line/is-staff"):
            return httpx.Response(200, json={"isStaff": params.get("userId") in self.staff_line_ids})

        if (method, path) == ("GET", "/buildings"):
            return httpx.Response(200, json=self.buildings)
        if (method, path) == ("GET", "/rooms"):
            return httpx.Response(200, json=self.rooms)
        if (method, path) == ("GET", "/contracts"):
            return httpx.Response(200, json=self.contracts)

        if (method, path) == ("GET", "/meter-readings"):
            result = self.readings
            for key in ("roomId", "month", "year"):
                if key in params:
                    result = [r for r in result if str(r[key]) == params[key]]
            return httpx.Response(200, json=result)

        if (method, path) == ("POST", "/meter-readings"):
            if body["roomId"] in self.fail_reading_for:
                return httpx.Response(500, json={"message": "Database unavailable"})
            reading = {"id": f"mr-{next(self._ids)}", **body}
            self.readings.append(reading)
            return httpx.Response(201, json=reading)

        if (method, path) == ("POST", "/invoices/generate"):
            room_id = body["roomId"]
            if room_id in self.fail_invoice_for:
                return httpx.Response(400, json={"message": ["No active contract for room"]})
            if room_id in self.invoice_without_id:
                return httpx.Response(201, json={})
            invoice = {
                "id": f"inv-{next(self._ids)}",
                "month": body["month"],
                "year": body["year"],
                "totalAmount": 3500,
                "status": "DRAFT",
                "contract": {
                    "id": "c",
                    "tenantId": "t",
                    "roomId": room_id,
                    "isActive": True,
                    "room": next((r for r in self.rooms if r["id"] == room_id), None),
                },
            }
            self.invoices.append(invoice)
            return httpx.Response(201, json=invoice)

        if (method, path) == ("GET", "/invoices"):
            return httpx.Response(200, json=self.invoices)

        if (method, path) == ("GET", "/payments"):
            result = self.payments
            if "status" in params:
                result = [p for p in result if p["status"] == params["status"]]
            return httpx.Response(200, json=result)

        if (method, path) == ("POST", "/payments/slipok"):
            for payment in self.payments:
                if payment["id"] == body.get("paymentId"):
                    payment["status"] = body["status"]
                    return httpx.Response(201, json=payment)
            return httpx.Response(404, json={"message": "Payment not found"})

        if (method, path) == ("GET", "/maintenance-requests"):
            return httpx.Response(200, json=self.maintenance)

        if (method, path) == ("POST", "/maintenance-requests"):
            ticket = {"id": f"m-{next(self._ids)}", "status": "PENDING", **body}
            self.maintenance.append(ticket)
            return httpx.Response(201, json=ticket)

        if method == "PATCH" and path.startswith("/maintenance-requests/"):
            ticket_id = path.rsplit("/", 1)[1]
            for ticket in self.maintenance:
                if ticket["id"] == ticket_id:
                    ticket.update(body)
                    return httpx.Response(200, json=ticket)
            return httpx.Response(404, json={"message": "Maintenance request not found"})

        return httpx.Response(404, json={"message": "Not found"})


def seed_dorm(backend: FakeBackend, month: int = 5, year: int = 2024) -> None:
    """Two buildings, four rooms, one active contract, last month's readings."""
    backend.buildings = [
        {"id": "b-main", "name": "Main", "code": "A", "floors": 3},
        {"id": "b-annex", "name": "บ้านน้อย", "code": "N", "floors": 1},
    ]
    backend.rooms = [
        {"id": "r101", "number": "101", "floor": 1, "status": "OCCUPIED", "buildingId": "b-main"},
        {"id": "r102", "number": "102", "floor": 1, "status": "VACANT", "buildingId": "b-main"},
        {"id": "r103", "number": "103", "floor": 1, "status": "VACANT", "buildingId": "b-main"},
        {"id": "rN1", "number": "1", "floor": 1, "status": "VACANT", "buildingId": "b-annex"},
    ]
    backend.contracts = [
        {
            "id": "c1",
            "tenantId": "t1",
            "roomId": "r101",
            "isActive": True,
            "tenant": {"id": "t1", "name": "Somchai"},
        }
    ]
    prev_month, prev_year = (12, year - 1) if month == 1 else (month - 1, year)
    backend.readings = [
        {
            "id": "old-101",
            "roomId": "r101",
            "month": prev_month,
            "year": prev_year,
            "waterReading": 100,
            "electricReading": 1000,
            "createdAt": "2024-04-25T10:00:00Z",
        },
        {
            "id": "old-102",
            "roomId": "r102",
            "month": prev_month,
            "year": prev_year,
            "waterReading": 200,
            "electricReading": 2000,
            "createdAt": "2024-04-25T10:00:00Z",
        },
    ]
    backend.add_user(OWNER)


@pytest.fixture
def backend() -> FakeBackend:
    fake = FakeBackend()
    seed_dorm(fake)
    return fake


@pytest.fixture
def journal() -> BatchJournal:
    """Batch journal on an in-memory database."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return BatchJournal(sessionmaker(autocommit=False, autoflush=False, bind=engine))


@pytest.fixture
def client(backend, journal):
    """Test client wired to the fake backend and the in-memory journal."""
    app.dependency_overrides[get_client_factory] = backend.factory
    app.dependency_overrides[get_journal] = lambda: journal
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def staff_client(client):
    """Test client logged in as the owner."""
    response = client.post(
        "/login",
        data={"username": "owner", "password": "secret", "next_url": "/"},
        follow_redirects=False,
    )
    assert response.status_code == 303
    return client
