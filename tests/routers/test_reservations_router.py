from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Iterator, List, Optional

import pytest
from fastapi.testclient import TestClient
from spacebook.config import Settings, get_settings
from spacebook.deps import (
    get_current_principal,
    get_invitation_repo,
    get_notifier,
    get_registry,
    get_reservation_repo,
)
from spacebook.domain.errors import ReservationNotFoundError, TransportError
from spacebook.main import app
from spacebook.models import (
    CancellationReason,
    JoinedVia,
    Participant,
    ParticipantRole,
    PrivacyOption,
    Reservation,
    ReservationStatus,
    ReservationType,
)
from spacebook.sessions import SessionRegistry
from spacebook.usecases import invitations as invitation_usecase
from spacebook.usecases import participants as participant_usecase
from spacebook.usecases import reservations as reservation_usecase
from spacebook.utils.auth import Principal

START = datetime(2026, 3, 3, 10, tzinfo=timezone.utc)
TOKEN = "3f2a6c1e-8b4d-4c2a-9e1f-0a7b5c3d2e10"


def _group() -> Reservation:
    return Reservation(
        id="g-1",
        space_id="room-1",
        space_name="Room 2.14",
        start_time=START,
        end_time=START + timedelta(hours=2),
        status=ReservationStatus.CONFIRMED,
        type=ReservationType.GROUP,
        notes="Sprint review",
        organizer_id="org",
        privacy_option=PrivacyOption.PUBLIC,
        participants=[
            Participant(id="p-1", user_id="u-1", role=ParticipantRole.MEMBER, joined_via=JoinedVia.INVITATION, joined_at=START - timedelta(days=1)),
            Participant(id="p-0", user_id="org", role=ParticipantRole.ORGANIZER, joined_via=JoinedVia.DIRECT, joined_at=START - timedelta(days=2)),
        ],
        max_capacity=2,
    )


class FakeResRepo:
    def __init__(self) -> None:
        self.reservations = {"g-1": _group()}
        self.removed: List[str] = []
        self.unreachable = False

    async def get(self, reservation_id: str) -> Reservation:
        if self.unreachable:
            raise TransportError("Unable to reach the reservation service")
        if reservation_id not in self.reservations:
            raise ReservationNotFoundError("reservation not found")
        current = self.reservations[reservation_id]
        return replace(current, participants=list(current.participants))

    async def list_mine(self) -> list[Reservation]:
        return [replace(r) for r in self.reservations.values()]

    async def cancel(self, reservation_id: str, *, reason: CancellationReason, notes: Optional[str]) -> Reservation:
        updated = replace(self.reservations[reservation_id], status=ReservationStatus.CANCELLED)
        self.reservations[reservation_id] = updated
        return replace(updated)

    async def remove_participant(self, reservation_id: str, participant_id: str) -> None:
        self.removed.append(participant_id)
        current = self.reservations[reservation_id]
        self.reservations[reservation_id] = replace(
            current, participants=[p for p in current.participants if p.id != participant_id]
        )


class FakeInvitationRepo:
    def __init__(self) -> None:
        self.created: List[str] = []

    async def create(self, reservation_id: str) -> str:
        self.created.append(reservation_id)
        return TOKEN


class FakeNotifier:
    def __init__(self) -> None:
        self.calls: List[dict[str, Any]] = []

    async def notify(self, reservation: Reservation, **kwargs: Any) -> None:
        self.calls.append(kwargs)


@pytest.fixture
def res_repo() -> FakeResRepo:
    return FakeResRepo()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def principal() -> dict[str, Principal]:
    return {"current": Principal(user_id="org", token="tok")}


@pytest.fixture
def client(
    res_repo: FakeResRepo,
    notifier: FakeNotifier,
    principal: dict[str, Principal],
    monkeypatch: pytest.MonkeyPatch,
) -> Iterator[TestClient]:
    registry = SessionRegistry()
    for module in (reservation_usecase, participant_usecase, invitation_usecase):
        monkeypatch.setattr(module, "emit_audit_log", lambda **kwargs: None)
    app.dependency_overrides[get_current_principal] = lambda: principal["current"]
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_reservation_repo] = lambda: res_repo
    app.dependency_overrides[get_invitation_repo] = lambda: FakeInvitationRepo()
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_settings] = lambda: Settings(public_base_url="https://spaces.example.edu")
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    assert resp.headers["X-Request-ID"]


def test_get_reservation_orders_participants_and_reports_occupancy(client: TestClient) -> None:
    resp = client.get("/reservations/g-1")
    assert resp.status_code == 200
    body = resp.json()
    assert [p["participant_id"] for p in body["participants"]] == ["p-0", "p-1"]
    assert body["occupancy"] == "2/2"
    assert body["is_full"] is True
    assert body["start_time"] == "2026-03-03T10:00:00+00:00"


def test_list_reservations(client: TestClient) -> None:
    resp = client.get("/reservations")
    assert resp.status_code == 200
    assert [r["reservation_id"] for r in resp.json()] == ["g-1"]


def test_missing_reservation_is_404(client: TestClient) -> None:
    assert client.get("/reservations/nope").status_code == 404


def test_unreachable_backend_is_502(client: TestClient, res_repo: FakeResRepo) -> None:
    res_repo.unreachable = True
    resp = client.get("/reservations/g-1")
    assert resp.status_code == 502
    assert resp.json()["detail"] == "Unable to reach the reservation service"


def test_cancel_then_cancel_again(client: TestClient, notifier: FakeNotifier) -> None:
    resp = client.post("/reservations/g-1/cancel", json={"reason": "emergency", "notes": "Fire drill"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"
    assert notifier.calls[0]["recipients"] == ["u-1"]

    again = client.post("/reservations/g-1/cancel", json={"reason": "emergency"})
    assert again.status_code == 409


def test_cancel_with_unknown_reason_is_422(client: TestClient) -> None:
    assert client.post("/reservations/g-1/cancel", json={"reason": "bored"}).status_code == 422


def test_cancel_by_other_user_is_403(client: TestClient, principal: dict[str, Principal]) -> None:
    principal["current"] = Principal(user_id="u-1", token="tok")
    assert client.post("/reservations/g-1/cancel", json={"reason": "other"}).status_code == 403


def test_admin_cancel_is_allowed(client: TestClient, principal: dict[str, Principal], notifier: FakeNotifier) -> None:
    principal["current"] = Principal(user_id="admin-1", is_admin=True, token="tok")
    resp = client.post("/reservations/g-1/cancel", json={"reason": "space-unavailable"})
    assert resp.status_code == 200
    assert notifier.calls[0]["administrative"] is True
    assert notifier.calls[0]["recipients"] == ["org", "u-1"]


def test_remove_participant_requires_confirmation(client: TestClient, res_repo: FakeResRepo) -> None:
    resp = client.delete("/reservations/g-1/participants/p-1")
    assert resp.status_code == 428
    assert res_repo.removed == []


def test_remove_participant_after_confirmation(client: TestClient, res_repo: FakeResRepo) -> None:
    resp = client.delete("/reservations/g-1/participants/p-1", params={"confirm": "true"})
    assert resp.status_code == 200
    assert [p["participant_id"] for p in resp.json()["participants"]] == ["p-0"]
    assert res_repo.removed == ["p-1"]


def test_organizer_cannot_remove_themselves(client: TestClient, res_repo: FakeResRepo) -> None:
    resp = client.delete("/reservations/g-1/participants/p-0", params={"confirm": "true"})
    assert resp.status_code == 403
    assert res_repo.removed == []


def test_calendar_export(client: TestClient) -> None:
    resp = client.get("/reservations/g-1/calendar.ics")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/calendar")
    assert resp.headers["content-disposition"] == 'attachment; filename="reservation-g-1.ics"'
    assert "DTSTART:20260303T100000Z\r\n" in resp.text
    assert "SUMMARY:Reservation: Room 2.14\r\n" in resp.text


def test_share_group_reservation(client: TestClient) -> None:
    resp = client.post("/reservations/g-1/invitation")
    assert resp.status_code == 200
    assert resp.json() == {
        "token": TOKEN,
        "url": f"https://spaces.example.edu/join/{TOKEN}",
        "discoverable": True,
    }


def test_share_by_non_member_is_403(client: TestClient, principal: dict[str, Principal]) -> None:
    principal["current"] = Principal(user_id="u-9", token="tok")
    assert client.post("/reservations/g-1/invitation").status_code == 403
