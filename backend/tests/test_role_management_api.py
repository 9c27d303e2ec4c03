import uuid
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from campaign_admin.admin.permissions import ALL_PERMISSIONS, AdminRole
from campaign_admin.config import settings
from campaign_admin.dependencies import get_role_management_service
from campaign_admin.main import app
from campaign_admin.services.admin.duplicate_request import DuplicateRequestSuppressor
from tests.role_helpers import (
    FakeClock,
    InMemoryAdministratorStore,
    RecordingAuditSink,
    make_admin,
    make_service,
)

BASE = "/admin/manage-roles"
ROOT_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")


def _token(actor_id: uuid.UUID = ROOT_ID, role: str = "SuperAdmin", **claims) -> str:
    payload = {
        "sub": str(actor_id),
        "role": role,
        "name": "Root",
        "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
        **claims,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def _auth(**kwargs) -> dict[str, str]:
    return {"Authorization": f"Bearer {_token(**kwargs)}"}


@pytest.fixture
def dedup_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def alice():
    return make_admin(name="Alice", email="alice@example.com", version=3)


@pytest.fixture
def root():
    return make_admin(
        name="Root", email="root@example.com", role=AdminRole.SUPER_ADMIN, admin_id=ROOT_ID
    )


@pytest.fixture
def store(alice, root) -> InMemoryAdministratorStore:
    return InMemoryAdministratorStore(alice, root)


@pytest.fixture
def audit() -> RecordingAuditSink:
    return RecordingAuditSink()


@pytest.fixture
def client(store, audit, dedup_clock):
    service = make_service(
        store,
        audit=audit,
        suppressor=DuplicateRequestSuppressor(window_ms=3000, clock=dedup_clock),
    )
    app.dependency_overrides[get_role_management_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_requires_bearer_token(client) -> None:
    response = client.get(f"{BASE}/admins")

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTH_ERROR"


def test_rejects_expired_token(client) -> None:
    expired = datetime.now(timezone.utc) - timedelta(minutes=1)
    response = client.get(f"{BASE}/admins", headers=_auth(exp=expired))

    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Token has expired"


def test_rejects_non_super_admin(client) -> None:
    response = client.get(f"{BASE}/admins", headers=_auth(role="Admin"))

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "PERMISSION_DENIED"


def test_list_admins(client, alice, root) -> None:
    response = client.get(f"{BASE}/admins", headers=_auth())

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 2
    assert {admin["id"] for admin in body["admins"]} == {str(alice.id), str(root.id)}


def test_get_admin_includes_version(client, alice) -> None:
    response = client.get(f"{BASE}/admins/{alice.id}", headers=_auth())

    assert response.status_code == 200
    body = response.json()
    assert body["version"] == 3
    assert body["role"] == "Admin"
    assert body["access_level"] == 44


def test_get_unknown_admin(client) -> None:
    response = client.get(f"{BASE}/admins/{uuid.uuid4()}", headers=_auth())

    assert response.status_code == 404
    assert response.json()["error"] == {
        "code": "NOT_FOUND",
        "message": "Admin not found",
        "details": None,
    }


def test_malformed_id_is_a_validation_error(client) -> None:
    response = client.get(f"{BASE}/admins/not-a-uuid", headers=_auth())

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_update_admin(client, alice, audit) -> None:
    response = client.put(
        f"{BASE}/admins/{alice.id}",
        json={"name": "Alice B.", "permissions": ["edit_admin", "nope"], "clientVersion": 3},
        headers=_auth(),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["version"] == 4
    assert body["name"] == "Alice B."
    assert body["permissions"] == ["edit_admin"]
    assert body["access_level"] == 25
    assert audit.entries[0].actor_id == ROOT_ID
    assert audit.entries[0].ip_address == "testclient"


def test_update_requires_client_version(client, alice) -> None:
    response = client.put(
        f"{BASE}/admins/{alice.id}", json={"name": "x"}, headers=_auth()
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "MISSING_VERSION"


@pytest.mark.parametrize("client_version", [True, "3", 3.0])
def test_update_rejects_non_integer_client_version(
    client, alice, store, client_version
) -> None:
    response = client.put(
        f"{BASE}/admins/{alice.id}",
        json={"name": "Coerced", "client_version": client_version},
        headers=_auth(),
    )

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"
    assert store.records[alice.id] == alice


def test_update_drops_non_string_permissions(client, alice, store) -> None:
    response = client.put(
        f"{BASE}/admins/{alice.id}",
        json={
            "permissions": ["view_donors", "edit_admin", 7, None, {"name": "x"}],
            "client_version": 3,
        },
        headers=_auth(),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["permissions"] == ["edit_admin", "view_donors"]
    assert body["access_level"] == 29
    assert store.records[alice.id].permissions == ("edit_admin", "view_donors")


def test_stale_update_returns_current_record(client, alice, store) -> None:
    response = client.put(
        f"{BASE}/admins/{alice.id}",
        json={"name": "Late", "client_version": 1},
        headers=_auth(),
    )

    assert response.status_code == 409
    error = response.json()["error"]
    assert error["code"] == "CONCURRENT_EDIT"
    assert error["details"]["version"] == 3
    assert error["details"]["name"] == "Alice"
    assert store.records[alice.id] == alice


def test_duplicate_update_is_throttled(client, alice, dedup_clock) -> None:
    url = f"{BASE}/admins/{alice.id}"
    first = client.put(url, json={"name": "One", "client_version": 3}, headers=_auth())
    dedup_clock.advance_ms(200)
    second = client.put(url, json={"name": "One", "client_version": 4}, headers=_auth())

    assert first.status_code == 200
    assert second.status_code == 429
    assert second.headers["Retry-After"] == "3"
    assert second.json()["error"]["code"] == "DUPLICATE_REQUEST"
    assert second.json()["error"]["details"] == {"retry_after": 3}


def test_super_admin_permissions_cannot_be_edited(client, root) -> None:
    response = client.put(
        f"{BASE}/admins/{root.id}",
        json={"permissions": [], "client_version": 0},
        headers=_auth(actor_id=uuid.uuid4()),
    )

    assert response.status_code == 403


def test_cannot_change_own_role(client, root) -> None:
    response = client.put(
        f"{BASE}/admins/{root.id}",
        json={"role": "Admin", "client_version": 0},
        headers=_auth(),
    )

    assert response.status_code == 403
    assert response.json()["error"]["message"] == "Cannot change your own role"


def test_email_conflict(client, alice) -> None:
    response = client.put(
        f"{BASE}/admins/{alice.id}",
        json={"email": "root@example.com", "client_version": 3},
        headers=_auth(),
    )

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "EMAIL_IN_USE"


def test_history(client, alice) -> None:
    client.put(
        f"{BASE}/admins/{alice.id}",
        json={"name": "Alice C.", "client_version": 3},
        headers=_auth(),
    )

    response = client.get(f"{BASE}/admins/{alice.id}/history", headers=_auth())

    assert response.status_code == 200
    body = response.json()
    assert body["admin_id"] == str(alice.id)
    assert body["admin_name"] == "Alice C."
    assert len(body["history"]) == 1
    assert body["history"][0]["action"] == "Admin Role Updated"
    assert body["history"][0]["actor_name"] == "Root"


def test_role_options(client) -> None:
    response = client.get(f"{BASE}/role-options", headers=_auth())

    assert response.status_code == 200
    body = response.json()
    assert body["roles"] == ["Admin", "SuperAdmin"]
    assert body["permissions"] == list(ALL_PERMISSIONS)
    assert set(body["role_permissions"]) == {"Admin", "SuperAdmin"}


def test_health_reports_database_state(monkeypatch: pytest.MonkeyPatch) -> None:
    client = TestClient(app)

    async def healthy(_engine):
        return None

    async def unhealthy(_engine):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    monkeypatch.setattr("campaign_admin.main.check_database_connection", healthy)
    assert client.get("/health").json() == {"status": "ok"}

    monkeypatch.setattr("campaign_admin.main.check_database_connection", unhealthy)
    response = client.get("/health")
    assert response.status_code == 503
    assert response.json() == {"status": "error"}
