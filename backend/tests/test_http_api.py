"""
HTTP 接口测试（FastAPI TestClient）

运行方式：
    pytest backend/tests/test_http_api.py -v
"""
import time

import pytest
from fastapi.testclient import TestClient

from dashhub import crud
from dashhub.core.enums import ExportFormat, PermissionLevel, Role
from dashhub.core.security import create_access_token
from dashhub.main import create_app
from dashhub.services.container import ServiceContainer
from dashhub.services.report_renderer import ReportArtifact


class FakeRenderer:
    def render_dashboard(self, dashboard_id, fmt=ExportFormat.PDF):
        return ReportArtifact(filename=f"report-{dashboard_id}.pdf", content=b"%PDF", mime_type="application/pdf")


class FakeTransport:
    def __init__(self):
        self.sent = []

    def send(self, to_email, subject, attachments, html_body=None):
        self.sent.append(to_email)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def client(session_factory, transport):
    services = ServiceContainer(
        session_factory=session_factory,
        renderer=FakeRenderer(),
        transport=transport,
    )
    with TestClient(create_app(services)) as test_client:
        yield test_client


def auth(user):
    token = create_access_token(user.id, Role(user.role))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def owner(make_user):
    return make_user(email="owner@example.com", role=Role.ANALYST)


@pytest.fixture
def member(make_user):
    return make_user(email="member@example.com", role=Role.ANALYST)


@pytest.fixture
def viewer(make_user):
    return make_user(email="viewer@example.com", role=Role.VIEWER)


@pytest.fixture
def dashboard(make_dashboard, owner):
    return make_dashboard(owner, title="Revenue")


class TestAuthentication:

    def test_missing_token(self, client, dashboard):
        response = client.get(f"/api/dashboards/{dashboard.id}/permission")
        assert response.status_code == 401
        assert response.json()["error"] == "unauthenticated"

    def test_invalid_token(self, client, dashboard):
        response = client.get(
            f"/api/dashboards/{dashboard.id}/permission", headers={"Authorization": "Bearer garbage"}
        )
        assert response.status_code == 401

    def test_stored_role_overrides_token_claim(self, client, make_dashboard, viewer):
        dashboard = make_dashboard(viewer)
        token = create_access_token(viewer.id, Role.ADMIN)
        response = client.post(
            "/api/schedules/",
            json={
                "name": "Weekly",
                "cron_expr": "0 9 * * 1",
                "dashboard_id": dashboard.id,
                "recipients": ["a@x.com"],
            },
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 403
        assert response.json()["error"] == "insufficient_permissions"

    def test_token_for_deleted_user(self, client, db, dashboard, member):
        headers = auth(member)
        crud.user.remove(db, id=member.id)

        response = client.get(f"/api/dashboards/{dashboard.id}/permission", headers=headers)
        assert response.status_code == 401


class TestDashboardPermissions:

    def test_owner_permission(self, client, dashboard, owner):
        body = client.get(f"/api/dashboards/{dashboard.id}/permission", headers=auth(owner)).json()
        assert body == {"dashboard_id": dashboard.id, "permission": "ADMIN", "has_access": True}

    def test_public_dashboard_grants_view(self, client, make_dashboard, owner, member):
        public = make_dashboard(owner, is_public=True)
        body = client.get(f"/api/dashboards/{public.id}/permission", headers=auth(member)).json()
        assert body["permission"] == "VIEW"

    def test_missing_dashboard_is_404(self, client, member):
        response = client.get("/api/dashboards/424242/permission", headers=auth(member))
        assert response.status_code == 404
        assert response.json()["error"] == "dashboard_not_found"

    def test_view_share_cannot_update(self, client, db, dashboard, member):
        crud.crud_dashboard_share.upsert(
            db, dashboard_id=dashboard.id, user_id=member.id, permission=PermissionLevel.VIEW
        )
        response = client.put(
            f"/api/dashboards/{dashboard.id}", json={"title": "Renamed"}, headers=auth(member)
        )
        assert response.status_code == 403
        assert response.json()["error"] == "insufficient_permissions"

    def test_edit_share_can_update_but_not_delete(self, client, db, dashboard, member):
        crud.crud_dashboard_share.upsert(
            db, dashboard_id=dashboard.id, user_id=member.id, permission=PermissionLevel.EDIT
        )
        response = client.put(
            f"/api/dashboards/{dashboard.id}", json={"title": "Renamed"}, headers=auth(member)
        )
        assert response.status_code == 200
        assert response.json()["title"] == "Renamed"
        assert response.json()["permission_level"] == "EDIT"

        response = client.delete(f"/api/dashboards/{dashboard.id}", headers=auth(member))
        assert response.status_code == 403
        assert response.json()["error"] == "only_owner_can_delete"

    def test_owner_delete_is_soft(self, client, db, dashboard, owner):
        assert client.delete(f"/api/dashboards/{dashboard.id}", headers=auth(owner)).status_code == 200
        assert client.get(f"/api/dashboards/{dashboard.id}", headers=auth(owner)).status_code == 404


class TestShareEndpoints:

    def test_share_lifecycle(self, client, dashboard, owner, member):
        response = client.post(
            f"/api/dashboards/{dashboard.id}/share",
            json={"email": "member@example.com", "permission": "VIEW"},
            headers=auth(owner),
        )
        assert response.status_code == 200
        assert response.json()["user_id"] == member.id

        shares = client.get(f"/api/dashboards/{dashboard.id}/share", headers=auth(owner)).json()
        assert [s["user"]["email"] for s in shares] == ["member@example.com"]

        shared = client.get("/api/dashboards/shared", headers=auth(member)).json()["items"]
        assert shared[0]["title"] == "Revenue"
        assert shared[0]["shared_permission"] == "VIEW"
        assert shared[0]["owner"]["email"] == "owner@example.com"

        response = client.patch(
            f"/api/dashboards/{dashboard.id}/share/{member.id}",
            json={"permission": "EDIT"},
            headers=auth(owner),
        )
        assert response.json()["permission"] == "EDIT"

        assert client.delete(
            f"/api/dashboards/{dashboard.id}/share/{member.id}", headers=auth(owner)
        ).status_code == 200
        response = client.delete(f"/api/dashboards/{dashboard.id}/share/{member.id}", headers=auth(owner))
        assert response.status_code == 404
        assert response.json()["error"] == "share_not_found"

    def test_admin_permission_rejected(self, client, dashboard, owner, member):
        response = client.post(
            f"/api/dashboards/{dashboard.id}/share",
            json={"user_id": member.id, "permission": "ADMIN"},
            headers=auth(owner),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_permission"

    def test_non_owner_cannot_share(self, client, dashboard, member, viewer):
        response = client.post(
            f"/api/dashboards/{dashboard.id}/share",
            json={"user_id": viewer.id, "permission": "VIEW"},
            headers=auth(member),
        )
        assert response.status_code == 403
        assert response.json()["error"] == "not_owner"

    def test_share_list_owner_only(self, client, dashboard, member):
        response = client.get(f"/api/dashboards/{dashboard.id}/share", headers=auth(member))
        assert response.status_code == 403


class TestScheduleEndpoints:

    def schedule_payload(self, dashboard_id, **overrides):
        payload = {
            "name": "Weekly Revenue",
            "cron_expr": "0 9 * * 1",
            "dashboard_id": dashboard_id,
            "recipients": ["a@x.com"],
        }
        payload.update(overrides)
        return payload

    def test_viewer_cannot_create(self, client, make_dashboard, viewer):
        dashboard = make_dashboard(viewer)
        response = client.post("/api/schedules/", json=self.schedule_payload(dashboard.id), headers=auth(viewer))
        assert response.status_code == 403
        assert response.json()["error"] == "insufficient_permissions"

    def test_invalid_cron(self, client, dashboard, owner):
        response = client.post(
            "/api/schedules/", json=self.schedule_payload(dashboard.id, cron_expr="* * *"), headers=auth(owner)
        )
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_cron_expression"

    def test_create_toggle_and_list(self, client, dashboard, owner):
        created = client.post("/api/schedules/", json=self.schedule_payload(dashboard.id), headers=auth(owner))
        assert created.status_code == 200
        body = created.json()
        assert body["description"] == "Weekly on day 1 at 9:00"
        assert body["is_active"] is True
        assert body["formats"] == ["PDF"]
        services = client.app.state.services
        assert services.registry.has_job(body["id"])

        toggled = client.post(f"/api/schedules/{body['id']}/toggle", headers=auth(owner)).json()
        assert toggled["is_active"] is False
        assert services.registry.has_job(body["id"]) is False

        listed = client.get("/api/schedules/", headers=auth(owner)).json()
        assert [s["id"] for s in listed] == [body["id"]]

    def test_other_user_cannot_read_schedule(self, client, dashboard, owner, member):
        created = client.post("/api/schedules/", json=self.schedule_payload(dashboard.id), headers=auth(owner)).json()
        response = client.get(f"/api/schedules/{created['id']}", headers=auth(member))
        assert response.status_code == 403

    def test_run_now_records_execution(self, client, dashboard, owner, transport):
        created = client.post("/api/schedules/", json=self.schedule_payload(dashboard.id), headers=auth(owner)).json()

        response = client.post(f"/api/schedules/{created['id']}/run", headers=auth(owner))
        assert response.json() == {"schedule_id": created["id"], "triggered": True}

        executions = []
        for _ in range(50):
            executions = client.get(f"/api/schedules/{created['id']}/executions", headers=auth(owner)).json()
            if executions:
                break
            time.sleep(0.1)

        assert executions[0]["status"] == "SUCCESS"
        assert transport.sent == ["a@x.com"]
