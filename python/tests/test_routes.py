"""HTTP tests for page, accept, artifact and notification routes.

Accept pipelines run in the TestClient's event loop; leaving the client
context runs the app shutdown, which drains them. Assertions on recorded
acceptances are therefore made after the `with` block.
"""

import httpx
import pytest
import respx
from fastapi.testclient import TestClient

from valentine.app import create_app
from valentine.services.acceptance import get_acceptance, record_acceptance
from valentine.services.notifications import RESEND_EMAILS_URL, ResendEmailClient
from valentine.storage import FakeStorageClient
from tests.fixtures import DEMO_CREATOR_EMAIL, DEMO_PAGE_ID
from tests.helpers import FAKE_PNG, insert_page


class TestCreateAndReadPage:
    def test_create_page(self, client):
        response = client.post(
            "/pages",
            json={"sender_name": "Alex", "creator_email": DEMO_CREATOR_EMAIL, "theme": "purple"},
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["share_link"] == f"https://valentine.test/v/{data['id']}"

        page = client.get(f"/pages/{data['id']}").json()["data"]
        assert page["sender_name"] == "Alex"
        assert page["theme"] == "purple"
        assert page["accepted"] is False
        assert "creator_email" not in page

    def test_blank_sender_name(self, client):
        response = client.post("/pages", json={"sender_name": "  "})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "E_SENDER_NAME_REQUIRED"

    def test_invalid_theme(self, client):
        response = client.post("/pages", json={"sender_name": "Alex", "theme": "green"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "E_INVALID_THEME"

    def test_missing_sender_name(self, client):
        response = client.post("/pages", json={})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "E_INVALID_REQUEST"

    def test_malformed_json(self, client):
        response = client.post(
            "/pages", content=b"{not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Malformed JSON body"

    def test_missing_page(self, client):
        response = client.get("/pages/nope")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "E_PAGE_NOT_FOUND"


class TestAcceptRoute:
    def test_accept_runs_pipeline(self, app, db_session, call_log, fake_storage):
        insert_page(db_session)

        with TestClient(app) as client:
            response = client.post(f"/pages/{DEMO_PAGE_ID}/accept", json={"receiverName": "Sam"})

            assert response.status_code == 200
            data = response.json()["data"]
            assert data["state"] == "accepted"
            assert data["started"] is True

        assert len(call_log.of("capture")) == 1
        assert len(fake_storage.paths) == 1
        event = get_acceptance(db_session, DEMO_PAGE_ID)
        assert event is not None
        assert event.screenshot_url == fake_storage.get_public_url(fake_storage.paths[0])

    def test_accept_without_body(self, app, db_session):
        insert_page(db_session)

        with TestClient(app) as client:
            response = client.post(f"/pages/{DEMO_PAGE_ID}/accept")
            assert response.status_code == 200

        assert get_acceptance(db_session, DEMO_PAGE_ID) is not None

    def test_second_accept_is_noop(self, app, db_session, call_log):
        insert_page(db_session)

        with TestClient(app) as client:
            first = client.post(f"/pages/{DEMO_PAGE_ID}/accept").json()["data"]
            second = client.post(f"/pages/{DEMO_PAGE_ID}/accept").json()["data"]

        assert first["started"] is True
        assert second["started"] is False
        assert second["state"] == "accepted"
        assert len(call_log.of("capture")) == 1

    def test_already_accepted_page(self, app, db_session, call_log):
        insert_page(db_session)
        record_acceptance(db_session, DEMO_PAGE_ID, "https://img/old.png")

        with TestClient(app) as client:
            data = client.post(f"/pages/{DEMO_PAGE_ID}/accept").json()["data"]

        assert data["started"] is False
        assert data["screenshot_url"] == "https://img/old.png"
        assert call_log.calls == []

    def test_accept_missing_page(self, client):
        response = client.post("/pages/nope/accept")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "E_PAGE_NOT_FOUND"

    def test_accept_without_screenshots(self, session_factory, db_session):
        """With no rasterizer the acceptance is still recorded, without image."""
        insert_page(db_session)
        app = create_app(session_factory=session_factory, log_requests=False)

        with TestClient(app) as client:
            client.post(f"/pages/{DEMO_PAGE_ID}/accept")

        event = get_acceptance(db_session, DEMO_PAGE_ID)
        assert event is not None
        assert event.screenshot_url is None


class TestArtifactRoute:
    def test_not_accepted(self, client, db_session):
        insert_page(db_session)

        response = client.get(f"/pages/{DEMO_PAGE_ID}/artifact")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "E_NOT_ACCEPTED"

    def test_redirects_to_stored_screenshot(self, client, db_session):
        insert_page(db_session)
        record_acceptance(db_session, DEMO_PAGE_ID, "https://img/old.png")

        response = client.get(f"/pages/{DEMO_PAGE_ID}/artifact", follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"] == "https://img/old.png"

    def test_fresh_capture_as_attachment(self, client, db_session, fake_storage):
        insert_page(db_session)
        record_acceptance(db_session, DEMO_PAGE_ID, None)

        response = client.get(f"/pages/{DEMO_PAGE_ID}/artifact")

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert (
            response.headers["content-disposition"]
            == f'attachment; filename="valentine-{DEMO_PAGE_ID}.png"'
        )
        assert response.content == FAKE_PNG
        assert fake_storage.paths == []

    def test_unavailable_without_rasterizer(self, session_factory, db_session):
        insert_page(db_session)
        record_acceptance(db_session, DEMO_PAGE_ID, None)
        app = create_app(
            session_factory=session_factory, storage_client=FakeStorageClient(), log_requests=False
        )

        with TestClient(app) as client:
            response = client.get(f"/pages/{DEMO_PAGE_ID}/artifact")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "E_ARTIFACT_UNAVAILABLE"


class TestNotifyYesRoute:
    def test_camel_case_body_without_creator_email(self, client, db_session):
        insert_page(db_session)

        response = client.post(
            "/notify-yes", json={"pageId": DEMO_PAGE_ID, "screenshotUrl": "https://img/1.png"}
        )

        assert response.status_code == 200
        assert response.json()["data"] == {
            "sent": False,
            "message": "No email configured",
            "email_id": None,
        }

    def test_missing_page(self, client):
        response = client.post("/notify-yes", json={"page_id": "nope"})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "E_PAGE_NOT_FOUND"

    def test_missing_page_id(self, client):
        response = client.post("/notify-yes", json={})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "E_INVALID_REQUEST"

    @pytest.fixture
    def email_app(self, session_factory):
        email_client = ResendEmailClient(httpx.AsyncClient(), "re_test_key", "Valentine <hi@x.io>")
        return create_app(
            session_factory=session_factory, email_client=email_client, log_requests=False
        )

    @respx.mock
    def test_sends_email(self, email_app, db_session):
        insert_page(db_session, creator_email=DEMO_CREATOR_EMAIL)
        respx.post(RESEND_EMAILS_URL).respond(200, json={"id": "email-1"})

        with TestClient(email_app) as client:
            response = client.post("/notify-yes", json={"page_id": DEMO_PAGE_ID})

        assert response.status_code == 200
        assert response.json()["data"]["sent"] is True
        assert response.json()["data"]["email_id"] == "email-1"

    @respx.mock
    def test_delivery_failure(self, email_app, db_session):
        insert_page(db_session, creator_email=DEMO_CREATOR_EMAIL)
        respx.post(RESEND_EMAILS_URL).respond(500)

        with TestClient(email_app) as client:
            response = client.post("/notify-yes", json={"pageId": DEMO_PAGE_ID})

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "E_NOTIFY_FAILED"
