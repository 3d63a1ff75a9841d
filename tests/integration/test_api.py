"""
Integration tests for the HTTP surface.

Requests go through the full FastAPI stack: identity resolution, request
validation, workflow execution against the in-memory store and the error
mapping to status codes.
"""

from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from educrm.api.app import create_app


class TestAuthentication:
    """Test cases for identity and role checks."""

    def test_health_needs_no_user(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_missing_user_is_401(self, client):
        response = client.post("/students/at-risk", json={"run_for_all": True})

        assert response.status_code == 401
        assert response.json() == {"error": "No authenticated user on request"}

    def test_admin_routes_reject_regular_users(self, client, user_headers):
        """Test that every admin-only route answers 403 to a non-admin."""
        requests = [
            ("/reports/custom", {"report_type": "pipeline_overview"}),
            ("/insights/crm", {"report_type": "all"}),
            ("/reminders/process", None),
        ]
        for path, body in requests:
            response = client.post(path, json=body, headers=user_headers)

            assert response.status_code == 403, path
            assert response.json() == {"error": "Admin access required"}

    def test_correlation_id_is_echoed(self, client):
        response = client.get("/health", headers={"X-Correlation-Id": "trace-42"})

        assert response.headers["X-Correlation-Id"] == "trace-42"

    def test_correlation_id_is_generated(self, client):
        response = client.get("/health")

        assert response.headers["X-Correlation-Id"]


class TestErrorMapping:
    """Test cases for the status codes of each error class."""

    def test_body_validation_is_400(self, client, user_headers):
        response = client.post(
            "/applications/parse-status-email",
            json={"email_subject": "", "email_body": "x", "student_email": "a@b.c"},
            headers=user_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request body"
        assert response.json()["details"]

    def test_workflow_input_error_is_400(self, client, user_headers):
        response = client.post("/students/at-risk", json={}, headers=user_headers)

        assert response.status_code == 400
        assert response.json() == {"error": "student_id or run_for_all is required"}

    def test_unknown_report_type_is_400(self, client, admin_headers):
        response = client.post(
            "/reports/custom", json={"report_type": "bogus"}, headers=admin_headers
        )

        assert response.status_code == 400

    def test_missing_entity_is_404(self, client, user_headers):
        response = client.post(
            "/matching", json={"student_profile_id": "nope"}, headers=user_headers
        )

        assert response.status_code == 404
        assert response.json() == {"error": "StudentProfile not found: nope"}

    def test_illegal_transition_is_409(self, client, store, user_headers):
        application = store["Application"].create({"student_id": "s1", "status": "draft"})

        response = client.post(
            f"/applications/{application.id}/transition",
            json={"status": "enrolled"},
            headers=user_headers,
        )

        assert response.status_code == 409
        assert "cannot move from 'draft' to 'enrolled'" in response.json()["error"]
        assert store["Application"].get(application.id).status == "draft"

    def test_off_schema_reasoning_is_502(self, client, store, backend, user_headers):
        """Test that a schema violation is reported without leaking the raw output."""
        inquiry = store["Inquiry"].create({"name": "Ana", "email": "ana@example.com"})
        backend.script("Lead Score", {"lead_score": "very high"})

        response = client.post(
            f"/leads/{inquiry.id}/score",
            headers={**user_headers, "X-Correlation-Id": "trace-7"},
        )

        assert response.status_code == 502
        assert response.json() == {
            "error": "Reasoning output failed validation",
            "details": "trace-7",
        }

    def test_unexpected_error_is_sanitized_500(self, params, reasoner, mailer, user_headers):
        """Test that internal failures return a generic body and the correlation id."""
        broken_store = MagicMock()
        broken_store.__getitem__.side_effect = RuntimeError("disk on fire")
        app = create_app(store=broken_store, reasoner=reasoner, params=params, mailer=mailer)
        client = TestClient(app, raise_server_exceptions=False)

        response = client.post(
            "/applications/a1/transition",
            json={"status": "submitted"},
            headers={**user_headers, "X-Correlation-Id": "trace-9"},
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error", "details": "trace-9"}
        assert "disk on fire" not in response.text


class TestWorkflows:
    """Test cases for workflows reached over HTTP."""

    def test_score_inquiry(self, client, store, backend, user_headers):
        inquiry = store["Inquiry"].create({"name": "Ana", "email": "ana@example.com"})
        backend.script("Lead Score", {"lead_score": 90, "lead_quality": "hot"})

        response = client.post(f"/leads/{inquiry.id}/score", headers=user_headers)

        assert response.status_code == 200
        assert response.json()["lead_quality"] == "qualified"
        assert store["Inquiry"].get(inquiry.id).lead_score == 90

    def test_legal_transition(self, client, store, user_headers):
        application = store["Application"].create({"student_id": "s1", "status": "draft"})

        response = client.post(
            f"/applications/{application.id}/transition",
            json={"status": "submitted", "notes": "Sent via portal"},
            headers=user_headers,
        )

        assert response.status_code == 200
        assert response.json()["application"]["status"] == "submitted"

    def test_report_as_csv(self, client, store, admin_headers):
        """Test that format=csv returns an attachment."""
        store["StudentProfile"].create({"first_name": "Ana", "status": "enrolled"})

        response = client.post(
            "/reports/custom",
            json={"report_type": "pipeline_overview", "format": "csv"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        disposition = response.headers["content-disposition"]
        assert disposition.startswith('attachment; filename="pipeline_overview_')
        assert disposition.endswith('.csv"')

    def test_report_as_json(self, client, store, admin_headers):
        response = client.post(
            "/reports/custom", json={"report_type": "pipeline_overview"}, headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()["report_name"] == "Pipeline Overview"
        assert "generated_at" in response.json()

    def test_submit_quiz(self, client, store, user_headers):
        training = store["PartnerTraining"].create(
            {"learning_path": [{"module_id": "m1", "status": "available"}, {"module_id": "m2"}]}
        )

        response = client.post(
            f"/training/{training.id}/quiz",
            json={
                "module_id": "m1",
                "answers": {"0": "a"},
                "questions": [{"question": "Q1", "correct_answer": "a"}],
            },
            headers=user_headers,
        )

        assert response.status_code == 200
        assert response.json()["passed"] is True
        assert response.json()["overall_progress"] == 50

    def test_bulk_email(self, client, store, mailer, user_headers):
        store["StudentProfile"].create({"first_name": "Ana", "email": "ana@example.com"})

        response = client.post(
            "/messaging/bulk-email",
            json={"subject": "News", "body": "Hi {{name}}"},
            headers=user_headers,
        )

        assert response.status_code == 200
        assert response.json()["sent"] == 1
        assert mailer.sent[0]["body"] == "Hi Ana"

    def test_process_reminders_as_admin(self, client, admin_headers):
        response = client.post("/reminders/process", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["message"] == "Processed 0 reminders with 0 errors"
