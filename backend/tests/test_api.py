"""
Marketplace Backend — HTTP API Tests
=====================================

Exercises the assembled app (middleware, exception handlers, auth
dependencies, routers) through an in-process HTTPX client.

What we test:
    ✅ /health reports the database and gateway state
    ✅ Missing token → 401, wrong role → 403, error body shape
    ✅ Login over HTTP and the /me endpoint
    ✅ Project creation and the apply 201 / 200 split
    ✅ Webhook signature failures → 400 invalid_signature
    ✅ Body validation failures → 400 validation_error
    ✅ X-Request-ID is echoed or generated
    ✅ Hire → submit → approve over HTTP; saved projects CRUD
"""

import pytest

PREFIX = "/api/v1"


class TestHealthAndMiddleware:
    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["payment_gateway"] == "available"

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, test_client):
        response = await test_client.get("/health", headers={"X-Request-ID": "abc12345"})
        assert response.headers["X-Request-ID"] == "abc12345"

    @pytest.mark.asyncio
    async def test_request_id_generated(self, test_client):
        response = await test_client.get("/health")
        assert len(response.headers["X-Request-ID"]) == 8


class TestAuthErrors:
    @pytest.mark.asyncio
    async def test_missing_token(self, test_client):
        response = await test_client.get(f"{PREFIX}/projects/mine")
        assert response.status_code == 401
        body = response.json()
        assert body["error"] == "unauthorized"
        assert set(body) >= {"error", "message", "request_id"}

    @pytest.mark.asyncio
    async def test_wrong_role(self, test_client, make_user, auth_headers):
        user, _ = await make_user(roles=["VIDEOGRAPHER"])
        response = await test_client.post(
            f"{PREFIX}/projects",
            json={"project_title": "Music video", "budget": "900.00"},
            headers=auth_headers(user.user_id),
        )
        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"

    @pytest.mark.asyncio
    async def test_garbage_token(self, test_client):
        response = await test_client.get(
            f"{PREFIX}/auth/me", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401


class TestLoginFlow:
    @pytest.mark.asyncio
    async def test_login_then_me(self, test_client, make_user):
        user, _ = await make_user(roles=["CLIENT"], email="studio@example.com", password="pa55word")

        login = await test_client.post(
            f"{PREFIX}/auth/login", json={"email": "studio@example.com", "password": "pa55word"}
        )
        assert login.status_code == 200
        token = login.json()["access_token"]

        me = await test_client.get(f"{PREFIX}/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["user_id"] == user.user_id
        assert me.json()["roles"] == ["CLIENT"]

    @pytest.mark.asyncio
    async def test_bad_credentials(self, test_client, make_user):
        await make_user(email="studio@example.com", password="pa55word")
        response = await test_client.post(
            f"{PREFIX}/auth/login", json={"email": "studio@example.com", "password": "wrong"}
        )
        assert response.status_code == 401


class TestProjectsAndApplications:
    @pytest.mark.asyncio
    async def test_create_project_and_apply_twice(self, test_client, make_user, auth_headers):
        client, _ = await make_user(roles=["CLIENT"])
        freelancer, _ = await make_user(roles=["VIDEOGRAPHER"])

        created = await test_client.post(
            f"{PREFIX}/projects",
            json={"project_title": "Wedding highlights", "budget": "4000.00"},
            headers=auth_headers(client.user_id),
        )
        assert created.status_code == 201
        project_id = created.json()["projects_task_id"]
        assert created.json()["client_id"] == client.user_id

        payload = {"projects_task_id": project_id, "description": "I shoot weddings"}
        first = await test_client.post(
            f"{PREFIX}/applications", json=payload, headers=auth_headers(freelancer.user_id)
        )
        second = await test_client.post(
            f"{PREFIX}/applications", json=payload, headers=auth_headers(freelancer.user_id)
        )

        assert first.status_code == 201
        assert first.json()["already_applied"] is False
        assert second.status_code == 200
        assert second.json()["already_applied"] is True

        listing = await test_client.get(
            f"{PREFIX}/applications/project/{project_id}", headers=auth_headers(client.user_id)
        )
        assert listing.status_code == 200
        assert len(listing.json()) == 1

    @pytest.mark.asyncio
    async def test_validation_error_shape(self, test_client, make_user, auth_headers):
        client, _ = await make_user(roles=["CLIENT"])
        response = await test_client.post(
            f"{PREFIX}/projects",
            json={"project_title": "", "budget": "-5"},
            headers=auth_headers(client.user_id),
        )
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        fields = {e["field"] for e in body["details"]["errors"]}
        assert {"body.project_title", "body.budget"} <= fields

    @pytest.mark.asyncio
    async def test_missing_project_is_404(self, test_client, make_user, auth_headers):
        user, _ = await make_user(roles=["CLIENT"])
        response = await test_client.get(f"{PREFIX}/projects/9999", headers=auth_headers(user.user_id))
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"


class TestWebhook:
    @pytest.mark.asyncio
    async def test_missing_signature(self, test_client):
        response = await test_client.post(f"{PREFIX}/webhook/razorpay", content=b'{"event": "payment.captured"}')
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_signature"

    @pytest.mark.asyncio
    async def test_bad_signature(self, test_client):
        response = await test_client.post(
            f"{PREFIX}/webhook/razorpay",
            content=b'{"event": "payment.captured"}',
            headers={"X-Razorpay-Signature": "deadbeef"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_signature"


class TestSubmissionFlow:
    @pytest.mark.asyncio
    async def test_hire_submit_approve(self, test_client, make_user, auth_headers):
        client, _ = await make_user(roles=["CLIENT"])
        freelancer, _ = await make_user(roles=["VIDEO_EDITOR"])

        created = await test_client.post(
            f"{PREFIX}/projects",
            json={"project_title": "Podcast edit", "budget": "600.00"},
            headers=auth_headers(client.user_id),
        )
        project_id = created.json()["projects_task_id"]
        applied = await test_client.post(
            f"{PREFIX}/applications",
            json={"projects_task_id": project_id},
            headers=auth_headers(freelancer.user_id),
        )
        application_id = applied.json()["application"]["applied_projects_id"]
        hired = await test_client.patch(
            f"{PREFIX}/applications/{application_id}/status",
            json={"status": 1},
            headers=auth_headers(client.user_id),
        )
        assert hired.status_code == 200

        submitted = await test_client.post(
            f"{PREFIX}/projects/{project_id}/submit",
            json={"submitted_files": ["https://cdn.example.com/ep1.mp3"]},
            headers=auth_headers(freelancer.user_id),
        )
        assert submitted.status_code == 201
        submission_id = submitted.json()["submission_id"]

        duplicate = await test_client.post(
            f"{PREFIX}/projects/{project_id}/submit",
            json={"submitted_files": ["https://cdn.example.com/ep1.mp3"]},
            headers=auth_headers(freelancer.user_id),
        )
        assert duplicate.status_code == 409

        reviewed = await test_client.patch(
            f"{PREFIX}/submissions/{submission_id}/review",
            json={"status": 1},
            headers=auth_headers(client.user_id),
        )
        assert reviewed.status_code == 200
        assert reviewed.json()["status"] == 1

        project = await test_client.get(f"{PREFIX}/projects/{project_id}")
        assert project.json()["status"] == 2

    @pytest.mark.asyncio
    async def test_empty_delivery_is_400(self, test_client, make_user, auth_headers):
        freelancer, _ = await make_user(roles=["VIDEOGRAPHER"])
        response = await test_client.post(
            f"{PREFIX}/projects/1/submit",
            json={"submitted_files": []},
            headers=auth_headers(freelancer.user_id),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"


class TestSavedProjects:
    @pytest.mark.asyncio
    async def test_save_list_unsave(self, test_client, make_user, auth_headers):
        client, _ = await make_user(roles=["CLIENT"])
        freelancer, _ = await make_user(roles=["VIDEOGRAPHER"])
        created = await test_client.post(
            f"{PREFIX}/projects",
            json={"project_title": "Drone footage", "budget": "2000.00"},
            headers=auth_headers(client.user_id),
        )
        project_id = created.json()["projects_task_id"]
        headers = auth_headers(freelancer.user_id)

        saved = await test_client.post(f"{PREFIX}/saved-projects", json={"projects_task_id": project_id}, headers=headers)
        again = await test_client.post(f"{PREFIX}/saved-projects", json={"projects_task_id": project_id}, headers=headers)
        assert saved.status_code == 201
        assert again.status_code == 409

        listing = await test_client.get(f"{PREFIX}/saved-projects", headers=headers)
        assert [s["projects_task_id"] for s in listing.json()] == [project_id]

        removed = await test_client.delete(f"{PREFIX}/saved-projects/{project_id}", headers=headers)
        assert removed.status_code == 200
        gone = await test_client.delete(f"{PREFIX}/saved-projects/{project_id}", headers=headers)
        assert gone.status_code == 404
