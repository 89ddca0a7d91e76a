"""Health probes, bearer authentication and the error envelope."""

from gigboard.infrastructure import database as db_module


async def test_liveness(api):
    response = await api.get("/api/v1/health/")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_readiness_reports_cache(api):
    response = await api.get("/api/v1/health/ready")
    assert response.status_code == 200
    assert response.json() == {
        "status": "ready",
        "checks": {"database": "healthy", "cache": "healthy"},
    }


async def test_readiness_fails_without_database(api, monkeypatch):
    monkeypatch.setattr(db_module, "db_manager", None)
    response = await api.get("/api/v1/health/ready")
    assert response.status_code == 503


async def test_missing_token_is_unauthorized(api):
    response = await api.get("/api/v1/client/projects")
    assert response.status_code == 401
    error = response.json()["error"]
    assert error["code"] == "INVALID_CREDENTIALS"
    assert error["category"] == "unauthorized"


async def test_garbage_token_is_unauthorized(api):
    response = await api.get(
        "/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert response.status_code == 401


async def test_wrong_role_is_forbidden(api, auth, freelancer_actor):
    response = await api.get("/api/v1/client/projects", headers=auth(freelancer_actor))
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "PERMISSION_DENIED"


async def test_me_is_cached_after_first_read(api, auth, client_actor):
    headers = auth(client_actor)
    first = await api.get("/api/v1/auth/me", headers=headers)
    second = await api.get("/api/v1/auth/me", headers=headers)

    assert first.json()["cached"] is False
    assert second.json()["cached"] is True
    assert second.json()["user"]["email"] == "acme@example.com"


async def test_suspended_user_token_is_rejected(api, auth, admin_actor, client_actor):
    client_headers = auth(client_actor)
    client_user_id = str(client_actor.user_id)

    response = await api.post(
        f"/api/v1/admin/users/{client_user_id}/toggle-status", headers=auth(admin_actor),
    )
    assert response.status_code == 200
    assert response.json()["user"]["is_active"] is False

    response = await api.get("/api/v1/auth/me", headers=client_headers)
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "ACCOUNT_INACTIVE"
