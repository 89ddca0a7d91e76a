"""Signup, login, profile edits, meeting lifecycle and admin/search pages over HTTP."""

from gigboard.core.domain_types import ApplicationStatus, ProjectStatus

from tests.seed import future, make_application, make_project

PASSWORD = "correct-horse"


# ─── Signup and login ────────────────────────────────────────────

async def test_signup_then_login(api):
    created = await api.post(
        "/api/v1/auth/freelancer/signup",
        json={
            "name": "Ada", "email": "Ada@Example.com", "password": PASSWORD,
            "skills": ["python"], "hourly_rate": 60,
        },
    )
    assert created.status_code == 201
    assert created.json()["freelancer"]["skills"] == ["python"]

    login = await api.post(
        "/api/v1/auth/login",
        json={"email": "ada@example.com", "password": PASSWORD, "role": "FREELANCER"},
    )
    assert login.status_code == 200
    me = await api.get(
        "/api/v1/auth/me", headers={"Authorization": f"Bearer {login.json()['token']}"},
    )
    assert me.json()["user"]["email"] == "ada@example.com"


async def test_duplicate_signup_conflicts(api, client_actor):
    response = await api.post(
        "/api/v1/auth/client/signup",
        json={"name": "Acme", "email": "acme@example.com", "password": PASSWORD},
    )
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "EMAIL_ALREADY_REGISTERED"


async def test_wrong_role_login_is_unauthorized(api):
    await api.post(
        "/api/v1/auth/client/signup",
        json={"name": "Acme", "email": "acme@example.com", "password": PASSWORD},
    )
    response = await api.post(
        "/api/v1/auth/login",
        json={"email": "acme@example.com", "password": PASSWORD, "role": "FREELANCER"},
    )
    assert response.status_code == 401


# ─── Profiles ────────────────────────────────────────────────────

async def test_profile_edit_shows_on_next_profile_read(api, auth, client_actor):
    headers = auth(client_actor)
    assert (await api.get("/api/v1/client/profile", headers=headers)).status_code == 200

    updated = await api.put(
        "/api/v1/client/profile", headers=headers, json={"industry": "Retail"},
    )
    profile = await api.get("/api/v1/client/profile", headers=headers)

    assert updated.status_code == 200
    assert profile.json()["cached"] is False
    assert profile.json()["client"]["industry"] == "Retail"
    assert profile.json()["client"]["company_name"] == "Acme"


async def test_availability_toggle_route(api, auth, freelancer_actor):
    response = await api.patch(
        "/api/v1/freelancer/availability",
        headers=auth(freelancer_actor), json={"availability": False},
    )
    assert response.status_code == 200
    assert response.json() == {"availability": False}


async def test_client_cannot_edit_freelancer_profile(api, auth, client_actor):
    response = await api.put(
        "/api/v1/freelancer/profile", headers=auth(client_actor), json={"title": "Spy"},
    )
    assert response.status_code == 403


# ─── Meetings ────────────────────────────────────────────────────

async def test_meeting_lifecycle_routes(api, auth, test_db, client_actor, freelancer_actor):
    project = await make_project(
        test_db, client_actor.client, ProjectStatus.ASSIGNED,
        assigned_to=freelancer_actor.freelancer.id,
    )
    await make_application(
        test_db, project, freelancer_actor.freelancer, ApplicationStatus.APPROVED,
    )
    created = await api.post(
        "/api/v1/meetings", headers=auth(client_actor),
        json={
            "project_id": str(project.id),
            "meeting_link": "https://meet.example.com/abc",
            "scheduled_at": future().isoformat(),
        },
    )
    meeting_id = created.json()["meeting"]["id"]

    asked = await api.put(
        f"/api/v1/meetings/{meeting_id}/request-reschedule",
        headers=auth(freelancer_actor), json={"reason": "Travelling"},
    )
    moved = await api.put(
        f"/api/v1/meetings/{meeting_id}/action", headers=auth(client_actor),
        json={
            "action": "reschedule", "reason": "Freelancer asked",
            "scheduled_at": future(48).isoformat(),
        },
    )
    cancelled = await api.put(
        f"/api/v1/meetings/{meeting_id}/cancel",
        headers=auth(client_actor), json={"reason": "Scope changed"},
    )
    again = await api.put(
        f"/api/v1/meetings/{meeting_id}/complete", headers=auth(client_actor), json={},
    )

    assert asked.status_code == 200
    assert moved.json()["meeting"]["status"] == "RESCHEDULED"
    assert cancelled.json()["meeting"]["status"] == "CANCELLED"
    assert again.status_code == 409


# ─── Admin and search ────────────────────────────────────────────

async def test_admin_user_list_needs_admin(api, auth, client_actor, admin_actor):
    denied = await api.get("/api/v1/admin/users", headers=auth(client_actor))
    listed = await api.get(
        "/api/v1/admin/users", headers=auth(admin_actor), params={"role": "CLIENT"},
    )

    assert denied.status_code == 403
    assert listed.status_code == 200
    assert [u["email"] for u in listed.json()["items"]] == ["acme@example.com"]
    assert listed.json()["cached"] is False


async def test_admin_review_pages(api, auth, test_db, client_actor, admin_actor):
    project = await make_project(
        test_db, client_actor.client, ProjectStatus.ADMIN_VERIFICATION,
    )

    review = await api.get(
        f"/api/v1/admin/projects/{project.id}/review-details", headers=auth(admin_actor),
    )
    activity = await api.get(
        f"/api/v1/admin/projects/{project.id}/activity", headers=auth(admin_actor),
    )

    assert review.json()["project"]["review_flags"]["new_client"] is True
    assert activity.json()["activities"][0]["type"] == "CREATED"


async def test_public_profile_search(api, freelancer_actor, other_freelancer):
    response = await api.get(
        "/api/v1/public/profiles/search",
        params={"type": "freelancer", "skills": "React, rust"},
    )

    assert response.status_code == 200
    names = [f["name"] for f in response.json()["freelancers"]["items"]]
    assert names == [freelancer_actor.user.name]


async def test_under_review_project_is_not_public(api, test_db, client_actor):
    project = await make_project(
        test_db, client_actor.client, ProjectStatus.ADMIN_VERIFICATION,
    )
    response = await api.get(f"/api/v1/public/projects/{project.id}")
    assert response.status_code == 404
