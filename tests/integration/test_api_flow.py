"""
End-to-end HTTP tests against the FastAPI application.

The database is the per-test SQLite file, audit entries are kept in memory
and the scoring oracle is faked.
"""

import pytest
from httpx import ASGITransport, AsyncClient

from api.dependencies import get_audit_sink, get_db, get_scoring_oracle
from api.main import app
from core.security import create_access_token

API = "/api/v1"


def auth(user_id):
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture
def oracle(oracle_factory):
    return oracle_factory(response={"matches": []})


@pytest.fixture
async def client(session_factory, audit, oracle):
    async def override_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_audit_sink] = lambda: audit
    app.dependency_overrides[get_scoring_oracle] = lambda: oracle

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


class TestAuthentication:
    """Bearer token handling."""

    @pytest.mark.asyncio
    async def test_missing_token(self, client, seed):
        response = await client.get(f"{API}/assignments")

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Authentication required"

    @pytest.mark.asyncio
    async def test_garbage_token(self, client, seed):
        response = await client.get(
            f"{API}/assignments", headers={"Authorization": "Bearer nope"}
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_user(self, client, seed):
        response = await client.get(f"{API}/assignments", headers=auth(9999))

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_capability_denied_looks_like_not_found(self, client, seed):
        response = await client.post(
            f"{API}/assignments",
            json={"candidateId": seed.c1, "jobId": seed.j1},
            headers=auth(seed.hr1),
        )

        assert response.status_code == 403
        assert response.json()["error"]["message"] == "Resource not found"


class TestAssignmentFlow:
    """Agent assigns, HR advances, agent cannot move the stage backwards."""

    @pytest.mark.asyncio
    async def test_full_flow(self, client, seed, audit):
        created = await client.post(
            f"{API}/assignments",
            json={"candidateId": seed.c1, "jobId": seed.j1, "priority": "high"},
            headers=auth(seed.agent_a),
        )
        assert created.status_code == 201
        body = created.json()
        assert body["message"] == "Candidate assigned"
        data = body["data"]
        assert data["assignedTo"] == seed.hr1
        assert data["candidateStatus"] == "new"
        assert data["priority"] == "high"
        assert data["isOverdue"] is False
        assert data["candidate"]["customId"] == "CAN0001"
        assignment_id = data["id"]

        duplicate = await client.post(
            f"{API}/assignments",
            json={"candidateId": seed.c1, "assignedTo": seed.hr1},
            headers=auth(seed.admin),
        )
        assert duplicate.status_code == 409
        assert duplicate.json()["error"]["details"]["existingAssignmentId"] == assignment_id

        reviewed = await client.put(
            f"{API}/assignments/{assignment_id}",
            json={"candidateStatus": "reviewed"},
            headers=auth(seed.hr1),
        )
        assert reviewed.status_code == 200
        assert reviewed.json()["data"]["candidateStatus"] == "reviewed"

        backwards = await client.put(
            f"{API}/assignments/{assignment_id}",
            json={"candidateStatus": "new"},
            headers=auth(seed.agent_a),
        )
        assert backwards.status_code == 422
        assert backwards.json()["error"]["code"] == "INVALID_TRANSITION"

        hidden = await client.get(
            f"{API}/assignments/{assignment_id}", headers=auth(seed.hr2)
        )
        assert hidden.status_code == 404
        assert hidden.json()["error"]["message"] == "Resource not found"
        assert "details" not in hidden.json()["error"]

        assert [entry.action.value for entry in audit.entries] == ["create", "update"]

    @pytest.mark.asyncio
    async def test_missing_target_is_bad_request(self, client, seed):
        response = await client.post(
            f"{API}/assignments",
            json={"candidateId": seed.c1},
            headers=auth(seed.agent_a),
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_invalid_body_is_validation_error(self, client, seed):
        response = await client.post(
            f"{API}/assignments",
            json={"candidateId": "first", "jobId": seed.j1},
            headers=auth(seed.agent_a),
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_list_and_stats(self, client, seed):
        await client.post(
            f"{API}/assignments",
            json={"candidateId": seed.c1, "jobId": seed.j1},
            headers=auth(seed.agent_a),
        )

        listing = await client.get(
            f"{API}/assignments",
            params={"status": "active", "page": 1, "page_size": 10},
            headers=auth(seed.hr1),
        )
        stats = await client.get(f"{API}/assignments/stats", headers=auth(seed.hr1))
        mine = await client.get(f"{API}/assignments/mine", headers=auth(seed.hr1))

        assert listing.status_code == 200
        assert listing.json()["total"] == 1
        assert listing.json()["totalPages"] == 1
        assert stats.json()["data"]["byStatus"]["active"] == 1
        assert mine.json()["items"][0]["candidateId"] == seed.c1

    @pytest.mark.asyncio
    async def test_delete(self, client, seed):
        created = await client.post(
            f"{API}/assignments",
            json={"candidateId": seed.c2, "jobId": seed.j1},
            headers=auth(seed.agent_a),
        )
        assignment_id = created.json()["data"]["id"]

        response = await client.delete(
            f"{API}/assignments/{assignment_id}", headers=auth(seed.agent_a)
        )

        assert response.status_code == 200
        assert response.json() == {"message": "Assignment deleted", "id": assignment_id}


class TestAgentEndpoints:
    """Agent scoping administration and the agent workspace."""

    @pytest.mark.asyncio
    async def test_admin_assigns_scope(self, client, seed):
        response = await client.post(
            f"{API}/agent-assignments",
            json={"agentId": seed.agent_b, "hrIds": [seed.hr2], "candidateIds": [seed.c3]},
            headers=auth(seed.admin),
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["agentId"] == seed.agent_b
        assert [hr["id"] for hr in data["assignedHrs"]] == [seed.hr2]

        mine = await client.get(f"{API}/agent-assignments/mine", headers=auth(seed.agent_b))
        assert mine.status_code == 200
        assert [c["id"] for c in mine.json()["data"]["assignedCandidates"]] == [seed.c3]

    @pytest.mark.asyncio
    async def test_invalid_members_reported(self, client, seed):
        response = await client.post(
            f"{API}/agent-assignments",
            json={"agentId": seed.agent_b, "hrIds": [seed.cand1], "candidateIds": []},
            headers=auth(seed.admin),
        )

        assert response.status_code == 400
        assert response.json()["error"]["details"] == {"invalidHrIds": [seed.cand1]}

    @pytest.mark.asyncio
    async def test_dashboard(self, client, seed):
        response = await client.get(f"{API}/agents/dashboard", headers=auth(seed.agent_a))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["assignedHrs"] == 1
        assert data["assignedCandidates"] == 2
        assert data["availableJobs"] == 1


class TestMatchingAndSearch:
    """Oracle-backed matching and global search over HTTP."""

    @pytest.mark.asyncio
    async def test_match_job(self, client, seed, oracle):
        oracle.response = {
            "matches": [{"candidateId": seed.c2, "jobId": seed.j1, "matchScore": 77.5}]
        }

        response = await client.post(
            f"{API}/match/job", json={"jobId": seed.j1}, headers=auth(seed.agent_a)
        )

        assert response.status_code == 200
        body = response.json()
        assert body["poolSize"] == 2
        assert body["matches"][0]["candidateId"] == seed.c2
        assert body["matches"][0]["matchScore"] == 78

    @pytest.mark.asyncio
    async def test_oracle_failure_is_bad_gateway(self, client, seed, oracle):
        oracle.error = ConnectionError("model unavailable")

        response = await client.post(
            f"{API}/match/candidate",
            json={"candidateId": seed.c1},
            headers=auth(seed.agent_a),
        )

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "UPSTREAM_ERROR"

    @pytest.mark.asyncio
    async def test_search_returns_every_type(self, client, seed):
        response = await client.get(
            f"{API}/search",
            params={"q": "JOB1", "types": "jobs,users"},
            headers=auth(seed.admin),
        )

        assert response.status_code == 200
        body = response.json()
        assert set(body) == {"jobs", "candidates", "companies", "users"}
        assert [job["jobCode"] for job in body["jobs"]] == ["JOB0001"]
        assert body["candidates"] == []


class TestProbes:
    """Health endpoints need no authentication."""

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_ready(self, client):
        response = await client.get("/ready")

        assert response.status_code == 200
        assert response.json()["checks"]["database"] == "up"
