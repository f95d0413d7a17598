"""
Integration tests for scoped global search.
"""

import pytest
from sqlalchemy import event

from api.services.search import SearchRouter, id_variants, parse_types
from core.access.actor import Actor
from core.errors import Forbidden
from database.models.assignments import CandidateAssignment

EMPTY = {"jobs": [], "candidates": [], "companies": [], "users": []}


@pytest.fixture
def statements(engine):
    """SQL statements executed on the engine during the test."""
    seen = []

    def capture(conn, cursor, statement, parameters, context, executemany):
        seen.append(statement)

    event.listen(engine.sync_engine, "before_cursor_execute", capture)
    yield seen
    event.remove(engine.sync_engine, "before_cursor_execute", capture)


class TestQueryParsing:
    """Test type selection and id spellings."""

    def test_types_comma_separated_and_repeated(self):
        assert parse_types(["jobs,users", "companies"]) == ["jobs", "companies", "users"]

    def test_unknown_types_ignored(self):
        assert parse_types(["jobs", "offers"]) == ["jobs"]

    def test_nothing_means_everything(self):
        assert parse_types(None) == ["jobs", "candidates", "companies", "users"]
        assert parse_types(["bogus"]) == ["jobs", "candidates", "companies", "users"]

    def test_id_variants_pad_digits(self):
        variants = id_variants("job1")

        assert "JOB1" in variants
        assert "JOB0001" in variants
        assert "JOB00000001" in variants

    def test_id_variants_keep_given_padding(self):
        assert "CAN0003" in id_variants("CAN0003")
        assert "CAN3" in id_variants("CAN0003")

    def test_free_text_has_no_variants(self):
        assert id_variants("backend engineer") == []


class TestSearch:
    """Search results per actor."""

    @pytest.mark.asyncio
    async def test_short_query_returns_every_key(self, session, seed):
        result = await SearchRouter(session).search(seed.actors.admin, " a ")

        assert result == EMPTY

    @pytest.mark.asyncio
    async def test_job_code_without_padding(self, session, seed):
        result = await SearchRouter(session).search(seed.actors.admin, "JOB1", types=["jobs"])

        assert [job["job_code"] for job in result["jobs"]] == ["JOB0001"]
        assert result["candidates"] == []

    @pytest.mark.asyncio
    async def test_agent_sees_cancelled_jobs_of_its_hrs(self, session, seed):
        result = await SearchRouter(session).search(
            seed.actors.agent_a, "backend", types=["jobs"]
        )

        assert {job["id"] for job in result["jobs"]} == {seed.j1, seed.j3}

    @pytest.mark.asyncio
    async def test_hr_sees_own_live_jobs(self, session, seed):
        hr1 = await SearchRouter(session).search(seed.actors.hr1, "engineer", types=["jobs"])
        hr2 = await SearchRouter(session).search(seed.actors.hr2, "backend", types=["jobs"])

        assert [job["id"] for job in hr1["jobs"]] == [seed.j1]
        assert hr2["jobs"] == []

    @pytest.mark.asyncio
    async def test_jobs_newest_first(self, session, seed):
        result = await SearchRouter(session).search(
            seed.actors.superadmin, "engineer", types=["jobs"]
        )

        assert [job["id"] for job in result["jobs"]] == [seed.j2, seed.j1]

    @pytest.mark.asyncio
    async def test_agent_candidates_scoped(self, session, seed):
        result = await SearchRouter(session).search(
            seed.actors.agent_a, "developer", types=["candidates"]
        )

        assert [c["id"] for c in result["candidates"]] == [seed.c1, seed.c2]

    @pytest.mark.asyncio
    async def test_candidate_by_full_name_and_skill(self, session, seed):
        by_name = await SearchRouter(session).search(
            seed.actors.admin, "erin rust", types=["candidates"]
        )
        by_skill = await SearchRouter(session).search(
            seed.actors.admin, "fastapi", types=["candidates"]
        )

        assert [c["id"] for c in by_name["candidates"]] == [seed.c3]
        assert [c["id"] for c in by_skill["candidates"]] == [seed.c1]

    @pytest.mark.asyncio
    async def test_companies_through_visible_jobs(self, session, seed):
        router = SearchRouter(session)

        agent_acme = await router.search(seed.actors.agent_a, "Acme", types=["companies"])
        agent_globex = await router.search(seed.actors.agent_a, "Globex", types=["companies"])
        admin_globex = await router.search(seed.actors.admin, "Globex", types=["companies"])
        hr_code = await router.search(seed.actors.hr1, "cmp1", types=["companies"])

        assert [c["name"] for c in agent_acme["companies"]] == ["Acme Robotics"]
        assert agent_globex["companies"] == []
        assert [c["name"] for c in admin_globex["companies"]] == ["Globex"]
        assert [c["company_code"] for c in hr_code["companies"]] == ["CMP0001"]

    @pytest.mark.asyncio
    async def test_agent_user_directory_is_its_hrs(self, session, seed):
        result = await SearchRouter(session).search(
            seed.actors.agent_a, "hiring", types=["users"]
        )

        assert [u["id"] for u in result["users"]] == [seed.hr1]

    @pytest.mark.asyncio
    async def test_candidate_user_finds_its_hr(self, session, seed):
        session.add(
            CandidateAssignment(candidate_id=seed.c1, assigned_to=seed.hr1, assigned_by=seed.admin)
        )
        await session.commit()

        result = await SearchRouter(session).search(seed.actors.cand1, "hiring", types=["users"])

        assert [u["id"] for u in result["users"]] == [seed.hr1]

    @pytest.mark.asyncio
    async def test_wildcards_are_literal(self, session, seed):
        result = await SearchRouter(session).search(seed.actors.admin, "%%", types=["jobs"])

        assert result["jobs"] == []

    @pytest.mark.asyncio
    async def test_limit(self, session, seed):
        result = await SearchRouter(session).search(
            seed.actors.superadmin, "engineer", types=["jobs"], limit=1
        )

        assert len(result["jobs"]) == 1

    @pytest.mark.asyncio
    async def test_actor_without_search_capability(self, session, seed):
        with pytest.raises(Forbidden):
            await SearchRouter(session).search(Actor(id=seed.admin, role=seed.actors.admin.role), "acme")


class TestEmptyScopesSkipQueries:
    """Types whose scope is structurally empty never reach the database."""

    @pytest.mark.asyncio
    async def test_unscoped_agent_runs_no_candidate_query(self, session, seed, statements):
        result = await SearchRouter(session).search(
            seed.actors.agent_b, "developer", types=["candidates"]
        )

        assert result == EMPTY
        assert not any("FROM candidates" in sql for sql in statements)

    @pytest.mark.asyncio
    async def test_hr_runs_no_user_query(self, session, seed, statements):
        result = await SearchRouter(session).search(seed.actors.hr1, "hiring", types=["users"])

        assert result["users"] == []
        assert not any("FROM users" in sql for sql in statements)

    @pytest.mark.asyncio
    async def test_empty_type_does_not_affect_others(self, session, seed):
        result = await SearchRouter(session).search(seed.actors.hr1, "acme")

        assert result["users"] == []
        assert [c["name"] for c in result["companies"]] == ["Acme Robotics"]
