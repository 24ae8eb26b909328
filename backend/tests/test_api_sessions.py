"""Tests for session, archive and config API routes."""

from httpx import AsyncClient


async def create(client: AsyncClient, **overrides) -> dict:
    payload = {"topic": "Should cities ban cars?", "expert_a": "realist", "expert_b": "futurist"}
    payload.update(overrides)
    response = await client.post("/api/sessions/", json=payload)
    assert response.status_code == 200, response.text
    return response.json()


class TestCreateSession:
    """Tests for POST /api/sessions/"""

    async def test_create_with_manual_experts(self, client: AsyncClient, fake_provider):
        """Manual casting never calls the model."""
        data = await create(client)

        assert data["topic"] == "Should cities ban cars?"
        assert data["status"] == "idle"
        assert data["turn_count"] == 0
        assert data["generation"] == 1
        assert data["provider"] == "gemini"
        names = {p["role"]: p["name"] for p in data["personas"]}
        assert names == {
            "facilitator": "The Guide",
            "expert_a": "The Realist",
            "expert_b": "The Futurist",
        }
        assert fake_provider.calls == []

    async def test_create_with_auto_casting(self, client: AsyncClient, fake_provider):
        fake_provider.queue_response(
            '{"reasoning": "Morals versus data.", "expertAId": "ethicist", "expertBId": "analyst"}'
        )

        data = await create(client, expert_a="auto", expert_b="auto")

        names = {p["role"]: p["name"] for p in data["personas"]}
        assert names["expert_a"] == "The Ethicist"
        assert names["expert_b"] == "The Analyst"
        assert data["casting_reasoning"] == "Morals versus data."

    async def test_create_with_custom_facilitator(self, client: AsyncClient):
        data = await create(client, facilitator={"name": "Ms. Moderator", "description": "Keeps time."})

        facilitator = next(p for p in data["personas"] if p["role"] == "facilitator")
        assert facilitator["name"] == "Ms. Moderator"

    async def test_unknown_expert(self, client: AsyncClient):
        response = await client.post(
            "/api/sessions/", json={"topic": "x", "expert_a": "astronaut", "expert_b": "skeptic"}
        )
        assert response.status_code == 400

    async def test_empty_topic(self, client: AsyncClient):
        response = await client.post("/api/sessions/", json={"topic": ""})
        assert response.status_code == 422


class TestSessionControls:
    """Tests for the debate controls."""

    async def test_get_missing_session(self, client: AsyncClient):
        response = await client.get("/api/sessions/9999")
        assert response.status_code == 404

    async def test_start_and_next(self, client: AsyncClient, fake_provider):
        session = await create(client)
        fake_provider.queue_response("Welcome, experts.", "Cars must go.")

        response = await client.post(f"/api/sessions/{session['id']}/start")
        assert response.status_code == 200
        data = response.json()
        assert data["ran"] is True
        assert data["status"] == "debating"
        assert data["turn"]["speaker"] == "facilitator"

        response = await client.post(f"/api/sessions/{session['id']}/next")
        assert response.json()["turn"]["speaker"] == "expert_a"

        state = (await client.get(f"/api/sessions/{session['id']}")).json()
        assert state["turn_count"] == 2
        assert state["in_flight"] is False

        messages = (await client.get(f"/api/sessions/{session['id']}/messages")).json()
        assert [m["content"] for m in messages] == ["Welcome, experts.", "Cars must go."]

    async def test_start_twice_conflicts(self, client: AsyncClient):
        session = await create(client)
        await client.post(f"/api/sessions/{session['id']}/start")

        response = await client.post(f"/api/sessions/{session['id']}/start")
        assert response.status_code == 409

    async def test_pause_blocks_next(self, client: AsyncClient, fake_provider):
        session = await create(client)
        await client.post(f"/api/sessions/{session['id']}/start")

        response = await client.post(f"/api/sessions/{session['id']}/pause")
        assert response.json()["status"] == "paused"

        response = await client.post(f"/api/sessions/{session['id']}/next")
        assert response.json() == {"ran": False, "status": None, "turn": None}
        assert len(fake_provider.calls) == 1

        response = await client.post(f"/api/sessions/{session['id']}/resume")
        assert response.json()["status"] == "debating"

    async def test_whisper_is_private(self, client: AsyncClient):
        session = await create(client)
        await client.post(f"/api/sessions/{session['id']}/start")

        response = await client.post(
            f"/api/sessions/{session['id']}/whisper", json={"content": "Press on cost"}
        )
        assert response.status_code == 200
        whisper = response.json()
        assert whisper["speaker"] == "human"
        assert whisper["is_private"] is True
        assert whisper["is_handled"] is False

        public = (await client.get(f"/api/sessions/{session['id']}/messages")).json()
        assert all(m["id"] != whisper["id"] for m in public)

        everything = (await client.get(
            f"/api/sessions/{session['id']}/messages", params={"include_private": True}
        )).json()
        assert any(m["id"] == whisper["id"] for m in everything)

    async def test_blank_whisper_rejected(self, client: AsyncClient):
        session = await create(client)
        response = await client.post(f"/api/sessions/{session['id']}/whisper", json={"content": "   "})
        assert response.status_code == 400

    async def test_conclude(self, client: AsyncClient, fake_provider):
        session = await create(client)
        await client.post(f"/api/sessions/{session['id']}/start")
        fake_provider.queue_response("In summary, it depends. Farewell.")

        response = await client.post(f"/api/sessions/{session['id']}/conclude")
        assert response.json()["status"] == "completed"

        archives = (await client.get("/api/archives/")).json()
        assert len(archives) == 1
        assert archives[0]["session_id"] == session["id"]

    async def test_reset(self, client: AsyncClient):
        session = await create(client)
        await client.post(f"/api/sessions/{session['id']}/start")

        response = await client.post(f"/api/sessions/{session['id']}/reset", json={"archive": False})
        data = response.json()
        assert data["status"] == "idle"
        assert data["generation"] == 2
        assert data["turn_count"] == 0
        assert (await client.get(f"/api/sessions/{session['id']}/messages")).json() == []
        assert (await client.get("/api/archives/")).json() == []

    async def test_update_persona(self, client: AsyncClient):
        session = await create(client)

        response = await client.put(
            f"/api/sessions/{session['id']}/personas/expert_b",
            json={"name": "The Urbanist", "description": "Designs streets for people."},
        )
        assert response.status_code == 200
        names = {p["role"]: p["name"] for p in response.json()["personas"]}
        assert names["expert_b"] == "The Urbanist"

    async def test_update_setup(self, client: AsyncClient):
        session = await create(client)

        response = await client.patch(
            f"/api/sessions/{session['id']}", json={"language": "Japanese", "model": "gemini-1.5-pro"}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["language"] == "Japanese"
        assert data["model"] == "gemini-1.5-pro"
        assert data["topic"] == session["topic"]

    async def test_update_persona_for_human_rejected(self, client: AsyncClient):
        session = await create(client)
        response = await client.put(
            f"/api/sessions/{session['id']}/personas/human", json={"name": "Me"}
        )
        assert response.status_code == 400


class TestArchives:
    """Tests for /api/archives/"""

    async def test_archive_lifecycle(self, client: AsyncClient, fake_provider):
        session = await create(client)
        fake_provider.queue_response("Opening remarks.")
        await client.post(f"/api/sessions/{session['id']}/start")
        await client.post(f"/api/sessions/{session['id']}/reset")

        archives = (await client.get("/api/archives/")).json()
        assert len(archives) == 1
        archive_id = archives[0]["id"]

        detail = (await client.get(f"/api/archives/{archive_id}")).json()
        assert detail["messages"][0]["content"] == "Opening remarks."

        response = await client.post(
            f"/api/archives/{archive_id}/restore", json={"session_id": session["id"]}
        )
        assert response.json()["generation"] == 3
        state = (await client.get(f"/api/sessions/{session['id']}")).json()
        assert state["status"] == "paused"

        assert (await client.delete(f"/api/archives/{archive_id}")).status_code == 200
        assert (await client.get(f"/api/archives/{archive_id}")).status_code == 404
        assert (await client.delete(f"/api/archives/{archive_id}")).status_code == 404

    async def test_restore_missing_archive(self, client: AsyncClient):
        session = await create(client)
        response = await client.post("/api/archives/77/restore", json={"session_id": session["id"]})
        assert response.status_code == 404


class TestConfigAndHealth:
    """Tests for config and health endpoints."""

    async def test_providers(self, client: AsyncClient):
        data = (await client.get("/api/config/providers")).json()
        assert data["default_provider"] == "gemini"
        assert "gemini" in data["available_providers"]
        assert {p["name"] for p in data["providers"]} == {
            "gemini", "openai", "openrouter", "modelscope", "anthropic",
        }

    async def test_health(self, client: AsyncClient):
        data = (await client.get("/health")).json()
        assert data["status"] == "healthy"
