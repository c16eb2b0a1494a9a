"""
Tests for the HTTP API.
"""
import pytest
from fastapi.testclient import TestClient

from supportdesk.main import create_app


@pytest.fixture
def client(services):
    with TestClient(create_app(services)) as test_client:
        yield test_client


def create_agent(client, agent_id, categories=("billing",), max_load=5):
    response = client.post("/agents", json={
        "id": agent_id,
        "name": agent_id.capitalize(),
        "email": f"{agent_id}@support.example.com",
        "categories": list(categories),
        "max_load": max_load
    })
    assert response.status_code == 201
    return response.json()


def create_ticket(client, **overrides):
    payload = {
        "subject": "Refund",
        "description": "I was charged twice for my subscription",
        "customer_email": "player@example.com",
    }
    payload.update(overrides)
    response = client.post("/tickets", json=payload)
    assert response.status_code == 201
    return response.json()


class TestTicketEndpoints:

    def test_create_classifies_and_assigns(self, client):
        create_agent(client, "alice")

        ticket = create_ticket(client)

        assert ticket["category"] == "billing"
        assert ticket["priority"] == "high"
        assert ticket["status"] == "open"
        assert ticket["assigned_agent_id"] == "alice"
        assert ticket["sla"]["state"] == "on_track"
        assert ticket["conversation"][0]["role"] == "customer"
        assert ticket["version"] == 1

    def test_explicit_priority_sets_deadline(self, client):
        ticket = create_ticket(client, priority="urgent", category="technical")
        assert ticket["priority"] == "urgent"
        assert ticket["sla"]["remaining_seconds"] == 8 * 3600

    def test_invalid_payload_is_422(self, client):
        response = client.post("/tickets", json={
            "subject": "Hi",
            "description": "Text",
            "customer_email": "player@example.com",
            "category": "refunds"
        })
        assert response.status_code == 422

    def test_unknown_ticket_is_404(self, client):
        response = client.get("/tickets/does-not-exist")
        assert response.status_code == 404
        body = response.json()
        assert body["error_type"] == "TicketNotFoundException"
        assert body["correlation_id"]

    def test_correlation_id_is_echoed(self, client):
        response = client.get("/tickets", headers={"X-Correlation-ID": "abc-123"})
        assert response.status_code == 200
        assert response.headers["X-Correlation-ID"] == "abc-123"
        assert "X-Response-Time" in response.headers

    def test_message_then_close_then_reject(self, client):
        create_agent(client, "alice")
        ticket = create_ticket(client)
        url = f"/tickets/{ticket['id']}"

        reply = client.post(f"{url}/messages", json={"role": "agent", "content": "On it"})
        assert reply.status_code == 201
        assert reply.json()["status"] == "in-progress"

        closed = client.patch(url, json={"status": "closed", "closure_reason": "duplicate"})
        assert closed.status_code == 200
        assert closed.json()["closure_reason"] == "duplicate"

        rejected = client.post(f"{url}/messages", json={"role": "customer", "content": "Hello?"})
        assert rejected.status_code == 409
        assert rejected.json()["error_type"] == "TicketClosedException"

        reopen = client.patch(url, json={"status": "open"})
        assert reopen.status_code == 409
        assert reopen.json()["error_type"] == "InvalidStatusTransitionException"

    def test_system_messages_cannot_be_posted(self, client):
        ticket = create_ticket(client)
        response = client.post(
            f"/tickets/{ticket['id']}/messages", json={"role": "system", "content": "hi"}
        )
        assert response.status_code == 422

    def test_close_without_reason_is_422(self, client):
        ticket = create_ticket(client)
        response = client.patch(f"/tickets/{ticket['id']}", json={"status": "closed"})
        assert response.status_code == 422

    def test_empty_update_is_422(self, client):
        ticket = create_ticket(client)
        response = client.patch(f"/tickets/{ticket['id']}", json={})
        assert response.status_code == 422
        assert response.json()["detail"] == "No valid changes provided"

    def test_stale_version_is_409(self, client):
        ticket = create_ticket(client)
        url = f"/tickets/{ticket['id']}"
        assert client.patch(url, json={"priority": "low"}).status_code == 200

        response = client.patch(url, json={"priority": "urgent", "expected_version": 1})

        assert response.status_code == 409
        assert response.json()["error_type"] == "ConcurrencyConflictException"

    def test_reassign_to_full_agent_is_409(self, client):
        create_agent(client, "alice", max_load=1)
        create_agent(client, "bob", categories=("technical",), max_load=1)
        create_ticket(client)
        technical = create_ticket(client, category="technical", priority="low")

        response = client.post(f"/tickets/{technical['id']}/reassign", json={"agent_id": "alice"})

        assert response.status_code == 409
        assert response.json()["error_type"] == "CapacityExceededException"

    def test_list_and_bulk_update(self, client):
        first = create_ticket(client)
        second = create_ticket(client)

        response = client.post("/tickets/bulk-update", json={
            "ticket_ids": [first["id"], second["id"], "missing"],
            "priority": "urgent"
        })

        body = response.json()
        assert response.status_code == 200
        assert body["total"] == 3
        assert body["succeeded"] == 2
        assert body["failed"] == 1

        listed = client.get("/tickets", params={"status": "open"}).json()
        assert {t["id"] for t in listed} == {first["id"], second["id"]}
        assert all(t["priority"] == "urgent" for t in listed)

    def test_manual_review_flag_and_clear(self, client):
        create_agent(client, "alice")
        ticket = create_ticket(client)
        url = f"/tickets/{ticket['id']}/manual-review"

        flagged = client.post(url, json={"reason": "threatening language"})
        assert flagged.json()["needs_manual_review"] is True

        cleared = client.delete(url, params={"agent_id": "alice"})
        assert cleared.json()["needs_manual_review"] is False
        assert cleared.json()["assigned_agent_id"] == "alice"


class TestAgentEndpoints:

    def test_register_and_fetch(self, client):
        created = create_agent(client, "alice", categories=("billing", "account"))
        assert created["categories"] == ["account", "billing"]

        fetched = client.get("/agents/alice")
        assert fetched.status_code == 200
        assert fetched.json()["max_load"] == 5
        assert client.get("/agents/ghost").status_code == 404

    def test_update_profile(self, client):
        create_agent(client, "alice")
        response = client.patch("/agents/alice", json={"max_load": 2})
        assert response.status_code == 200
        assert response.json()["max_load"] == 2

    def test_deactivation_redistributes(self, client):
        create_agent(client, "alice")
        ticket = create_ticket(client)
        create_agent(client, "bob")

        response = client.put("/agents/alice/active", json={"is_active": False})

        body = response.json()
        assert response.status_code == 200
        assert body["is_active"] is False
        assert body["current_load"] == 0
        assert body["reassigned"] == [ticket["id"]]
        assert client.get(f"/tickets/{ticket['id']}").json()["assigned_agent_id"] == "bob"

    def test_workloads(self, client):
        create_agent(client, "alice")
        create_ticket(client)

        workloads = client.get("/agents/workloads").json()

        assert workloads == [{
            "agent_id": "alice",
            "name": "Alice",
            "is_active": True,
            "current_load": 1,
            "max_load": 5,
            "open_tickets": 1,
            "consistent": True
        }]


class TestSLAAndTriageEndpoints:

    def test_sla_status_and_sweep(self, client, clock):
        ticket = create_ticket(client, priority="urgent", category="technical")
        clock.advance(hours=9)

        sweep = client.post("/sla/sweep")
        assert sweep.status_code == 200
        assert sweep.json()["breached_ticket_ids"] == [ticket["id"]]

        status = client.get(f"/sla/tickets/{ticket['id']}").json()
        assert status["state"] == "breached"
        assert status["breached"] is True

    def test_classify_preview(self, client):
        response = client.post("/triage/classify", json={
            "subject": "Hacked",
            "description": "My account was hacked and items stolen"
        })
        body = response.json()
        assert response.status_code == 200
        assert body["available"] is True
        assert body["category"] == "security"

    def test_ai_proposal_and_rejection(self, client):
        ticket = create_ticket(client)
        url = f"/triage/tickets/{ticket['id']}/proposals"

        applied = client.post(url, json={"priority": "urgent", "rationale": "Money lost"})
        assert applied.status_code == 200
        assert applied.json()["priority"] == "urgent"

        noop = client.post(url, json={"priority": "urgent"})
        assert noop.status_code == 422

        rejected = client.post(f"{url}/reject", json={"reason": "not urgent"})
        assert rejected.status_code == 200
        assert rejected.json()["needs_manual_review"] is True


def test_health(client):
    body = client.get("/health").json()
    assert body["status"] == "healthy"
    assert body["checks"]["services"] == "ready"
