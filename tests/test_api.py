import pytest
from fastapi.testclient import TestClient

from quotely.server.main import create_app
from quotely.services.quote_editor import QuoteEditor


@pytest.fixture
def client(store):
    return TestClient(create_app(store))


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"


def test_debug_routes_lists_quotes(client):
    paths = {r["path"] for r in client.get("/__debug/routes").json()}
    assert "/quotes/{quote_id}" in paths
    assert "/client/{token}" in paths


def test_list_and_get_quote(client):
    rows = client.get("/quotes").json()
    assert len(rows) == 5
    assert rows[0]["projectName"] == "Ursula"

    body = client.get("/quotes/q1").json()
    assert body["quote"]["title"] == "Architecture Review"
    assert body["totals"]["client_hours"] == 40
    assert len(body["lineItems"]) == 5

    assert client.get("/quotes/t-fasttrack").status_code == 404
    assert client.get("/quotes/nope").status_code == 404


def test_create_save_delete_quote(client):
    created = client.post("/quotes")
    assert created.status_code == 201
    body = created.json()
    assert [s["title"] for s in body["sections"]] == ["General"]

    quote = body["quote"]
    section = body["sections"][0]
    payload = {
        "quote": {**quote, "title": "API quote"},
        "sections": [section],
        "lineItems": [
            {"id": "li-api", "quoteId": quote["id"], "sectionId": section["id"], "title": "Work", "hours": 3, "sortOrder": 0}
        ],
    }
    saved = client.put(f"/quotes/{quote['id']}", json=payload)
    assert saved.status_code == 200
    assert saved.json()["quote"]["totalHours"] == 3

    assert client.put(f"/quotes/{quote['id']}", json={**payload, "sections": []}).status_code == 400
    assert client.put("/quotes/other", json=payload).status_code == 400

    assert client.delete(f"/quotes/{quote['id']}").status_code == 200
    assert client.delete(f"/quotes/{quote['id']}").status_code == 404


def test_duplicate_and_instantiate(client):
    dup = client.post("/quotes/q1/duplicate")
    assert dup.status_code == 201
    assert dup.json()["quote"]["title"] == "Architecture Review (Copy)"

    inst = client.post("/templates/t-fasttrack/instantiate")
    assert inst.status_code == 201
    assert len(inst.json()["lineItems"]) == 6
    assert client.post("/templates/nope/instantiate").status_code == 404


def test_move_endpoints(client):
    res = client.post("/quotes/q1/line-items/move", json={"sectionId": "s-q1", "fromIndex": 4, "toIndex": 0})
    assert res.status_code == 200
    assert res.json()["lineItems"][0]["title"] == "Deployments including backups"

    res = client.post("/quotes/q1/line-items/move", json={"sectionId": "missing", "fromIndex": 0, "toIndex": 0})
    assert res.status_code == 400

    assert client.post("/quotes/nope/sections/move", json={"fromIndex": 0, "toIndex": 1}).status_code == 404


def test_change_domain_endpoint(client):
    res = client.post("/quotes/q4/domain", json={"businessDomainId": "bd4"})
    assert res.json()["quote"]["pricePerHour"] == 116.75


def test_templates(client):
    assert [t["id"] for t in client.get("/templates").json()] == ["t-fasttrack"]
    assert client.get("/templates/t-fasttrack").json()["totals"]["internal_hours"] == 76
    created = client.post("/templates").json()
    assert client.delete(f"/templates/{created['quote']['id']}").status_code == 200


def test_directory_guards(client):
    assert client.delete("/projects/p1").status_code == 409
    assert client.delete("/domains/bd1").status_code == 409
    assert client.delete("/contacts/c1").status_code == 409
    assert client.delete("/projects/nope").status_code == 404

    blank = client.post("/projects/new").json()
    assert client.put(f"/projects/{blank['id']}", json=blank).status_code == 400
    saved = client.put(f"/projects/{blank['id']}", json={**blank, "name": "Apollo"})
    assert saved.status_code == 200
    assert client.delete(f"/projects/{blank['id']}").status_code == 200


def test_domain_rate_resolved_on_save(client):
    blank = client.post("/domains/new").json()
    payload = {**blank, "name": "Mixed", "rateComponents": [{"id": "a", "label": "Base", "value": 80}, {"id": "b", "value": 5}]}
    res = client.put(f"/domains/{blank['id']}", json=payload)
    assert res.json()["hourlyRate"] == 85


def test_contact_validation(client):
    blank = client.post("/contacts/new").json()
    assert client.put(f"/contacts/{blank['id']}", json={**blank, "name": "Arya"}).status_code == 400


def test_client_view_hides_hidden_sections(client, store):
    editor = QuoteEditor.open(store, "q1")
    secret = editor.add_section("Internal buffer")
    editor.add_line_item("Buffer", hours=12, section_id=secret.id)
    editor.toggle_section_visibility(secret.id)
    editor.save()

    body = client.get("/client/token-q1").json()
    assert [s["title"] for s in body["sections"]] == ["General"]
    assert body["totalHours"] == 40
    assert body["totalPrice"] == 4000
    assert "Buffer" not in str(body)
    assert "totalHours" not in body["quote"]

    assert client.get("/client/nope").status_code == 404


def test_client_approval(client):
    assert client.post("/client/token-q3/approve", json={"approvalCode": "12a45"}).status_code == 400
    res = client.post("/client/token-q3/approve", json={"approvalCode": "12345"})
    assert res.status_code == 200
    assert res.json()["status"] == "Approved"
    assert client.post("/client/nope/approve", json={"approvalCode": "12345"}).status_code == 404


def test_search_endpoint(client):
    rows = client.get("/search", params={"q": "arch"}).json()
    assert [r["type"] for r in rows] == ["Quote", "Project"]
    assert client.get("/search").json() == []


def test_dashboard(client):
    body = client.get("/dashboard").json()
    assert body["total_quotes"] == 5
    assert body["approved_quotes"] == 3
    assert body["pending_quotes"] == 1
    assert body["total_projects"] == 3
    assert [q["id"] for q in body["recent_quotes"]] == ["q4", "q5", "q3", "q2", "q1"]
    assert body["recent_quotes"][0]["projectName"] == "Ursula"
