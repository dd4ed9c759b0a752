"""Tests for the portal HTTP routes."""

from __future__ import annotations

import asyncio

from app.lib import database

from conftest import MEMBER_ID, SUPER_ID


OPEN_EVENT = {
    "title": "Hackathon 2026",
    "event_date": "2099-02-01T09:00:00+00:00",
    "problem_statement_deadline": "2099-01-01T00:00:00+00:00",
}


def _create_problem(client, headers, **overrides):
    body = {
        "problem_statement_id": "25001",
        "title": "Smart attendance",
        "description": "Automate attendance",
        "category": "Software",
        "theme": "Academic",
        "department": "CSE",
    }
    body.update(overrides)
    resp = client.post("/problems", json=body, headers=headers)
    assert resp.status_code == 200, resp.text
    return resp.json()["problem"]


def test_root(client):
    assert client.get("/").json()["status"] == "ok"


def test_taxonomy(client):
    data = client.get("/taxonomy").json()
    assert data["themes"][0] == "Academic"
    assert "CSE" in data["engineering_departments"]


class TestAccess:
    def test_anonymous(self, client):
        assert client.get("/me/access").json() == {
            "user_id": None, "is_admin": False, "is_super_admin": False,
        }

    def test_superadmin(self, client):
        asyncio.run(database.grant_role(SUPER_ID, "superadmin"))
        data = client.get("/me/access", headers={"X-User-Id": SUPER_ID}).json()
        assert data["is_admin"] is True
        assert data["is_super_admin"] is True

    def test_mutations_need_admin(self, client):
        resp = client.post("/events", json=OPEN_EVENT, headers={"X-User-Id": MEMBER_ID})
        assert resp.status_code == 403
        assert client.delete("/problems/anything").status_code == 403


class TestProblems:
    def test_create_requires_open_deadline(self, client, admin_headers):
        resp = client.post("/problems", json={
            "problem_statement_id": "25001", "title": "t", "description": "d",
        }, headers=admin_headers)
        assert resp.status_code == 409

    def test_create_update_status_delete(self, client, admin_headers):
        client.post("/events", json=OPEN_EVENT, headers=admin_headers)
        problem = _create_problem(client, admin_headers)
        assert problem["status"] == "pending_review"

        resp = client.put(f"/problems/{problem['id']}", json={"title": "Renamed"}, headers=admin_headers)
        assert resp.json()["problem"]["title"] == "Renamed"

        resp = client.post(f"/problems/{problem['id']}/status", json={"status": "approved"}, headers=admin_headers)
        assert resp.json()["problem"]["approved_at"] is not None

        resp = client.post(f"/problems/{problem['id']}/status", json={"status": "bogus"}, headers=admin_headers)
        assert resp.status_code == 422

        assert client.delete(f"/problems/{problem['id']}", headers=admin_headers).status_code == 200
        assert client.delete(f"/problems/{problem['id']}", headers=admin_headers).status_code == 404

    def test_missing_problem(self, client, admin_headers):
        assert client.put("/problems/missing", json={"title": "x"}, headers=admin_headers).status_code == 404
        resp = client.post("/problems/missing/status", json={"status": "approved"}, headers=admin_headers)
        assert resp.status_code == 404


class TestDepartments:
    def test_grouped_view(self, client, admin_headers):
        client.post("/events", json=OPEN_EVENT, headers=admin_headers)
        _create_problem(client, admin_headers, department="CSE", theme="Academic")
        _create_problem(client, admin_headers, department="CSE", theme="Non-Academic")
        _create_problem(client, admin_headers, department="CSE", theme="Non-Academic")
        approved = _create_problem(client, admin_headers, department="IT", theme="Community Innovation")
        client.post(f"/problems/{approved['id']}/status", json={"status": "approved"}, headers=admin_headers)
        client.post("/registrations", json={"team_name": "Gear Heads", "department": "ME"})

        data = client.get("/departments/grouped").json()
        assert data["departments"] == ["CSE", "ME"]
        assert data["primary_themes"] == {"CSE": "Academic", "ME": "Other"}
        assert [s["theme"] for s in data["sections"]] == ["Academic", "Non-Academic"]

        academic = data["sections"][0]
        assert [d["name"] for d in academic["departments"]] == ["CSE"]
        non_academic = data["sections"][1]
        assert non_academic["problem_count"] == 2
        assert non_academic["departments"] == []

    def test_department_admin_list_includes_engineering(self, client, admin_headers):
        client.post("/registrations", json={"team_name": "Chemists", "department": "Chemical"})
        departments = client.get("/departments").json()["departments"]
        assert "Chemical" in departments
        assert "AIML" in departments
        assert departments == sorted(departments)

    def test_department_problems(self, client, admin_headers):
        client.post("/events", json=OPEN_EVENT, headers=admin_headers)
        _create_problem(client, admin_headers, department="EEE")
        _create_problem(client, admin_headers, department="CSE")
        data = client.get("/departments/EEE/problems").json()
        assert [p["department"] for p in data["problems"]] == ["EEE"]

    def test_catalog(self, client, admin_headers):
        assert client.post("/departments", json={"name": "CSE"}, headers=admin_headers).status_code == 200
        assert client.post("/departments", json={"name": "CSE"}, headers=admin_headers).status_code == 409
        assert client.post("/departments", json={"name": "  "}, headers=admin_headers).status_code == 400
        assert [d["name"] for d in client.get("/departments/catalog").json()["departments"]] == ["CSE"]

    def test_blank_registration_department(self, client):
        resp = client.post("/registrations", json={"team_name": "x", "department": " "})
        assert resp.status_code == 400


class TestEvents:
    def test_event_details_and_registration(self, client, admin_headers):
        event = client.post("/events", json=OPEN_EVENT, headers=admin_headers).json()["event"]
        headers = {"X-User-Id": MEMBER_ID}

        details = client.get(f"/events/{event['id']}", headers=headers).json()
        assert details["registration_open"] is True
        assert details["already_registered"] is False

        assert client.post(f"/events/{event['id']}/register").status_code == 401
        resp = client.post(f"/events/{event['id']}/register", headers=headers)
        assert resp.json() == {"success": True, "already_registered": False}

        details = client.get(f"/events/{event['id']}", headers=headers).json()
        assert details["already_registered"] is True

    def test_closed_registration(self, client, admin_headers):
        closed = dict(OPEN_EVENT, registration_deadline="2000-01-01T00:00:00+00:00")
        event = client.post("/events", json=closed, headers=admin_headers).json()["event"]
        resp = client.post(f"/events/{event['id']}/register", headers={"X-User-Id": MEMBER_ID})
        assert resp.status_code == 409

    def test_malformed_deadline_rejected(self, client, admin_headers):
        resp = client.post("/events", json=dict(OPEN_EVENT, registration_deadline="next friday"),
                           headers=admin_headers)
        assert resp.status_code == 422
        assert client.get("/events").json()["events"] == []

    def test_offset_deadline_closes_registration(self, client, admin_headers):
        # stored as the equivalent UTC instant
        past = dict(OPEN_EVENT, registration_deadline="2000-01-01T10:00:00+05:30")
        event = client.post("/events", json=past, headers=admin_headers).json()["event"]
        assert event["registration_deadline"] == "2000-01-01T04:30:00.000000+00:00"

        details = client.get(f"/events/{event['id']}").json()
        assert details["registration_open"] is False

    def test_problem_deadline_with_offset_closes_submissions(self, client, admin_headers):
        closed = dict(OPEN_EVENT, problem_statement_deadline="2000-01-01T23:00:00-05:00")
        client.post("/events", json=closed, headers=admin_headers)
        resp = client.post("/problems", json={
            "problem_statement_id": "25001", "title": "t", "description": "d",
        }, headers=admin_headers)
        assert resp.status_code == 409

    def test_inactive_events_hidden(self, client, admin_headers):
        client.post("/events", json=dict(OPEN_EVENT, is_active=False), headers=admin_headers)
        assert client.get("/events").json()["events"] == []

    def test_missing_event(self, client):
        assert client.get("/events/missing").status_code == 404


class TestMessages:
    def test_department_chat(self, client):
        assert client.post("/departments/CSE/messages", json={"message": "   "}).status_code == 400
        resp = client.post("/departments/CSE/messages", json={"message": "  Welcome teams  "})
        message = resp.json()["message"]
        assert message["message"] == "Welcome teams"
        assert message["sender_name"] == "Admin"

        messages = client.get("/departments/CSE/messages").json()["messages"]
        assert [m["message"] for m in messages] == ["Welcome teams"]

    def test_message_departments(self, client):
        client.post("/registrations", json={"team_name": "Gear Heads", "department": "ME"})
        assert client.get("/messages/departments").json()["departments"] == ["ME"]

    def test_problem_chat(self, client, admin_headers):
        client.post("/events", json=OPEN_EVENT, headers=admin_headers)
        problem = _create_problem(client, admin_headers)
        url = f"/problems/{problem['id']}/messages"

        assert client.post(url, json={"content": "hi"}).status_code == 401
        assert client.post("/problems/missing/messages", json={"content": "hi"},
                           headers={"X-User-Id": MEMBER_ID}).status_code == 404
        resp = client.post(url, json={"content": "Is a demo video required?"}, headers={"X-User-Id": MEMBER_ID})
        assert resp.status_code == 200

        messages = client.get(url).json()["messages"]
        assert [(m["sender_id"], m["content"]) for m in messages] == [(MEMBER_ID, "Is a demo video required?")]
