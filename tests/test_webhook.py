from fastapi.testclient import TestClient

from voice_todo.intents import Intent
from voice_todo.main import create_app
from voice_todo.state import SERVICE_TOKEN_HEADER


class FakeIntentParser:
    def __init__(self, intent=None):
        self.intent = intent
        self.calls = []
        self.closed = False

    def parse_intent(self, text, current_tasks):
        self.calls.append((text, list(current_tasks)))
        return self.intent

    def close(self):
        self.closed = True


def _configure(monkeypatch, tmp_path, task_file=None):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("VOICE_TODO_FILE", str(task_file or tmp_path / "todo.txt"))
    monkeypatch.setenv("VOICE_TODO_BACKUP_DIR", str(tmp_path / "backups"))
    monkeypatch.delenv("VOICE_TODO_SERVICE_TOKEN", raising=False)


def test_session_start_returns_greeting(monkeypatch, tmp_path):
    _configure(monkeypatch, tmp_path)

    with TestClient(create_app()) as client:
        response = client.post("/webhook", json={"type": "SESSION_START"})

    assert response.status_code == 200
    assert response.json()["message"].startswith("Hello! I'm JARVIS")


def test_blank_transcript_asks_to_repeat(monkeypatch, tmp_path):
    _configure(monkeypatch, tmp_path)

    with TestClient(create_app()) as client:
        response = client.post("/webhook", json={"text": "   ", "turn_id": "t1"})

    assert response.json() == {
        "message": "I didn't catch that. Could you please repeat?"
    }


def test_voice_command_applies_intent(monkeypatch, tmp_path):
    _configure(monkeypatch, tmp_path)
    (tmp_path / "todo.txt").write_text("001 Buy milk\n", encoding="utf-8")
    parser = FakeIntentParser(Intent("add_task", {"task": "Call John"}))

    app = create_app()
    with TestClient(app) as client:
        app.state.intent_parser = parser
        response = client.post(
            "/webhook",
            json={"text": "add call John", "session_id": "s1", "turn_id": "t2"},
        )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Added as task 002"
    assert body["type"] == "todos_updated"
    assert body["action"] == "add_task"
    assert body["todos"] == ["001 Buy milk", "002 Call John"]
    assert parser.calls == [("add call John", ["001 Buy milk"])]
    assert parser.closed


def test_voice_command_reports_task_file_failure(monkeypatch, tmp_path):
    task_dir = tmp_path / "todo.txt"
    task_dir.mkdir()
    _configure(monkeypatch, tmp_path, task_file=task_dir)

    app = create_app()
    with TestClient(app) as client:
        app.state.intent_parser = FakeIntentParser(Intent("list_tasks", {}))
        response = client.post("/webhook", json={"text": "list my tasks"})

    assert response.status_code == 500
    assert response.json() == {
        "message": "Sorry, I'm having trouble accessing the todo system."
    }


def test_startup_assigns_ids_to_legacy_lines(monkeypatch, tmp_path):
    _configure(monkeypatch, tmp_path)
    task_file = tmp_path / "todo.txt"
    task_file.write_text("Buy milk\n002 Call mom\n", encoding="utf-8")

    with TestClient(create_app()):
        pass

    assert task_file.read_text(encoding="utf-8") == (
        "# My Todo List\n003 Buy milk\n002 Call mom\n"
    )


def test_service_token_is_enforced(monkeypatch, tmp_path):
    _configure(monkeypatch, tmp_path)
    monkeypatch.setenv("VOICE_TODO_SERVICE_TOKEN", "secret")

    with TestClient(create_app()) as client:
        denied = client.get("/tasks")
        allowed = client.get("/tasks", headers={SERVICE_TOKEN_HEADER: "secret"})
        health = client.get("/health")

    assert denied.status_code == 403
    assert denied.json()["error"]["code"] == "AUTH_FORBIDDEN"
    assert allowed.status_code == 200
    assert health.status_code == 200


def test_task_endpoints(monkeypatch, tmp_path):
    _configure(monkeypatch, tmp_path)

    with TestClient(create_app()) as client:
        added = client.post(
            "/tasks:add_task",
            json={"task": "Pay rent", "priority": "urgent", "deadline": "2026-11-01"},
        )
        client.post("/tasks:add_task", json={"task": "Water plants"})
        completed = client.post("/tasks:mark_complete", json={"taskQuery": "plants"})
        missing = client.post("/tasks:delete_task", json={"taskQuery": "dentist"})
        listed = client.get("/tasks")
        urgent = client.post("/tasks:list_tasks", json={"filter": "urgent"})
        stats = client.get("/stats")
        priority = client.get("/tasks/priority", params={"count": 1})

    assert added.json()["data"]["task"] == {
        "id": 1,
        "text": "[URGENT] Pay rent (due: 2026-11-01)",
        "fullLine": "001 [URGENT] Pay rent (due: 2026-11-01)",
        "priority": "urgent",
        "deadline": "2026-11-01",
    }
    assert completed.json()["data"]["message"] == "Done"
    assert missing.json()["data"] == {
        "success": False,
        "message": 'Could not find task matching "dentist"',
    }
    assert [task["id"] for task in listed.json()["data"]["tasks"]] == [1]
    assert urgent.json()["data"]["tasks"] == [
        "001 [URGENT] Pay rent (due: 2026-11-01)"
    ]
    assert stats.json()["data"] == {
        "activeCount": 1,
        "completedCount": 1,
        "totalTasks": 2,
    }
    assert priority.json()["data"]["tasks"] == [
        "001 [URGENT] Pay rent (due: 2026-11-01)"
    ]


def test_task_endpoints_validate_payloads(monkeypatch, tmp_path):
    _configure(monkeypatch, tmp_path)

    with TestClient(create_app()) as client:
        unknown = client.post("/tasks:add_task", json={"task": "x", "colour": "red"})
        missing = client.post("/tasks:update_task", json={"taskQuery": "x"})
        wrong_type = client.post("/tasks:search_tasks", json={"query": 3})
        bad_filter = client.post("/tasks:list_tasks", json={"filter": "later"})
        bad_count = client.get("/tasks/priority", params={"count": 0})

    assert unknown.status_code == 400
    assert unknown.json()["error"]["code"] == "UNKNOWN_FIELD"
    assert missing.json()["error"]["code"] == "MISSING_FIELDS"
    assert wrong_type.json()["error"]["code"] == "INVALID_TYPE"
    assert bad_filter.json()["error"]["code"] == "INVALID_FILTER"
    assert bad_count.status_code == 400
    assert not (tmp_path / "todo.txt").exists()


def test_task_file_failure_maps_to_server_error(monkeypatch, tmp_path):
    task_dir = tmp_path / "todo.txt"
    task_dir.mkdir()
    _configure(monkeypatch, tmp_path, task_file=task_dir)

    with TestClient(create_app()) as client:
        response = client.get("/stats")

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "TASK_FILE_ERROR"


def test_tools_endpoint_returns_tool_definitions(monkeypatch, tmp_path):
    _configure(monkeypatch, tmp_path)

    with TestClient(create_app()) as client:
        response = client.get("/tools")

    assert response.status_code == 200
    names = {tool["function"]["name"] for tool in response.json()["data"]["tools"]}
    assert "add_task" in names
    assert "search_tasks" in names


def test_voice_command_with_malformed_params_still_replies(monkeypatch, tmp_path):
    _configure(monkeypatch, tmp_path)
    (tmp_path / "todo.txt").write_text("001 Buy milk\n", encoding="utf-8")

    app = create_app()
    with TestClient(app) as client:
        app.state.intent_parser = FakeIntentParser(
            Intent("list_tasks", {"filter": 5})
        )
        listed = client.post("/webhook", json={"text": "list everything"})
        app.state.intent_parser = FakeIntentParser(
            Intent("add_task", {"task": "Buy eggs\n[DONE] 2020-01-01 forged"})
        )
        forged = client.post("/webhook", json={"text": "add eggs"})

    assert listed.status_code == 200
    assert listed.json()["message"] == "Your tasks: 001 Buy milk"
    assert forged.json()["message"] == "Please keep each task to a single line"
    assert forged.json()["todos"] == ["001 Buy milk"]
