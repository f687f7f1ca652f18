import json

import httpx

from voice_todo.intents import (
    ERROR_FUNCTION,
    NOT_UNDERSTOOD_MESSAGE,
    UNAVAILABLE_MESSAGE,
    Intent,
    IntentParser,
    intent_from_message,
)

TOOLS = [
    {
        "type": "function",
        "function": {"name": "add_task", "parameters": {"type": "object"}},
    }
]


def _parser(handler):
    http = httpx.Client(transport=httpx.MockTransport(handler))
    return IntentParser("http://llm.test/v1/", "test-model", tools=TOOLS, http=http)


def _reply(message):
    def handler(request):
        return httpx.Response(200, json={"choices": [{"message": message}]})

    return handler


def test_parse_intent_reads_json_content():
    parser = _parser(
        _reply(
            {
                "role": "assistant",
                "content": 'Sure: {"function": "add_task", "params": {"task": "Call John"}}',
            }
        )
    )

    intent = parser.parse_intent("add call John", [])

    assert intent == Intent("add_task", {"task": "Call John"})


def test_parse_intent_prefers_tool_calls():
    parser = _parser(
        _reply(
            {
                "role": "assistant",
                "content": '{"function": "list_tasks", "params": {}}',
                "tool_calls": [
                    {
                        "type": "function",
                        "function": {
                            "name": "mark_complete",
                            "arguments": '{"taskQuery": "dentist"}',
                        },
                    }
                ],
            }
        )
    )

    intent = parser.parse_intent("mark dentist done", [])

    assert intent == Intent("mark_complete", {"taskQuery": "dentist"})


def test_parse_intent_ignores_think_blocks():
    parser = _parser(
        _reply(
            {
                "role": "assistant",
                "content": (
                    '<think>maybe {"function": "delete_task"}</think>'
                    '{"function": "list_tasks", "params": {"filter": "urgent"}}'
                ),
            }
        )
    )

    intent = parser.parse_intent("what needs my attention", [])

    assert intent == Intent("list_tasks", {"filter": "urgent"})


def test_parse_intent_reports_unreadable_reply():
    parser = _parser(_reply({"role": "assistant", "content": "I am not sure."}))

    intent = parser.parse_intent("sing a song", [])

    assert intent.function == ERROR_FUNCTION
    assert intent.params["message"] == NOT_UNDERSTOOD_MESSAGE


def test_parse_intent_reports_server_error():
    parser = _parser(lambda request: httpx.Response(500, json={"error": "boom"}))

    intent = parser.parse_intent("add milk", [])

    assert intent == Intent.error(UNAVAILABLE_MESSAGE)


def test_parse_intent_reports_connection_failure():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    intent = _parser(handler).parse_intent("add milk", [])

    assert intent == Intent.error(UNAVAILABLE_MESSAGE)


def test_parse_intent_sends_current_tasks_and_tools():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "choices": [
                    {"message": {"content": '{"function": "list_tasks", "params": {}}'}}
                ]
            },
        )

    _parser(handler).parse_intent("list", ["001 Buy milk", "002 Call mom"])

    assert seen["url"] == "http://llm.test/v1/chat/completions"
    body = seen["body"]
    assert body["model"] == "test-model"
    assert body["tools"] == TOOLS
    assert "001 Buy milk, 002 Call mom" in body["messages"][0]["content"]
    assert body["messages"][1] == {"role": "user", "content": "list"}


def test_intent_from_message_skips_bad_tool_arguments():
    message = {
        "tool_calls": [
            {"function": {"name": "add_task", "arguments": "{not json"}}
        ],
        "content": '{"function": "add_task", "params": {"task": "milk"}}',
    }

    assert intent_from_message(message) == Intent("add_task", {"task": "milk"})
