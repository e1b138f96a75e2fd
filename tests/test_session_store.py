import json

from design_assistant.session_store import SessionStore


def test_append_exchange_records_json_and_title():
    store = SessionStore()
    store.ensure_session("s1")
    assert store.list_sessions()[0].title == "New Chat"

    store.append_exchange("s1", "What is the select component?\nthanks", json.dumps({"componentName": "Select"}))
    summary = store.list_sessions()[0]
    assert summary.title == "What is the select component?"
    assert store.history("s1") == [
        {"role": "user", "content": "What is the select component?\nthanks"},
        {"role": "assistant", "content": '{"componentName": "Select"}'},
    ]


def test_title_is_truncated_and_kept():
    store = SessionStore()
    store.append_exchange("s1", "x" * 80, "{}")
    store.append_exchange("s1", "second question", "{}")
    summary = store.list_sessions()[0]
    assert summary.title == "x" * 48
    assert len(store.get_messages("s1")) == 4


def test_list_sessions_most_recent_first():
    store = SessionStore()
    for session_id in ("a", "b", "c"):
        store.ensure_session(session_id)
    store.append_exchange("a", "hello there", "{}")
    assert [s.session_id for s in store.list_sessions()] == ["a", "c", "b"]


def test_prune_drops_least_recent():
    store = SessionStore(max_sessions=2)
    store.append_exchange("a", "first", "{}")
    store.append_exchange("b", "second", "{}")
    store.append_exchange("a", "again", "{}")
    store.append_exchange("c", "third", "{}")
    assert [s.session_id for s in store.list_sessions()] == ["c", "a"]
    assert store.get_messages("b") == []


def test_unknown_session_is_empty():
    assert SessionStore().history("nope") == []
