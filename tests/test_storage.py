from datetime import datetime, timedelta
from pathlib import Path

import pytest

from wx_autoreply.storage.contacts import ContactStore
from wx_autoreply.storage.history import ConversationStore
from wx_autoreply.storage.models import ChatTurn, Correspondent, OutcomeLogEntry
from wx_autoreply.storage.reply_log import OutcomeLog


def test_history_window_evicts_oldest(tmp_path: Path):
    store = ConversationStore(tmp_path, max_turns=3)
    for i in range(5):
        store.append("c1", ChatTurn(role="user", content=f"m{i}", timestamp=i))

    assert [t.content for t in store.get("c1")] == ["m2", "m3", "m4"]
    # Reload from disk.
    assert [t.content for t in ConversationStore(tmp_path).get("c1")] == ["m2", "m3", "m4"]


def test_history_unknown_and_cleared(tmp_path: Path):
    store = ConversationStore(tmp_path)
    assert store.get("missing") == []

    store.append("c1", ChatTurn(role="assistant", content="ok"))
    store.clear("c1")
    store.clear("c1")
    assert store.get("c1") == []


def test_history_ignores_corrupt_file(tmp_path: Path):
    store = ConversationStore(tmp_path)
    (tmp_path / "chat_history" / "c1.json").write_text("{not json", encoding="utf-8")

    assert store.get("c1") == []


def test_outcome_log_newest_first_and_bounded(tmp_path: Path):
    log = OutcomeLog(tmp_path, max_entries=2)
    for i in range(3):
        log.append(OutcomeLogEntry(contact_name="Bob", received_message=f"q{i}", replied_message=f"a{i}"))

    assert [e.received_message for e in log.entries()] == ["q2", "q1"]

    log.clear()
    assert log.entries() == []


def test_today_success_count_ignores_failures_and_yesterday(tmp_path: Path):
    log = OutcomeLog(tmp_path)
    now = datetime(2026, 10, 19, 15, 0)
    today_ms = int(now.timestamp() * 1000)
    yesterday_ms = int((now - timedelta(days=1)).timestamp() * 1000)

    log.append(OutcomeLogEntry(contact_name="a", received_message="x", replied_message="y", timestamp=yesterday_ms))
    log.append(OutcomeLogEntry(contact_name="a", received_message="x", replied_message="y", timestamp=today_ms))
    log.append(
        OutcomeLogEntry(
            contact_name="a", received_message="x", replied_message="no", timestamp=today_ms, success=False
        )
    )

    assert log.today_success_count(now) == 1


def test_contacts_crud(tmp_path: Path):
    history = ConversationStore(tmp_path)
    store = ContactStore(tmp_path, history=history)
    bob = store.add(Correspondent(name="Bob", style="terse"))

    with pytest.raises(ValueError):
        store.add(bob)

    assert store.get(bob.id).style == "terse"
    assert store.update(bob.model_copy(update={"style": "warm"})) is True
    assert store.get(bob.id).style == "warm"
    assert store.update(Correspondent(name="ghost")) is False

    assert store.toggle(bob.id) is False
    assert store.enabled() == []
    assert store.toggle(bob.id) is True
    assert store.toggle("missing") is False

    history.append(bob.id, ChatTurn(role="user", content="hi"))
    assert store.remove(bob.id) is True
    assert store.remove(bob.id) is False
    assert store.contacts() == []
    assert history.get(bob.id) == []


def test_find_by_name_matches_substrings_of_enabled_contacts(tmp_path: Path):
    store = ContactStore(tmp_path)
    zhang = store.add(Correspondent(name="张三"))
    store.add(Correspondent(name="   "))
    off = store.add(Correspondent(name="李四", enabled=False))

    assert store.find_by_name("张三") == zhang
    assert store.find_by_name("张三(工作)") == zhang
    assert store.find_by_name("张") == zhang
    assert store.find_by_name("李四") is None
    assert store.find_by_name("") is None
    assert off.enabled is False
