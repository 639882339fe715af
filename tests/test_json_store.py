"""Tests for src.adapters.json_store: JsonEventStore."""

import json

import pytest

from src.adapters.json_store import JsonEventStore
from src.data.models import EventStatus
from src.ports.event_store import (
    DuplicateEventError,
    EventNotFoundError,
    EventStoreError,
    EventStorePort,
)


class TestJsonStoreEvents:
    def test_create_and_get(self, json_store):
        created = json_store.create_event(1, "meeting", "2025-09-07 14:30", "Q1 review")
        fetched = json_store.get_event(1, "meeting")
        assert fetched == created
        assert fetched.status == EventStatus.ACTIVE

    def test_ids_increase_across_chats(self, json_store):
        a = json_store.create_event(1, "a", "2025-09-07")
        b = json_store.create_event(2, "b", "2025-09-07")
        c = json_store.create_event(1, "c", "2025-09-07")
        assert (a.id, b.id, c.id) == (1, 2, 3)

    def test_duplicate_raises(self, json_store):
        json_store.create_event(1, "meeting", "2025-09-07")
        with pytest.raises(DuplicateEventError):
            json_store.create_event(1, "meeting", "2025-10-01")

    def test_same_name_other_chat(self, json_store):
        json_store.create_event(1, "meeting", "2025-09-07")
        json_store.create_event(2, "meeting", "2025-10-01")
        assert json_store.get_event(2, "meeting").date == "2025-10-01"

    def test_missing_raises(self, json_store):
        with pytest.raises(EventNotFoundError):
            json_store.get_event(1, "ghost")

    def test_list_in_insertion_order(self, json_store):
        json_store.create_event(1, "b_event", "2025-09-07")
        json_store.create_event(1, "a_event", "2025-09-06")
        json_store.create_event(2, "other", "2025-09-06")
        assert [e.name for e in json_store.list_events(1)] == ["b_event", "a_event"]

    def test_list_unknown_chat(self, json_store):
        assert json_store.list_events(5) == []

    def test_find_across_chats(self, json_store):
        json_store.create_event(1, "party", "2025-12-31")
        json_store.create_event(4, "party", "2026-01-01")
        event, chat_id = json_store.find_event_across_chats("party", exclude_chat_id=1)
        assert chat_id == 4
        assert event.date == "2026-01-01"

    def test_find_across_chats_returns_oldest(self, json_store, event_db):
        for store in (json_store, event_db):
            store.create_event(10, "y", "2025-12-31")
            store.create_event(20, "x", "2025-12-31")
            store.create_event(10, "x", "2026-01-01")
        json_event, json_chat = json_store.find_event_across_chats("x", exclude_chat_id=1)
        db_event, db_chat = event_db.find_event_across_chats("x", exclude_chat_id=1)
        assert json_chat == db_chat == 20
        assert json_event.id == db_event.id == 2

    def test_find_across_chats_missing(self, json_store):
        json_store.create_event(1, "party", "2025-12-31")
        with pytest.raises(EventNotFoundError):
            json_store.find_event_across_chats("party", exclude_chat_id=1)

    def test_update_status(self, json_store):
        json_store.create_event(1, "meeting", "2025-09-07")
        json_store.update_event_status(1, "meeting", EventStatus.OUTDATED)
        assert json_store.get_event(1, "meeting").status == EventStatus.OUTDATED


class TestJsonStoreUsers:
    def test_link_and_list(self, json_store):
        event = json_store.create_event(1, "meeting", "2025-09-07")
        json_store.link_event_to_user(1, 77, event.id)
        json_store.link_event_to_user(1, 77, event.id)
        assert json_store.list_user_event_ids(1, 77) == [event.id]
        assert json_store.list_user_event_ids(1, 88) == []


class TestEventStorePort:
    def test_both_stores_implement_the_port(self, json_store, event_db):
        operations = [
            name for name in vars(EventStorePort)
            if not name.startswith("_")
        ]
        assert "list_user_event_ids" in operations
        for store in (json_store, event_db):
            for name in operations:
                assert callable(getattr(store, name)), name


class TestJsonStoreFile:
    def test_document_layout(self, tmp_path):
        path = tmp_path / "events.json"
        store = JsonEventStore(path=str(path))
        event = store.create_event(1, "meeting", "2025-09-07 14:30")
        store.link_event_to_user(1, 77, event.id)

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data[0]["chat_id"] == 1
        assert data[0]["events"][0]["name"] == "meeting"
        assert data[0]["events"][0]["status"] == "active"
        assert "chat_id" not in data[0]["events"][0]
        assert data[0]["users"] == [{"user_id": 77, "event_ids": [event.id]}]

    def test_survives_reopen(self, tmp_path):
        path = str(tmp_path / "events.json")
        JsonEventStore(path=path).create_event(1, "meeting", "2025-09-07 14:30")
        assert JsonEventStore(path=path).get_event(1, "meeting").date == "2025-09-07 14:30"

    def test_no_temp_file_left(self, tmp_path):
        store = JsonEventStore(path=str(tmp_path / "events.json"))
        store.create_event(1, "meeting", "2025-09-07")
        assert [p.name for p in tmp_path.iterdir()] == ["events.json"]

    def test_missing_file_is_empty(self, json_store):
        json_store.ping()
        assert json_store.list_events(1) == []

    def test_corrupt_file_raises_store_error(self, tmp_path):
        path = tmp_path / "events.json"
        path.write_text("{not json", encoding="utf-8")
        store = JsonEventStore(path=str(path))
        with pytest.raises(EventStoreError):
            store.ping()
        with pytest.raises(EventStoreError):
            store.list_events(1)
