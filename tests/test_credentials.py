"""Multi-file credential store."""

import json

import pytest

from wa_relay.auth import CredentialStore
from wa_relay.models.session import Session


def test_load_without_directory_gives_unregistered_session(tmp_path):
    session = CredentialStore(tmp_path / "missing").load()
    assert session.creds == {}
    assert session.registered is False


def test_saved_creds_are_loaded_back(tmp_path):
    store = CredentialStore(tmp_path / "session")
    store.save(Session(creds={"registered": True, "me": {"id": "628123:4@s.whatsapp.net"}}))

    session = store.load()
    assert session.registered is True
    assert session.account_id == "628123:4@s.whatsapp.net"
    assert json.loads((tmp_path / "session" / "creds.json").read_text())["registered"] is True


def test_unreadable_creds_file_is_ignored(tmp_path):
    directory = tmp_path / "session"
    directory.mkdir()
    (directory / "creds.json").write_text("{not json")
    assert CredentialStore(directory).load().registered is False


def test_session_update_merges_partial_creds():
    session = Session(creds={"registered": False, "noiseKey": "abc"})
    session.update({"registered": True})
    assert session.creds == {"registered": True, "noiseKey": "abc"}
    assert session.registered is True


def test_keys_written_one_file_each_with_safe_names(tmp_path):
    store = CredentialStore(tmp_path / "session")
    store.write_keys({
        "pre-key": {"1": {"public": "a"}, "2": {"public": "b"}},
        "session": {"628123:4@s.whatsapp.net": {"record": "x"}},
        "app-state-sync-key": {"AAA/BBB": {"keyData": "y"}},
    })

    names = sorted(p.name for p in store.files())
    assert names == [
        "app-state-sync-key-AAA__BBB.json",
        "pre-key-1.json",
        "pre-key-2.json",
        "session-628123-4@s.whatsapp.net.json",
    ]
    assert store.read_keys("pre-key", ["1", "2", "3"]) == {"1": {"public": "a"}, "2": {"public": "b"}}
    assert store.read_keys("session", ["628123:4@s.whatsapp.net"]) == {
        "628123:4@s.whatsapp.net": {"record": "x"},
    }


def test_none_value_deletes_key(tmp_path):
    store = CredentialStore(tmp_path / "session")
    store.write_keys({"pre-key": {"1": {"public": "a"}}})
    store.write_keys({"pre-key": {"1": None, "9": None}})
    assert store.read_keys("pre-key", ["1"]) == {}
    assert store.files() == []


def test_clear_removes_every_file(tmp_path):
    store = CredentialStore(tmp_path / "session")
    store.save(Session(creds={"registered": True}))
    store.write_keys({"pre-key": {"1": {"public": "a"}}})

    removed = store.clear()

    assert sorted(p.name for p in removed) == ["creds.json", "pre-key-1.json"]
    assert store.files() == []
    assert store.load().registered is False


def test_registered_is_read_from_creds():
    session = Session()
    assert not session.registered

    session.update({"registered": True})

    assert session.registered
    with pytest.raises((AttributeError, ValueError)):
        session.registered = False
