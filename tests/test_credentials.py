"""
Tests for Credential Stores
"""

import json

import pytest

from chatbridge import JsonFileCredentialStore, MemoryCredentialStore


@pytest.mark.asyncio
async def test_missing_file_loads_empty(tmp_path):
    """Test that a fresh auth directory yields no credentials."""
    store = JsonFileCredentialStore(str(tmp_path / "auth"))

    assert await store.load() == {}


@pytest.mark.asyncio
async def test_save_merges_and_persists(tmp_path):
    """Test that updates are merged into the stored credentials."""
    auth_dir = tmp_path / "auth"
    store = JsonFileCredentialStore(str(auth_dir))
    await store.load()

    await store.save({"noiseKey": "k1", "registrationId": 42})
    await store.save({"noiseKey": "k2"})

    on_disk = json.loads((auth_dir / "creds.json").read_text())
    assert on_disk == {"noiseKey": "k2", "registrationId": 42}
    assert list(auth_dir.iterdir()) == [auth_dir / "creds.json"]


@pytest.mark.asyncio
async def test_new_store_reads_saved_credentials(tmp_path):
    """Test that credentials survive across store instances."""
    await JsonFileCredentialStore(str(tmp_path)).save({"me": {"id": "1@s.whatsapp.net"}})

    reloaded = await JsonFileCredentialStore(str(tmp_path)).load()

    assert reloaded == {"me": {"id": "1@s.whatsapp.net"}}


@pytest.mark.asyncio
async def test_loaded_credentials_are_copies(tmp_path):
    """Test that mutating loaded credentials does not change the store."""
    store = JsonFileCredentialStore(str(tmp_path))
    await store.save({"keys": {"a": 1}})

    loaded = await store.load()
    loaded["keys"]["a"] = 2

    assert await store.load() == {"keys": {"a": 1}}


@pytest.mark.asyncio
async def test_non_object_file_is_rejected(tmp_path):
    """Test that a corrupt credentials file raises ValueError."""
    (tmp_path / "creds.json").write_text("[1, 2, 3]")
    store = JsonFileCredentialStore(str(tmp_path))

    with pytest.raises(ValueError):
        await store.load()


@pytest.mark.asyncio
async def test_memory_store_merges_updates():
    """Test the in-memory store."""
    store = MemoryCredentialStore({"a": 1})

    await store.save({"b": 2})

    assert await store.load() == {"a": 1, "b": 2}
    assert store.save_count == 1
