import logging
import os

from jukebox.core.item_store import ItemStore


def test_allocate_returns_unique_paths(tmp_path):
    store = ItemStore(str(tmp_path), guild_id=7)

    paths = [store.allocate() for _ in range(200)]

    assert len(set(paths)) == 200
    assert all(os.path.basename(p).startswith("audio_7_") for p in paths)
    assert all(p.endswith(".mp3") for p in paths)
    assert all(store.is_live(p) for p in paths)


def test_two_stores_never_collide(tmp_path):
    first = ItemStore(str(tmp_path), guild_id=1)
    second = ItemStore(str(tmp_path), guild_id=1)

    assert first.allocate() != second.allocate()


def test_release_deletes_file_once(tmp_path, caplog):
    store = ItemStore(str(tmp_path), guild_id=1)
    path = store.allocate()
    with open(path, "wb") as f:
        f.write(b"data")

    assert store.release(path) is True
    assert not os.path.exists(path)

    with caplog.at_level(logging.WARNING):
        assert store.release(path) is False
    assert "already released" in caplog.text


def test_release_of_missing_file_is_logged_not_raised(tmp_path, caplog):
    store = ItemStore(str(tmp_path), guild_id=1)
    path = store.allocate()

    with caplog.at_level(logging.WARNING):
        assert store.release(path) is True
    assert "does not exist" in caplog.text
    assert not store.is_live(path)


def test_release_all(tmp_path):
    store = ItemStore(str(tmp_path), guild_id=1)
    paths = [store.allocate() for _ in range(3)]
    for path in paths[:2]:
        with open(path, "wb") as f:
            f.write(b"data")

    assert store.release_all() == 3
    assert store.live_paths() == []
    assert os.listdir(tmp_path) == []


def test_purge_stale_keeps_live_and_foreign_files(tmp_path):
    store = ItemStore(str(tmp_path), guild_id=1)
    live = store.allocate()
    with open(live, "wb") as f:
        f.write(b"playing")
    (tmp_path / "audio_1_1_1.mp3").write_bytes(b"stale")
    (tmp_path / "audio_1_1_2.mp3.part").write_bytes(b"stale")
    (tmp_path / "audio_2_1_3.mp3").write_bytes(b"other guild")

    assert store.purge_stale() == 2
    assert sorted(os.listdir(tmp_path)) == sorted([os.path.basename(live), "audio_2_1_3.mp3"])
