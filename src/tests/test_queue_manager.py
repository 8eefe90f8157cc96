import pytest

from jukebox.core.interfaces import QueueItem
from jukebox.core.queue_manager import PlayQueue
from jukebox.utils.exceptions import QueueEmpty


def make_item(item_id):
    return QueueItem(item_id=item_id, source_locator=f"https://youtu.be/{item_id}",
                     artifact_path=f"/tmp/audio_{item_id}.mp3")


def test_fifo_order():
    queue = PlayQueue(guild_id=1)
    items = [make_item(i) for i in range(3)]
    for item in items:
        queue.append(item)

    assert queue.peek_length() == 3
    assert [queue.pop_front() for _ in range(3)] == items
    assert len(queue) == 0


def test_pop_front_on_empty_queue_raises():
    queue = PlayQueue(guild_id=1)

    with pytest.raises(QueueEmpty):
        queue.pop_front()


def test_snapshot_is_a_copy_and_drain_empties():
    queue = PlayQueue(guild_id=1)
    queue.append(make_item(1))
    queue.append(make_item(2))

    snapshot = queue.snapshot()
    snapshot.clear()
    assert queue.peek_length() == 2

    drained = queue.drain()
    assert [item.item_id for item in drained] == [1, 2]
    assert queue.peek_length() == 0
