import gc
import uuid

from pool_manager.services import schedule_locks
from pool_manager.services.schedule_locks import player_schedule_lock


def test_lock_is_shared_while_held():
    player_id = uuid.uuid4()
    with player_schedule_lock([player_id]):
        lock = schedule_locks._player_locks[player_id]
        assert lock.locked()
        assert schedule_locks._lock_for(player_id) is lock
    assert not lock.locked()


def test_released_locks_leave_the_registry():
    ids = [uuid.uuid4() for _ in range(50)]
    for player_id in ids:
        with player_schedule_lock([player_id, None]):
            pass
    gc.collect()

    assert not any(player_id in schedule_locks._player_locks for player_id in ids)
