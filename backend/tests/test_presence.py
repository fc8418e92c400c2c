import threading

import pytest

from buzzin.commands import CommandRouter
from buzzin.errors import Forbidden
from buzzin.services.rooms import BroadcastChannel, PresenceTracker, RoomStore


class RecordingChannel:
    def __init__(self):
        self.events = []

    def subscribe(self, sid, code):
        self.events.append(('subscribe', sid, code))

    def unsubscribe(self, sid, code):
        self.events.append(('unsubscribe', sid, code))

    def publish(self, room):
        self.events.append(('publish', room.code, room.buzz_queue, tuple(room.players)))

    def close(self, code, reason, skip_sid=None):
        self.events.append(('close', code, reason, skip_sid))


@pytest.fixture()
def wired():
    now = [0.0]
    store = RoomStore(clock=lambda: now[0])
    channel = RecordingChannel()
    presence = PresenceTracker(store, channel)
    router = CommandRouter(store, presence, channel)
    return store, channel, presence, router, now


def test_require_checks_room_membership(wired):
    store, channel, presence, router, _ = wired
    code = router.dispatch('h1', 'create_room', {'hostName': 'Alice'})['roomCode']
    assert presence.require('h1', code).player_id == 'h1'
    with pytest.raises(Forbidden):
        presence.require('h1', 'NOPE')
    with pytest.raises(Forbidden):
        presence.require('stranger', code)


def test_publish_follows_transition_order(wired):
    store, channel, presence, router, _ = wired
    code = router.dispatch('h1', 'create_room', {})['roomCode']
    router.dispatch('p1', 'join_room', {'roomCode': code, 'name': 'Bob'})
    router.dispatch('p2', 'join_room', {'roomCode': code, 'name': 'Cara'})
    router.dispatch('p2', 'buzz', {'roomCode': code})
    router.dispatch('p1', 'buzz', {'roomCode': code})
    queues = [e[2] for e in channel.events if e[0] == 'publish']
    assert queues[-2:] == [('p2',), ('p2', 'p1')]


def test_failed_commands_are_not_published(wired):
    store, channel, presence, router, _ = wired
    code = router.dispatch('h1', 'create_room', {})['roomCode']
    router.dispatch('p1', 'join_room', {'roomCode': code})
    before = list(channel.events)
    assert router.dispatch('p1', 'next_question', {'roomCode': code})['error'] == 'Forbidden'
    assert router.dispatch('h1', 'lock_buzzers', {'roomCode': code, 'locked': 'yes'})['error'] == 'InvalidInput'
    assert router.dispatch('h1', 'teleport', {'roomCode': code})['error'] == 'InvalidInput'
    assert channel.events == before


def test_host_departure_tears_down(wired):
    store, channel, presence, router, _ = wired
    code = router.dispatch('h1', 'create_room', {})['roomCode']
    router.dispatch('p1', 'join_room', {'roomCode': code})
    router.dispatch('p2', 'join_room', {'roomCode': code})
    router.disconnect('h1')
    assert channel.events[-1] == ('close', code, 'host_left', 'h1')
    assert store.codes() == []
    assert presence.lookup('p1') is None
    assert presence.lookup('p2') is None
    # Players disconnecting afterwards have nothing left to clean up
    router.disconnect('p1')
    router.disconnect('unknown')


def test_player_departure_republishes(wired):
    store, channel, presence, router, _ = wired
    code = router.dispatch('h1', 'create_room', {})['roomCode']
    router.dispatch('p1', 'join_room', {'roomCode': code})
    router.dispatch('p1', 'buzz', {'roomCode': code})
    router.disconnect('p1')
    assert channel.events[-1] == ('publish', code, (), ('h1',))
    assert presence.connections(code) == ['h1']


def test_host_creating_new_room_closes_old_one(wired):
    store, channel, presence, router, _ = wired
    old = router.dispatch('h1', 'create_room', {})['roomCode']
    router.dispatch('p1', 'join_room', {'roomCode': old})
    new = router.dispatch('h1', 'create_room', {})['roomCode']
    assert store.codes() == [new]
    assert ('close', old, 'host_left', 'h1') in channel.events
    assert presence.lookup('h1').room_code == new


def test_reap_idle_rooms(wired):
    store, channel, presence, router, now = wired
    code = router.dispatch('h1', 'create_room', {})['roomCode']
    orphan = store.create_room('ghost', 'Nobody').code
    now[0] = 5000.0
    assert presence.reap_idle(3600) == [orphan]
    assert ('close', orphan, 'idle', None) in channel.events
    assert store.codes() == [code]


def test_failed_join_keeps_current_room(wired):
    store, channel, presence, router, _ = wired
    code = router.dispatch('h1', 'create_room', {})['roomCode']
    router.dispatch('p1', 'join_room', {'roomCode': code, 'name': 'Bob'})
    other = router.dispatch('h2', 'create_room', {})['roomCode']
    before = list(channel.events)

    assert router.dispatch('p1', 'join_room', {'roomCode': 'ZZZZ'})['error'] == 'RoomNotFound'
    assert router.dispatch('p1', 'join_room', {'roomCode': other, 'name': 'x' * 80})['error'] == 'InvalidInput'

    assert channel.events == before
    assert presence.lookup('p1').room_code == code
    assert 'p1' in store.get(code).players
    assert 'p1' not in store.get(other).players


def test_room_closing_during_join_never_strands_player(wired, monkeypatch):
    store, channel, presence, router, _ = wired
    first = router.dispatch('h1', 'create_room', {})['roomCode']
    second = router.dispatch('h2', 'create_room', {})['roomCode']
    router.dispatch('p1', 'join_room', {'roomCode': first})
    closers = []
    real_join = store.join_room

    def join_while_host_leaves(code, player_id, name):
        room = real_join(code, player_id, name)
        # The second room's host drops from another connection right after the join lands
        closer = threading.Thread(target=router.disconnect, args=('h2',))
        closer.start()
        closer.join(timeout=0.2)
        closers.append(closer)
        return room

    monkeypatch.setattr(store, 'join_room', join_while_host_leaves)
    ack = router.dispatch('p1', 'join_room', {'roomCode': second})
    closers[0].join()

    # The join completes under the room's lock, so the player is subscribed
    # before the teardown and hears about it
    assert ack == {'ok': True, 'roomCode': second, 'playerId': 'p1'}
    joined = channel.events.index(('publish', second, (), ('h2', 'p1')))
    assert channel.events.index(('close', second, 'host_left', 'h2')) > joined
    assert store.codes() == [first]
    assert 'p1' not in store.get(first).players


def test_broadcast_channel_logs_without_explicit_logger():
    class FakeSocketIO:
        def __init__(self):
            self.calls = []

        def emit(self, event, data, **kwargs):
            self.calls.append(('emit', event, data, kwargs.get('to'), kwargs.get('skip_sid')))

        def close_room(self, room, namespace=None):
            self.calls.append(('close_room', room))

    sio = FakeSocketIO()
    channel = BroadcastChannel(sio)
    assert channel.logger.name == 'buzzin.services.rooms.broadcast'
    channel.close('AB12', 'idle')
    assert sio.calls == [
        ('emit', 'room_closed', {'roomCode': 'AB12', 'reason': 'idle'}, 'room:AB12', None),
        ('close_room', 'room:AB12'),
    ]
