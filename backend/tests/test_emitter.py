import logging

from crocodile.game.emitter import Emitter


def test_emit_reaches_every_subscriber():
    emitter = Emitter()
    seen = []
    emitter.subscribe('ping', lambda p: seen.append(('one', p)))
    emitter.subscribe('ping', lambda p: seen.append(('two', p)))
    emitter.subscribe('pong', lambda p: seen.append(('pong', p)))

    emitter.emit('ping', 1)

    assert sorted(seen) == [('one', 1), ('two', 1)]


def test_emit_without_subscribers_is_fine():
    Emitter().emit('nobody-listens', {'x': 1})


def test_unsubscribe_removes_exactly_one_registration():
    emitter = Emitter()
    seen = []

    def handler(payload):
        seen.append(payload)

    first = emitter.subscribe('ping', handler)
    emitter.subscribe('ping', handler)

    first()
    first()
    emitter.emit('ping', 'a')

    assert seen == ['a']
    assert emitter.subscriber_count('ping') == 1


def test_handler_may_unsubscribe_while_emitting():
    emitter = Emitter()
    seen = []
    unsubscribe = None

    def once(payload):
        seen.append(payload)
        unsubscribe()

    unsubscribe = emitter.subscribe('ping', once)
    emitter.emit('ping', 1)
    emitter.emit('ping', 2)

    assert seen == [1]


def test_unsubscribe_all_drops_everything():
    emitter = Emitter()
    seen = []
    emitter.subscribe('ping', seen.append)
    emitter.subscribe('pong', seen.append)

    emitter.unsubscribe_all()
    emitter.emit('ping', 1)
    emitter.emit('pong', 2)

    assert seen == []
    assert emitter.subscriber_count('ping') == 0


def test_failing_handler_does_not_stop_fan_out(caplog):
    emitter = Emitter()
    seen = []

    def broken(payload):
        raise RuntimeError('boom')

    emitter.subscribe('ping', broken)
    emitter.subscribe('ping', seen.append)

    with caplog.at_level(logging.ERROR, logger='crocodile.game.emitter'):
        emitter.emit('ping', 1)

    assert seen == [1]
    assert 'ping' in caplog.text
