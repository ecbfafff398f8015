from crocodile.game.models import TimerState
from crocodile.game.timer import Timer


def test_idle_timer_has_no_state(scheduler):
    timer = Timer(scheduler)
    assert timer.state is None
    assert not timer.is_running


def test_start_exposes_a_wall_clock_snapshot(scheduler):
    timer = Timer(scheduler)
    timer.start(3_000, lambda: None)

    assert timer.is_running
    assert timer.state == TimerState(start_time=1_700_000_000_000, duration=3_000)

    scheduler.advance(1)
    assert timer.state.remaining(scheduler.now_ms()) == 2_000


def test_expiry_fires_once_after_going_idle(scheduler):
    timer = Timer(scheduler)
    seen = []
    timer.start(2_000, lambda: seen.append(timer.state))

    scheduler.advance(1.5)
    assert seen == []

    scheduler.advance(0.5)
    assert seen == [None]
    assert not timer.is_running

    scheduler.advance(10)
    assert seen == [None]


def test_restart_replaces_the_previous_run(scheduler):
    timer = Timer(scheduler)
    fired = []
    timer.start(1_000, lambda: fired.append('first'))
    scheduler.advance(0.5)
    timer.start(1_000, lambda: fired.append('second'))

    scheduler.advance(0.75)
    assert fired == []
    assert timer.state.start_time == 1_700_000_000_500

    scheduler.advance(0.25)
    assert fired == ['second']


def test_stop_cancels_and_is_idempotent(scheduler):
    timer = Timer(scheduler)
    fired = []
    timer.stop()

    timer.start(1_000, lambda: fired.append(True))
    timer.stop()
    timer.stop()
    scheduler.advance(5)

    assert fired == []
    assert timer.state is None


def test_callback_may_restart_the_timer(scheduler):
    timer = Timer(scheduler)
    fired = []

    def on_expire():
        fired.append(scheduler.now)
        if len(fired) < 3:
            timer.start(1_000, on_expire)

    timer.start(1_000, on_expire)
    scheduler.advance(10)

    assert len(fired) == 3
    assert not timer.is_running


def test_remaining_never_goes_negative():
    state = TimerState(start_time=1_000, duration=500)
    assert state.remaining(1_200) == 300
    assert state.remaining(9_000) == 0
    assert state.to_dict() == {'startTime': 1_000, 'duration': 500}
