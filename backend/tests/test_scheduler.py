import threading

from quizroom.services.rooms import Scheduler


def test_schedule_without_autostart_only_arms(scheduler, clock):
    handle = scheduler.schedule('123456', 'showingQuestion', 0, 5)
    assert handle.active
    assert handle.deadline == clock.now + 5
    assert scheduler.pending('123456') is handle


def test_fire_calls_bound_callback_once(scheduler):
    fired = []
    scheduler.bind(fired.append)
    handle = scheduler.schedule('123456', 'acceptingAnswers', 0, 30)
    scheduler.fire(handle)
    scheduler.fire(handle)
    assert fired == [handle]
    assert not handle.active
    assert scheduler.pending('123456') is None


def test_cancelled_handle_never_reaches_callback(scheduler):
    fired = []
    scheduler.bind(fired.append)
    handle = scheduler.schedule('123456', 'showingQuestion', 0, 5)
    handle.cancel()
    scheduler.fire(handle)
    assert fired == []
    assert scheduler.pending('123456') is None


def test_newer_handle_replaces_pending(scheduler):
    old = scheduler.schedule('123456', 'showingQuestion', 0, 5)
    new = scheduler.schedule('123456', 'acceptingAnswers', 0, 30)
    assert scheduler.pending('123456') is new
    scheduler.fire(old)
    assert scheduler.pending('123456') is new


def test_background_worker_fires_after_delay():
    done = threading.Event()
    fired = []

    def on_fire(handle):
        fired.append(handle)
        done.set()

    scheduler = Scheduler(autostart=True)
    scheduler.bind(on_fire)
    handle = scheduler.schedule('654321', 'showingQuestion', 0, 0.01)
    assert done.wait(2.0)
    assert fired == [handle]


def test_worker_skips_handle_cancelled_while_sleeping():
    fired = []
    scheduler = Scheduler(start_task=lambda fn, *args: fn(*args), autostart=True)
    scheduler.bind(fired.append)
    # The worker runs inline; cancel the handle from inside its sleep
    scheduler._sleep = lambda seconds: scheduler.pending('111111').cancel()
    handle = scheduler.schedule('111111', 'showingQuestion', 0, 5)
    assert handle.cancelled
    assert fired == []
