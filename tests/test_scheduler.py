from areanav.scheduler import WorkScheduler


def test_add_work_debounces_and_returns_last_result(clock):
    calls = []

    def job(value):
        calls.append(value)
        return value * 2

    sched = WorkScheduler(clock)
    assert sched.add_work(job, (1,), delay=10, work_id="job") == 2
    assert sched.add_work(job, (2,), delay=10, work_id="job") == 2
    assert calls == [1]

    clock.advance(5)
    assert sched.process() == 0
    clock.advance(5)
    assert sched.process() == 1
    assert calls == [1, 2]
    assert sched.result("job") == 4
    assert sched.process() == 0


def test_work_limit_per_tick(clock):
    sched = WorkScheduler(clock, work_limit=1)
    assert sched.add_work(lambda: "a", delay=1, work_id="a") == "a"
    assert sched.add_work(lambda: "b", delay=1, work_id="b") is None

    clock.advance(1)
    assert sched.process() == 1
    assert sched.result("b") == "b"


def test_pending_runs_longest_delay_first(clock):
    order = []
    sched = WorkScheduler(clock, work_limit=1)
    sched.add_work(lambda: order.append("warmup"), delay=0, work_id="warmup")
    sched.add_work(lambda: order.append("short"), delay=1, work_id="short")
    sched.add_work(lambda: order.append("long"), delay=5, work_id="long")

    clock.advance(10)
    sched.process()
    assert order == ["warmup", "long"]
    clock.advance(1)
    sched.process()
    assert order == ["warmup", "long", "short"]


def test_clear(clock):
    sched = WorkScheduler(clock)
    sched.add_work(lambda: 1, work_id="x")
    sched.clear()
    assert sched.result("x") is None
