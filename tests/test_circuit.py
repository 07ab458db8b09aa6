import pytest

from areanav.circuit import CircuitBreaker
from areanav.options import NavOptions


def test_failures_penalize_and_block(scenario_graph, clock):
    breaker = CircuitBreaker(NavOptions(), clock=clock)
    costs = [scenario_graph.connection(1, 2).cost]

    assert breaker.add_failure(scenario_graph, 1, 2) is False
    costs.append(scenario_graph.connection(1, 2).cost)
    assert breaker.add_failure(scenario_graph, 1, 2) is True
    costs.append(scenario_graph.connection(1, 2).cost)

    assert costs == sorted(costs)
    assert costs[-1] == pytest.approx(100.0 + 2 * 100.0 + 500.0)
    assert scenario_graph.connection(2, 1).cost == pytest.approx(800.0)
    assert breaker.is_blocked(1, 2)
    assert not breaker.is_blocked(2, 1)


def test_block_lapses_after_duration(scenario_graph, clock):
    breaker = CircuitBreaker(NavOptions(), clock=clock)
    breaker.add_failure(scenario_graph, 1, 2)
    breaker.add_failure(scenario_graph, 1, 2)

    clock.advance(300)
    assert breaker.is_blocked(1, 2)
    clock.advance(1)
    assert not breaker.is_blocked(1, 2)
    assert breaker.record(1, 2).count == 0
    # Penalties stay after the block lapses.
    assert scenario_graph.connection(1, 2).cost == pytest.approx(800.0)


def test_halve_policy(clock):
    breaker = CircuitBreaker(NavOptions(max_failures=4, unblock_policy="halve"), clock=clock)
    for _ in range(5):
        breaker.add_failure(None, 1, 2)
    clock.advance(301)
    assert not breaker.is_blocked(1, 2)
    assert breaker.record(1, 2).count == 2


def test_manual_block_and_unblock(scenario_graph, clock):
    breaker = CircuitBreaker(NavOptions(), clock=clock)
    breaker.block(scenario_graph, 2, 3)
    assert breaker.is_blocked(2, 3)
    assert scenario_graph.connection(2, 3).penalty == pytest.approx(500.0)

    assert breaker.unblock(2, 3) is True
    assert not breaker.is_blocked(2, 3)
    assert breaker.unblock(7, 8) is False


def test_cleanup_prunes_stale_records(clock):
    opts = NavOptions(block_duration=10, stale_factor=2, cleanup_interval=5)
    breaker = CircuitBreaker(opts, clock=clock)
    breaker.add_failure(None, 1, 2)
    clock.advance(3)
    assert breaker.cleanup() == 0

    clock.advance(18)
    assert breaker.cleanup() == 1
    assert len(breaker) == 0


def test_cleanup_releases_expired_blocks_first(clock):
    opts = NavOptions(block_duration=10, stale_factor=1, cleanup_interval=0)
    breaker = CircuitBreaker(opts, clock=clock)
    breaker.add_failure(None, 1, 2)
    breaker.add_failure(None, 1, 2)
    clock.advance(11)
    assert breaker.cleanup() == 1


def test_entry_cap_drops_oldest(clock):
    breaker = CircuitBreaker(NavOptions(max_entries=3), clock=clock)
    for target in range(5):
        breaker.add_failure(None, 0, target)
    assert len(breaker) == 3
    assert breaker.record(0, 0) is None
    assert breaker.record(0, 4) is not None


def test_status_and_clear(clock):
    breaker = CircuitBreaker(NavOptions(), clock=clock)
    breaker.block(None, 1, 2)
    status = breaker.status()
    assert status["tracked"] == 1
    assert status["blocked_edges"] == [[1, 2]]
    assert breaker.clear() == 1
    assert breaker.status()["blocked"] == 0
