"""
Allocation Engine Tests

Tests the request/release workflow, detection events, recovery, history
navigation and listener notification.
"""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from algorithms.prevention import PreventionStrategy
from algorithms.scenarios import circular_wait, dining_philosophers
from analysis.events import EventType
from analysis.metrics import EngineMetrics
from engine import AllocationEngine
from models.errors import ConfigurationError, EngineStateError
from utils.logger import EngineLogger
from utils.scenario_loader import load_scenario


SCENARIOS_DIR = project_root / "scenarios"


class RecordingListener:
    """Collects callbacks for assertions."""

    def __init__(self, name="listener", calls=None):
        self.name = name
        self.calls = calls if calls is not None else []

    def on_deadlock_detected(self, processes, event):
        self.calls.append((self.name, "detected", list(processes), event))

    def on_deadlock_resolved(self, processes, strategy):
        self.calls.append((self.name, "resolved", list(processes), strategy))


def classic_engine() -> AllocationEngine:
    engine = AllocationEngine()
    engine.load_scenario(load_scenario(str(SCENARIOS_DIR / "banker_classic.json")))
    return engine


def three_cycle_engine(listener=None) -> AllocationEngine:
    """initialize(3, 3, [1, 1, 1]); P(i) holds R(i) then waits for R(i+1 mod 3)."""
    engine = AllocationEngine()
    engine.initialize(3, 3, [1, 1, 1])
    if listener is not None:
        engine.add_deadlock_listener(listener)
    for i in range(3):
        demand = [0, 0, 0]
        demand[i] = 1
        engine.set_max_demand(i, demand)
        assert engine.request_resource(i, i, 1)
    for i in range(3):
        engine.wait_for_resource(i, (i + 1) % 3, 1)
    return engine


def test_initialize_records_initial_state():
    engine = AllocationEngine()
    engine.initialize(2, 3, [4, 5, 6])

    state = engine.get_current_state()
    assert state is not None
    assert list(state.available_vector) == [4, 5, 6]
    assert engine.history_size == 1
    assert not engine.can_go_back()
    assert not engine.can_go_forward()


def test_grant_request_updates_matrices_and_graph():
    print("\n" + "="*60)
    print("TEST: Grant P1 R0[1] in classic Banker's state")
    print("="*60)

    engine = classic_engine()
    granted = engine.request_resource(1, 0, 1)

    print(engine.display())
    assert granted, "Request should be granted (safe)"
    assert engine.available_vector[0] == 2
    assert engine.allocation_matrix[1][0] == 3
    assert engine.resource_graph.allocation_edges[1][0] == 3
    assert engine.history_size == 2
    assert len(engine.event_log.get_events_by_type(EventType.ALLOCATION)) == 1
    print("  ✓ Available[0] = 2, Allocation[1][0] = 3")


def test_unsafe_request_denied_without_mutation():
    engine = classic_engine()
    before = engine.get_current_state()

    granted = engine.request_resource(0, 2, 2)

    assert not granted
    assert engine.history_size == 1, "Denial records no new state"
    assert np.array_equal(engine.allocation_matrix, before.allocation_matrix)
    assert np.array_equal(engine.available_vector, before.available_vector)
    assert engine.metrics.prevented_deadlocks == 1
    denials = engine.event_log.get_events_by_type(EventType.DENIAL)
    assert len(denials) == 1
    assert "Unsafe" in denials[0].reason


def test_denial_reasons():
    engine = classic_engine()

    assert not engine.request_resource(0, 0, 8)
    assert not engine.request_resource(0, 0, 4)
    reasons = [e.reason for e in engine.event_log.get_events_by_type(EventType.DENIAL)]
    assert reasons[0].startswith("Request exceeds need")
    assert reasons[1].startswith("Insufficient resources")


def test_three_cycle_detected_and_reported():
    print("\n" + "="*60)
    print("TEST: initialize(3, 3, [1, 1, 1]) circular wait")
    print("="*60)

    listener = RecordingListener()
    engine = three_cycle_engine(listener)

    assert engine.detect_deadlock()
    assert sorted(engine.get_deadlocked_processes()) == [0, 1, 2]

    detected = [c for c in listener.calls if c[1] == "detected"]
    assert len(detected) == 2, "One event from the closing wait, one from the explicit check"
    assert sorted(detected[0][2]) == [0, 1, 2]
    assert detected[0][3].involved_processes == (0, 1, 2)
    print("  ✓ Deadlock among P0, P1, P2")


def test_repeated_detection_raises_new_events():
    listener = RecordingListener()
    engine = three_cycle_engine(listener)
    engine.detect_deadlock()
    engine.detect_deadlock()

    assert engine.metrics.total_deadlocks == 3
    assert len(engine.event_log.deadlocks) == 3
    assert len([c for c in listener.calls if c[1] == "detected"]) == 3


def test_grant_can_close_cycle_from_leftover_requests():
    engine = AllocationEngine()
    engine.initialize(2, 2, [1, 1])
    engine.set_max_demand(0, [1, 1])
    engine.set_max_demand(1, [0, 1])

    assert engine.request_resource(0, 0, 1)
    engine.wait_for_resource(0, 1, 1)
    engine.wait_for_resource(1, 0, 1)
    assert engine.metrics.total_deadlocks == 0

    assert engine.request_resource(1, 1, 1), "Banker's check allows it"
    assert engine.metrics.total_deadlocks == 1, "Grant closed P0 <-> P1 cycle"
    assert engine.resource_graph.request_edges[1][1] == 0
    assert engine.resource_graph.request_edges[0][1] == 1


def two_process_deadlock_engine() -> AllocationEngine:
    """P0 holds R0 and waits for R1; P1 holds R1 and waits for R0."""
    engine = AllocationEngine()
    engine.initialize(2, 2, [1, 1])
    engine.set_max_demand(0, [1, 0])
    engine.set_max_demand(1, [0, 1])
    assert engine.request_resource(0, 0, 1)
    assert engine.request_resource(1, 1, 1)
    engine.wait_for_resource(0, 1, 1)
    engine.wait_for_resource(1, 0, 1)
    return engine


def test_empty_requests_rejected():
    engine = two_process_deadlock_engine()
    assert engine.detect_deadlock()
    size = engine.history_size

    with pytest.raises(ConfigurationError):
        engine.request_resource(0, 1, 0)
    with pytest.raises(ConfigurationError):
        engine.wait_for_resource(1, 0, 0)

    assert engine.detect_deadlock(), "Wait edges survive rejected calls"
    assert engine.resource_graph.request_edges[1][0] == 1
    assert engine.resource_graph.request_edges[0][1] == 1
    assert engine.history_size == size


def test_partial_grant_keeps_remaining_request():
    engine = AllocationEngine()
    engine.initialize(1, 1, [3])
    engine.set_max_demand(0, [3])
    engine.wait_for_resource(0, 0, 3)

    assert engine.request_resource(0, 0, 1)
    assert engine.resource_graph.request_edges[0][0] == 2, "Still waiting for 2 units"

    assert engine.request_resource(0, 0, 2)
    assert engine.resource_graph.request_edges[0][0] == 0


def test_state_text_only_built_when_verbose(monkeypatch):
    engine = AllocationEngine(logger=EngineLogger(verbose=False, echo=False))
    engine.initialize(2, 2, [2, 2])

    def fail():
        raise AssertionError("display() built for a quiet logger")

    monkeypatch.setattr(engine, "display", fail)
    engine.set_max_demand(0, [1, 1])
    assert engine.request_resource(0, 0, 1)

    verbose = AllocationEngine(logger=EngineLogger(verbose=True, echo=False))
    verbose.initialize(2, 2, [2, 2])
    assert any("System State:" in line for line in verbose.logger.history)


def test_deadlock_frequency():
    engine = three_cycle_engine()
    assert engine.metrics.total_deadlocks == 1
    assert engine.metrics.deadlock_frequency > 0

    metrics = EngineMetrics()
    metrics.update_deadlock_frequency(6, 2.0)
    assert metrics.deadlock_frequency == 3.0
    metrics.update_deadlock_frequency(1, 0)
    assert metrics.deadlock_frequency == 3.0, "Empty timeframe keeps the last value"
    metrics.reset()
    assert metrics.deadlock_frequency == 0.0


def test_resolve_terminates_minimum_holder():
    print("\n" + "="*60)
    print("TEST: Recovery picks the process holding the fewest units")
    print("="*60)

    listener = RecordingListener()
    engine = AllocationEngine()
    engine.add_deadlock_listener(listener)
    engine.load_scenario(load_scenario(str(SCENARIOS_DIR / "uneven_holders.json")))

    assert engine.detect_deadlock()
    victim = engine.resolve_deadlock()

    print(engine.display())
    assert victim == 0, "P0 holds 2 units, P1 holds 5"
    assert list(engine.allocation_matrix[0]) == [0, 0]
    assert list(engine.max_matrix[0]) == [0, 0]
    assert list(engine.need_matrix[0]) == [0, 0]
    assert list(engine.available_vector) == [2, 0]
    assert not engine.detect_deadlock()

    event = engine.event_log.deadlocks[0]
    assert event.resolved
    assert event.resolution_strategy == "Process Termination"
    assert event.resolution_duration_ms >= 0
    assert ("listener", "resolved", [0, 1], "Process Termination") in listener.calls
    assert engine.metrics.resolved_deadlocks == 1
    print("  ✓ P0 terminated, units returned to Available")


def test_resolve_without_deadlock_is_noop():
    listener = RecordingListener()
    engine = classic_engine()
    engine.add_deadlock_listener(listener)

    assert engine.resolve_deadlock() is None
    assert engine.history_size == 1
    assert listener.calls == []


def test_resolve_marks_latest_unresolved_event():
    engine = three_cycle_engine()
    engine.detect_deadlock()
    first, second = engine.event_log.deadlocks

    engine.resolve_deadlock()

    assert second.resolved
    assert not first.resolved


def test_resolve_all_deadlocks():
    engine = AllocationEngine()
    engine.load_scenario(dining_philosophers(5))
    victims = engine.resolve_all_deadlocks()

    assert victims == [0]
    assert not engine.detect_deadlock()
    engine.safety_state.assert_resource_conservation("after recovery")

    engine.load_scenario(circular_wait(4))
    assert engine.resolve_all_deadlocks() == [0]
    assert engine.get_deadlocked_processes() == []


def test_history_round_trip():
    engine = classic_engine()
    engine.request_resource(1, 0, 1)
    engine.release_resource(2, 2, 1)
    snapshot = engine.get_current_state()

    engine.go_back()
    assert engine.get_current_state() is not snapshot
    assert engine.available_vector[2] == 2

    engine.go_forward()
    assert engine.get_current_state() is snapshot
    assert engine.get_current_state().equals(snapshot)
    assert np.array_equal(engine.allocation_matrix, snapshot.allocation_matrix)
    assert np.array_equal(engine.available_vector, snapshot.available_vector)
    assert engine.resource_graph.equals(snapshot.resource_graph)


def test_go_back_restores_live_state():
    engine = classic_engine()
    engine.request_resource(1, 0, 1)

    engine.go_back()
    assert engine.available_vector[0] == 3
    assert engine.allocation_matrix[1][0] == 2
    assert engine.resource_graph.allocation_edges[1][0] == 2
    assert engine.can_go_forward()


def test_branch_discard():
    engine = classic_engine()
    engine.request_resource(1, 0, 1)
    engine.release_resource(2, 2, 1)
    engine.release_resource(2, 0, 1)
    assert engine.history_size == 4

    engine.go_back()
    engine.go_back()
    assert engine.can_go_forward()

    engine.release_resource(3, 0, 1)
    assert not engine.can_go_forward()
    assert engine.history_size == 3
    assert engine.history_index == 2


def test_navigation_bounds_are_noops():
    engine = classic_engine()
    state = engine.get_current_state()

    engine.go_back()
    engine.go_forward()
    assert engine.get_current_state() is state


def test_snapshots_are_immutable():
    engine = classic_engine()
    state = engine.get_current_state()

    with pytest.raises(ValueError):
        state.allocation_matrix[0][0] = 9

    engine.request_resource(1, 0, 1)
    assert state.allocation_matrix[1][0] == 2, "Snapshot unaffected by later mutation"

    graph = state.resource_graph
    graph.add_allocation(0, 0, 5)
    assert state.resource_graph.allocation_edges[0][0] == 0


def test_accessors_are_read_only_copies():
    engine = classic_engine()
    available = engine.available_vector

    with pytest.raises(ValueError):
        available[0] = 100
    assert engine.safety_state.available_vector[0] == 3


def test_listener_order_and_removal():
    calls = []
    first = RecordingListener("first", calls)
    second = RecordingListener("second", calls)

    engine = three_cycle_engine()
    engine.add_deadlock_listener(first)
    engine.add_deadlock_listener(second)
    engine.add_deadlock_listener(first)

    engine.detect_deadlock()
    assert [c[0] for c in calls] == ["first", "second"]

    engine.remove_deadlock_listener(first)
    engine.remove_deadlock_listener(first)
    engine.detect_deadlock()
    assert [c[0] for c in calls] == ["first", "second", "second"]


def test_prevention_through_engine():
    engine = classic_engine()
    report = engine.apply_prevention_strategy(PreventionStrategy.ALL_OR_NOTHING)

    assert "Process P1: Can acquire all needed resources at once." in report
    assert "Process P0: Cannot acquire" in report


def test_conservation_over_random_operations():
    rng = np.random.default_rng(7)
    engine = classic_engine()

    for _ in range(200):
        p = int(rng.integers(5))
        r = int(rng.integers(3))
        if rng.random() < 0.6:
            engine.request_resource(p, r, int(rng.integers(1, 3)))
        elif engine.allocation_matrix[p][r] > 0:
            engine.release_resource(p, r, 1)

        engine.safety_state.assert_resource_conservation("during random operations")
        assert np.array_equal(engine.need_matrix, engine.max_matrix - engine.allocation_matrix)
        assert engine.is_safe(), "Banker's check keeps the live state safe"


def test_uninitialized_engine_raises():
    engine = AllocationEngine()

    assert engine.get_current_state() is None
    with pytest.raises(EngineStateError):
        engine.request_resource(0, 0, 1)
    with pytest.raises(EngineStateError):
        engine.detect_deadlock()


def main():
    """Run all engine tests."""
    test_initialize_records_initial_state()
    test_grant_request_updates_matrices_and_graph()
    test_unsafe_request_denied_without_mutation()
    test_denial_reasons()
    test_three_cycle_detected_and_reported()
    test_repeated_detection_raises_new_events()
    test_grant_can_close_cycle_from_leftover_requests()
    test_empty_requests_rejected()
    test_partial_grant_keeps_remaining_request()
    test_deadlock_frequency()
    test_resolve_terminates_minimum_holder()
    test_resolve_without_deadlock_is_noop()
    test_resolve_marks_latest_unresolved_event()
    test_resolve_all_deadlocks()
    test_history_round_trip()
    test_go_back_restores_live_state()
    test_branch_discard()
    test_navigation_bounds_are_noops()
    test_snapshots_are_immutable()
    test_accessors_are_read_only_copies()
    test_listener_order_and_removal()
    test_prevention_through_engine()
    test_conservation_over_random_operations()
    test_uninitialized_engine_raises()
    print("\n✅ Allocation Engine Tests PASSED")
    return 0


if __name__ == '__main__':
    sys.exit(main())
