"""
Allocation Engine for the Deadlock Toolkit.

Orchestrates the request/release workflow over one live graph + matrix pair,
runs deadlock detection and recovery, keeps an undo/redo history of system
states and notifies registered listeners about deadlock lifecycle events.
"""

import time
from typing import List, Optional, Protocol, Sequence

import numpy as np

from algorithms.prevention import PreventionStrategies, PreventionStrategy
from algorithms.recovery import resolve_deadlock
from algorithms.scenarios import Scenario
from analysis.events import DeadlockEvent, EngineEvent, EventLog, EventType
from analysis.metrics import EngineMetrics
from models.errors import EngineStateError
from models.resource_graph import ResourceAllocationGraph
from models.safety_state import SafetyState
from models.system_state import SystemState
from utils.logger import EngineLogger


class DeadlockListener(Protocol):
    """Callbacks invoked synchronously, in registration order."""

    def on_deadlock_detected(self, processes: List[int], event: DeadlockEvent) -> None:
        ...

    def on_deadlock_resolved(self, processes: List[int], strategy: str) -> None:
        ...


class AllocationEngine:
    """
    Deadlock toolkit engine.

    Single-threaded: every operation runs to completion before returning and
    listeners run inside the operation that triggered them. Listeners must
    not call back into the engine.
    """

    RESOLUTION_STRATEGY = "Process Termination"
    AVOIDANCE_STRATEGY = "Banker's Algorithm"

    def __init__(self, logger: Optional[EngineLogger] = None, victim_strategy: str = "fewest_resources"):
        """
        Create an engine with no live state; call initialize() or
        load_scenario() before anything else.

        Args:
            logger: Logger for decisions (defaults to a silent one)
            victim_strategy: Victim selection strategy for recovery
        """
        self.logger = logger or EngineLogger(echo=False)
        self.victim_strategy = victim_strategy
        self.event_log = EventLog()
        self.metrics = EngineMetrics()
        self._rag: Optional[ResourceAllocationGraph] = None
        self._safety: Optional[SafetyState] = None
        self._history: List[SystemState] = []
        self._current_index = -1
        self._listeners: List[DeadlockListener] = []
        self._started_at = time.perf_counter()

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def initialize(self, num_processes: int, num_resources: int, available: Sequence[int]) -> None:
        """Start from an empty allocation with the given free units."""
        safety = SafetyState(num_processes, num_resources, available)
        self._reset(ResourceAllocationGraph(num_processes, num_resources), safety)
        self.logger.log(
            f"Initialized {num_processes} processes, {num_resources} resources, "
            f"available={list(safety.available_vector)}"
        )

    def load_scenario(self, scenario: Scenario) -> None:
        """Adopt a synthesized or loaded scenario as the live state."""
        scenario.safety.assert_resource_conservation(f"in scenario '{scenario.name}'")
        self._reset(scenario.rag.clone(), scenario.safety.copy())
        self.logger.log(f"Loaded scenario '{scenario.name}': {scenario.description}")

    def _reset(self, rag: ResourceAllocationGraph, safety: SafetyState) -> None:
        self._rag = rag
        self._safety = safety
        self._history = []
        self._current_index = -1
        self.event_log.clear()
        self.metrics.reset()
        self._started_at = time.perf_counter()
        self._record_state()

    def _require_initialized(self) -> None:
        if self._safety is None:
            raise EngineStateError("Engine not initialized - call initialize() first")

    def set_max_demand(self, process: int, max_demand: Sequence[int]) -> None:
        """Declare the maximum claim of a process."""
        self._require_initialized()
        self._safety.set_max_demand(process, max_demand)
        self.logger.log(f"P{process} declares max demand {list(self._safety.max_matrix[process])}", "debug")
        self._record_state()

    # ------------------------------------------------------------------
    # Requests and releases
    # ------------------------------------------------------------------

    def request_resource(self, process: int, resource: int, units: int) -> bool:
        """
        Handle a resource request using Banker's Algorithm.

        Steps:
        1. Speculative safety check (no side effects)
        2. Unsafe: deny, record the prevention, leave state untouched
        3. Safe: commit in the matrices, record the holding in the graph
           and reduce the outstanding request edge by the granted units
        4. Run deadlock detection on the updated graph
        5. Record a new history state

        Returns:
            True if the request was granted
        """
        self._require_initialized()

        if not self._safety.is_safe_state(process, resource, units):
            reason = self._denial_reason(process, resource, units)
            self.logger.log_request(process, resource, units, False, reason)
            self.metrics.record_prevention(self.AVOIDANCE_STRATEGY)
            self.event_log.add(EngineEvent(
                event_type=EventType.DENIAL,
                process_id=process,
                resource_type=resource,
                amount=units,
                reason=reason
            ))
            return False

        self._safety.allocate_resource(process, resource, units)
        self._rag.add_allocation(process, resource, units)
        self._rag.satisfy_request(process, resource, units)

        # SANITY CHECK: Verify resource conservation after grant
        self._safety.assert_resource_conservation(f"after granting R{resource}[{units}] to P{process}")

        sequence = " -> ".join(f"P{p}" for p in self._safety.safe_sequence() or [])
        reason = f"Safe state maintained, sequence: {sequence}"
        self.logger.log_request(process, resource, units, True, reason)
        self.event_log.add(EngineEvent(
            event_type=EventType.ALLOCATION,
            process_id=process,
            resource_type=resource,
            amount=units,
            reason=reason
        ))

        self._check_graph()
        self._record_state()
        return True

    def _denial_reason(self, process: int, resource: int, units: int) -> str:
        need = self._safety.need_matrix[process][resource]
        available = self._safety.available_vector[resource]
        if units > need:
            return f"Request exceeds need (requested: {units}, need: {need})"
        if units > available:
            return f"Insufficient resources (requested: {units}, available: {available})"
        return "Unsafe state detected"

    def wait_for_resource(self, process: int, resource: int, units: int) -> None:
        """
        Record that a process is blocked waiting for units of a resource.

        Only the graph changes; the matrices are untouched. Detection runs
        afterwards because a new request edge can close a cycle.
        """
        self._require_initialized()
        self._rag.add_request(process, resource, units)
        self.logger.log(f"P{process} waits for R{resource}[{units}]")
        self.event_log.add(EngineEvent(
            event_type=EventType.WAIT,
            process_id=process,
            resource_type=resource,
            amount=units
        ))
        self._check_graph()
        self._record_state()

    def release_resource(self, process: int, resource: int, units: int) -> None:
        """Return units held by a process."""
        self._require_initialized()
        self._safety.release_resource(process, resource, units)
        self._rag.remove_allocation(process, resource, units)

        # SANITY CHECK: Verify resource conservation after release
        self._safety.assert_resource_conservation(f"after P{process} released R{resource}[{units}]")

        self.logger.log_release(process, resource, units)
        self.event_log.add(EngineEvent(
            event_type=EventType.RELEASE,
            process_id=process,
            resource_type=resource,
            amount=units
        ))
        self._record_state()

    # ------------------------------------------------------------------
    # Detection and recovery
    # ------------------------------------------------------------------

    def detect_deadlock(self) -> bool:
        """
        Check the live graph for a deadlock.

        Raises a new detection event on every call that finds one; callers
        polling on a timer de-duplicate if they need to.
        """
        self._require_initialized()
        return self._check_graph()

    def _check_graph(self) -> bool:
        started = time.perf_counter()
        deadlock_exists = self._rag.detect_deadlock()
        self.metrics.record_detection_time((time.perf_counter() - started) * 1000)

        if deadlock_exists:
            self._raise_detection(self._rag.get_deadlocked_processes())
        return deadlock_exists

    def _raise_detection(self, processes: List[int]) -> None:
        event = DeadlockEvent(processes)
        self.event_log.add_deadlock(event)
        self.metrics.record_detection()
        elapsed_minutes = (time.perf_counter() - self._started_at) / 60
        self.metrics.update_deadlock_frequency(self.metrics.total_deadlocks, elapsed_minutes)
        self.event_log.add(EngineEvent(
            event_type=EventType.DEADLOCK,
            process_id=-1,
            message=f"Deadlock detected - processes: {processes}"
        ))
        self.logger.log_deadlock(processes)

        for listener in list(self._listeners):
            listener.on_deadlock_detected(list(processes), event)

    def get_deadlocked_processes(self) -> List[int]:
        self._require_initialized()
        return self._rag.get_deadlocked_processes()

    def resolve_deadlock(self) -> Optional[int]:
        """
        Terminate one victim among the deadlocked processes.

        Marks the most recent unresolved deadlock event as resolved. Only one
        process is terminated per call; see resolve_all_deadlocks().

        Returns:
            Index of the terminated process, or None if nothing was deadlocked
        """
        self._require_initialized()
        deadlocked = self._rag.get_deadlocked_processes()
        if not deadlocked:
            return None

        latest_event = self.event_log.latest_unresolved()
        strategy = self.RESOLUTION_STRATEGY
        victim, message = resolve_deadlock(deadlocked, self._rag, self._safety, self.victim_strategy)

        if latest_event is not None:
            latest_event.mark_resolved(strategy)
            self.metrics.record_resolution(strategy, latest_event.resolution_duration_ms)

        self.logger.log_recovery(strategy, message)
        self.event_log.add(EngineEvent(
            event_type=EventType.RECOVERY,
            process_id=victim,
            message=message
        ))

        for listener in list(self._listeners):
            listener.on_deadlock_resolved(list(deadlocked), strategy)

        self._record_state()
        return victim

    def resolve_all_deadlocks(self, max_rounds: Optional[int] = None) -> List[int]:
        """
        Detect and resolve until the graph is cycle-free.

        Each round raises a detection event and terminates one victim.

        Args:
            max_rounds: Upper bound on rounds (defaults to the process count)

        Returns:
            Victims in termination order
        """
        self._require_initialized()
        if max_rounds is None:
            max_rounds = self._safety.num_processes

        victims = []
        for _ in range(max_rounds):
            if not self.detect_deadlock():
                break
            victim = self.resolve_deadlock()
            if victim is None:
                break
            victims.append(victim)
        return victims

    # ------------------------------------------------------------------
    # Prevention
    # ------------------------------------------------------------------

    @property
    def prevention(self) -> PreventionStrategies:
        """Prevention analyzers bound to the current live state."""
        self._require_initialized()
        return PreventionStrategies(self._rag, self._safety)

    def apply_prevention_strategy(self, strategy: PreventionStrategy) -> str:
        report = self.prevention.apply(strategy)
        self.logger.log(report, "debug")
        return report

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def _record_state(self) -> None:
        """Append a snapshot, discarding any states after the cursor."""
        if self._current_index < len(self._history) - 1:
            del self._history[self._current_index + 1:]

        self._history.append(SystemState.capture(self._safety, self._rag))
        self._current_index = len(self._history) - 1
        self.metrics.record_utilization(
            int(self._safety.allocation_matrix.sum()),
            int(self._safety.total_units.sum())
        )
        if self.logger.verbose:
            self.logger.log_system_state(self.display())

    def _restore_state(self, state: SystemState) -> None:
        self._rag = state.restore_into(self._safety)

    def get_current_state(self) -> Optional[SystemState]:
        if 0 <= self._current_index < len(self._history):
            return self._history[self._current_index]
        return None

    @property
    def history_size(self) -> int:
        return len(self._history)

    @property
    def history_index(self) -> int:
        return self._current_index

    def can_go_back(self) -> bool:
        return self._current_index > 0

    def can_go_forward(self) -> bool:
        return self._current_index < len(self._history) - 1

    def go_back(self) -> None:
        if self.can_go_back():
            self._current_index -= 1
            self._restore_state(self._history[self._current_index])
            self._log_navigation("back")

    def go_forward(self) -> None:
        if self.can_go_forward():
            self._current_index += 1
            self._restore_state(self._history[self._current_index])
            self._log_navigation("forward")

    def _log_navigation(self, direction: str) -> None:
        self.logger.log_navigation(direction, self._current_index, len(self._history))
        self.event_log.add(EngineEvent(
            event_type=EventType.NAVIGATION,
            process_id=-1,
            message=f"{direction} to state {self._current_index}"
        ))

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_deadlock_listener(self, listener: DeadlockListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_deadlock_listener(self, listener: DeadlockListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ------------------------------------------------------------------
    # Read-only accessors
    # ------------------------------------------------------------------

    def _read_only(self, array: np.ndarray) -> np.ndarray:
        copy = array.copy()
        copy.flags.writeable = False
        return copy

    @property
    def num_processes(self) -> int:
        self._require_initialized()
        return self._safety.num_processes

    @property
    def num_resources(self) -> int:
        self._require_initialized()
        return self._safety.num_resources

    @property
    def allocation_matrix(self) -> np.ndarray:
        self._require_initialized()
        return self._read_only(self._safety.allocation_matrix)

    @property
    def max_matrix(self) -> np.ndarray:
        self._require_initialized()
        return self._read_only(self._safety.max_matrix)

    @property
    def need_matrix(self) -> np.ndarray:
        self._require_initialized()
        return self._read_only(self._safety.need_matrix)

    @property
    def available_vector(self) -> np.ndarray:
        self._require_initialized()
        return self._read_only(self._safety.available_vector)

    @property
    def resource_graph(self) -> ResourceAllocationGraph:
        """Live graph (replaced wholesale on navigation)."""
        self._require_initialized()
        return self._rag

    @property
    def safety_state(self) -> SafetyState:
        """Live matrices."""
        self._require_initialized()
        return self._safety

    def is_safe(self) -> bool:
        self._require_initialized()
        return self._safety.check_system_safety()

    def display(self) -> str:
        """Matrices plus graph edges as text."""
        self._require_initialized()
        return self._safety.display() + "\n\n" + self._rag.display()
