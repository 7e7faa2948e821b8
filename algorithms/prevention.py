"""
Deadlock Prevention Strategies for the Deadlock Toolkit.

Stateless analyzers over the current graph and matrices. Each strategy
produces an advisory report; nothing here mutates the system.
"""

from enum import Enum
from typing import Dict, List, Tuple

import numpy as np

from models.resource_graph import ResourceAllocationGraph
from models.safety_state import SafetyState


class PreventionStrategy(Enum):
    """Prevention strategies that can be applied to the current state."""
    RESOURCE_ORDERING = "resource_ordering"
    PREEMPTION = "preemption"
    TIMEOUT = "timeout"
    ALL_OR_NOTHING = "all_or_nothing"
    WAIT_DIE = "wait_die"
    WOUND_WAIT = "wound_wait"


def ordered_requests(rag: ResourceAllocationGraph) -> Dict[int, List[int]]:
    """
    Requested resources per process, sorted ascending.

    Only processes with two or more outstanding requests are included, since
    a single request cannot take part in an ordering violation.
    """
    result = {}
    for process in range(rag.num_processes):
        requested = [resource for resource, _ in rag.requests_of(process)]
        if len(requested) > 1:
            result[process] = sorted(requested)
    return result


def preemption_candidates(rag: ResourceAllocationGraph) -> Dict[int, List[Tuple[int, int]]]:
    """Held (resource, units) pairs of every deadlocked process."""
    return {process: rag.holdings_of(process) for process in rag.get_deadlocked_processes()}


def timeout_candidates(rag: ResourceAllocationGraph) -> Dict[int, List[Tuple[int, int]]]:
    """Outstanding (resource, units) requests of every deadlocked process."""
    return {process: rag.requests_of(process) for process in rag.get_deadlocked_processes()}


def all_or_nothing(safety: SafetyState) -> Dict[int, bool]:
    """Whether each process could receive its whole remaining need at once."""
    return {
        process: bool(np.all(safety.need_matrix[process] <= safety.available_vector))
        for process in range(safety.num_processes)
    }


def _age_decisions(rag: ResourceAllocationGraph, older_acts: bool) -> Dict[int, Tuple[str, int]]:
    """
    Timestamp-ordering decisions for deadlocked processes.

    Lower index means older. Holders are scanned in ascending index order
    for each outstanding request; the first holder that triggers the
    strategy's action ends the scan for that process.

    Args:
        rag: Graph to analyze
        older_acts: True for Wound-Wait (older wounds younger),
            False for Wait-Die (younger dies)

    Returns:
        Mapping process -> (action, holder); action is "wait", "die" or
        "wound", holder is -1 when the process has nobody to wait for
    """
    action = "wound" if older_acts else "die"
    decisions = {}
    for process in rag.get_deadlocked_processes():
        decision = ("wait", -1)
        for resource, _ in rag.requests_of(process):
            for holder in rag.holders_of(resource):
                if holder == process:
                    continue
                triggered = process < holder if older_acts else process > holder
                if triggered:
                    decision = (action, holder)
                    break
                if decision[1] == -1:
                    decision = ("wait", holder)
            if decision[0] == action:
                break
        decisions[process] = decision
    return decisions


def wait_die_decisions(rag: ResourceAllocationGraph) -> Dict[int, Tuple[str, int]]:
    """Wait-Die: an older requester waits, a younger requester dies."""
    return _age_decisions(rag, older_acts=False)


def wound_wait_decisions(rag: ResourceAllocationGraph) -> Dict[int, Tuple[str, int]]:
    """Wound-Wait: an older requester wounds the holder, a younger one waits."""
    return _age_decisions(rag, older_acts=True)


class PreventionStrategies:
    """
    Report generator for prevention strategies.

    Holds references to the live graph and matrices; reads only.
    """

    def __init__(self, rag: ResourceAllocationGraph, safety: SafetyState):
        self.rag = rag
        self.safety = safety

    def apply(self, strategy: PreventionStrategy) -> str:
        """
        Apply a prevention strategy to the current system state.

        Args:
            strategy: The prevention strategy to apply

        Returns:
            A description of the advised actions
        """
        handlers = {
            PreventionStrategy.RESOURCE_ORDERING: self._resource_ordering,
            PreventionStrategy.PREEMPTION: self._preemption,
            PreventionStrategy.TIMEOUT: self._timeout,
            PreventionStrategy.ALL_OR_NOTHING: self._all_or_nothing,
            PreventionStrategy.WAIT_DIE: self._wait_die,
            PreventionStrategy.WOUND_WAIT: self._wound_wait,
        }
        return handlers[PreventionStrategy(strategy)]()

    def _resource_ordering(self) -> str:
        reordered = ordered_requests(self.rag)
        if not reordered:
            return "No resource reordering needed."

        lines = ["Applied Resource Ordering Strategy:"]
        for process, resources in reordered.items():
            order = " ".join(f"R{r}" for r in resources)
            lines.append(f"Process P{process}: Reordered resource requests to: {order}")
        return "\n".join(lines)

    def _preemption(self) -> str:
        candidates = preemption_candidates(self.rag)
        if not candidates:
            return "No deadlock detected, no preemption needed."

        lines = ["Applied Preemption Strategy:"]
        for process, held in candidates.items():
            actions = " ".join(f"Preempt R{r} ({u} units)" for r, u in held)
            lines.append(f"Process P{process}: {actions or 'No resources to preempt.'}")
        return "\n".join(lines)

    def _timeout(self) -> str:
        candidates = timeout_candidates(self.rag)
        if not candidates:
            return "No deadlock detected, no timeouts needed."

        lines = ["Applied Timeout Strategy:"]
        for process, wanted in candidates.items():
            actions = " ".join(f"Timeout request for R{r} ({u} units)" for r, u in wanted)
            lines.append(f"Process P{process}: {actions or 'No requests to timeout.'}")
        return "\n".join(lines)

    def _all_or_nothing(self) -> str:
        lines = ["Applied All-or-Nothing Strategy:"]
        for process, can_get_all in all_or_nothing(self.safety).items():
            if can_get_all:
                lines.append(f"Process P{process}: Can acquire all needed resources at once.")
            else:
                lines.append(
                    f"Process P{process}: Cannot acquire all needed resources at once - would need to wait."
                )
        return "\n".join(lines)

    def _wait_die(self) -> str:
        decisions = wait_die_decisions(self.rag)
        if not decisions:
            return "No deadlock detected, no Wait-Die decisions needed."

        lines = ["Applied Wait-Die Strategy:"]
        for process, (action, holder) in decisions.items():
            if action == "die":
                lines.append(f"Process P{process}: Younger than holder P{holder} - abort (dies).")
            elif holder >= 0:
                lines.append(f"Process P{process}: Older than holder P{holder} - waits.")
            else:
                lines.append(f"Process P{process}: No conflicting holder - waits.")
        return "\n".join(lines)

    def _wound_wait(self) -> str:
        decisions = wound_wait_decisions(self.rag)
        if not decisions:
            return "No deadlock detected, no Wound-Wait decisions needed."

        lines = ["Applied Wound-Wait Strategy:"]
        for process, (action, holder) in decisions.items():
            if action == "wound":
                lines.append(f"Process P{process}: Older than holder P{holder} - wounds (preempts) P{holder}.")
            elif holder >= 0:
                lines.append(f"Process P{process}: Younger than holder P{holder} - waits.")
            else:
                lines.append(f"Process P{process}: No conflicting holder - waits.")
        return "\n".join(lines)


def apply_prevention_strategy(
    strategy: PreventionStrategy,
    rag: ResourceAllocationGraph,
    safety: SafetyState
) -> str:
    """Convenience wrapper around PreventionStrategies.apply."""
    return PreventionStrategies(rag, safety).apply(strategy)
