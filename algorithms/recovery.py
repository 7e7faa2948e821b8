"""
Deadlock Recovery Algorithm for the Deadlock Toolkit.

Implements victim selection and process termination.
"""

from typing import List, Tuple

from models.errors import ConfigurationError
from models.resource_graph import ResourceAllocationGraph
from models.safety_state import SafetyState


def select_victim(
    deadlocked: List[int],
    safety: SafetyState,
    strategy: str = "fewest_resources"
) -> int:
    """
    Select victim process for termination.

    Strategies:
    - "fewest_resources": Process holding the fewest units in total
      (ties go to the first process in input order)
    - "youngest": Most recently created process (highest index)

    Args:
        deadlocked: Process indices in deadlock
        safety: Current matrices
        strategy: Selection strategy

    Returns:
        Index of selected victim, or -1 if no process is deadlocked
    """
    if not deadlocked:
        return -1

    if strategy == "fewest_resources":
        # min() keeps the first of equal keys
        def count_resources(process):
            return int(safety.allocation_matrix[process].sum())

        return min(deadlocked, key=count_resources)

    elif strategy == "youngest":
        return max(deadlocked)

    else:
        raise ConfigurationError(f"Unknown victim selection strategy: {strategy}")


def terminate_process(process: int, rag: ResourceAllocationGraph, safety: SafetyState) -> str:
    """
    Terminate a process and release all its resources.

    Process termination:
    - Release every held unit back to Available
    - Zero the Max row (so Need is zero too)
    - Clear all allocation and request edges in the graph

    Args:
        process: Process index to terminate
        rag: Live resource-allocation graph
        safety: Live matrices

    Returns:
        Message describing what was released
    """
    released = safety.release_all(process)
    safety.clear_max_demand(process)
    rag.clear_process(process)

    # SANITY CHECK: Verify resource conservation after termination
    safety.assert_resource_conservation(f"after terminating P{process}")

    resources_str = ", ".join(
        f"R{i}[{units}]" for i, units in enumerate(released) if units > 0
    )
    return f"Terminated P{process} (holding {resources_str or 'nothing'})"


def resolve_deadlock(
    deadlocked: List[int],
    rag: ResourceAllocationGraph,
    safety: SafetyState,
    strategy: str = "fewest_resources"
) -> Tuple[int, str]:
    """
    Break a deadlock by terminating a single victim.

    Does not re-check whether the remaining processes are still deadlocked;
    callers wanting full resolution re-run detection and call again.

    Args:
        deadlocked: Process indices in deadlock
        rag: Live resource-allocation graph
        safety: Live matrices
        strategy: Victim selection strategy

    Returns:
        Tuple of (victim index or -1 if nothing was deadlocked, message)
    """
    victim = select_victim(deadlocked, safety, strategy)
    if victim < 0:
        return victim, "No deadlocked processes to recover"
    return victim, terminate_process(victim, rag, safety)
