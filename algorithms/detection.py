"""
Deadlock Detection Algorithm for the Deadlock Toolkit.

Implements wait-for cycle detection over a resource-allocation graph
(depth-first search with a recursion stack).
"""

import numpy as np
from typing import List, Tuple


def wait_for_targets(
    process: int,
    allocation_edges: np.ndarray,
    request_edges: np.ndarray
) -> List[int]:
    """
    Derive the wait-for successors of a process.

    A process waits for every other process holding a resource type it
    requests. With multi-unit resource classes this over-approximates real
    waiting: any holder counts, even if free units would satisfy the request.

    Args:
        process: Index of the waiting process
        allocation_edges: [P][R] units held
        request_edges: [R][P] units requested

    Returns:
        Holder indices in ascending resource, then process order (may repeat)
    """
    targets = []
    num_processes, num_resources = allocation_edges.shape
    for resource in range(num_resources):
        if request_edges[resource][process] > 0:
            for other in range(num_processes):
                if other != process and allocation_edges[other][resource] > 0:
                    targets.append(other)
    return targets


def wait_for_edges(allocation_edges: np.ndarray, request_edges: np.ndarray) -> List[Tuple[int, int]]:
    """Return the distinct (waiter, holder) pairs of the wait-for relation."""
    edges = []
    for process in range(allocation_edges.shape[0]):
        for holder in wait_for_targets(process, allocation_edges, request_edges):
            if (process, holder) not in edges:
                edges.append((process, holder))
    return edges


def has_cycle(allocation_edges: np.ndarray, request_edges: np.ndarray) -> bool:
    """
    Check whether the wait-for relation contains a cycle.

    Algorithm:
    1. For each process not yet visited, start a DFS
    2. From process p move to every holder q of a resource p requests
    3. Reaching a process already on the recursion stack is a back edge
    4. Any back edge means a cycle (deadlock under single-instance semantics)

    Time Complexity: O(P²×R)

    Args:
        allocation_edges: [P][R] units held
        request_edges: [R][P] units requested

    Returns:
        True if a cycle exists

    References:
        Silberschatz, A., Galvin, P. B., & Gagne, G. (2018).
        Operating System Concepts (10th ed.). Chapter 7.6: Deadlock Detection.
    """
    num_processes = allocation_edges.shape[0]
    visited = np.zeros(num_processes, dtype=bool)
    on_stack = np.zeros(num_processes, dtype=bool)

    def visit(process: int) -> bool:
        if on_stack[process]:
            return True
        if visited[process]:
            return False

        visited[process] = True
        on_stack[process] = True
        for holder in wait_for_targets(process, allocation_edges, request_edges):
            if visit(holder):
                return True
        on_stack[process] = False
        return False

    for process in range(num_processes):
        if visit(process):
            return True
    return False


def find_deadlocked_processes(allocation_edges: np.ndarray, request_edges: np.ndarray) -> List[int]:
    """
    Collect every process that lies on a wait-for cycle.

    Algorithm (Tarjan's strongly connected components):
    1. DFS from each undiscovered process in ascending index order, giving
       each process a discovery index and a low-link value
    2. A process whose low-link equals its own index closes a component;
       pop the component off the stack
    3. Every member of a component with two or more processes is on a cycle

    Processes that reach a cycle only through a cross edge are still found,
    since they belong to the same component. Results are reported in
    first-discovered order, so the output is deterministic for a given graph.

    Time Complexity: O(P²×R)

    Args:
        allocation_edges: [P][R] units held
        request_edges: [R][P] units requested

    Returns:
        List of deadlocked process indices (empty if no cycle)

    References:
        Tarjan, R. (1972). Depth-first search and linear graph algorithms.
        SIAM Journal on Computing, 1(2), 146-160.
    """
    num_processes = allocation_edges.shape[0]
    index = np.full(num_processes, -1, dtype=int)
    lowlink = np.zeros(num_processes, dtype=int)
    on_stack = np.zeros(num_processes, dtype=bool)
    on_cycle = np.zeros(num_processes, dtype=bool)
    stack = []
    discovered = []

    def strongconnect(process: int) -> None:
        index[process] = len(discovered)
        lowlink[process] = len(discovered)
        discovered.append(process)
        stack.append(process)
        on_stack[process] = True

        for holder in wait_for_targets(process, allocation_edges, request_edges):
            if index[holder] < 0:
                strongconnect(holder)
                lowlink[process] = min(lowlink[process], lowlink[holder])
            elif on_stack[holder]:
                lowlink[process] = min(lowlink[process], index[holder])

        if lowlink[process] == index[process]:
            component = []
            while True:
                member = stack.pop()
                on_stack[member] = False
                component.append(member)
                if member == process:
                    break
            # Self-waits are excluded upstream, so a cycle needs two members
            if len(component) > 1:
                on_cycle[component] = True

    for process in range(num_processes):
        if index[process] < 0:
            strongconnect(process)

    return [process for process in discovered if on_cycle[process]]
