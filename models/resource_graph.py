"""
Resource-Allocation Graph model for the Deadlock Toolkit.

Bipartite edge store between processes and resource classes, with
cycle-based deadlock detection over the derived wait-for relation.
"""

import numpy as np
from typing import List, Tuple

from algorithms.detection import has_cycle, find_deadlocked_processes, wait_for_edges
from models.errors import check_index, check_request_units, check_units


class ResourceAllocationGraph:
    """
    Resource-allocation graph with weighted edges.

    Attributes:
        num_processes: Number of process nodes
        num_resources: Number of resource-class nodes
        allocation_edges: [P][R] units of R currently held by P
        request_edges: [R][P] units of R that P is waiting for
    """

    def __init__(self, num_processes: int, num_resources: int):
        self.num_processes = num_processes
        self.num_resources = num_resources
        self.allocation_edges = np.zeros((num_processes, num_resources), dtype=int)
        self.request_edges = np.zeros((num_resources, num_processes), dtype=int)

    def _check(self, process: int, resource: int) -> None:
        check_index(process, self.num_processes, "process")
        check_index(resource, self.num_resources, "resource")

    def add_allocation(self, process: int, resource: int, units: int) -> None:
        """Record that process now holds `units` more of resource."""
        self._check(process, resource)
        check_units(units)
        self.allocation_edges[process][resource] += units

    def add_request(self, process: int, resource: int, units: int) -> None:
        """Record an outstanding request (replaces any earlier one for the pair)."""
        self._check(process, resource)
        check_request_units(units)
        self.request_edges[resource][process] = units

    def remove_allocation(self, process: int, resource: int, units: int) -> None:
        """Remove held units, clamped at zero."""
        self._check(process, resource)
        check_units(units)
        remaining = self.allocation_edges[process][resource] - units
        self.allocation_edges[process][resource] = max(remaining, 0)

    def remove_request(self, process: int, resource: int) -> None:
        """Drop the outstanding request of process on resource."""
        self._check(process, resource)
        self.request_edges[resource][process] = 0

    def satisfy_request(self, process: int, resource: int, units: int) -> None:
        """Reduce an outstanding request by granted units, clamped at zero."""
        self._check(process, resource)
        check_units(units)
        remaining = self.request_edges[resource][process] - units
        self.request_edges[resource][process] = max(remaining, 0)

    def clear_process(self, process: int) -> None:
        """Remove every allocation and request edge touching process."""
        check_index(process, self.num_processes, "process")
        self.allocation_edges[process, :] = 0
        self.request_edges[:, process] = 0

    def requests_of(self, process: int) -> List[Tuple[int, int]]:
        """Outstanding (resource, units) requests of a process, ascending by resource."""
        check_index(process, self.num_processes, "process")
        return [
            (resource, int(self.request_edges[resource][process]))
            for resource in range(self.num_resources)
            if self.request_edges[resource][process] > 0
        ]

    def holdings_of(self, process: int) -> List[Tuple[int, int]]:
        """Held (resource, units) pairs of a process, ascending by resource."""
        check_index(process, self.num_processes, "process")
        return [
            (resource, int(self.allocation_edges[process][resource]))
            for resource in range(self.num_resources)
            if self.allocation_edges[process][resource] > 0
        ]

    def holders_of(self, resource: int) -> List[int]:
        """Processes currently holding units of resource, ascending."""
        check_index(resource, self.num_resources, "resource")
        return [
            process for process in range(self.num_processes)
            if self.allocation_edges[process][resource] > 0
        ]

    def wait_for_edges(self) -> List[Tuple[int, int]]:
        """Derived (waiter, holder) pairs."""
        return wait_for_edges(self.allocation_edges, self.request_edges)

    def detect_deadlock(self) -> bool:
        """
        Check for a cycle in the wait-for relation.

        Note: treats any holder of a requested resource class as a wait-for
        target, so multi-unit classes can report cycles that are not real
        deadlocks.
        """
        return has_cycle(self.allocation_edges, self.request_edges)

    def get_deadlocked_processes(self) -> List[int]:
        """Processes on a wait-for cycle, in first-discovered order."""
        return find_deadlocked_processes(self.allocation_edges, self.request_edges)

    def clone(self) -> "ResourceAllocationGraph":
        """Deep copy used for snapshots."""
        cloned = ResourceAllocationGraph(self.num_processes, self.num_resources)
        cloned.allocation_edges = self.allocation_edges.copy()
        cloned.request_edges = self.request_edges.copy()
        return cloned

    def equals(self, other: "ResourceAllocationGraph") -> bool:
        """Edge-for-edge comparison."""
        return (
            np.array_equal(self.allocation_edges, other.allocation_edges)
            and np.array_equal(self.request_edges, other.request_edges)
        )

    def display(self) -> str:
        """Readable listing of allocation, request and wait-for edges."""
        output = ["Resource Allocation Graph:"]
        for process in range(self.num_processes):
            held = ", ".join(f"R{r}[{u}]" for r, u in self.holdings_of(process)) or "-"
            wanted = ", ".join(f"R{r}[{u}]" for r, u in self.requests_of(process)) or "-"
            output.append(f"  P{process}: holds {held:20} requests {wanted}")
        edges = ", ".join(f"P{p}->P{q}" for p, q in self.wait_for_edges())
        output.append(f"  Wait-for: {edges or 'none'}")
        return "\n".join(output)
