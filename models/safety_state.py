"""
Safety State model (Banker's Algorithm) for the Deadlock Toolkit.

Maintains the Allocation, Max, Need matrices and the Available vector, and
answers speculative "would this request keep the system safe?" questions.
"""

import numpy as np
from typing import List, Optional, Sequence

from algorithms.avoidance import find_safe_sequence
from models.errors import ConfigurationError, InvariantViolationError, check_index, check_request_units, check_units


class SafetyState:
    """
    Matrix state for Banker's Algorithm.

    Attributes:
        num_processes: Number of processes (matrix rows)
        num_resources: Number of resource classes (matrix columns)
        allocation_matrix: [P][R] units currently held
        max_matrix: [P][R] maximum claims
        need_matrix: [P][R] Max - Allocation, always derived
        available_vector: [R] free units
        total_units: [R] units in the system, fixed at construction

    Invariants:
        Available + column sums of Allocation == TotalUnits
        0 <= Allocation <= Max
    """

    def __init__(self, num_processes: int, num_resources: int, available: Sequence[int]):
        if num_processes < 1 or num_resources < 1:
            raise ConfigurationError(
                f"Need at least one process and one resource "
                f"(got {num_processes} processes, {num_resources} resources)"
            )
        self.num_processes = num_processes
        self.num_resources = num_resources
        self._available = self._vector(available)
        self._allocation = np.zeros((num_processes, num_resources), dtype=int)
        self._max = np.zeros((num_processes, num_resources), dtype=int)
        self._need = np.zeros((num_processes, num_resources), dtype=int)
        self._total = self._available.copy()
        self._update_need()

    def _vector(self, values: Sequence[int]) -> np.ndarray:
        vector = np.array(values, dtype=int)
        if vector.shape != (self.num_resources,):
            raise ConfigurationError(
                f"Expected a vector of {self.num_resources} resource counts, got {list(values)}"
            )
        if np.any(vector < 0):
            raise ConfigurationError(f"Resource counts cannot be negative: {list(values)}")
        return vector

    def _matrix(self, values) -> np.ndarray:
        matrix = np.array(values, dtype=int)
        if matrix.shape != (self.num_processes, self.num_resources):
            raise ConfigurationError(
                f"Expected a {self.num_processes}x{self.num_resources} matrix, got shape {matrix.shape}"
            )
        if np.any(matrix < 0):
            raise ConfigurationError("Matrix entries cannot be negative")
        return matrix

    def _update_need(self) -> None:
        """Recompute Need = Max - Allocation."""
        self._need = self._max - self._allocation

    @property
    def allocation_matrix(self) -> np.ndarray:
        return self._allocation

    @property
    def max_matrix(self) -> np.ndarray:
        return self._max

    @property
    def need_matrix(self) -> np.ndarray:
        return self._need

    @property
    def available_vector(self) -> np.ndarray:
        return self._available

    @property
    def total_units(self) -> np.ndarray:
        return self._total

    def set_max_demand(self, process: int, max_demand: Sequence[int]) -> None:
        """
        Overwrite the maximum claim of a process.

        Raises:
            ConfigurationError: If the claim is below the current allocation
        """
        check_index(process, self.num_processes, "process")
        row = self._vector(max_demand)
        if np.any(row < self._allocation[process]):
            raise ConfigurationError(
                f"Max demand {list(row)} for P{process} is below its allocation "
                f"{list(self._allocation[process])}"
            )
        self._max[process] = row
        self._update_need()

    def set_allocation_matrix(self, allocation) -> None:
        self.load(allocation, self._max, self._available)

    def set_max_matrix(self, max_matrix) -> None:
        self.load(self._allocation, max_matrix, self._available)

    def set_available_vector(self, available: Sequence[int]) -> None:
        self._available = self._vector(available)

    def load(self, allocation, max_matrix, available: Sequence[int]) -> None:
        """
        Replace Allocation, Max and Available wholesale (copies are taken).

        Total units are left unchanged, so loading a state that does not add
        up is caught by assert_resource_conservation.

        Raises:
            ConfigurationError: If shapes are wrong or Max < Allocation
        """
        allocation = self._matrix(allocation)
        max_matrix = self._matrix(max_matrix)
        if np.any(max_matrix < allocation):
            raise ConfigurationError("Max matrix is below the allocation matrix (negative need)")
        self._allocation = allocation
        self._max = max_matrix
        self._available = self._vector(available)
        self._update_need()

    def is_safe_state(self, process: int, resource: int, units: int) -> bool:
        """
        Speculatively check whether granting a request keeps the system safe.

        Steps:
        1. Reject if the request exceeds the remaining claim or Available
        2. Tentatively allocate
        3. Run the safety scan
        4. Roll back unconditionally (no side effects survive)

        Args:
            process: Requesting process
            resource: Requested resource class
            units: Number of units requested

        Returns:
            True if the resulting state would be safe
        """
        check_index(process, self.num_processes, "process")
        check_index(resource, self.num_resources, "resource")
        check_request_units(units)

        if self._allocation[process][resource] + units > self._max[process][resource]:
            return False
        if units > self._available[resource]:
            return False

        self._available[resource] -= units
        self._allocation[process][resource] += units
        self._update_need()
        try:
            is_safe, _ = find_safe_sequence(self._available, self._need, self._allocation)
        finally:
            self._available[resource] += units
            self._allocation[process][resource] -= units
            self._update_need()

        return is_safe

    def check_system_safety(self) -> bool:
        """Check whether the live state is safe."""
        is_safe, _ = find_safe_sequence(self._available, self._need, self._allocation)
        return is_safe

    def safe_sequence(self) -> Optional[List[int]]:
        """Safe completion order for the live state, or None if unsafe."""
        _, sequence = find_safe_sequence(self._available, self._need, self._allocation)
        return sequence

    def allocate_resource(self, process: int, resource: int, units: int) -> None:
        """
        Commit an allocation without a safety check.

        Raises:
            InvariantViolationError: If units exceed Available or the claim
        """
        check_index(process, self.num_processes, "process")
        check_index(resource, self.num_resources, "resource")
        check_units(units)
        if units > self._available[resource]:
            raise InvariantViolationError(
                f"Cannot allocate R{resource}[{units}] to P{process}: "
                f"only {self._available[resource]} available"
            )
        if self._allocation[process][resource] + units > self._max[process][resource]:
            raise InvariantViolationError(
                f"Allocating R{resource}[{units}] to P{process} would exceed its "
                f"max demand ({self._max[process][resource]})"
            )
        self._allocation[process][resource] += units
        self._available[resource] -= units
        self._update_need()

    def release_resource(self, process: int, resource: int, units: int) -> None:
        """
        Return units held by a process to Available.

        Raises:
            InvariantViolationError: If the process holds fewer units
        """
        check_index(process, self.num_processes, "process")
        check_index(resource, self.num_resources, "resource")
        check_units(units)
        held = self._allocation[process][resource]
        if units > held:
            raise InvariantViolationError(
                f"P{process} cannot release R{resource}[{units}] - only holds [{held}]"
            )
        self._allocation[process][resource] -= units
        self._available[resource] += units
        self._update_need()

    def release_all(self, process: int) -> np.ndarray:
        """Release every unit held by a process. Returns the released row."""
        check_index(process, self.num_processes, "process")
        released = self._allocation[process].copy()
        self._available += released
        self._allocation[process] = 0
        self._update_need()
        return released

    def clear_max_demand(self, process: int) -> None:
        """Zero the claim of a process that holds nothing."""
        self.set_max_demand(process, [0] * self.num_resources)

    def copy(self) -> "SafetyState":
        """Deep copy with the same total units."""
        copied = SafetyState(self.num_processes, self.num_resources, self._available)
        copied._allocation = self._allocation.copy()
        copied._max = self._max.copy()
        copied._total = self._total.copy()
        copied._update_need()
        return copied

    def assert_resource_conservation(self, context: str = "") -> None:
        """Verify resource conservation: allocated + available = total for all resources.

        Args:
            context: Description of when this check is being run (for error messages)

        Raises:
            InvariantViolationError: If conservation or claim bounds are violated
        """
        for r_idx in range(self.num_resources):
            allocated = self._allocation[:, r_idx].sum()
            available = self._available[r_idx]
            total = self._total[r_idx]

            if allocated + available != total:
                raise InvariantViolationError(
                    f"Resource conservation violated for R{r_idx} {context}\n"
                    f"  Allocated: {allocated}, Available: {available}, Total: {total}\n"
                    f"  Allocated + Available = {allocated + available} != {total}"
                )
            if available < 0:
                raise InvariantViolationError(
                    f"Negative available resources for R{r_idx} {context}\n"
                    f"  Available: {available}"
                )

        if np.any(self._allocation > self._max):
            raise InvariantViolationError(f"Allocation exceeds max demand {context}")

    def display(self) -> str:
        """
        Generate readable string representation of the matrices.

        Returns:
            Formatted string showing Available, Allocation, Max and Need
        """
        header = "     " + " ".join([f"R{i:2}" for i in range(self.num_resources)])

        def rows(matrix: np.ndarray) -> List[str]:
            return [
                f"  P{i}: " + " ".join([f"{matrix[i][j]:3}" for j in range(self.num_resources)])
                for i in range(self.num_processes)
            ]

        output = ["\nAvailable Resources:"]
        output.append("  [" + ", ".join(
            f"R{i}:{self._available[i]:2}" for i in range(self.num_resources)) + "]")
        output.append("\nAllocation Matrix:")
        output.append(header)
        output.extend(rows(self._allocation))
        output.append("\nMax Demand Matrix:")
        output.append(header)
        output.extend(rows(self._max))
        output.append("\nNeed Matrix (Max - Allocation):")
        output.append(header)
        output.extend(rows(self._need))
        return "\n".join(output)
