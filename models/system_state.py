"""
System State snapshot model for the Deadlock Toolkit.

An immutable deep copy of the full allocation state, captured after every
mutating engine operation and used for history navigation.
"""

import numpy as np
from dataclasses import dataclass

from models.resource_graph import ResourceAllocationGraph
from models.safety_state import SafetyState


def _frozen(array: np.ndarray) -> np.ndarray:
    copy = np.array(array, dtype=int)
    copy.flags.writeable = False
    return copy


@dataclass(frozen=True, eq=False)
class SystemState:
    """
    Snapshot of the engine's live state.

    Attributes:
        allocation_matrix: [P][R] read-only copy
        max_matrix: [P][R] read-only copy
        need_matrix: [P][R] read-only copy
        available_vector: [R] read-only copy
        resource_graph: private RAG clone (never handed out for mutation)
    """
    allocation_matrix: np.ndarray
    max_matrix: np.ndarray
    need_matrix: np.ndarray
    available_vector: np.ndarray
    _graph: ResourceAllocationGraph

    @classmethod
    def capture(cls, safety: SafetyState, graph: ResourceAllocationGraph) -> "SystemState":
        """Deep-copy the live matrices and graph."""
        return cls(
            allocation_matrix=_frozen(safety.allocation_matrix),
            max_matrix=_frozen(safety.max_matrix),
            need_matrix=_frozen(safety.need_matrix),
            available_vector=_frozen(safety.available_vector),
            _graph=graph.clone(),
        )

    @property
    def num_processes(self) -> int:
        return self.allocation_matrix.shape[0]

    @property
    def num_resources(self) -> int:
        return self.allocation_matrix.shape[1]

    @property
    def resource_graph(self) -> ResourceAllocationGraph:
        """A fresh clone of the captured graph."""
        return self._graph.clone()

    def restore_into(self, safety: SafetyState) -> ResourceAllocationGraph:
        """
        Overwrite a live SafetyState from this snapshot.

        Returns:
            A new live graph cloned from the snapshot
        """
        safety.load(self.allocation_matrix, self.max_matrix, self.available_vector)
        return self._graph.clone()

    def equals(self, other: "SystemState") -> bool:
        """Value comparison of every matrix and graph edge."""
        return (
            np.array_equal(self.allocation_matrix, other.allocation_matrix)
            and np.array_equal(self.max_matrix, other.max_matrix)
            and np.array_equal(self.need_matrix, other.need_matrix)
            and np.array_equal(self.available_vector, other.available_vector)
            and self._graph.equals(other._graph)
        )
