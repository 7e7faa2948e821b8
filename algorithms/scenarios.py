"""
Scenario Synthesizer for the Deadlock Toolkit.

Builds ready-made graph + matrix fixtures: circular wait, dining
philosophers, and random allocations with optional injected request chains.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Union

import numpy as np

from models.errors import ConfigurationError
from models.resource_graph import ResourceAllocationGraph
from models.safety_state import SafetyState


@dataclass
class Scenario:
    """
    A synthesized system ready to be loaded into the engine.

    Attributes:
        name: Short scenario label
        rag: Resource-allocation graph
        safety: Banker's matrices (total units fixed at synthesis)
        description: Human-readable summary
    """
    name: str
    rag: ResourceAllocationGraph
    safety: SafetyState
    description: str = ""

    @property
    def num_processes(self) -> int:
        return self.safety.num_processes

    @property
    def num_resources(self) -> int:
        return self.safety.num_resources


def _hold(scenario: Scenario, process: int, resource: int, units: int) -> None:
    """Allocate in both the matrices and the graph."""
    scenario.safety.allocate_resource(process, resource, units)
    scenario.rag.add_allocation(process, resource, units)


def circular_wait(num_processes: int) -> Scenario:
    """
    Classic circular wait among n processes and n resources.

    Each resource has n units. Process i claims 2 units of resource i and of
    resource (i+1) mod n, holds 1 unit of resource i and requests 1 unit of
    resource (i+1) mod n.

    Raises:
        ConfigurationError: If fewer than 2 processes are requested
    """
    if num_processes < 2:
        raise ConfigurationError("Need at least 2 processes for a circular wait")

    n = num_processes
    scenario = Scenario(
        name="circular_wait",
        rag=ResourceAllocationGraph(n, n),
        safety=SafetyState(n, n, [n] * n),
        description=f"{n} processes each hold R(i) and wait for R(i+1 mod {n})",
    )

    for i in range(n):
        max_demand = [0] * n
        max_demand[i] = 2
        max_demand[(i + 1) % n] = 2
        scenario.safety.set_max_demand(i, max_demand)

    for i in range(n):
        _hold(scenario, i, i, 1)
        scenario.rag.add_request(i, (i + 1) % n, 1)

    return scenario


def dining_philosophers(num_philosophers: int) -> Scenario:
    """
    Dining philosophers with every philosopher holding the left fork.

    Philosophers are processes, forks are single-unit resources. Philosopher
    i claims fork i (left) and fork (i+1) mod n (right), holds the left one
    and waits for the right one.

    Raises:
        ConfigurationError: If fewer than 2 philosophers are requested
    """
    if num_philosophers < 2:
        raise ConfigurationError("Need at least 2 philosophers")

    n = num_philosophers
    scenario = Scenario(
        name="dining_philosophers",
        rag=ResourceAllocationGraph(n, n),
        safety=SafetyState(n, n, [1] * n),
        description=f"{n} philosophers each holding the left fork",
    )

    for i in range(n):
        left_fork, right_fork = i, (i + 1) % n
        max_demand = [0] * n
        max_demand[left_fork] = 1
        max_demand[right_fork] = 1
        scenario.safety.set_max_demand(i, max_demand)

    for i in range(n):
        _hold(scenario, i, i, 1)
        scenario.rag.add_request(i, (i + 1) % n, 1)

    return scenario


def random_scenario(
    num_processes: int,
    num_resources: int,
    deadlock_probability: float,
    rng: Optional[Union[int, np.random.Generator]] = None
) -> Scenario:
    """
    Random allocation state that may contain a circular request chain.

    Steps:
    1. Available per resource drawn from [3, 3 + 2*P)
    2. Max per process/resource drawn from [1, 3]
    3. Each pair is allocated 1-2 units with probability 0.5, capped by Max
       and by what is still available
    4. With deadlock_probability, add a chain of 2-4 request edges among
       random process/resource pairs (not guaranteed to close a real cycle)

    Args:
        num_processes: Number of processes (>= 2)
        num_resources: Number of resource classes (>= 2)
        deadlock_probability: Chance of injecting a request chain, in [0, 1]
        rng: Seed or numpy Generator for reproducible draws

    Raises:
        ConfigurationError: On invalid sizes or probability
    """
    if num_processes < 2 or num_resources < 2:
        raise ConfigurationError("Need at least 2 processes and 2 resources")
    if not 0.0 <= deadlock_probability <= 1.0:
        raise ConfigurationError(
            f"Deadlock probability must be within [0, 1], got {deadlock_probability}"
        )

    rng = np.random.default_rng(rng)
    available = 3 + rng.integers(num_processes * 2, size=num_resources)
    scenario = Scenario(
        name="random",
        rag=ResourceAllocationGraph(num_processes, num_resources),
        safety=SafetyState(num_processes, num_resources, available),
        description=(
            f"Random {num_processes}x{num_resources} allocation "
            f"(deadlock probability {deadlock_probability:.2f})"
        ),
    )

    for i in range(num_processes):
        scenario.safety.set_max_demand(i, 1 + rng.integers(3, size=num_resources))

    for i in range(num_processes):
        for j in range(num_resources):
            if rng.random() < 0.5:
                units = 1 + int(rng.integers(2))
                units = min(
                    units,
                    int(scenario.safety.max_matrix[i][j]),
                    int(scenario.safety.available_vector[j]),
                )
                if units > 0:
                    _hold(scenario, i, j, units)

    if rng.random() < deadlock_probability:
        _inject_request_chain(scenario, rng)

    return scenario


def _inject_request_chain(scenario: Scenario, rng: np.random.Generator) -> None:
    """Add a ring of single-unit requests among random process/resource pairs."""
    chain_length = 2 + int(rng.integers(min(scenario.num_processes - 1, 3)))
    processes = rng.integers(scenario.num_processes, size=chain_length)
    resources = rng.integers(scenario.num_resources, size=chain_length)

    for i in range(chain_length):
        requested = int(resources[(i + 1) % chain_length])
        scenario.rag.add_request(int(processes[i]), requested, 1)


SCENARIOS: Dict[str, Callable[[int], Scenario]] = {
    "circular_wait": circular_wait,
    "dining_philosophers": dining_philosophers,
}
