"""
Scenario Loader for the Deadlock Toolkit.

Loads and validates JSON scenario files into a Scenario the engine can adopt.

Format:
    {
      "name": "banker_classic",
      "description": "...",
      "available": [3, 3, 2],
      "max": [[7, 5, 3], ...],
      "allocation": [[0, 1, 0], ...],
      "requests": [{"process": 0, "resource": 1, "units": 1}]
    }

"available" is the free vector after the initial allocation; total units are
available + column sums of allocation.
"""

import json
from pathlib import Path
from typing import Any, Dict, List

from algorithms.scenarios import Scenario
from models.errors import ConfigurationError
from models.resource_graph import ResourceAllocationGraph
from models.safety_state import SafetyState


class ScenarioLoadError(Exception):
    """Exception raised when scenario file cannot be loaded or is invalid."""
    pass


def load_scenario(file_path: str) -> Scenario:
    """
    Load scenario from JSON file.

    Args:
        file_path: Path to scenario JSON file

    Returns:
        Scenario with matrices and graph initialized

    Raises:
        ScenarioLoadError: If file cannot be loaded or is invalid
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ScenarioLoadError(f"Scenario file not found: {file_path}")
    except json.JSONDecodeError as e:
        raise ScenarioLoadError(f"Invalid JSON in scenario file: {e}")

    return build_scenario(data, default_name=Path(file_path).stem)


def build_scenario(data: Dict[str, Any], default_name: str = "scenario") -> Scenario:
    """
    Build a Scenario from already-parsed scenario data.

    Raises:
        ScenarioLoadError: If required fields are missing or inconsistent
    """
    for required in ('available', 'max'):
        if required not in data:
            raise ScenarioLoadError(f"Scenario missing '{required}' field")

    available = data['available']
    max_matrix = data['max']
    num_resources = len(available)
    num_processes = len(max_matrix)
    allocation = data.get('allocation', [[0] * num_resources for _ in range(num_processes)])

    if num_processes == 0 or num_resources == 0:
        raise ScenarioLoadError("Scenario needs at least one process and one resource")
    if len(allocation) != num_processes:
        raise ScenarioLoadError(
            f"allocation has {len(allocation)} rows but max has {num_processes}"
        )

    try:
        totals = [
            available[r] + sum(row[r] for row in allocation)
            for r in range(num_resources)
        ]
        safety = SafetyState(num_processes, num_resources, totals)
        for p in range(num_processes):
            safety.set_max_demand(p, max_matrix[p])

        rag = ResourceAllocationGraph(num_processes, num_resources)
        for p, row in enumerate(allocation):
            _validate_row(row, num_resources, f"allocation row for P{p}")
            for r, units in enumerate(row):
                if units > 0:
                    safety.allocate_resource(p, r, units)
                    rag.add_allocation(p, r, units)

        for request in _load_requests(data.get('requests', [])):
            rag.add_request(request['process'], request['resource'], request['units'])
    except (ConfigurationError, RuntimeError, IndexError, TypeError) as e:
        raise ScenarioLoadError(f"Invalid scenario '{data.get('name', default_name)}': {e}")

    return Scenario(
        name=data.get('name', default_name),
        rag=rag,
        safety=safety,
        description=data.get('description', ''),
    )


def _validate_row(row: List[int], num_resources: int, label: str) -> None:
    if len(row) != num_resources:
        raise ScenarioLoadError(
            f"{label} has length {len(row)}, expected {num_resources}"
        )


def _load_requests(request_data: List[Dict]) -> List[Dict]:
    """
    Validate outstanding request entries.

    Raises:
        ScenarioLoadError: If an entry is missing a field or has no units
    """
    requests = []
    for req in request_data:
        for field in ('process', 'resource', 'units'):
            if field not in req:
                raise ScenarioLoadError(f"Request missing '{field}' field: {req}")
        if req['units'] <= 0:
            raise ScenarioLoadError(f"Request units must be positive: {req}")
        requests.append(req)
    return requests


def get_scenario_description(file_path: str) -> str:
    """
    Get description from scenario file without full loading.

    Args:
        file_path: Path to scenario JSON file

    Returns:
        Description string, or empty string if not present or unreadable
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError):
        return ''
    return data.get('description', '')
