"""
Scenario Loader Tests

Tests JSON scenario loading and validation.
"""

import json
import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from utils.scenario_loader import (
    ScenarioLoadError,
    build_scenario,
    get_scenario_description,
    load_scenario,
)


SCENARIOS_DIR = project_root / "scenarios"


def _write(tmp_path, data, name="scenario.json"):
    path = tmp_path / name
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def test_load_bundled_scenarios():
    print("\n" + "="*60)
    print("TEST: Bundled scenario files")
    print("="*60)

    classic = load_scenario(str(SCENARIOS_DIR / "banker_classic.json"))
    assert classic.name == "banker_classic"
    assert list(classic.safety.available_vector) == [3, 3, 2]
    assert list(classic.safety.total_units) == [10, 5, 7]
    assert not classic.rag.detect_deadlock()

    cycle = load_scenario(str(SCENARIOS_DIR / "three_cycle.json"))
    assert cycle.rag.get_deadlocked_processes() == [0, 1, 2]

    uneven = load_scenario(str(SCENARIOS_DIR / "uneven_holders.json"))
    assert uneven.rag.holdings_of(1) == [(1, 5)]
    print("  ✓ All bundled scenarios load")


def test_allocation_defaults_to_empty(tmp_path):
    path = _write(tmp_path, {"available": [2, 1], "max": [[1, 1], [2, 0]]}, name="idle.json")
    scenario = load_scenario(path)

    assert scenario.name == "idle"
    assert scenario.safety.allocation_matrix.sum() == 0
    assert list(scenario.safety.total_units) == [2, 1]


def test_missing_file():
    with pytest.raises(ScenarioLoadError, match="not found"):
        load_scenario("no/such/scenario.json")


def test_invalid_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ScenarioLoadError, match="Invalid JSON"):
        load_scenario(str(path))


@pytest.mark.parametrize("data", [
    {"max": [[1]]},
    {"available": [1]},
    {"available": [], "max": []},
    {"available": [1], "max": [[1]], "allocation": [[0], [0]]},
    {"available": [1, 1], "max": [[1, 1]], "allocation": [[1]]},
    {"available": [1], "max": [[1]], "allocation": [[2]]},
    {"available": [1], "max": [[1]], "requests": [{"process": 0, "resource": 0}]},
    {"available": [1], "max": [[1]], "requests": [{"process": 0, "resource": 0, "units": 0}]},
    {"available": [1], "max": [[1]], "requests": [{"process": 3, "resource": 0, "units": 1}]},
])
def test_invalid_scenarios_rejected(data):
    with pytest.raises(ScenarioLoadError):
        build_scenario(data)


def test_scenario_description(tmp_path):
    path = _write(tmp_path, {"description": "demo", "available": [1], "max": [[1]]})

    assert get_scenario_description(path) == "demo"
    assert get_scenario_description(str(tmp_path / "missing.json")) == ""


def main():
    """Run loader tests that need no fixtures."""
    test_load_bundled_scenarios()
    test_missing_file()
    print("\n✅ Scenario Loader Tests PASSED")
    return 0


if __name__ == '__main__':
    sys.exit(main())
