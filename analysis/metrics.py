"""
Metrics Tracking for the Deadlock Toolkit.

Counts deadlock detections, resolutions and prevented requests while an
engine runs. Aggregation across runs and persistence are left to callers.
"""

from dataclasses import dataclass, field
from typing import Dict, List
import statistics


@dataclass
class EngineMetrics:
    """
    Accumulated metrics for one engine lifetime (reset on initialize).

    Tracks:
    1. Deadlocks detected / resolved / prevented
    2. Resolution strategy and prevention strategy usage
    3. Detection time per check (ms), resolution duration (ms) and
       deadlock frequency (deadlocks per minute)
    4. Resource utilization % sampled after each recorded state
    """
    total_deadlocks: int = 0
    resolved_deadlocks: int = 0
    prevented_deadlocks: int = 0
    deadlock_frequency: float = 0.0

    resolution_strategy_counts: Dict[str, int] = field(default_factory=dict)
    prevention_strategy_counts: Dict[str, int] = field(default_factory=dict)

    detection_time_samples: List[float] = field(default_factory=list)
    resolution_time_samples: List[float] = field(default_factory=list)
    utilization_samples: List[float] = field(default_factory=list)

    def record_detection(self) -> None:
        """Record a deadlock occurrence."""
        self.total_deadlocks += 1

    def record_resolution(self, strategy: str, duration_ms: float) -> None:
        """
        Record a resolved deadlock.

        Args:
            strategy: Label of the resolution strategy
            duration_ms: Time between detection and resolution
        """
        self.resolved_deadlocks += 1
        self.resolution_strategy_counts[strategy] = self.resolution_strategy_counts.get(strategy, 0) + 1
        self.resolution_time_samples.append(duration_ms)

    def record_prevention(self, strategy: str) -> None:
        """Record a request denied to keep the system safe."""
        self.prevented_deadlocks += 1
        self.prevention_strategy_counts[strategy] = self.prevention_strategy_counts.get(strategy, 0) + 1

    def record_detection_time(self, detection_time_ms: float) -> None:
        self.detection_time_samples.append(detection_time_ms)

    def update_deadlock_frequency(self, deadlocks_in_timeframe: int, timeframe_minutes: float) -> None:
        """
        Set deadlocks per minute over a timeframe.

        A non-positive timeframe leaves the previous value in place.
        """
        if timeframe_minutes > 0:
            self.deadlock_frequency = deadlocks_in_timeframe / timeframe_minutes

    def record_utilization(self, allocated_instances: int, total_instances: int) -> None:
        """
        Record resource utilization for the current state.

        Args:
            allocated_instances: Sum of allocated units across all resources
            total_instances: Sum of total units across all resources
        """
        if total_instances > 0:
            self.utilization_samples.append((allocated_instances / total_instances) * 100)

    def get_average_resolution_time(self) -> float:
        if not self.resolution_time_samples:
            return 0.0
        return statistics.mean(self.resolution_time_samples)

    def get_average_detection_time(self) -> float:
        if not self.detection_time_samples:
            return 0.0
        return statistics.mean(self.detection_time_samples)

    def get_max_detection_time(self) -> float:
        return max(self.detection_time_samples, default=0.0)

    def get_avg_utilization(self) -> float:
        """Calculate average resource utilization across recorded states."""
        if not self.utilization_samples:
            return 0.0
        return statistics.mean(self.utilization_samples)

    def reset(self) -> None:
        """Clear all counters and samples."""
        self.total_deadlocks = 0
        self.resolved_deadlocks = 0
        self.prevented_deadlocks = 0
        self.deadlock_frequency = 0.0
        self.resolution_strategy_counts.clear()
        self.prevention_strategy_counts.clear()
        self.detection_time_samples.clear()
        self.resolution_time_samples.clear()
        self.utilization_samples.clear()


def format_metrics_report(metrics: EngineMetrics, verbose: bool = False) -> str:
    """
    Format metrics for display at the end of a run.

    Args:
        metrics: EngineMetrics instance with collected data
        verbose: If True, include per-strategy breakdown

    Returns:
        Formatted metrics report string
    """
    lines = []
    lines.append("\n" + "="*60)
    lines.append("ENGINE METRICS")
    lines.append("="*60)

    lines.append(f"Deadlocks Detected: {metrics.total_deadlocks}")
    lines.append(f"Deadlocks Resolved: {metrics.resolved_deadlocks}")
    lines.append(f"Requests Denied (prevented): {metrics.prevented_deadlocks}")
    lines.append(f"Deadlock Frequency: {metrics.deadlock_frequency:.2f} per minute")
    lines.append(f"Average Detection Time: {metrics.get_average_detection_time():.3f} ms")
    lines.append(f"Average Resolution Time: {metrics.get_average_resolution_time():.3f} ms")
    lines.append(f"Average Resource Utilization: {metrics.get_avg_utilization():.2f}%")

    if verbose and metrics.resolution_strategy_counts:
        lines.append("")
        lines.append("RESOLUTION STRATEGIES:")
        lines.append("-" * 60)
        for strategy, count in sorted(metrics.resolution_strategy_counts.items()):
            lines.append(f"  {strategy}: {count}")

    if verbose and metrics.prevention_strategy_counts:
        lines.append("")
        lines.append("PREVENTION STRATEGIES:")
        lines.append("-" * 60)
        for strategy, count in sorted(metrics.prevention_strategy_counts.items()):
            lines.append(f"  {strategy}: {count}")

    lines.append("="*60)
    return "\n".join(lines)
