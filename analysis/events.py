"""
Event Model for the Deadlock Toolkit.

Defines the structured records the engine emits: per-operation events and
deadlock lifecycle events.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple


class EventType(Enum):
    """Types of events raised by the engine."""
    ALLOCATION = "allocation"
    DENIAL = "denial"
    WAIT = "wait"
    RELEASE = "release"
    DEADLOCK = "deadlock"
    RECOVERY = "recovery"
    NAVIGATION = "navigation"


@dataclass
class EngineEvent:
    """
    A single engine operation outcome.

    Attributes:
        event_type: Type of event
        process_id: Process involved (-1 for system-wide events)
        resource_type: Resource involved (if applicable)
        amount: Units involved (if applicable)
        message: Human-readable description
        reason: Reason for denial/recovery action (if applicable)
        timestamp: When the event was recorded
    """
    event_type: EventType
    process_id: int
    resource_type: Optional[int] = None
    amount: Optional[int] = None
    message: str = ""
    reason: str = ""
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        """Format event for logging."""
        base = f"P{self.process_id}"

        if self.event_type == EventType.ALLOCATION:
            return f"{base} requests R{self.resource_type}[{self.amount}] - GRANTED ({self.reason})"
        elif self.event_type == EventType.DENIAL:
            return f"{base} requests R{self.resource_type}[{self.amount}] - DENIED ({self.reason})"
        elif self.event_type == EventType.WAIT:
            return f"{base} waits for R{self.resource_type}[{self.amount}]"
        elif self.event_type == EventType.RELEASE:
            return f"{base} releases R{self.resource_type}[{self.amount}]"
        elif self.event_type == EventType.DEADLOCK:
            return f"DEADLOCK DETECTED ({self.message})"
        elif self.event_type == EventType.RECOVERY:
            return f"RECOVERY ({self.message})"
        else:
            return f"{self.event_type.value}: {self.message}"


class DeadlockEvent:
    """
    Lifecycle record of one detected deadlock.

    Created on detection; resolved at most once through mark_resolved().
    """

    def __init__(self, processes: List[int], detected_at: Optional[datetime] = None):
        self._processes = tuple(processes)
        self._detected_at = detected_at or datetime.now()
        self._resolved = False
        self._strategy: Optional[str] = None
        self._resolved_at: Optional[datetime] = None
        self._duration_ms = 0.0

    @property
    def involved_processes(self) -> Tuple[int, ...]:
        return self._processes

    @property
    def detection_time(self) -> datetime:
        return self._detected_at

    @property
    def resolved(self) -> bool:
        return self._resolved

    @property
    def resolution_strategy(self) -> Optional[str]:
        return self._strategy

    @property
    def resolution_time(self) -> Optional[datetime]:
        return self._resolved_at

    @property
    def resolution_duration_ms(self) -> float:
        return self._duration_ms

    def mark_resolved(self, strategy: str, resolved_at: Optional[datetime] = None) -> None:
        """
        Record the resolution of this deadlock.

        Raises:
            RuntimeError: If the event was already resolved
        """
        if self._resolved:
            raise RuntimeError(f"Deadlock event for {list(self._processes)} already resolved")
        self._resolved = True
        self._strategy = strategy
        self._resolved_at = resolved_at or datetime.now()
        self._duration_ms = (self._resolved_at - self._detected_at).total_seconds() * 1000

    def __repr__(self) -> str:
        status = f"resolved by {self._strategy}" if self._resolved else "unresolved"
        return f"DeadlockEvent(processes={list(self._processes)}, {status})"


@dataclass
class EventLog:
    """Collection of engine events and deadlock records."""
    events: List[EngineEvent] = field(default_factory=list)
    deadlocks: List[DeadlockEvent] = field(default_factory=list)

    def add(self, event: EngineEvent) -> None:
        """Add an event to the log."""
        self.events.append(event)

    def add_deadlock(self, event: DeadlockEvent) -> None:
        self.deadlocks.append(event)

    def latest_unresolved(self) -> Optional[DeadlockEvent]:
        """Most recent deadlock that has not been resolved yet."""
        for event in reversed(self.deadlocks):
            if not event.resolved:
                return event
        return None

    def get_events_by_type(self, event_type: EventType) -> List[EngineEvent]:
        """Get all events of a specific type."""
        return [e for e in self.events if e.event_type == event_type]

    def clear(self) -> None:
        self.events.clear()
        self.deadlocks.clear()

    def display(self) -> str:
        """Format all events for display."""
        return "\n".join(str(event) for event in self.events)
