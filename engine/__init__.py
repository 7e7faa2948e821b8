"""
Engine package for the Deadlock Toolkit.
"""

from engine.allocation_engine import AllocationEngine, DeadlockListener

__all__ = ["AllocationEngine", "DeadlockListener"]
