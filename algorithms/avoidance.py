"""
Deadlock Avoidance Algorithm (Banker's Algorithm) for the Deadlock Toolkit.

Implements the safety scan used to keep the system out of unsafe states.
"""

import numpy as np
from typing import List, Optional, Tuple


def find_safe_sequence(
    available: np.ndarray,
    need: np.ndarray,
    allocation: np.ndarray
) -> Tuple[bool, Optional[List[int]]]:
    """
    Check if a state is safe using Banker's Algorithm.

    Algorithm:
    1. Initialize Work = Available, Finish = [False] * num_processes
    2. Find the lowest index i where Finish[i] == False and Need[i] <= Work
    3. If found: Finish[i] = True, Work += Allocation[i], append i, go to 2
    4. Safe when every process finished, unsafe when a scan finds nobody

    Time Complexity: O(P²×R)

    Args:
        available: [R] free units
        need: [P][R] remaining claims
        allocation: [P][R] current holdings

    Returns:
        Tuple of (is_safe, safe_sequence if exists else None)

    References:
        Silberschatz, A., Galvin, P. B., & Gagne, G. (2018).
        Operating System Concepts (10th ed.). Chapter 7.5: Deadlock Avoidance.
    """
    # Work = copy of Available (prevents modification of original)
    work = available.copy()
    num_processes = need.shape[0]
    finish = np.zeros(num_processes, dtype=bool)
    safe_sequence = []

    made_progress = True
    while made_progress:
        made_progress = False

        for i in range(num_processes):
            if finish[i]:
                continue

            if np.all(need[i] <= work):
                work += allocation[i]
                finish[i] = True
                safe_sequence.append(i)
                made_progress = True
                break  # Restart search from beginning for determinism

    if np.all(finish):
        return True, safe_sequence
    return False, None
