"""
Algorithms package for the Deadlock Toolkit.
Contains deadlock detection, avoidance (Banker's), prevention, recovery and
scenario synthesis.
"""
