"""
Models package for the Deadlock Toolkit.
Contains the resource-allocation graph, Banker's matrices and state snapshots.
"""
