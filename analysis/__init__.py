"""
Analysis package for the Deadlock Toolkit.
Contains structured engine events and metrics counters.
"""
