"""
Utilities for the Deadlock Toolkit: logging and JSON scenario loading.
"""
