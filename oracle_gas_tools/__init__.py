"""
Oracle Gas Tools

Tenderly fork/simulation client, oracle payload helpers and gas profiling
utilities.
"""

__version__ = "0.1.0"
