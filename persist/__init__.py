"""
persist: a minimal self-healing supervisor for a single executable.
"""

__version__ = "0.1.0"
