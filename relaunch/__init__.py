"""
Relaunch.

File-change-triggered build-and-restart supervisor.
Requires Python 3.11+.
"""

__version__ = "0.1.0"
