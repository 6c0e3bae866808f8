"""
Relaunch Build Package.

Invocation of the external build command.
"""

from relaunch.build.builder import Builder, BuildResult

__all__ = ["Builder", "BuildResult"]
