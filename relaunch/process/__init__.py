"""
Relaunch Process Package.

Supervision of the spawned artifact process.
"""

from relaunch.process.supervisor import ProcessSupervisor, RestartResult

__all__ = ["ProcessSupervisor", "RestartResult"]
