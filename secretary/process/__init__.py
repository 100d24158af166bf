"""Wrapped command supervision for secretary."""

from .supervisor import ProcessSupervisor, SupervisorState

__all__ = ["ProcessSupervisor", "SupervisorState"]
