"""
Self-update support: the pending-update sentinel, the startup rollback check,
and the orchestrator that applies agent-proposed changes to this program.
"""

from .sentinel import SentinelError, SentinelRecord, SentinelStore
from .startup import RollbackProtocol, StartupOutcome, StartupReport
from .orchestrator import SelfUpdateOrchestrator, StagedUpdate

__all__ = [
    "SentinelError",
    "SentinelRecord",
    "SentinelStore",
    "RollbackProtocol",
    "StartupOutcome",
    "StartupReport",
    "SelfUpdateOrchestrator",
    "StagedUpdate",
]
