from models.event import ShutdownCheckResult, ShutdownEvent
from models.state import StateData

__all__ = ["ShutdownCheckResult", "ShutdownEvent", "StateData"]
