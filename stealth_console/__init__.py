from .config import ConfigError, RunConfig
from .context import SessionContext
from .orchestrator import SessionScheduler

__all__ = ["ConfigError", "RunConfig", "SessionContext", "SessionScheduler"]
