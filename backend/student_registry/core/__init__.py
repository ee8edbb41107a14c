"""
Core module initialization.
"""

from student_registry.core.config import get_config, load_config
from student_registry.core.database import get_db, init_db, drop_db, Base
from student_registry.core.logging import get_logger, setup_logging
from student_registry.core.security import UserContext, get_current_user

__all__ = [
    "get_config",
    "load_config",
    "get_db",
    "init_db",
    "drop_db",
    "Base",
    "get_logger",
    "setup_logging",
    "UserContext",
    "get_current_user",
]
