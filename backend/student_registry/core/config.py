"""
Core configuration module for the Student Registry.
Loads configuration from YAML file and environment variables.
"""

from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel
from pydantic_settings import BaseSettings


class EnvSettings(BaseSettings):
    """Environment overrides (container paths, log level, config file)."""

    student_registry_config: Optional[str] = None
    data_dir: Optional[str] = None
    logs_dir: Optional[str] = None
    log_level: str = "INFO"


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = "0.0.0.0"
    port: int = 8090
    debug: bool = False


class DatabaseConfig(BaseModel):
    """Database configuration."""

    path: str = "data/students.db"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    file: str = "app.log"
    level: str = EnvSettings().log_level
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    max_size: int = 10  # MB
    backup_count: int = 5


class SchoolConfig(BaseModel):
    """School roster and reminder-point rules."""

    sheikhs: List[str] = [
        "الشيخ عبد الرحمن",
        "الشيخ محمد الأمين",
        "الشيخ يوسف",
    ]
    points_increment: int = 5
    priority_threshold: int = 20


class AppConfig(BaseModel):
    """Main application configuration."""

    server: ServerConfig = ServerConfig()
    database: DatabaseConfig = DatabaseConfig()
    logging: LoggingConfig = LoggingConfig()
    school: SchoolConfig = SchoolConfig()


def get_project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent.parent.parent


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to the configuration file. If None, uses
            STUDENT_REGISTRY_CONFIG or config.yaml at the project root.

    Returns:
        AppConfig instance with loaded configuration.
    """
    if config_path is None:
        config_path = EnvSettings().student_registry_config
        if config_path is None:
            config_path = get_project_root() / "config.yaml"

    config_path = Path(config_path)

    if config_path.exists():
        with open(config_path, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f) or {}
            return AppConfig(**config_data)

    return AppConfig()


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def _resolve_data_dir() -> Path:
    """
    Resolve the data directory path.

    Supports two modes:
    1. Container mode: DATA_DIR environment variable is set (e.g., /app/data)
    2. Local development: Uses project root/data
    """
    data_dir_env = EnvSettings().data_dir

    if data_dir_env:
        return Path(data_dir_env).resolve()
    return (get_project_root() / "data").resolve()


def get_database_path() -> Path:
    """
    Get the absolute path to the database file.

    - Container: /app/data/students.db
    - Local: project_root/data/students.db
    """
    config = get_config()

    # Only the filename is taken from the config; the directory is the data dir
    db_filename = Path(config.database.path).name

    db_path = (_resolve_data_dir() / db_filename).resolve()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return db_path


def get_log_path() -> Path:
    """
    Get the absolute path to the log file.

    - Container: $LOGS_DIR/app.log
    - Local: project_root/logs/app.log
    """
    config = get_config()

    logs_dir_env = EnvSettings().logs_dir

    if logs_dir_env:
        log_dir = Path(logs_dir_env)
    else:
        log_dir = get_project_root() / "logs"

    log_dir.mkdir(parents=True, exist_ok=True)

    # Use only the filename from config so logs never go outside logs/
    name = Path(config.logging.file).name or "app.log"
    return log_dir / name
