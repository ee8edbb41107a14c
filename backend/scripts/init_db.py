"""
Initialize database: create all tables. Run once manually before first app launch.

Usage (from backend directory):
  python -m scripts.init_db

Do not run this on application startup. The application does not create or migrate the database.

Tables Created:
  - students: Student records, scoped by owner_id
"""

from student_registry.core.config import get_database_path
from student_registry.core.database import init_db
from student_registry.core.logging import get_logger, setup_logging


def main():
    logger = setup_logging()
    logger.info(f"Initializing database at {get_database_path()}...")
    init_db()
    logger.info(
        "Database initialization complete. Run the application with: python -m uvicorn main:app --host 0.0.0.0 --port 8090"
    )


if __name__ == "__main__":
    main()
