import os

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "attendance_scheduling"),
    "isolation_level": os.getenv("DB_ISOLATION_LEVEL", "SERIALIZABLE"),
}

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

DEBUG = bool(int(os.getenv("DEBUG", "1")))

# Apply schema.sql on startup (idempotent: CREATE TABLE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
