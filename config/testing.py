import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "geo_attendance_test"),
}

DEBUG = False
TESTING = True

STORE_BACKEND = "memory"

AUTO_INIT_DB = False

LOG_LEVEL = "WARNING"
LOG_FILE = None

DEFAULT_RADIUS_METERS = 50.0
