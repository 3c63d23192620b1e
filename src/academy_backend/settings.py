import os
import threading


def _database_url() -> str:
    url = os.environ.get("DATABASE_URL")
    if url:
        return url
    user = os.environ.get("POSTGRES_USER", "postgres")
    password = os.environ.get("POSTGRES_PASSWORD", "")
    host = os.environ.get("POSTGRES_URL", "localhost:5432")
    database = os.environ.get("POSTGRES_DB", "postgres")
    return f"postgresql://{user}:{password}@{host}/{database}"


class BackendSettings:
    _instance = None
    _lock = threading.Lock()

    def __init__(self):
        self.DEBUG_MODE = os.environ.get("DEBUG_MODE", "development")
        self.DATABASE_URL = _database_url()
        # Claim settings
        self.JWT_SECRET = os.environ.get("JWT_SECRET", None)
        self.JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
        self.TOKEN_TTL_HOURS = int(os.environ.get("TOKEN_TTL_HOURS", "8"))

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(BackendSettings, cls).__new__(cls)
        return cls._instance

settings = BackendSettings()
