import os


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


# ----- Database -----
DATABASE_URL = os.getenv("LUGGAGE_DATABASE_URL", "sqlite:///./luggage.db")

# ----- Auth / JWT -----
SECRET_KEY = os.getenv("LUGGAGE_SECRET_KEY", "CHANGE_THIS_SECRET_IN_REAL_PROJECT")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("LUGGAGE_TOKEN_EXPIRE_MINUTES", "60"))
BCRYPT_ROUNDS = int(os.getenv("LUGGAGE_BCRYPT_ROUNDS", "12"))

# ----- Rate limiting -----
RATE_LIMIT_ENABLED = _flag("LUGGAGE_RATE_LIMIT_ENABLED", "true")
DEFAULT_RATE_LIMIT = os.getenv("LUGGAGE_DEFAULT_RATE_LIMIT", "100/minute")
AUTH_RATE_LIMIT = os.getenv("LUGGAGE_AUTH_RATE_LIMIT", "5/minute")

# ----- Circuit breaker around store commits -----
BREAKER_FAIL_MAX = int(os.getenv("LUGGAGE_BREAKER_FAIL_MAX", "3"))
BREAKER_RESET_TIMEOUT = int(os.getenv("LUGGAGE_BREAKER_RESET_TIMEOUT", "60"))

# ----- Logging -----
LOG_LEVEL = os.getenv("LUGGAGE_LOG_LEVEL", "INFO").upper()

# ----- Discovery defaults -----
DEFAULT_RADIUS_KM = 5.0
DEFAULT_POPULAR_LIMIT = 10
