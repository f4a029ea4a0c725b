import os

from dotenv import load_dotenv

load_dotenv()  # Загружаем переменные из .env файла


def _flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


# -----------------------------
# База данных
# -----------------------------
DB_HOST = os.getenv("POSTGRES_HOST")
DB_PORT = os.getenv("POSTGRES_PORT", "5432")
DB_NAME = os.getenv("POSTGRES_DB")
DB_USER = os.getenv("POSTGRES_USER")
DB_PASS = os.getenv("POSTGRES_PASSWORD")

if os.getenv("DATABASE_URL"):
    DATABASE_URL = os.getenv("DATABASE_URL")
elif DB_HOST:
    DATABASE_URL = f"postgresql+psycopg2://{DB_USER}:{DB_PASS}@{DB_HOST}:{DB_PORT}/{DB_NAME}"
else:
    DATABASE_URL = "sqlite:///./tasks.db"

# -----------------------------
# JWT и пароли
# -----------------------------
SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-only-secret-key-change-me-in-production")
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_ISSUER = os.getenv("JWT_ISSUER", "tasktracker")
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "tasktracker-clients")
JWT_EXPIRATION_HOURS = float(os.getenv("JWT_EXPIRATION_HOURS", "1"))
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

# -----------------------------
# Ограничение частоты запросов (фиксированное окно)
# -----------------------------
RATE_LIMIT_WINDOW_SECONDS = float(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "8"))
RATE_LIMIT_PERMIT_LIMIT = int(os.getenv("RATE_LIMIT_PERMIT_LIMIT", "4"))
RATE_LIMIT_QUEUE_LIMIT = int(os.getenv("RATE_LIMIT_QUEUE_LIMIT", "2"))

# Пустой результат GET /tasks: [] (по умолчанию) или 404
EMPTY_LIST_NOT_FOUND = _flag("EMPTY_LIST_NOT_FOUND")

# -----------------------------
# Логирование
# -----------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE")
