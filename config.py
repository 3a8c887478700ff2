"""
Configuración general del backend de la agencia
Todo se lee de variables de entorno (.env vía python-dotenv)
"""
import os

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = "true") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# Base de datos
DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL and os.getenv("DB_HOST"):
    # URL clásica (síncrona), usa psycopg2 por defecto
    DATABASE_URL = (
        f"postgresql://{os.getenv('DB_USER')}:{os.getenv('DB_PASSWORD')}"
        f"@{os.getenv('DB_HOST')}:{os.getenv('DB_PORT', '5432')}/{os.getenv('DB_NAME')}"
    )
if not DATABASE_URL:
    DATABASE_URL = "sqlite:///./travel_crm.db"

# Seguridad
SECRET_KEY = os.getenv("SECRET_KEY", "cambiar-esta-clave-en-produccion-travel-crm")  # ⚠️ CAMBIAR EN PRODUCCIÓN
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "720"))
MAX_FAILED_LOGINS = 5
LOCK_MINUTES = 30

# Invitaciones
INVITATION_EXPIRE_DAYS = int(os.getenv("INVITATION_EXPIRE_DAYS", "7"))
FRONTEND_BASE_URL = os.getenv("FRONTEND_BASE_URL", "https://travel-agentonline.com").rstrip("/")

# CORS
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if origin.strip()
]

# Zona horaria de la agencia
AGENCY_TIMEZONE = os.getenv("AGENCY_TIMEZONE", "Europe/Kyiv")

# Logs
LOG_FILE = os.getenv("LOG_FILE", "travel_crm_logs.txt")

# Rate limiting
RATE_LIMIT_ENABLED = _env_bool("RATE_LIMIT_ENABLED")
RATE_LIMIT_DEFAULT = os.getenv("RATE_LIMIT_DEFAULT", "100/minute")
RATE_LIMIT_LOGIN = os.getenv("RATE_LIMIT_LOGIN", "10/minute")
REDIS_URL = os.getenv("REDIS_URL", "memory://")  # Usar Redis en producción

# Paginación
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def get_registration_url(token: str) -> str:
    """Link de registro que se comparte con el invitado"""
    return f"{FRONTEND_BASE_URL}/register/{token}"
