from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from config import DATABASE_URL

if DATABASE_URL.startswith("sqlite"):
    # SQLite en memoria necesita una única conexión compartida (tests)
    _engine_kwargs = {"connect_args": {"check_same_thread": False}}
    if DATABASE_URL in ("sqlite://", "sqlite:///:memory:"):
        _engine_kwargs["poolclass"] = StaticPool
    engine = create_engine(DATABASE_URL, **_engine_kwargs)
else:
    engine = create_engine(DATABASE_URL, pool_pre_ping=True)

# Crear la sesión sincronica
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Declarative base
Base = declarative_base()

# ✅ IMPORTANTE: NO pongas create_all aquí directamente si estás importando este archivo desde otros lados.
# Hacelo desde main.py luego de importar los modelos


# Función para obtener la sesión
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
