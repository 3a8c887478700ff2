from fastapi import FastAPI

from config import CORS_ORIGINS
from database.conexion import Base, engine
import models  # 👈 asegura que todos los modelos estén registrados
from fastapi.middleware.cors import CORSMiddleware
from utils.logging_utils import get_logger
from utils.rate_limiter import setup_rate_limiting
from utils.dependencies import REDIRECT_HEADER

logger = get_logger()

try:
    Base.metadata.create_all(bind=engine)
    logger.info("[OK] Tablas creadas (o ya existian)")
except Exception as e:
    logger.error(f"[ERROR] Error creando tablas: {e}")
    raise

app = FastAPI(title="Travel Agency CRM API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],         # GET, POST, PUT, PATCH, DELETE...
    allow_headers=["*"],
    expose_headers=[REDIRECT_HEADER, "Content-Disposition"],
)

setup_rate_limiting(app)

from endpoints import (
    auth, invitaciones, perfil, agentes, usuarios, ordenes, cuentas_bancarias, dashboard
)
app.include_router(auth.router)
app.include_router(invitaciones.router)
app.include_router(perfil.router)
app.include_router(agentes.router)
app.include_router(usuarios.router)
app.include_router(ordenes.router)
app.include_router(cuentas_bancarias.router)
app.include_router(dashboard.router)


@app.get("/")
def read_root():
    return {"message": "Travel Agency CRM API"}
