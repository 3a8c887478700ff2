"""
Gate de autorización por sesión

checking -> authorized(role) | unauthorized

Sin token o sin usuario -> unauthorized, redirección al login.
Rol distinto al requerido por la página -> redirección al home de su rol.
"""
import enum
from typing import Optional

from models.usuario import ROLE_ADMIN, ROLE_AGENT, ROLE_MANAGER


LOGIN_PATH = "/"

ROLE_HOME = {
    ROLE_ADMIN: "/admin",
    ROLE_MANAGER: "/manager",
    ROLE_AGENT: "/agent",
}


class SessionState(str, enum.Enum):
    CHECKING = "checking"
    AUTHORIZED = "authorized"
    UNAUTHORIZED = "unauthorized"


class GateDecision:
    """Resultado del gate para una página"""

    def __init__(self, state: SessionState, role: Optional[str] = None, redirect_to: Optional[str] = None):
        self.state = state
        self.role = role
        self.redirect_to = redirect_to

    @property
    def allowed(self) -> bool:
        return self.state == SessionState.AUTHORIZED and self.redirect_to is None


def home_for_role(role: Optional[str]) -> str:
    return ROLE_HOME.get(role, LOGIN_PATH)


def evaluate_session(token: Optional[str], user_role: Optional[str], required_role: Optional[str] = None) -> GateDecision:
    """
    Resuelve el estado de la sesión para una página.

    Args:
        token: token guardado por el cliente (None si no hay)
        user_role: rol del usuario asociado al token (None si no se pudo resolver)
        required_role: rol que exige la página; None acepta cualquier rol
    """
    if not token or not user_role:
        return GateDecision(SessionState.UNAUTHORIZED, redirect_to=LOGIN_PATH)

    if user_role not in ROLE_HOME:
        return GateDecision(SessionState.UNAUTHORIZED, redirect_to=LOGIN_PATH)

    if required_role and user_role != required_role:
        return GateDecision(SessionState.AUTHORIZED, role=user_role, redirect_to=home_for_role(user_role))

    return GateDecision(SessionState.AUTHORIZED, role=user_role)
