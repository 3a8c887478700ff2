from datetime import datetime

import pytz

from config import AGENCY_TIMEZONE

# Zona horaria centralizada de la agencia
AGENCY_TZ = pytz.timezone(AGENCY_TIMEZONE)


def get_agency_now() -> datetime:
    """Returns current time in Agency Timezone"""
    return datetime.now(AGENCY_TZ)


def to_agency_time(dt: datetime) -> datetime:
    """Converts a datetime to Agency Timezone"""
    if dt.tzinfo is None:
        # Los timestamps de la BD se guardan naive en UTC
        return pytz.utc.localize(dt).astimezone(AGENCY_TZ)
    return dt.astimezone(AGENCY_TZ)


def format_agency_datetime(dt: datetime, fmt: str = "%d.%m.%Y %H:%M") -> str:
    """Formats a stored timestamp for documents (CSV, vouchers)"""
    if dt is None:
        return ""
    return to_agency_time(dt).strftime(fmt)


def get_operational_date() -> str:
    """Returns today's date formatted as YYYY-MM-DD in Agency Timezone"""
    return get_agency_now().strftime("%Y-%m-%d")
