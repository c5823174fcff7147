from datetime import date, datetime, timedelta, timezone
from typing import Optional


def format_brl(value: float) -> str:
    """
    Formats an amount in the pt-BR convention, always with two decimals.
    1369.52 -> 1.369,52
    """
    formatted = f"{value:,.2f}"
    return formatted.replace(",", "_").replace(".", ",").replace("_", ".")


def format_percentage(value: float) -> str:
    """One decimal place with a decimal comma: 12.34 -> 12,3%"""
    return f"{value:.1f}".replace(".", ",") + "%"


def format_date_br(value: Optional[date]) -> str:
    if value is None:
        return "Não informado"
    return value.strftime("%d/%m/%Y")


def format_brasilia_time(dt: datetime) -> str:
    """
    Converts UTC datetime to Brasília time (UTC-3) and formats it.
    Format: DD/MM/YYYY às HH:mm
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    # Brasilia is UTC-3 (DST abolished)
    brasilia_tz = timezone(timedelta(hours=-3))
    dt_brasilia = dt.astimezone(brasilia_tz)

    return dt_brasilia.strftime("%d/%m/%Y às %H:%M")
