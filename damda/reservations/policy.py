"""
Politique de réservation: fenêtre d'anticipation et délai minimum.

Source: table 'site_settings' (clé/valeur), valeurs JSON ou numériques.
- reservation_advance_days -> advance_days (défaut 90)
- min_reservation_notice  -> min_notice_hours (défaut 0)
Une valeur illisible est ignorée champ par champ; une source injoignable
renvoie les valeurs par défaut (sans les mettre en cache).
"""
from datetime import date, datetime, time as dtime, timedelta
from typing import Any, Callable, Dict, List, Optional
from zoneinfo import ZoneInfo
import json
import logging
import time

import damda.infra.supabase_client as supabase_client
from damda import config
from .models import DEFAULT_SETTINGS, ReservationSettings

logger = logging.getLogger(__name__)

SETTINGS_KEYS = {
    "reservation_advance_days": "advance_days",
    "min_reservation_notice": "min_notice_hours",
}

# module damda.reservations.policy
def fetch_settings_rows() -> List[dict]:
    """Lit les lignes brutes {key, value}. Laisse remonter les erreurs (gérées par le service)."""
    res = (
        supabase_client.get_supabase()
        .table("site_settings")
        .select("key, value")
        .in_("key", list(SETTINGS_KEYS.keys()))
        .execute()
    )
    return res.data or []

def _parse_value(raw: Any) -> Optional[int]:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return None
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        if isinstance(raw, float) and not raw.is_integer():
            return None
        return int(raw)
    return None

def parse_settings(rows: List[dict]) -> ReservationSettings:
    values: Dict[str, int] = {}
    for row in rows or []:
        field = SETTINGS_KEYS.get(str((row or {}).get("key")))
        if not field:
            continue
        parsed = _parse_value(row.get("value"))
        if parsed is None:
            logger.warning("reservations.policy valeur ignorée key=%s value=%r", row.get("key"), row.get("value"))
            continue
        values[field] = parsed

    advance = values.get("advance_days")
    notice = values.get("min_notice_hours")
    return ReservationSettings(
        advance_days=advance if advance is not None and advance > 0 else DEFAULT_SETTINGS.advance_days,
        min_notice_hours=notice if notice is not None and notice >= 0 else DEFAULT_SETTINGS.min_notice_hours,
    )

class ReservationPolicyService:
    def __init__(
        self,
        fetch_rows: Callable[[], List[dict]] = fetch_settings_rows,
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._fetch_rows = fetch_rows
        self._ttl = config.RESERVATION_SETTINGS_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._cached: Optional[ReservationSettings] = None
        self._cached_at = 0.0

    def get_settings(self) -> ReservationSettings:
        now = self._clock()
        if self._cached is not None and now - self._cached_at < self._ttl:
            return self._cached
        try:
            rows = self._fetch_rows()
        except Exception:
            logger.exception("reservations.policy lecture site_settings impossible, valeurs par défaut")
            return DEFAULT_SETTINGS
        settings = parse_settings(rows)
        self._cached = settings
        self._cached_at = now
        return settings

    def invalidate(self) -> None:
        self._cached = None

def business_now(now: datetime) -> datetime:
    """Ramène un instant dans le fuseau métier (config.BUSINESS_TIMEZONE); un datetime naïf est déjà local."""
    if now.tzinfo is None:
        return now
    return now.astimezone(ZoneInfo(config.BUSINESS_TIMEZONE))

def reservation_window(settings: ReservationSettings, now: datetime) -> tuple[date, date]:
    """Bornes incluses [premier jour réservable, dernier jour réservable], en jours calendaires locaux."""
    local = business_now(now)
    earliest = (local + timedelta(hours=settings.min_notice_hours)).date()
    latest = local.date() + timedelta(days=settings.advance_days)
    return earliest, latest

def check_date(
    reservation_date: date,
    reservation_time: Optional[str],
    settings: ReservationSettings,
    now: datetime,
) -> Optional[str]:
    """
    Vérifie une date (et heure optionnelle "HH:MM", heure locale) contre la politique.
    Retourne None si valide, sinon "too_soon" | "too_far" | "time_passed".
    """
    earliest, latest = reservation_window(settings, now)
    if reservation_date < earliest:
        return "too_soon"
    if reservation_date > latest:
        return "too_far"
    if reservation_time:
        local = business_now(now)
        hour, minute = (int(p) for p in reservation_time.split(":"))
        starts_at = datetime.combine(reservation_date, dtime(hour, minute), tzinfo=local.tzinfo)
        if starts_at < local + timedelta(hours=settings.min_notice_hours):
            return "time_passed"
    return None
