from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field

# module damda.reservations.models
class ReservationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

    @property
    def is_terminal(self) -> bool:
        return self in (ReservationStatus.CANCELLED, ReservationStatus.COMPLETED)

    def can_transition(self, target: "ReservationStatus") -> bool:
        return target in _TRANSITIONS[self]

_TRANSITIONS: Dict[ReservationStatus, FrozenSet[ReservationStatus]] = {
    ReservationStatus.PENDING: frozenset({ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED}),
    ReservationStatus.CONFIRMED: frozenset({ReservationStatus.COMPLETED, ReservationStatus.CANCELLED}),
    ReservationStatus.CANCELLED: frozenset(),
    ReservationStatus.COMPLETED: frozenset(),
}

class ReservationSettings(BaseModel):
    """Contraintes de réservation (fenêtre d'anticipation, délai minimum en heures)."""
    model_config = ConfigDict(frozen=True)

    advance_days: int = 90
    min_notice_hours: int = 0

    def to_response(self) -> Dict[str, int]:
        return {"advanceDays": self.advance_days, "minNoticeHours": self.min_notice_hours}

DEFAULT_SETTINGS = ReservationSettings()

class ReserverInfo(BaseModel):
    """Coordonnées saisies au moment du paiement."""
    name: str = ""
    phone: str = ""
    email: Optional[str] = None
    daycare_id: Optional[str] = None
    daycare_name: Optional[str] = None

class MaterializationResult(BaseModel):
    created: bool
    order_id: str
    reservation_ids: List[str] = Field(default_factory=list)
