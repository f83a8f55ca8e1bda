from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Optional


class SpaceCategory(StrEnum):
    INDIVIDUAL_DESK = "individual-desk"
    GROUP_ROOM = "group-room"


class SlotStatus(StrEnum):
    AVAILABLE = "AVAILABLE"
    OCCUPIED = "OCCUPIED"
    UNAVAILABLE = "UNAVAILABLE"


class ReservationStatus(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ReservationType(StrEnum):
    INDIVIDUAL = "individual"
    GROUP = "group"


class PrivacyOption(StrEnum):
    PUBLIC = "public"
    PRIVATE = "private"


class ParticipantRole(StrEnum):
    ORGANIZER = "organizer"
    MEMBER = "member"


class JoinedVia(StrEnum):
    DIRECT = "direct"
    INVITATION = "invitation"


class CancellationReason(StrEnum):
    SPACE_UNAVAILABLE = "space-unavailable"
    POLICY_VIOLATION = "policy-violation"
    EMERGENCY = "emergency"
    OTHER = "other"

    @property
    def label(self) -> str:
        return self.value.replace("-", " ").title()


@dataclass(frozen=True)
class Space:
    id: str
    name: str
    category: SpaceCategory
    max_capacity: int
    min_capacity: int = 1

    @property
    def is_group_room(self) -> bool:
        return self.category == SpaceCategory.GROUP_ROOM


@dataclass(frozen=True)
class SlotAvailability:
    time: str
    status: SlotStatus


@dataclass(frozen=True)
class Participant:
    id: str
    user_id: str
    role: ParticipantRole
    joined_via: JoinedVia
    joined_at: datetime
    name: Optional[str] = None


@dataclass
class Reservation:
    id: str
    space_id: str
    start_time: datetime
    end_time: datetime
    status: ReservationStatus
    type: ReservationType = ReservationType.INDIVIDUAL
    space_name: Optional[str] = None
    notes: Optional[str] = None
    user_id: Optional[str] = None
    group_size: Optional[int] = None
    privacy_option: Optional[PrivacyOption] = None
    invitation_token: Optional[str] = None
    organizer_id: Optional[str] = None
    participants: list[Participant] = field(default_factory=list)
    min_capacity: Optional[int] = None
    max_capacity: Optional[int] = None
    current_capacity: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_group(self) -> bool:
        return self.type == ReservationType.GROUP

    @property
    def owner_id(self) -> Optional[str]:
        return self.organizer_id or self.user_id


@dataclass(frozen=True)
class Invitation:
    token: str
    url: str
    discoverable: bool


@dataclass(frozen=True)
class InvitationDetails:
    token: str
    reservation: Reservation
    created_at: datetime


@dataclass(frozen=True)
class ReservationRequest:
    space_id: str
    start_time: datetime
    end_time: datetime
    type: ReservationType
    notes: Optional[str] = None
    group_size: Optional[int] = None
    privacy_option: Optional[PrivacyOption] = None
