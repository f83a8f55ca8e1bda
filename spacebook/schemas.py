from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from .domain.capacity import current_participant_count, occupancy
from .domain.services import ordered_participants
from .models import (
    CancellationReason,
    InvitationDetails,
    JoinedVia,
    Participant,
    ParticipantRole,
    PrivacyOption,
    Reservation,
    ReservationRequest,
    ReservationStatus,
    ReservationType,
    SlotAvailability,
    SlotStatus,
    Space,
    SpaceCategory,
)
from .utils.time import ensure_aware


class BackendModel(BaseModel):
    """Backend payloads are camelCase JSON; numeric ids are read as strings."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )


class ParticipantPayload(BackendModel):
    id: str
    user_id: str
    name: Optional[str] = None
    role: ParticipantRole = ParticipantRole.MEMBER
    joined_via: JoinedVia = JoinedVia.DIRECT
    joined_at: datetime

    @field_validator("joined_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        return ensure_aware(value)

    def to_domain(self) -> Participant:
        return Participant(
            id=self.id,
            user_id=self.user_id,
            role=self.role,
            joined_via=self.joined_via,
            joined_at=self.joined_at,
            name=self.name,
        )


class ReservationPayload(BackendModel):
    id: str
    space_id: str
    space_name: Optional[str] = None
    start_time: datetime
    end_time: datetime
    status: ReservationStatus
    type: ReservationType = ReservationType.INDIVIDUAL
    notes: Optional[str] = None
    user_id: Optional[str] = None
    group_size: Optional[int] = None
    privacy_option: Optional[PrivacyOption] = None
    invitation_token: Optional[str] = None
    organizer_id: Optional[str] = None
    participants: list[ParticipantPayload] = Field(default_factory=list)
    min_capacity: Optional[int] = None
    max_capacity: Optional[int] = None
    current_capacity: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("start_time", "end_time", "created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(value) if value is not None else None

    def to_domain(self) -> Reservation:
        return Reservation(
            id=self.id,
            space_id=self.space_id,
            space_name=self.space_name,
            start_time=self.start_time,
            end_time=self.end_time,
            status=self.status,
            type=self.type,
            notes=self.notes,
            user_id=self.user_id,
            group_size=self.group_size,
            privacy_option=self.privacy_option,
            invitation_token=self.invitation_token,
            organizer_id=self.organizer_id,
            participants=[p.to_domain() for p in self.participants],
            min_capacity=self.min_capacity,
            max_capacity=self.max_capacity,
            current_capacity=self.current_capacity,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class SpacePayload(BackendModel):
    id: str
    name: str
    type: SpaceCategory
    capacity: int = Field(ge=1)
    min_capacity: Optional[int] = Field(default=None, ge=1)

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> Any:
        if isinstance(value, str) and "group" in value.lower().replace(" ", "-"):
            return SpaceCategory.GROUP_ROOM
        if isinstance(value, str) and value not in {c.value for c in SpaceCategory}:
            return SpaceCategory.INDIVIDUAL_DESK
        return value

    def to_domain(self) -> Space:
        return Space(
            id=self.id,
            name=self.name,
            category=self.type,
            max_capacity=self.capacity,
            min_capacity=self.min_capacity or 1,
        )


class SlotPayload(BackendModel):
    time: str
    status: SlotStatus


class AvailabilityPayload(BackendModel):
    slots: list[SlotPayload] = Field(default_factory=list)

    def to_domain(self) -> list[SlotAvailability]:
        return [SlotAvailability(time=slot.time, status=slot.status) for slot in self.slots]


class InvitationPayload(BackendModel):
    token: str
    reservation: ReservationPayload
    invitation_created_at: datetime

    @field_validator("invitation_created_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        return ensure_aware(value)

    def to_domain(self) -> InvitationDetails:
        return InvitationDetails(
            token=self.token,
            reservation=self.reservation.to_domain(),
            created_at=self.invitation_created_at,
        )


class ErrorBody(BaseModel):
    code: Optional[str] = None
    message: Optional[str] = None


def reservation_request_body(request: ReservationRequest) -> dict[str, Any]:
    body: dict[str, Any] = {
        "spaceId": request.space_id,
        "startTime": request.start_time.isoformat(),
        "endTime": request.end_time.isoformat(),
        "type": request.type.value,
    }
    if request.notes:
        body["notes"] = request.notes
    if request.type == ReservationType.GROUP:
        body["groupSize"] = request.group_size
        body["privacyOption"] = (request.privacy_option or PrivacyOption.PUBLIC).value
    return body


# Service API


class BookingStart(BaseModel):
    space_id: str


class DateTimeSelection(BaseModel):
    date: date
    time: Optional[str] = None


class DurationUpdate(BaseModel):
    hours: int


class GroupOptionsUpdate(BaseModel):
    group_size: int
    privacy_option: PrivacyOption = PrivacyOption.PUBLIC


class NotesUpdate(BaseModel):
    notes: Optional[str] = Field(default=None, max_length=500)


class DraftRead(BaseModel):
    state: str
    current_step: int
    space_id: Optional[str]
    date: Optional[date]
    start_time: Optional[str]
    end_time: Optional[str]
    duration: int
    notes: Optional[str]
    group_size: Optional[int]
    privacy_option: Optional[PrivacyOption]
    group_size_error: Optional[str] = None
    can_advance: bool
    overlapping_reservation_ids: list[str] = Field(default_factory=list)


class ParticipantRead(BaseModel):
    participant_id: str
    user_id: str
    name: Optional[str]
    role: ParticipantRole
    joined_via: JoinedVia
    joined_at: datetime

    @field_serializer("joined_at")
    def _ser_datetime(self, dt: datetime) -> str:
        return dt.isoformat()

    @classmethod
    def from_domain(cls, participant: Participant) -> "ParticipantRead":
        return cls(
            participant_id=participant.id,
            user_id=participant.user_id,
            name=participant.name,
            role=participant.role,
            joined_via=participant.joined_via,
            joined_at=participant.joined_at,
        )


class ReservationRead(BaseModel):
    reservation_id: str
    space_id: str
    space_name: Optional[str]
    start_time: datetime
    end_time: datetime
    status: ReservationStatus
    type: ReservationType
    notes: Optional[str]
    group_size: Optional[int] = None
    privacy_option: Optional[PrivacyOption] = None
    organizer_id: Optional[str] = None
    occupancy: Optional[str] = None
    is_full: Optional[bool] = None
    participants: list[ParticipantRead] = Field(default_factory=list)
    updated_at: Optional[datetime] = None

    @field_serializer("start_time", "end_time")
    def _ser_datetime(self, dt: datetime) -> str:
        return dt.isoformat()

    @classmethod
    def from_domain(cls, reservation: Reservation) -> "ReservationRead":
        occupancy_label: Optional[str] = None
        is_full: Optional[bool] = None
        if reservation.is_group and reservation.max_capacity:
            current = occupancy(current_participant_count(reservation), reservation.max_capacity)
            occupancy_label = current.label
            is_full = current.is_full
        return cls(
            reservation_id=reservation.id,
            space_id=reservation.space_id,
            space_name=reservation.space_name,
            start_time=reservation.start_time,
            end_time=reservation.end_time,
            status=reservation.status,
            type=reservation.type,
            notes=reservation.notes,
            group_size=reservation.group_size,
            privacy_option=reservation.privacy_option,
            organizer_id=reservation.organizer_id,
            occupancy=occupancy_label,
            is_full=is_full,
            participants=[ParticipantRead.from_domain(p) for p in ordered_participants(reservation.participants)],
            updated_at=reservation.updated_at,
        )


class ReservationCancel(BaseModel):
    reason: CancellationReason
    notes: Optional[str] = Field(default=None, max_length=500)


class InvitationRead(BaseModel):
    token: str
    url: str
    discoverable: bool


class InvitationDetailsRead(BaseModel):
    token: str
    created_at: datetime
    reservation: ReservationRead


class SlotRead(BaseModel):
    time: str
    status: SlotStatus


class AvailabilityRead(BaseModel):
    space_id: str
    date: date
    slots: list[SlotRead]
