import enum
from datetime import UTC, date, datetime, time
from decimal import Decimal

import sqlalchemy as sa
from pydantic import NaiveDatetime
from sqlmodel import Field, SQLModel


class AppointmentStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


# Appointments in these states count against the daily cap and hold their slot
LIVE_STATUSES: frozenset[AppointmentStatus] = frozenset(
    {AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED, AppointmentStatus.IN_PROGRESS}
)

DEFAULT_DURATION_MINUTES = 30

_LIVE_STATUS_SQL = "status IN ('pending', 'confirmed', 'in_progress')"


def _utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


def _enum_column(enum_cls: type[enum.Enum]) -> sa.Enum:
    # Store the lowercase values, not the member names
    return sa.Enum(
        enum_cls,
        values_callable=lambda members: [m.value for m in members],
        native_enum=False,
        length=20,
    )


class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    __table_args__ = (
        # One live appointment per veterinarian per slot
        sa.Index(
            "uq_appointments_live_slot",
            "veterinarian_id",
            "appointment_date",
            "appointment_time",
            unique=True,
            postgresql_where=sa.text(_LIVE_STATUS_SQL),
            sqlite_where=sa.text(_LIVE_STATUS_SQL),
        ),
        sa.CheckConstraint("total_amount >= 0", name="ck_appointments_total_amount_non_negative"),
    )

    id: int | None = Field(default=None, primary_key=True)
    pet_owner_id: int = Field(foreign_key="pet_owner_profiles.id", index=True)
    patient_id: int = Field(foreign_key="patients.id", index=True)
    veterinarian_id: int = Field(foreign_key="veterinarians.id", index=True)
    clinic_id: int = Field(foreign_key="clinics.id", index=True)
    appointment_date: date = Field(index=True)
    appointment_time: time
    reason_for_visit: str | None = None
    symptoms: str | None = None
    status: AppointmentStatus = Field(
        default=AppointmentStatus.PENDING, sa_type=_enum_column(AppointmentStatus), index=True
    )
    booking_type: str = "web"
    estimated_duration: int = DEFAULT_DURATION_MINUTES
    total_amount: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)
    payment_status: PaymentStatus = Field(
        default=PaymentStatus.PENDING, sa_type=_enum_column(PaymentStatus)
    )
    created_at: NaiveDatetime = Field(default_factory=_utc_naive_now)


class NewAppointmentRequest(SQLModel):
    """Everything the repository needs to write one pending appointment."""

    pet_owner_id: int
    patient_id: int
    veterinarian_id: int
    clinic_id: int
    appointment_date: date
    appointment_time: time
    reason_for_visit: str | None = None
    symptoms: str | None = None
    booking_type: str = "web"
    estimated_duration: int = DEFAULT_DURATION_MINUTES
    total_amount: Decimal = Field(default=Decimal("0"), ge=0)


class AppointmentPublic(SQLModel):
    id: int
    pet_owner_id: int
    patient_id: int
    veterinarian_id: int
    clinic_id: int
    appointment_date: date
    appointment_time: time
    reason_for_visit: str | None = None
    symptoms: str | None = None
    status: AppointmentStatus
    booking_type: str
    estimated_duration: int
    total_amount: Decimal
    payment_status: PaymentStatus
    created_at: datetime
