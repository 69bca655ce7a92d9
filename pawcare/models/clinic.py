from datetime import time
from decimal import Decimal

from sqlmodel import Field, SQLModel


class Clinic(SQLModel, table=True):
    __tablename__ = "clinics"
    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    address: str
    phone: str | None = None
    email: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    # Operating hours; when either is missing the configured business hours apply
    opening_time: time | None = None
    closing_time: time | None = None
    is_active: bool = True


class VeterinarianBase(SQLModel):
    full_name: str
    specialization: str | None = None
    license_number: str
    years_of_experience: int = Field(default=0, ge=0)
    consultation_fee: Decimal = Field(default=Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    is_available: bool = True


class Veterinarian(VeterinarianBase, table=True):
    __tablename__ = "veterinarians"
    id: int | None = Field(default=None, primary_key=True)
    user_id: str | None = Field(default=None, unique=True, index=True)
    clinic_id: int | None = Field(default=None, foreign_key="clinics.id", index=True)
    # Derived from reviews elsewhere; read-only here
    average_rating: Decimal | None = Field(default=None, max_digits=3, decimal_places=2)


class VeterinarianPublic(VeterinarianBase):
    id: int
    clinic_id: int | None = None
    average_rating: Decimal | None = None
