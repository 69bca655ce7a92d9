from sqlalchemy import JSON
from sqlmodel import Field, SQLModel


class PetOwnerProfile(SQLModel, table=True):
    __tablename__ = "pet_owner_profiles"
    id: int | None = Field(default=None, primary_key=True)
    user_id: str = Field(unique=True, index=True)  # authenticated actor, 1:1
    full_name: str | None = None
    phone: str | None = None


class PetBase(SQLModel):
    name: str
    species: str
    breed: str | None = None
    gender: str | None = None
    weight: float | None = Field(default=None, ge=0)


class Pet(PetBase, table=True):
    __tablename__ = "patients"
    id: int | None = Field(default=None, primary_key=True)
    owner_id: int = Field(foreign_key="pet_owner_profiles.id", index=True)  # ownership anchor
    medical_conditions: list[str] = Field(default_factory=list, sa_type=JSON)
    is_active: bool = True


class PetPublic(PetBase):
    id: int
    owner_id: int
    medical_conditions: list[str] = []
