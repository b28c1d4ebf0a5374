from datetime import datetime
import enum

from sqlalchemy import Integer, String, DateTime, Enum, func
from sqlalchemy.orm import Mapped, mapped_column

from screenledger.db.base import Base


class PetType(str, enum.Enum):
    dog = "dog"
    cat = "cat"
    bunny = "bunny"
    hamster = "hamster"
    horse = "horse"


class PetProfile(Base):
    __tablename__ = "pet_profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    pet_type: Mapped[str] = mapped_column(
        Enum(PetType, name="pet_type_enum"), nullable=False, default=PetType.dog
    )
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    health_state: Mapped[str] = mapped_column(String(16), nullable=False, default="fullHealth")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
