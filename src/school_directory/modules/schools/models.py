"""
School Models

Database model for the school directory. Schools are created once and
never updated or deleted.
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from school_directory.core.database import Base


class School(Base):
    """
    A registered school.

    The image column holds either nothing, the name of an uploaded file in
    the image directory, or (default-image mode) the default image URL.
    """

    __tablename__ = "schools"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    address: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    city: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    state: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    contact: Mapped[str] = mapped_column(
        String(15),
        nullable=False,
    )
    image: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (UniqueConstraint("email", name="uq_schools_email"),)

    def __repr__(self) -> str:
        return f"<School(id={self.id}, name={self.name}, city={self.city})>"
