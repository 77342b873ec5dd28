"""
SQLAlchemy models for contacts.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import Boolean, Date, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from contact_manager.shared.database import Base


class Contact(Base):
    """Persisted contact record."""

    __tablename__ = "contacts"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
    )
    date_of_birth: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )
    married: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )
    phone: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )
    salary: Mapped[Decimal] = mapped_column(
        Numeric(18, 2),
        nullable=False,
        default=Decimal("0"),
    )

    def __repr__(self) -> str:
        return f"<Contact(id={self.id}, name={self.name!r}, phone={self.phone})>"
