"""Student and Group models.

Owned by the student-management subsystem; the finance engine only reads
them to filter and rank ledger data.
"""

from enum import StrEnum

from sqlalchemy import BigInteger, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import BaseModel


class StudentStatus(StrEnum):
    """Student status enumeration."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class GroupStatus(StrEnum):
    """Group status enumeration."""

    ACTIVE = "active"
    ARCHIVED = "archived"


class Group(BaseModel):
    """School group (class section), e.g. "3A Primaria"."""

    __tablename__ = "groups"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    level: Mapped[str] = mapped_column(String(50), nullable=False)  # Preescolar, Primaria...
    school_year: Mapped[str] = mapped_column(String(20), nullable=False)  # e.g. "2024-2025"
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=GroupStatus.ACTIVE.value
    )

    # Relationships
    students: Mapped[list["Student"]] = relationship("Student", back_populates="group")


class Student(BaseModel):
    """Student enrolled in the school."""

    __tablename__ = "students"

    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    group_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("groups.id"), nullable=True, index=True
    )
    level: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=StudentStatus.ACTIVE.value, index=True
    )

    # Relationships
    group: Mapped["Group | None"] = relationship("Group", back_populates="students")
    debts: Mapped[list["Debt"]] = relationship("Debt", back_populates="student")
    payments: Mapped[list["Payment"]] = relationship("Payment", back_populates="student")

    @property
    def is_active(self) -> bool:
        """Check if student is active."""
        return self.status == StudentStatus.ACTIVE.value


# Import at the end to avoid circular imports
from src.modules.payments.models import Debt, Payment
