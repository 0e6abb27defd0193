"""
Database Models (SQLAlchemy ORM)
=============================================================================
CONCEPT: ORM Models

Each class below maps to a table. SQLAlchemy translates:
  - Class attributes → Table columns
  - Python types → SQL types (str → VARCHAR, date → DATE, etc.)
  - Relationships → Foreign keys + JOINs

TABLE DESIGN OVERVIEW:
  - departments: Organisational units an employee belongs to
  - benefits: Benefit plans an employee is enrolled in
  - employees: The records listed, searched and edited by the controller
=============================================================================
"""

from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from src.db.engine import Base


def utcnow():
    """Helper to get current UTC time."""
    return datetime.now(timezone.utc)


class Department(Base):
    __tablename__ = "departments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)

    employees = relationship("Employee", back_populates="department")


class Benefits(Base):
    __tablename__ = "benefits"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)  # e.g., "Health + Dental"

    employees = relationship("Employee", back_populates="benefits")


# =============================================================================
# Employees
# =============================================================================
# CONCEPT: Optimistic Concurrency
# `version` is bumped on every update. An edit form carries the version it
# was rendered from; the UPDATE only matches when the row still has that
# version. Zero matched rows means someone else deleted or changed the
# record in the meantime (see repositories.update_employee).
# =============================================================================
class Employee(Base):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(50), nullable=False, index=True)
    last_name = Column(String(50), nullable=False, index=True)
    hire_date = Column(Date, nullable=False, index=True)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=False)
    benefits_id = Column(Integer, ForeignKey("benefits.id"), nullable=False)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    department = relationship("Department", back_populates="employees")
    benefits = relationship("Benefits", back_populates="employees")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
