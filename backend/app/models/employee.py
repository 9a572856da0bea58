"""Employee ORM — HR master record.

Invariants:
    - id_number unique per tenant (enforced by the route, message is user-facing)
    - employee_number EMP-NNNN sequential per tenant
    - allowances: JSON array of {allowance_id, name, name_ar, amount}
"""

from datetime import date

from sqlalchemy import String, Float, Date, JSON
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, TenantMixin


class Employee(TenantMixin, Base):
    __tablename__ = "employees"

    employee_number: Mapped[str] = mapped_column(String(20), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    full_name_ar: Mapped[str | None] = mapped_column(String(200), nullable=True)
    id_number: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    gender: Mapped[str] = mapped_column(String(10), nullable=False)
    phone: Mapped[str] = mapped_column(String(30), nullable=False)
    email: Mapped[str | None] = mapped_column(String(200), nullable=True)
    nationality: Mapped[str | None] = mapped_column(String(60), nullable=True)
    job_title: Mapped[str] = mapped_column(String(120), nullable=False)
    department: Mapped[str | None] = mapped_column(String(120), nullable=True, index=True)
    employment_type: Mapped[str] = mapped_column(String(20), nullable=False, default="full_time")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active", index=True)
    hire_date: Mapped[date] = mapped_column(Date, nullable=False)
    basic_salary: Mapped[float] = mapped_column(Float, nullable=False)
    allowances: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
