"""
Module: billing_kernel.models.employee
Responsibility: ORM persistence for employees and their cost-per-hour history.
Architecture position: Kernel > Models.  May import from db/ and domain/ only.

Invariants enforced:
    - An EmployeeCostHistoryModel row applies over
      [effective_from, effective_to]; a null effective_to is open-ended.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.base import TrackedBase
from billing_kernel.domain.dtos import Employee, EmployeeCostRecord


class EmployeeModel(TrackedBase):
    """An employee with current cost and default billing rate."""

    __tablename__ = "employees"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    cost_per_hour: Mapped[Decimal] = mapped_column(nullable=False)
    default_price_per_hour: Mapped[Decimal] = mapped_column(nullable=False)
    weekly_hours: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("40"))
    target_utilization: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_dto(self) -> Employee:
        return Employee(
            id=self.id,
            name=self.name,
            cost_per_hour=self.cost_per_hour,
            default_price_per_hour=self.default_price_per_hour,
            weekly_hours=self.weekly_hours,
            target_utilization=self.target_utilization,
            active=self.active,
        )

    def __repr__(self) -> str:
        return f"<EmployeeModel {self.name}>"


class EmployeeCostHistoryModel(TrackedBase):
    """A dated override of an employee's cost per hour."""

    __tablename__ = "employee_cost_history"

    __table_args__ = (
        Index("idx_cost_history_employee_from", "employee_id", "effective_from"),
    )

    employee_id: Mapped[UUID] = mapped_column(ForeignKey("employees.id"), nullable=False)
    cost_per_hour: Mapped[Decimal] = mapped_column(nullable=False)
    effective_from: Mapped[date] = mapped_column(Date, nullable=False)
    effective_to: Mapped[date | None] = mapped_column(Date, nullable=True)

    def to_dto(self) -> EmployeeCostRecord:
        return EmployeeCostRecord(
            id=self.id,
            employee_id=self.employee_id,
            cost_per_hour=self.cost_per_hour,
            effective_from=self.effective_from,
            effective_to=self.effective_to,
        )
