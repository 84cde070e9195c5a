"""
Module: billing_kernel.models.customer
Responsibility: ORM persistence for customers.
Architecture position: Kernel > Models.  May import from db/ and domain/ only.
"""

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.base import TrackedBase
from billing_kernel.domain.dtos import Customer, CustomerType


class CustomerModel(TrackedBase):
    """
    A customer of the firm.

    ``client_manager_id`` points at the employee responsible for the
    customer; portfolio reports group customers by it.
    """

    __tablename__ = "customers"

    __table_args__ = (
        Index("idx_customer_manager", "client_manager_id"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=CustomerType.LOPANDE.value,
    )
    client_manager_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("employees.id"), nullable=True,
    )
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_dto(self) -> Customer:
        return Customer(
            id=self.id,
            name=self.name,
            customer_type=CustomerType(self.customer_type),
            client_manager_id=self.client_manager_id,
            active=self.active,
        )

    def __repr__(self) -> str:
        return f"<CustomerModel {self.name} [{self.customer_type}]>"
