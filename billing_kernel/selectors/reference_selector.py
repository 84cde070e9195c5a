"""
Module: billing_kernel.selectors.reference_selector
Responsibility: Read-only lookups of reference data: employees and their
    cost history, customers, articles.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Missing entities are hard failures: every ``find_<entity>(id)``
      raises the matching NotFoundError instead of returning a default.
    - find_employee_cost_history() returns the covering record with the
      latest effective_from when several records cover the date.
"""

from collections.abc import Iterable
from datetime import date
from uuid import UUID

from sqlalchemy import or_, select

from billing_kernel.domain.dtos import (
    Article,
    Customer,
    CustomerType,
    Employee,
    EmployeeCostRecord,
)
from billing_kernel.exceptions import (
    ArticleNotFoundError,
    CustomerNotFoundError,
    EmployeeNotFoundError,
)
from billing_kernel.models.article import ArticleModel
from billing_kernel.models.customer import CustomerModel
from billing_kernel.models.employee import EmployeeCostHistoryModel, EmployeeModel
from billing_kernel.selectors.base import BaseSelector


class ReferenceSelector(BaseSelector[EmployeeModel]):
    """Selector for employees, customers and articles."""

    # Employees

    def find_employee(self, employee_id: UUID) -> Employee:
        row = self.session.get(EmployeeModel, employee_id)
        if row is None:
            raise EmployeeNotFoundError(str(employee_id))
        return row.to_dto()

    def find_active_employees(
        self, employee_ids: Iterable[UUID] | None = None,
    ) -> list[Employee]:
        stmt = select(EmployeeModel).where(EmployeeModel.active.is_(True))
        if employee_ids is not None:
            stmt = stmt.where(EmployeeModel.id.in_(list(employee_ids)))
        stmt = stmt.order_by(EmployeeModel.name)
        return [row.to_dto() for row in self.session.scalars(stmt).all()]

    def find_employee_cost_history(
        self, employee_id: UUID, on_date: date,
    ) -> EmployeeCostRecord | None:
        """The cost record covering ``on_date``, or None."""
        stmt = (
            select(EmployeeCostHistoryModel)
            .where(
                EmployeeCostHistoryModel.employee_id == employee_id,
                EmployeeCostHistoryModel.effective_from <= on_date,
                or_(
                    EmployeeCostHistoryModel.effective_to.is_(None),
                    EmployeeCostHistoryModel.effective_to >= on_date,
                ),
            )
            .order_by(EmployeeCostHistoryModel.effective_from.desc())
            .limit(1)
        )
        row = self.session.scalars(stmt).first()
        return row.to_dto() if row is not None else None

    # Customers

    def find_customer(self, customer_id: UUID) -> Customer:
        row = self.session.get(CustomerModel, customer_id)
        if row is None:
            raise CustomerNotFoundError(str(customer_id))
        return row.to_dto()

    def find_customers(
        self,
        customer_ids: Iterable[UUID] | None = None,
        client_manager_id: UUID | None = None,
        customer_types: Iterable[CustomerType] | None = None,
        active_only: bool = True,
    ) -> list[Customer]:
        stmt = select(CustomerModel)
        if active_only:
            stmt = stmt.where(CustomerModel.active.is_(True))
        if customer_ids is not None:
            stmt = stmt.where(CustomerModel.id.in_(list(customer_ids)))
        if client_manager_id is not None:
            stmt = stmt.where(CustomerModel.client_manager_id == client_manager_id)
        if customer_types is not None:
            stmt = stmt.where(
                CustomerModel.customer_type.in_([t.value for t in customer_types])
            )
        stmt = stmt.order_by(CustomerModel.name)
        return [row.to_dto() for row in self.session.scalars(stmt).all()]

    # Articles

    def find_article(self, article_id: UUID) -> Article:
        row = self.session.get(ArticleModel, article_id)
        if row is None:
            raise ArticleNotFoundError(str(article_id))
        return row.to_dto()

    def find_articles(self, article_ids: Iterable[UUID] | None = None) -> dict[UUID, Article]:
        """Articles keyed by id (all articles when ``article_ids`` is None)."""
        stmt = select(ArticleModel)
        if article_ids is not None:
            stmt = stmt.where(ArticleModel.id.in_(list(article_ids)))
        return {row.id: row.to_dto() for row in self.session.scalars(stmt).unique().all()}
