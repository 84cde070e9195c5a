"""
Module: billing_kernel.models.article
Responsibility: ORM persistence for article groups and articles.
Architecture position: Kernel > Models.  May import from db/ and domain/ only.

Invariants enforced:
    - Article codes are unique.
    - Every article belongs to exactly one article group; the group's type
      decides whether its hours are debitable.
"""

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from billing_kernel.db.base import TrackedBase
from billing_kernel.domain.dtos import Article, ArticleGroup, ArticleGroupType


class ArticleGroupModel(TrackedBase):
    """A group of articles sharing a KPI classification."""

    __tablename__ = "article_groups"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    group_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ArticleGroupType.ORDINARIE.value,
    )

    def to_dto(self) -> ArticleGroup:
        return ArticleGroup(
            id=self.id,
            name=self.name,
            group_type=ArticleGroupType(self.group_type),
        )

    def __repr__(self) -> str:
        return f"<ArticleGroupModel {self.name} [{self.group_type}]>"


class ArticleModel(TrackedBase):
    """A billable article (service)."""

    __tablename__ = "articles"

    __table_args__ = (
        UniqueConstraint("code", name="uq_article_code"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    article_group_id: Mapped[UUID] = mapped_column(
        ForeignKey("article_groups.id"), nullable=False,
    )
    included_in_fixed_price: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    article_group: Mapped[ArticleGroupModel] = relationship(
        ArticleGroupModel, lazy="joined",
    )

    def to_dto(self) -> Article:
        return Article(
            id=self.id,
            code=self.code,
            name=self.name,
            article_group_id=self.article_group_id,
            article_group_type=ArticleGroupType(self.article_group.group_type),
            included_in_fixed_price=self.included_in_fixed_price,
            active=self.active,
        )

    def __repr__(self) -> str:
        return f"<ArticleModel {self.code} {self.name}>"
