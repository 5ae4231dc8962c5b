"""ORM models for wiki categories and articles."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import relationship

from portal.models.base import Base


class WikiCategory(Base):
    __tablename__ = "wiki_categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)

    articles = relationship("WikiArticle", back_populates="category", passive_deletes=True)


class WikiArticle(Base):
    """
    Wiki article, looked up publicly by slug and by id in the admin API.

    chapters holds the raw newline-separated chapter titles last submitted;
    the rendered headings live in content.
    """

    __tablename__ = "wiki_articles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True, index=True)
    content = Column(Text, nullable=False, default="")
    category_id = Column(
        Integer,
        ForeignKey("wiki_categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    chapters = Column(Text, nullable=True)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    category = relationship("WikiCategory", back_populates="articles")
