"""Wiki content: public index and article lookup, admin category/article CRUD.

Chapters submitted with an article are rendered once into Markdown headings
at the top of the content; only the raw field is kept alongside for editing.
"""

import logging
from datetime import UTC, datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portal.core.errors import InputValidationError, NotFoundError
from portal.models import WikiArticle, WikiCategory
from portal.schemas.wiki import (
    CATEGORY_NAME_MAX_LENGTH,
    SLUG_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    AdminArticleListItem,
    ArticleInput,
    ArticleLink,
    CategoryName,
    WikiIndexCategory,
)

logger = logging.getLogger(__name__)

ARTICLE_NOT_FOUND = "文章未找到"


def render_chapters(chapters: str | None) -> str:
    """Turn newline-separated chapter titles into '## title' blocks; blank lines are dropped."""
    if not chapters:
        return ""
    titles = [line for line in chapters.split("\n") if line.strip() != ""]
    return "\n\n".join(f"## {title}" for title in titles)


def compose_content(content: str | None, chapters: str | None) -> str:
    final = content or ""
    if chapters:
        final = render_chapters(chapters) + "\n\n" + final
    return final


def list_public_index(session: Session) -> list[WikiIndexCategory]:
    """Categories by name, each with the title and slug of its articles."""
    categories = session.query(WikiCategory).order_by(WikiCategory.name.asc()).all()
    if not categories:
        return []
    articles = (
        session.query(WikiArticle)
        .filter(WikiArticle.category_id.in_([c.id for c in categories]))
        .order_by(WikiArticle.id.asc())
        .all()
    )
    links_by_category: dict[int, list[ArticleLink]] = {}
    for article in articles:
        links_by_category.setdefault(article.category_id, []).append(
            ArticleLink(title=article.title, slug=article.slug)
        )
    return [
        WikiIndexCategory(name=c.name, wiki_articles=links_by_category.get(c.id, []))
        for c in categories
    ]


def get_article_by_slug(session: Session, slug: str) -> WikiArticle:
    article = session.query(WikiArticle).filter(WikiArticle.slug == slug).first()
    if article is None:
        raise NotFoundError(ARTICLE_NOT_FOUND)
    return article


def list_categories(session: Session) -> list[WikiCategory]:
    return session.query(WikiCategory).order_by(WikiCategory.id.asc()).all()


def create_category(session: Session, name: str | None) -> WikiCategory:
    name = (name or "").strip()
    if not name:
        raise InputValidationError("分类名称不能为空")
    if len(name) > CATEGORY_NAME_MAX_LENGTH:
        raise InputValidationError("分类名称过长")
    category = WikiCategory(name=name)
    session.add(category)
    session.commit()
    session.refresh(category)
    logger.info("Wiki category created", extra={"category_id": category.id})
    return category


def delete_category(session: Session, category_id: int) -> None:
    """
    Delete a category if it exists; referencing articles become uncategorized.

    Articles are detached explicitly in the same transaction so the outcome
    does not depend on the database enforcing ON DELETE SET NULL.
    """
    session.query(WikiArticle).filter(WikiArticle.category_id == category_id).update(
        {WikiArticle.category_id: None}, synchronize_session=False
    )
    deleted = (
        session.query(WikiCategory)
        .filter(WikiCategory.id == category_id)
        .delete(synchronize_session=False)
    )
    session.commit()
    logger.info(
        "Wiki category delete",
        extra={"category_id": category_id, "deleted": deleted},
    )


def list_admin_articles(session: Session) -> list[AdminArticleListItem]:
    """Every article with its category name, resolved in one batch."""
    articles = session.query(WikiArticle).order_by(WikiArticle.id.asc()).all()
    if not articles:
        return []
    category_ids = {a.category_id for a in articles if a.category_id}
    names_by_id: dict[int, str] = {}
    if category_ids:
        categories = session.query(WikiCategory).filter(WikiCategory.id.in_(category_ids)).all()
        names_by_id = {c.id: c.name for c in categories}
    return [
        AdminArticleListItem(
            id=a.id,
            title=a.title,
            slug=a.slug,
            category=CategoryName(name=names_by_id.get(a.category_id)),
        )
        for a in articles
    ]


def get_article(session: Session, article_id: int) -> WikiArticle:
    article = session.get(WikiArticle, article_id)
    if article is None:
        raise NotFoundError(ARTICLE_NOT_FOUND)
    return article


def _validated_fields(session: Session, data: ArticleInput) -> dict[str, object]:
    title = (data.title or "").strip()
    slug = (data.slug or "").strip()
    if not title or not slug:
        raise InputValidationError("标题和 Slug 不能为空")
    if len(title) > TITLE_MAX_LENGTH or len(slug) > SLUG_MAX_LENGTH:
        raise InputValidationError("标题或 Slug 过长")
    if data.category_id is not None and session.get(WikiCategory, data.category_id) is None:
        raise InputValidationError("分类不存在")
    return {
        "title": title,
        "slug": slug,
        "content": compose_content(data.content, data.chapters),
        "category_id": data.category_id,
        "chapters": data.chapters or None,
    }


def _commit_article(session: Session, article: WikiArticle) -> WikiArticle:
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        raise InputValidationError("Slug 已存在") from e
    session.refresh(article)
    return article


def create_article(session: Session, data: ArticleInput) -> WikiArticle:
    article = WikiArticle(**_validated_fields(session, data))
    session.add(article)
    article = _commit_article(session, article)
    logger.info("Wiki article created", extra={"article_id": article.id})
    return article


def update_article(session: Session, article_id: int, data: ArticleInput) -> WikiArticle:
    fields = _validated_fields(session, data)
    article = get_article(session, article_id)
    for key, value in fields.items():
        setattr(article, key, value)
    article.updated_at = datetime.now(UTC)
    article = _commit_article(session, article)
    logger.info("Wiki article updated", extra={"article_id": article.id})
    return article


def delete_article(session: Session, article_id: int) -> None:
    article = get_article(session, article_id)
    session.delete(article)
    session.commit()
    logger.info("Wiki article deleted", extra={"article_id": article_id})
