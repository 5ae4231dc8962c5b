"""Public wiki routes: category index and article lookup by slug."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from portal.core.database import get_db
from portal.schemas.wiki import ArticleDetail, CategoryName, WikiIndexCategory
from portal.services import wiki as wiki_service

router = APIRouter()


@router.get("/list", response_model=list[WikiIndexCategory])
@router.get("/content", response_model=list[WikiIndexCategory])
def get_wiki_index(db: Annotated[Session, Depends(get_db)]) -> list[WikiIndexCategory]:
    """Categories ordered by name, each with its articles' title and slug."""
    return wiki_service.list_public_index(db)


@router.get("/article/{slug}", response_model=ArticleDetail)
def get_wiki_article(slug: str, db: Annotated[Session, Depends(get_db)]) -> ArticleDetail:
    article = wiki_service.get_article_by_slug(db, slug)
    category = CategoryName(name=article.category.name) if article.category else None
    return ArticleDetail(
        title=article.title,
        content=article.content,
        updated_at=article.updated_at,
        category=category,
    )
