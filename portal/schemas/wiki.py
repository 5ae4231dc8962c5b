"""Request/response schemas for the public and admin wiki endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

TITLE_MAX_LENGTH = 255
SLUG_MAX_LENGTH = 255
CATEGORY_NAME_MAX_LENGTH = 255


class ArticleLink(BaseModel):
    """Title and slug of an article, as listed in the public index."""

    title: str
    slug: str


class WikiIndexCategory(BaseModel):
    name: str
    wiki_articles: list[ArticleLink] = Field(default_factory=list)


class CategoryName(BaseModel):
    name: str | None = None


class ArticleDetail(BaseModel):
    """Public view of one article."""

    title: str
    content: str
    updated_at: datetime
    category: CategoryName | None = None


class CategoryCreate(BaseModel):
    name: str | None = None


class CategoryOut(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class AdminArticleListItem(BaseModel):
    id: int
    title: str
    slug: str
    category: CategoryName


class ArticleOut(BaseModel):
    """Full article row for the admin editor (includes the raw chapters field)."""

    id: int
    title: str
    slug: str
    content: str
    category_id: int | None = None
    chapters: str | None = None
    updated_at: datetime

    class Config:
        from_attributes = True


class ArticleInput(BaseModel):
    """
    Body for creating or updating an article.

    title and slug are required but checked by the service so that a missing
    value answers 400 with a localized message. chapters is newline-separated.
    """

    title: str | None = None
    slug: str | None = None
    content: str | None = None
    category_id: int | None = None
    chapters: str | None = None

    @field_validator("category_id", mode="before")
    @classmethod
    def blank_category_is_none(cls, v: object) -> object:
        if v is None or (isinstance(v, str) and not v.strip()) or v == 0:
            return None
        return v


class ImageUploadResponse(BaseModel):
    imageUrl: str = Field(..., description="Public URL of the uploaded image.")
