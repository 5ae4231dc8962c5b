"""Admin wiki routes: category and article CRUD, image upload. All require the admin role."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, Response, UploadFile, status
from sqlalchemy.orm import Session

from portal.api.auth import require_admin
from portal.core.config import get_settings
from portal.core.database import get_db
from portal.core.errors import InputValidationError, InternalServiceError
from portal.core.providers import get_image_storage
from portal.schemas.wiki import (
    AdminArticleListItem,
    ArticleInput,
    ArticleOut,
    CategoryCreate,
    CategoryOut,
    ImageUploadResponse,
)
from portal.services import wiki as wiki_service
from portal.services.identity import IdentityUser
from portal.services.storage import S3ImageStorage, StorageError, build_image_key

logger = logging.getLogger(__name__)

# The gate runs before every handler in this router.
router = APIRouter(dependencies=[Depends(require_admin)])

AdminUser = Annotated[IdentityUser, Depends(require_admin)]
DbSession = Annotated[Session, Depends(get_db)]


@router.get("/categories", response_model=list[CategoryOut])
def list_categories(db: DbSession) -> list[CategoryOut]:
    return [CategoryOut.model_validate(c) for c in wiki_service.list_categories(db)]


@router.post("/categories", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
def create_category(body: CategoryCreate, db: DbSession) -> CategoryOut:
    return CategoryOut.model_validate(wiki_service.create_category(db, body.name))


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(category_id: int, db: DbSession) -> Response:
    """Delete a category; its articles stay, uncategorized."""
    wiki_service.delete_category(db, category_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/articles", response_model=list[AdminArticleListItem])
def list_articles(db: DbSession) -> list[AdminArticleListItem]:
    return wiki_service.list_admin_articles(db)


@router.get("/articles/{article_id}", response_model=ArticleOut)
def get_article(article_id: int, db: DbSession) -> ArticleOut:
    return ArticleOut.model_validate(wiki_service.get_article(db, article_id))


@router.post("/articles", response_model=ArticleOut, status_code=status.HTTP_201_CREATED)
def create_article(body: ArticleInput, db: DbSession) -> ArticleOut:
    """
    Create an article. Optional `chapters` (one title per line) is rendered as
    `## title` headings at the top of the content.
    """
    return ArticleOut.model_validate(wiki_service.create_article(db, body))


@router.put("/articles/{article_id}", response_model=ArticleOut)
def update_article(article_id: int, body: ArticleInput, db: DbSession) -> ArticleOut:
    return ArticleOut.model_validate(wiki_service.update_article(db, article_id, body))


@router.delete("/articles/{article_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_article(article_id: int, db: DbSession) -> Response:
    wiki_service.delete_article(db, article_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/upload-image", response_model=ImageUploadResponse)
async def upload_image(
    admin: AdminUser,
    storage: Annotated[S3ImageStorage, Depends(get_image_storage)],
    wiki_image: Annotated[UploadFile | None, File()] = None,
) -> ImageUploadResponse:
    """Upload one image (multipart field `wiki_image`) and return its public URL."""
    if wiki_image is None or not wiki_image.filename:
        raise InputValidationError("未找到上传的图片文件")
    max_bytes = get_settings().MAX_IMAGE_UPLOAD_BYTES
    content = await wiki_image.read()
    if not content:
        raise InputValidationError("未找到上传的图片文件")
    if len(content) > max_bytes:
        raise InputValidationError(f"图片大小不能超过 {max_bytes // (1024 * 1024)} MB")

    key = build_image_key(wiki_image.filename)
    try:
        image_url = await storage.upload_public(key, content, wiki_image.content_type)
    except StorageError as e:
        logger.exception("Image upload failed: %s", e.message)
        raise InternalServiceError(f"图片上传失败: {e.message}") from e
    logger.info("Wiki image uploaded", extra={"key": key, "user_id": admin.id})
    return ImageUploadResponse(imageUrl=image_url)
