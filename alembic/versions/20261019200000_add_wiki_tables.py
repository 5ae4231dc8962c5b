"""Add wiki_categories and wiki_articles tables.

Deleting a category sets category_id to NULL on its articles.

Revision ID: 20261019200000
Revises: 20261019100000
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "20261019200000"
down_revision: Union[str, None] = "20261019100000"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "wiki_categories",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_wiki_categories")),
    )
    op.create_table(
        "wiki_articles",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False, server_default=""),
        sa.Column("category_id", sa.Integer(), nullable=True),
        sa.Column("chapters", sa.Text(), nullable=True),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.ForeignKeyConstraint(
            ["category_id"],
            ["wiki_categories.id"],
            name=op.f("fk_wiki_articles_category_id_wiki_categories"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_wiki_articles")),
    )
    op.create_index(op.f("ix_wiki_articles_slug"), "wiki_articles", ["slug"], unique=True)
    op.create_index(
        op.f("ix_wiki_articles_category_id"), "wiki_articles", ["category_id"], unique=False
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_wiki_articles_category_id"), table_name="wiki_articles")
    op.drop_index(op.f("ix_wiki_articles_slug"), table_name="wiki_articles")
    op.drop_table("wiki_articles")
    op.drop_table("wiki_categories")
