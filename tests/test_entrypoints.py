"""Tests for the server runner and the schema seen by migrations."""

import runpy
import unittest
from unittest.mock import patch

from portal.core.config import Settings
from portal.models import Base


class TestServerRunner(unittest.TestCase):
    """python -m portal.main starts uvicorn with HOST/PORT from settings."""

    def test_defaults(self) -> None:
        settings = Settings()
        self.assertEqual((settings.HOST, settings.PORT), ("0.0.0.0", 8000))

    @patch("uvicorn.run")
    def test_module_run_starts_uvicorn(self, mock_run) -> None:
        runpy.run_module("portal.main", run_name="__main__")
        mock_run.assert_called_once()
        self.assertEqual(mock_run.call_args.kwargs, {"host": "0.0.0.0", "port": 8000})


class TestMigrationMetadata(unittest.TestCase):
    """Importing portal.models registers every table for autogenerate."""

    def test_all_tables_registered(self) -> None:
        self.assertEqual(
            set(Base.metadata.tables),
            {"profiles", "verification_codes", "tickets", "wiki_categories", "wiki_articles"},
        )

    def test_article_category_fk_sets_null(self) -> None:
        [fk] = Base.metadata.tables["wiki_articles"].c.category_id.foreign_keys
        self.assertEqual(fk.ondelete, "SET NULL")


if __name__ == "__main__":
    unittest.main()
