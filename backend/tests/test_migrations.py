import importlib.util
from pathlib import Path

import pytest
import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations

VERSIONS_DIR = Path(__file__).resolve().parents[1] / "db" / "migrations" / "versions"


def _load_revision(filename: str):
    spec = importlib.util.spec_from_file_location(filename.removesuffix(".py"), VERSIONS_DIR / filename)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_initial_schema_creates_tables_and_active_keyword_index():
    revision = _load_revision("001_initial_schema.py")
    engine = sa.create_engine("sqlite://")
    with engine.begin() as conn:
        with Operations.context(MigrationContext.configure(conn)):
            revision.upgrade()

        inspector = sa.inspect(conn)
        assert set(inspector.get_table_names()) == {
            "users",
            "products",
            "product_variants",
            "orders",
            "system_settings",
        }
        indexes = {ix["name"]: ix for ix in inspector.get_indexes("products")}
        assert indexes["uq_products_active_keyword"]["unique"]

        conn.execute(sa.text("INSERT INTO products (id, keyword, name, status) VALUES ('a', 'K1', 'old', 'ARCHIVED')"))
        conn.execute(sa.text("INSERT INTO products (id, keyword, name, status) VALUES ('b', 'K1', 'new', 'ACTIVE')"))
        with pytest.raises(sa.exc.IntegrityError):
            conn.execute(
                sa.text("INSERT INTO products (id, keyword, name, status) VALUES ('c', 'K1', 'dup', 'ACTIVE')")
            )


def test_initial_schema_downgrade_drops_everything():
    revision = _load_revision("001_initial_schema.py")
    engine = sa.create_engine("sqlite://")
    with engine.begin() as conn:
        with Operations.context(MigrationContext.configure(conn)):
            revision.upgrade()
            revision.downgrade()
        assert sa.inspect(conn).get_table_names() == []
