"""
test_alembic.py — Verify Alembic migration setup and structure.

Tests migration file validity and env.py configuration without
requiring a live database.

Called by: pytest
Depends on: alembic/, messaging.models
"""

import importlib.util
import inspect
from pathlib import Path

ROOT = Path(__file__).parent.parent
MIGRATION_DIR = ROOT / "alembic" / "versions"


def _load_migration():
    files = sorted(MIGRATION_DIR.glob("*.py"))
    assert len(files) >= 1, "No migration files found"
    spec = importlib.util.spec_from_file_location("mig", files[0])
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)
    return mod


def test_initial_migration_has_required_attributes():
    mod = _load_migration()
    assert mod.revision == "001_initial"
    assert mod.down_revision is None, "Initial migration should have no parent"
    assert callable(mod.upgrade)
    assert callable(mod.downgrade)


def test_initial_migration_uses_metadata():
    mod = _load_migration()
    assert "create_all" in inspect.getsource(mod.upgrade)
    assert "drop_all" in inspect.getsource(mod.downgrade)


def test_env_py_imports_all_models():
    content = (ROOT / "alembic" / "env.py").read_text()
    assert "from messaging.models import Base" in content


def test_metadata_has_message_tables():
    from messaging.models import Base

    assert {"users", "messages", "message_recipients"} <= set(Base.metadata.tables)


def test_no_create_all_in_main():
    """main.py must NOT use create_all — Alembic manages schema."""
    content = (ROOT / "messaging" / "main.py").read_text()
    assert "create_all" not in content
