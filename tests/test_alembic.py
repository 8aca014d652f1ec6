"""
test_alembic.py — Verify Alembic migration setup and structure.

Reads migration sources directly so no Alembic runtime context or live
database is needed.

Called by: pytest
Depends on: alembic/, caseflow.models
"""

import ast
from pathlib import Path

ROOT = Path(__file__).parent.parent
MIGRATION_DIR = ROOT / "alembic" / "versions"


def _initial_migration() -> ast.Module:
    files = sorted(MIGRATION_DIR.glob("*.py"))
    assert len(files) >= 1, "No migration files found"
    return ast.parse(files[0].read_text())


def _assignments(tree: ast.Module) -> dict:
    out = {}
    for node in tree.body:
        if isinstance(node, ast.AnnAssign) and isinstance(node.target, ast.Name) and node.value is not None:
            out[node.target.id] = ast.literal_eval(node.value)
        elif isinstance(node, ast.Assign) and isinstance(node.targets[0], ast.Name):
            out[node.targets[0].id] = ast.literal_eval(node.value)
    return out


def _function_source(tree: ast.Module, name: str) -> str:
    for node in tree.body:
        if isinstance(node, ast.FunctionDef) and node.name == name:
            return ast.unparse(node)
    raise AssertionError(f"{name}() missing from migration")


def test_initial_migration_has_no_parent():
    values = _assignments(_initial_migration())
    assert values["revision"] == "001_initial"
    assert values["down_revision"] is None


def test_upgrade_uses_metadata_create_all():
    up_src = _function_source(_initial_migration(), "upgrade")
    assert "create_all" in up_src
    assert "Base" in up_src


def test_downgrade_uses_metadata_drop_all():
    assert "drop_all" in _function_source(_initial_migration(), "downgrade")


def test_env_py_imports_all_models():
    """env.py must import Base so autogenerate sees all tables."""
    content = (ROOT / "alembic" / "env.py").read_text()
    assert "from caseflow.models import Base" in content


def test_no_create_all_in_main():
    """main.py must NOT use create_all; schema is managed by Alembic or startup."""
    content = (ROOT / "caseflow" / "main.py").read_text()
    assert "create_all" not in content


def test_metadata_covers_core_tables():
    from caseflow.models import Base

    expected = {
        "leads", "contacts", "lead_required_documents", "document_templates",
        "document_status_history", "handler_tasks", "push_subscriptions",
    }
    assert expected <= set(Base.metadata.tables)
