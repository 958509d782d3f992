"""
Dev Agent store schema.

Forward-only migrations keyed by monotonic version strings. Versions are
applied in lexicographic order and recorded in ``schema_migrations``; a
recorded version is never applied again, so published migrations must not
be edited. Add a new version instead.
"""

from typing import Dict, List, Optional

LEDGER_TABLE = "schema_migrations"

LEDGER_DDL = f"""
CREATE TABLE IF NOT EXISTS {LEDGER_TABLE} (
    version TEXT PRIMARY KEY NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
)
"""

MIGRATIONS: Dict[str, str] = {
    "001": """
    -- Application settings
    CREATE TABLE IF NOT EXISTS config (
        key TEXT PRIMARY KEY NOT NULL,
        value TEXT NOT NULL,
        type TEXT NOT NULL DEFAULT 'string' CHECK(type IN ('string', 'number', 'boolean', 'json')),
        description TEXT,
        category TEXT NOT NULL,
        required BOOLEAN NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
        updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
    );
    CREATE INDEX IF NOT EXISTS idx_config_category ON config(category);
    CREATE INDEX IF NOT EXISTS idx_config_required ON config(required);
    """,

    "002": """
    -- LLM provider settings
    CREATE TABLE IF NOT EXISTS llm (
        provider TEXT PRIMARY KEY NOT NULL,
        api_key TEXT NOT NULL,
        api_base TEXT,
        model TEXT NOT NULL,
        config TEXT,
        is_default BOOLEAN NOT NULL DEFAULT 0,
        status TEXT NOT NULL DEFAULT 'active' CHECK(status IN ('active', 'inactive', 'testing')),
        created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
        updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
    );
    CREATE INDEX IF NOT EXISTS idx_llm_status ON llm(status);
    CREATE INDEX IF NOT EXISTS idx_llm_default ON llm(is_default);
    """,

    "003": """
    -- Goals
    CREATE TABLE IF NOT EXISTS goals (
        id TEXT PRIMARY KEY NOT NULL CHECK(id LIKE 'g-%'),
        github_issue_id INTEGER UNIQUE,
        title TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'todo' CHECK(status IN ('todo', 'in_progress', 'done', 'archived')),
        branch_name TEXT,
        description TEXT,
        created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
        updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
        completed_at TEXT
    );
    CREATE INDEX IF NOT EXISTS idx_goals_status ON goals(status);
    CREATE INDEX IF NOT EXISTS idx_goals_github_issue ON goals(github_issue_id);
    CREATE INDEX IF NOT EXISTS idx_goals_branch ON goals(branch_name);
    """,

    "004": """
    -- Project structure rules
    CREATE TABLE IF NOT EXISTS project_structure (
        path TEXT PRIMARY KEY NOT NULL,
        type TEXT NOT NULL CHECK(type IN ('file', 'folder', 'required', 'forbidden')),
        description TEXT,
        pattern TEXT,
        required BOOLEAN NOT NULL DEFAULT 0,
        forbidden BOOLEAN NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
    );
    CREATE INDEX IF NOT EXISTS idx_structure_type ON project_structure(type);
    CREATE INDEX IF NOT EXISTS idx_structure_required ON project_structure(required);
    """,

    "005": """
    INSERT OR REPLACE INTO project_structure (path, type, description, required, forbidden) VALUES
        ('src/**/*.py', 'file', 'Python source files', 1, 0),
        ('tests/**/test_*.py', 'file', 'pytest test modules', 1, 0),
        ('docs/**/*.md', 'file', 'Markdown documentation', 1, 0),
        ('temp/', 'folder', 'Temp folder forbidden', 0, 1),
        ('src/', 'folder', 'Source code folder required', 1, 0),
        ('tests/', 'folder', 'Tests folder required', 1, 0);
    """,

    "006": """
    INSERT OR IGNORE INTO config (key, value, type, description, category, required) VALUES
        ('project.name', 'Dev Agent', 'string', 'Project name', 'project', 1);
    INSERT OR IGNORE INTO config (key, value, type, description, category, required) VALUES
        ('branches.main', 'main', 'string', 'Main branch', 'branches', 1);
    INSERT OR IGNORE INTO config (key, value, type, description, category, required) VALUES
        ('branches.develop', 'develop', 'string', 'Integration branch', 'branches', 1);
    INSERT OR IGNORE INTO config (key, value, type, description, category, required) VALUES
        ('branches.feature_prefix', 'feature', 'string', 'Feature branch prefix', 'branches', 1);
    INSERT OR IGNORE INTO config (key, value, type, description, category, required) VALUES
        ('goals.default_status', 'todo', 'string', 'Status of newly created goals', 'goals', 1);
    INSERT OR IGNORE INTO config (key, value, type, description, category, required) VALUES
        ('goals.in_progress_limit', '3', 'number', 'Concurrent in-progress goals before warning', 'goals', 0);
    INSERT OR IGNORE INTO config (key, value, type, description, category, required) VALUES
        ('sync.max_pages', '10', 'number', 'Issue pages fetched per pull', 'sync', 0);
    INSERT OR IGNORE INTO config (key, value, type, description, category, required) VALUES
        ('logging.level', 'info', 'string', 'Logging level', 'logging', 0);
    """,
}


def get_migration_versions(migrations: Optional[Dict[str, str]] = None) -> List[str]:
    """All migration versions in application order."""
    return sorted((migrations if migrations is not None else MIGRATIONS).keys())


def get_migration_sql(version: str, migrations: Optional[Dict[str, str]] = None) -> Optional[str]:
    """SQL script for a migration version."""
    return (migrations if migrations is not None else MIGRATIONS).get(version)
