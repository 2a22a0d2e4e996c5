"""enable RLS policies for owner-scoped tables

Revision ID: 20261001_000002
Revises: 20261001_000001
Create Date: 2026-10-01 09:30:00
"""

from alembic import op


# revision identifiers, used by Alembic.
revision = "20261001_000002"
down_revision = "20261001_000001"
branch_labels = None
depends_on = None

OWNER_TABLES = ["bills", "user_settings"]
OWNER_ACTIONS = {
    "select": "FOR SELECT USING (auth.uid() = user_id)",
    "insert": "FOR INSERT WITH CHECK (auth.uid() = user_id)",
    "update": "FOR UPDATE USING (auth.uid() = user_id) WITH CHECK (auth.uid() = user_id)",
    "delete": "FOR DELETE USING (auth.uid() = user_id)",
}
SERVICE_ONLY_TABLES = ["audit_logs", "alembic_version"]


def _has_role(role_name: str) -> bool:
    """Check if a PostgreSQL role exists (Supabase envs have service_role)."""
    from sqlalchemy import text

    conn = op.get_bind()
    result = conn.execute(text("SELECT 1 FROM pg_roles WHERE rolname = :r"), {"r": role_name}).scalar()
    return result is not None


def upgrade() -> None:
    if not _has_role("service_role"):
        # Plain PostgreSQL: no auth schema, ownership is enforced by the API queries only.
        return

    for table in OWNER_TABLES:
        op.execute(f"ALTER TABLE public.{table} ENABLE ROW LEVEL SECURITY;")
        for action, clause in OWNER_ACTIONS.items():
            op.execute(f'CREATE POLICY "{table}_owner_{action}" ON public.{table} {clause};')
        op.execute(
            f"""
            CREATE POLICY "{table}_service_role_all" ON public.{table}
            FOR ALL
            TO service_role
            USING (true)
            WITH CHECK (true);
            """
        )

    for table in SERVICE_ONLY_TABLES:
        op.execute(f"ALTER TABLE public.{table} ENABLE ROW LEVEL SECURITY;")
        op.execute(
            f"""
            CREATE POLICY "{table}_service_role_all" ON public.{table}
            FOR ALL
            TO service_role
            USING (true)
            WITH CHECK (true);
            """
        )


def downgrade() -> None:
    for table in OWNER_TABLES:
        for action in OWNER_ACTIONS:
            op.execute(f'DROP POLICY IF EXISTS "{table}_owner_{action}" ON public.{table};')
        op.execute(f'DROP POLICY IF EXISTS "{table}_service_role_all" ON public.{table};')
        op.execute(f"ALTER TABLE public.{table} DISABLE ROW LEVEL SECURITY;")

    for table in SERVICE_ONLY_TABLES:
        op.execute(f'DROP POLICY IF EXISTS "{table}_service_role_all" ON public.{table};')
        op.execute(f"ALTER TABLE public.{table} DISABLE ROW LEVEL SECURITY;")
