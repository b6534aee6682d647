"""Alembic migration environment for the statistics database.

This project uses SQLAlchemy's async engine (asyncpg) for PostgreSQL.
"""

from alembic import context

from explorer_views.migrations import environment

environment.run(context)
