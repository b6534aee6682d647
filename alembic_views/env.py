"""Alembic migration environment for the downstream database.

Selected with ``alembic -n explorer_views``; installs the foreign-data-wrapper
layer that republishes the statistics database's views.
"""

from alembic import context

from explorer_views.migrations import environment

environment.run(context, publishes=True)
