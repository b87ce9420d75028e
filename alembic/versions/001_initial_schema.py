"""initial schema - users, messages, message_recipients

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-18

For NEW databases: run `alembic upgrade head` (creates all tables from models).
"""
from typing import Sequence, Union

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables from SQLAlchemy models.

    Uses metadata.create_all with checkfirst=True so it's safe to run
    even if some tables already exist (idempotent).
    """
    from messaging.database import engine
    from messaging.models import Base

    Base.metadata.create_all(bind=engine, checkfirst=True)


def downgrade() -> None:
    """Drop all tables. Only for dev/test environments."""
    from messaging.database import engine
    from messaging.models import Base

    Base.metadata.drop_all(bind=engine)
