"""baseline_schema

Revision ID: 3b9e41c07a2f
Revises:
Create Date: 2026-10-18 09:12:41.508113

"""
from typing import Sequence, Union

from alembic import op

from aiforge.db_base import Base
import aiforge.models  # noqa: F401 - required to register all model metadata


# revision identifiers, used by Alembic.
revision: str = '3b9e41c07a2f'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    bind = op.get_bind()
    Base.metadata.create_all(bind=bind)


def downgrade() -> None:
    bind = op.get_bind()
    Base.metadata.drop_all(bind=bind)
