"""add notification table for the in-app inbox

Revision ID: 9a4e6b1c2d73
Revises: 5c2d9e7a1b40
Create Date: 2026-10-19 14:10:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '9a4e6b1c2d73'
down_revision = '5c2d9e7a1b40'
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if 'notification' in set(insp.get_table_names()):
        return

    op.create_table(
        'notification',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('body', sa.Text(), nullable=True),
        sa.Column('data', sa.JSON(), nullable=False),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_notification_user_id', 'notification', ['user_id'])
    op.create_index('ix_notification_created_at', 'notification', ['created_at'])


def downgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if 'notification' in set(insp.get_table_names()):
        op.drop_table('notification')
