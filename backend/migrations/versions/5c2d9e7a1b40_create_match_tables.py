"""create match, match_player, challenge, rematch_request and friendship

Revision ID: 5c2d9e7a1b40
Revises:
Create Date: 2026-10-19 09:30:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2d9e7a1b40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'match' not in existing_tables:
        op.create_table(
            'match',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
            sa.Column('status', sa.String(length=16), nullable=False),
            sa.Column('mode', sa.String(length=32), nullable=False),
            sa.Column('seed', sa.String(length=64), nullable=False),
            sa.Column('invite_code', sa.String(length=6), nullable=True),
            sa.Column('time_limit_seconds', sa.Integer(), nullable=False),
            sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('finished_at', sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index('ix_match_created_at', 'match', ['created_at'])
        op.create_index('ix_match_status', 'match', ['status'])
        # Invite codes only need to be unique while the match is waiting
        op.create_index(
            'uq_match_waiting_invite_code', 'match', ['invite_code'], unique=True,
            postgresql_where=sa.text("status = 'waiting'"),
            sqlite_where=sa.text("status = 'waiting'"),
        )

    if 'match_player' not in existing_tables:
        op.create_table(
            'match_player',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('match_id', sa.Integer(), sa.ForeignKey('match.id'), nullable=False),
            sa.Column('user_id', sa.String(length=64), nullable=False),
            sa.Column('score', sa.Integer(), nullable=True),
            sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('is_winner', sa.Boolean(), nullable=True),
            sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False),
            sa.UniqueConstraint('match_id', 'user_id', name='uq_match_player_user'),
        )
        op.create_index('ix_match_player_match_id', 'match_player', ['match_id'])
        op.create_index('ix_match_player_user_id', 'match_player', ['user_id'])

    if 'challenge' not in existing_tables:
        op.create_table(
            'challenge',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('from_user_id', sa.String(length=64), nullable=False),
            sa.Column('to_user_id', sa.String(length=64), nullable=False),
            sa.Column('match_id', sa.Integer(), sa.ForeignKey('match.id'), nullable=False, unique=True),
            sa.Column('status', sa.String(length=16), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index('ix_challenge_to_user_id', 'challenge', ['to_user_id'])

    if 'rematch_request' not in existing_tables:
        op.create_table(
            'rematch_request',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('match_id', sa.Integer(), sa.ForeignKey('match.id'), nullable=False),
            sa.Column('from_user_id', sa.String(length=64), nullable=False),
            sa.Column('to_user_id', sa.String(length=64), nullable=False),
            sa.Column('status', sa.String(length=16), nullable=False),
            sa.Column('created_match_id', sa.Integer(),
                      sa.ForeignKey('match.id', name='fk_rematch_created_match_id'), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index('ix_rematch_request_match_id', 'rematch_request', ['match_id'])

    if 'friendship' not in existing_tables:
        op.create_table(
            'friendship',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('user_id', sa.String(length=64), nullable=False),
            sa.Column('friend_id', sa.String(length=64), nullable=False),
            sa.Column('status', sa.String(length=16), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
            sa.UniqueConstraint('user_id', 'friend_id', name='uq_friendship_pair'),
        )
        op.create_index('ix_friendship_user_id', 'friendship', ['user_id'])
        op.create_index('ix_friendship_friend_id', 'friendship', ['friend_id'])


def downgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    # Children first
    for table in ('friendship', 'rematch_request', 'challenge', 'match_player', 'match'):
        if table in existing_tables:
            op.drop_table(table)
