"""create player, game and gameplay tables

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '1a2b3c4d5e6f'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    existing_tables = set(sa.inspect(bind).get_table_names())

    if 'player' not in existing_tables:
        op.create_table(
            'player',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('username', sa.String(length=64), nullable=False),
            sa.Column('display_name', sa.String(length=64), nullable=True),
            sa.Column('password_hash', sa.String(length=256), nullable=False),
            sa.Column('score', sa.Integer(), nullable=False, server_default='0'),
        )
        op.create_index('ix_player_username', 'player', ['username'], unique=True)

    if 'game' not in existing_tables:
        op.create_table(
            'game',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('title', sa.String(length=128), nullable=False),
            sa.Column('slug', sa.String(length=64), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('thumbnail', sa.String(length=256), nullable=True),
            sa.Column('featured', sa.Boolean(), nullable=False, server_default=sa.false()),
        )
        op.create_index('ix_game_slug', 'game', ['slug'], unique=True)

    if 'gameplay' not in existing_tables:
        op.create_table(
            'gameplay',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('game_id', sa.Integer(), sa.ForeignKey('game.id'), nullable=False),
            sa.Column('player_id', sa.Integer(), sa.ForeignKey('player.id'), nullable=False),
            sa.Column('player_score', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('inserted_at', sa.DateTime(timezone=True), nullable=False),
            sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index('ix_gameplay_game_id', 'gameplay', ['game_id'])
        op.create_index('ix_gameplay_player_id', 'gameplay', ['player_id'])


def downgrade():
    op.drop_index('ix_gameplay_player_id', table_name='gameplay')
    op.drop_index('ix_gameplay_game_id', table_name='gameplay')
    op.drop_table('gameplay')
    op.drop_index('ix_game_slug', table_name='game')
    op.drop_table('game')
    op.drop_index('ix_player_username', table_name='player')
    op.drop_table('player')
