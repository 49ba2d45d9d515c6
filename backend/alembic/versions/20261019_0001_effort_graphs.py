"""effort graph schema

Revision ID: 20261019_0001
Revises: 
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '20261019_0001'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table('users',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('email', sa.String(), nullable=False, unique=True),
        sa.Column('hashed_password', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False)
    )
    op.create_table('user_preferences',
        sa.Column('user_id', sa.String(), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('theme', sa.String(), nullable=False, server_default='dark'),
        sa.Column('updated_at', sa.DateTime(), nullable=False)
    )
    op.create_table('effort_graphs',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('author_id', sa.String(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False)
    )
    op.create_table('workstreams',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('effort', sa.Float(), nullable=False, server_default='0'),
        sa.Column('color', sa.String(), nullable=False),
        sa.Column('graph_id', sa.String(), sa.ForeignKey('effort_graphs.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False)
    )
    op.create_table('shared_efforts',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('graph_id', sa.String(), sa.ForeignKey('effort_graphs.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('share_token', sa.String(), nullable=False, unique=True),
        sa.Column('created_by', sa.String(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('view_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('slack_view_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_viewed_at', sa.DateTime(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False)
    )
    op.create_index(
        'uq_shared_efforts_active_graph', 'shared_efforts', ['graph_id'], unique=True,
        sqlite_where=sa.text('is_active = 1'), postgresql_where=sa.text('is_active'),
    )
    op.create_table('graph_permissions',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('graph_id', sa.String(), sa.ForeignKey('effort_graphs.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('user_id', sa.String(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('permission_level', sa.String(), nullable=False, server_default='viewer'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('graph_id', 'user_id', name='uq_graph_permissions_graph_user')
    )
    op.create_table('slack_users',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('user_id', sa.String(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('slack_user_id', sa.String(), nullable=False, unique=True),
        sa.Column('slack_team_id', sa.String(), nullable=False),
        sa.Column('slack_access_token_encrypted', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False)
    )

def downgrade():
    op.drop_table('slack_users')
    op.drop_table('graph_permissions')
    op.drop_index('uq_shared_efforts_active_graph', table_name='shared_efforts')
    op.drop_table('shared_efforts')
    op.drop_table('workstreams')
    op.drop_table('effort_graphs')
    op.drop_table('user_preferences')
    op.drop_table('users')
