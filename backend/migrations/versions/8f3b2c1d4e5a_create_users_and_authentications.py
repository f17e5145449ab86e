"""create users and authentications

Revision ID: 8f3b2c1d4e5a
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = '8f3b2c1d4e5a'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('identifier', sa.String(length=36), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=254), nullable=False),
        sa.Column('password_hash', sa.String(length=254), nullable=False),
        sa.Column(
            'role',
            sa.Enum('ADMIN', 'USER', name='user_role', native_enum=False, length=16),
            nullable=False,
        ),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('identifier', name='pk_users'),
        sa.UniqueConstraint('email', name='uq_users_email'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=False)

    op.create_table(
        'authentications',
        sa.Column('identifier', sa.String(length=36), nullable=False),
        sa.Column('tokenable_id', sa.String(length=36), nullable=False),
        sa.Column('tokenable_type', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('token', sa.String(length=64), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('refresh_token', sa.String(length=64), nullable=True),
        sa.Column('refresh_token_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('abilities', sa.JSON(), nullable=True),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(
            ['tokenable_id'],
            ['users.identifier'],
            name='fk_authentications_tokenable_id_users',
            ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('identifier', name='pk_authentications'),
        sa.UniqueConstraint('token', name='uq_authentications_token'),
        sa.UniqueConstraint('refresh_token', name='uq_authentications_refresh_token'),
    )
    op.create_index(
        'ix_authentications_tokenable_id', 'authentications', ['tokenable_id'], unique=False
    )


def downgrade():
    op.drop_index('ix_authentications_tokenable_id', table_name='authentications')
    op.drop_table('authentications')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
