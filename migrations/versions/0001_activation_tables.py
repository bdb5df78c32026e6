"""activation codes, profiles and activation logs

Revision ID: 0001_activation_tables
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from app.database.base import UTCDateTime, UUIDType


# revision identifiers, used by Alembic.
revision: str = '0001_activation_tables'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'activation_codes',
        sa.Column('id', UUIDType(), primary_key=True, nullable=False),
        sa.Column('encoded_value', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('subject_id', sa.String(), nullable=True),
        sa.Column('subject_name', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_used', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('used_by_user_id', UUIDType(), nullable=True),
        sa.Column('used_for_subject_id', sa.String(), nullable=True),
        sa.Column('valid_from', UTCDateTime(), nullable=False),
        sa.Column('valid_until', UTCDateTime(), nullable=False),
        sa.Column('used_at', UTCDateTime(), nullable=True),
        sa.Column('created_at', UTCDateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', UTCDateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('valid_from <= valid_until', name='ck_activation_codes_validity_window'),
    )
    op.create_index('ix_activation_codes_id', 'activation_codes', ['id'])
    op.create_index('ix_activation_codes_encoded_value', 'activation_codes', ['encoded_value'], unique=True)
    op.create_index('ix_activation_codes_used_by_user_id', 'activation_codes', ['used_by_user_id'])

    op.create_table(
        'profiles',
        sa.Column('id', UUIDType(), primary_key=True, nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('active_subscription', sa.JSON(), nullable=True),
        sa.Column('created_at', UTCDateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', UTCDateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_profiles_id', 'profiles', ['id'])

    op.create_table(
        'activation_logs',
        sa.Column('id', UUIDType(), primary_key=True, nullable=False),
        sa.Column('user_id', UUIDType(), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('code_id', UUIDType(), sa.ForeignKey('activation_codes.id'), nullable=False),
        sa.Column('subject_id', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('code_type', sa.String(), nullable=False),
        sa.Column('plan_name', sa.String(), nullable=False),
        sa.Column('activated_at', UTCDateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_activation_logs_id', 'activation_logs', ['id'])
    op.create_index('ix_activation_logs_user_id', 'activation_logs', ['user_id'])
    op.create_index('ix_activation_logs_code_id', 'activation_logs', ['code_id'])


def downgrade() -> None:
    op.drop_index('ix_activation_logs_code_id', 'activation_logs')
    op.drop_index('ix_activation_logs_user_id', 'activation_logs')
    op.drop_index('ix_activation_logs_id', 'activation_logs')
    op.drop_table('activation_logs')

    op.drop_index('ix_profiles_id', 'profiles')
    op.drop_table('profiles')

    op.drop_index('ix_activation_codes_used_by_user_id', 'activation_codes')
    op.drop_index('ix_activation_codes_encoded_value', 'activation_codes')
    op.drop_index('ix_activation_codes_id', 'activation_codes')
    op.drop_table('activation_codes')
