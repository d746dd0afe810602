"""create credential and record tables

Revision ID: 5c2e9a7d1b44
Revises:
Create Date: 2025-09-14 10:20:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2e9a7d1b44'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'credential' not in existing_tables:
        op.create_table(
            'credential',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('uid', sa.String(length=32), nullable=False),
            sa.Column('email', sa.String(length=255), nullable=False),
            sa.Column('password_hash', sa.String(length=128), nullable=False),
        )
        op.create_index('ix_credential_uid', 'credential', ['uid'], unique=True)
        op.create_index('ix_credential_email', 'credential', ['email'], unique=True)

    if 'record' not in existing_tables:
        op.create_table(
            'record',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('collection', sa.String(length=32), nullable=False),
            sa.Column('key', sa.String(length=128), nullable=False),
            sa.Column('value', sa.Text(), nullable=False),
            sa.UniqueConstraint('collection', 'key', name='uq_record_collection_key'),
        )
        op.create_index('ix_record_collection', 'record', ['collection'], unique=False)


def downgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'record' in existing_tables:
        op.drop_index('ix_record_collection', table_name='record')
        op.drop_table('record')
    if 'credential' in existing_tables:
        op.drop_index('ix_credential_email', table_name='credential')
        op.drop_index('ix_credential_uid', table_name='credential')
        op.drop_table('credential')
