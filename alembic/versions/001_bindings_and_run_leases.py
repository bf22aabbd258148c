"""Bindings ledger and run leases

Revision ID: 001_bindings_and_run_leases
Revises:
Create Date: 2026-10-19

- bindings: source transaction id -> destination transaction id, write-once
- run_leases: single-writer lease serializing reconciliation runs
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_bindings_and_run_leases'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'bindings',
        sa.Column('source_id', sa.String(), nullable=False),
        sa.Column('destination_id', sa.String(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('source_id'),
    )

    op.create_table(
        'run_leases',
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('holder', sa.String(), nullable=False),
        sa.Column('acquired_at', sa.TIMESTAMP(), nullable=False),
        sa.Column('expires_at', sa.TIMESTAMP(), nullable=False),
        sa.PrimaryKeyConstraint('name'),
    )


def downgrade() -> None:
    """Dropping bindings forgets what was mirrored.

    Re-running afterwards is still safe: the destination dedups on import_id.
    """
    op.drop_table('run_leases')
    op.drop_table('bindings')
