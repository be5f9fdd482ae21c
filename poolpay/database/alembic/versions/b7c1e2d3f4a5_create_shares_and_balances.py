"""create_shares_and_balances

Create the shares history table and the pending balances ledger used by
block settlement.

Revision ID: b7c1e2d3f4a5
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'b7c1e2d3f4a5'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # -- 1. Share history --
    op.create_table(
        'shares',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True,
                  comment='Storage order, breaks ties between equal timestamps'),
        sa.Column('poolid', sa.String(), nullable=False),
        sa.Column('blockheight', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('miner', sa.String(), nullable=False),
        sa.Column('worker', sa.String(), nullable=True),
        sa.Column('payoutinfo', sa.String(), nullable=True,
                  comment='Optional routing suffix appended to the miner address'),
        sa.Column('stratumdifficulty', sa.Float(), nullable=False),
        sa.Column('stratumdifficultybase', sa.Float(), nullable=False),
        sa.Column('networkdifficulty', sa.Float(), nullable=False),
        sa.Column('created', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_shares_poolid_created', 'shares', ['poolid', 'created'])

    # -- 2. Pending balances --
    op.create_table(
        'balances',
        sa.Column('poolid', sa.String(), primary_key=True),
        sa.Column('cointype', sa.String(), primary_key=True),
        sa.Column('address', sa.String(), primary_key=True,
                  comment='Payout address key (miner, optionally #payoutinfo)'),
        sa.Column('amount', sa.Numeric(28, 12).with_variant(sa.String(64), 'sqlite'),
                  nullable=False, server_default='0',
                  comment='Exact decimal; plain-notation text on SQLite'),
        sa.Column('created', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated', sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table('balances')
    op.drop_index('ix_shares_poolid_created', table_name='shares')
    op.drop_table('shares')
