"""initial jimpitan schema

Revision ID: j1m2p3t4n5a6
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates:
- users: staff accounts with the single live session token hash
- customers: residents with the denormalized total_deposits aggregate
- transactions: deposits, soft-deleted on void
- identifier_sequences: atomic USR-/CUST-/0001 id reservation
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'j1m2p3t4n5a6'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # users
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=16), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('session_token_hash', sa.String(length=64), nullable=True),
        sa.Column('token_expiry', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_username', 'users', ['username'])
    op.create_index('ix_users_deleted_at', 'users', ['deleted_at'])
    op.create_index('ix_users_username_live', 'users', ['username', 'deleted_at'])

    # ============================================================================
    # customers
    # ============================================================================
    op.create_table(
        'customers',
        sa.Column('id', sa.String(length=16), nullable=False),
        sa.Column('blok', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('qr_hash', sa.String(length=64), nullable=False),
        sa.Column('total_deposits', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_transaction_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_customers_qr_hash', 'customers', ['qr_hash'])
    op.create_index('ix_customers_deleted_at', 'customers', ['deleted_at'])
    op.create_index('ix_customers_qr_hash_live', 'customers', ['qr_hash', 'deleted_at'])

    # ============================================================================
    # transactions
    # ============================================================================
    op.create_table(
        'transactions',
        sa.Column('id', sa.String(length=16), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('customer_id', sa.String(length=16), nullable=False),
        sa.Column('blok', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('nominal', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=16), nullable=False),
        sa.Column('petugas', sa.String(length=128), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('nominal > 0', name='ck_transactions_nominal_positive'),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_transactions_timestamp', 'transactions', ['timestamp'])
    op.create_index('ix_transactions_deleted_at', 'transactions', ['deleted_at'])
    op.create_index('ix_transactions_customer_active', 'transactions', ['customer_id', 'deleted_at'])
    op.create_index('ix_transactions_user_active', 'transactions', ['user_id', 'deleted_at'])

    # ============================================================================
    # identifier_sequences
    # ============================================================================
    op.create_table(
        'identifier_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('kind', sa.String(length=32), nullable=False),
        sa.Column('next_number', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('kind', name='uq_identifier_sequences_kind'),
        sqlite_autoincrement=True
    )


def downgrade():
    """Drop all tables (destructive operation)."""
    op.drop_table('identifier_sequences')
    op.drop_table('transactions')
    op.drop_table('customers')
    op.drop_table('users')
