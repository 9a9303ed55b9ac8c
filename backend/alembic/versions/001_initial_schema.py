"""initial schema: profiles and webhook_events

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create profiles table
    op.create_table(
        'profiles',
        sa.Column('id', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('credit_balance', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('subscription_tier', sa.String(length=50), nullable=True, server_default='free'),
        sa.Column('subscription_status', sa.String(length=50), nullable=True),
        sa.Column('subscription_plan_id', sa.String(length=255), nullable=True),
        sa.Column('stripe_customer_id', sa.String(length=255), nullable=True),
        sa.Column('stripe_subscription_id', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('credit_balance >= 0', name='ck_profiles_credit_balance_non_negative'),
    )

    # Create indexes
    op.create_index(op.f('ix_profiles_email'), 'profiles', ['email'], unique=False)
    op.create_index(op.f('ix_profiles_stripe_customer_id'), 'profiles', ['stripe_customer_id'], unique=True)
    op.create_index(op.f('ix_profiles_stripe_subscription_id'), 'profiles', ['stripe_subscription_id'], unique=True)

    # Create webhook_events table
    op.create_table(
        'webhook_events',
        sa.Column('id', sa.String(length=255), nullable=False),
        sa.Column('source', sa.String(length=50), nullable=False),
        sa.Column('event_type', sa.String(length=100), nullable=False),
        sa.Column('received_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )


def downgrade() -> None:
    op.drop_table('webhook_events')

    # Drop indexes
    op.drop_index(op.f('ix_profiles_stripe_subscription_id'), table_name='profiles')
    op.drop_index(op.f('ix_profiles_stripe_customer_id'), table_name='profiles')
    op.drop_index(op.f('ix_profiles_email'), table_name='profiles')

    # Drop table
    op.drop_table('profiles')
