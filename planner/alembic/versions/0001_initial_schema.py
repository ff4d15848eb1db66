"""initial schema: users, orgs, plans, plan records, billing and support

Revision ID: 3b7f0c1d9a21
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '3b7f0c1d9a21'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Satellite tables hanging off plans, with their own columns
PLAN_RECORD_TABLES = {
    'contacts_notify': [
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('relationship', sa.String(length=100), nullable=True),
        sa.Column('contact', sa.String(length=255), nullable=True),
        sa.Column('auto_injected', sa.Boolean(), nullable=True, server_default='false'),
    ],
    'pets': [
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('breed', sa.String(length=255), nullable=True),
        sa.Column('caregiver', sa.String(length=255), nullable=True),
        sa.Column('vet_contact', sa.String(length=255), nullable=True),
        sa.Column('care_instructions', sa.Text(), nullable=True),
    ],
    'insurance_policies': [
        sa.Column('company', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False, server_default='other'),
        sa.Column('policy_number', sa.String(length=100), nullable=True),
        sa.Column('contact_person', sa.String(length=255), nullable=True),
        sa.Column('phone_or_url', sa.String(length=255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
    ],
    'properties': [
        sa.Column('kind', sa.String(length=50), nullable=False, server_default='other'),
        sa.Column('address', sa.Text(), nullable=False),
        sa.Column('mortgage_bank', sa.String(length=255), nullable=True),
        sa.Column('manager', sa.String(length=255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
    ],
    'messages': [
        sa.Column('audience', sa.String(length=255), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=True),
        sa.Column('body', sa.Text(), nullable=True),
    ],
    'investments': [
        sa.Column('brokerage', sa.String(length=255), nullable=False),
        sa.Column('account_type', sa.String(length=100), nullable=True),
        sa.Column('account_number', sa.String(length=100), nullable=True),
    ],
    'debts': [
        sa.Column('creditor', sa.String(length=255), nullable=False),
        sa.Column('debt_type', sa.String(length=100), nullable=True),
        sa.Column('account_number', sa.String(length=100), nullable=True),
    ],
    'bank_accounts': [
        sa.Column('bank_name', sa.String(length=255), nullable=False),
        sa.Column('account_type', sa.String(length=100), nullable=True),
        sa.Column('account_number', sa.String(length=100), nullable=True),
        sa.Column('pod', sa.String(length=255), nullable=True),
    ],
    'businesses': [
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('partnership_info', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
    ],
    'funeral_funding': [
        sa.Column('source', sa.String(length=255), nullable=False),
        sa.Column('account', sa.String(length=255), nullable=True),
    ],
    'contacts_professional': [
        sa.Column('role', sa.String(length=100), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('company', sa.String(length=255), nullable=True),
        sa.Column('contact', sa.String(length=255), nullable=True),
    ],
}

PLAN_NOTE_COLUMNS = (
    'instructions_notes', 'about_me_notes', 'checklist_notes', 'funeral_wishes_notes',
    'financial_notes', 'insurance_notes', 'property_notes', 'pets_notes',
    'digital_notes', 'legal_notes', 'messages_notes', 'to_loved_ones_message',
)


def _timestamps(updated: bool = True):
    columns = [sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True)]
    if updated:
        columns.append(sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True))
    return columns


def upgrade() -> None:
    # Identity
    op.create_table('users',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table('user_roles',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('role', sa.String(length=50), nullable=False),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'role', name='uq_user_roles_user_role')
    )
    op.create_index('ix_user_roles_user_id', 'user_roles', ['user_id'])

    op.create_table('orgs',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_orgs_id', 'orgs', ['id'])

    op.create_table('org_members',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('org_id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(['org_id'], ['orgs.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('org_id', 'user_id', name='uq_org_members_org_user')
    )
    op.create_index('ix_org_members_org_id', 'org_members', ['org_id'])
    op.create_index('ix_org_members_user_id', 'org_members', ['user_id'])
    op.create_index(
        'uq_org_members_single_owner', 'org_members', ['user_id'],
        unique=True, postgresql_where=sa.text("role = 'owner'")
    )

    # Plans
    op.create_table('plans',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('org_id', sa.UUID(), nullable=False),
        sa.Column('owner_user_id', sa.UUID(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('prepared_for', sa.String(length=255), nullable=True),
        sa.Column('preparer_name', sa.String(length=255), nullable=True),
        sa.Column('percent_complete', sa.Integer(), nullable=False, server_default='0'),
        *[sa.Column(name, sa.Text(), nullable=True) for name in PLAN_NOTE_COLUMNS],
        sa.Column('plan_payload', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='{}'),
        sa.Column('revisions', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='[]'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['org_id'], ['orgs.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['owner_user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('org_id', 'owner_user_id', name='uq_plans_org_owner')
    )
    op.create_index('ix_plans_id', 'plans', ['id'])
    op.create_index('ix_plans_org_id', 'plans', ['org_id'])
    op.create_index('ix_plans_owner_user_id', 'plans', ['owner_user_id'])

    op.create_table('personal_profiles',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('plan_id', sa.UUID(), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('maiden_name', sa.String(length=255), nullable=True),
        sa.Column('dob', sa.String(length=20), nullable=True),
        sa.Column('birthplace', sa.String(length=255), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('citizenship', sa.String(length=100), nullable=True),
        sa.Column('marital_status', sa.String(length=50), nullable=True),
        sa.Column('partner_name', sa.String(length=255), nullable=True),
        sa.Column('ex_spouse_name', sa.String(length=255), nullable=True),
        sa.Column('child_names', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('father_name', sa.String(length=255), nullable=True),
        sa.Column('mother_name', sa.String(length=255), nullable=True),
        sa.Column('religion', sa.String(length=100), nullable=True),
        sa.Column('hobbies', sa.Text(), nullable=True),
        sa.Column('accomplishments', sa.Text(), nullable=True),
        sa.Column('remembered', sa.Text(), nullable=True),
        sa.Column('ssn', sa.String(length=20), nullable=True),
        sa.Column('vet_branch', sa.String(length=100), nullable=True),
        sa.Column('vet_rank', sa.String(length=100), nullable=True),
        sa.Column('vet_serial', sa.String(length=100), nullable=True),
        sa.Column('vet_war', sa.String(length=100), nullable=True),
        sa.Column('vet_entry', sa.String(length=20), nullable=True),
        sa.Column('vet_discharge', sa.String(length=20), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['plan_id'], ['plans.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_personal_profiles_plan_id', 'personal_profiles', ['plan_id'], unique=True)

    for table, columns in PLAN_RECORD_TABLES.items():
        op.create_table(table,
            sa.Column('id', sa.UUID(), nullable=False),
            sa.Column('plan_id', sa.UUID(), nullable=False),
            *columns,
            *_timestamps(),
            sa.ForeignKeyConstraint(['plan_id'], ['plans.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(f'ix_{table}_plan_id', table, ['plan_id'])

    # Billing
    op.create_table('subscriptions',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('stripe_customer_id', sa.String(length=100), nullable=True),
        sa.Column('stripe_subscription_id', sa.String(length=100), nullable=True),
        sa.Column('lookup_key', sa.String(length=100), nullable=True),
        sa.Column('plan_type', sa.String(length=50), nullable=False, server_default='free'),
        sa.Column('status', sa.String(length=50), nullable=False, server_default='incomplete'),
        sa.Column('current_period_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('current_period_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancel_at_period_end', sa.Boolean(), nullable=False, server_default='false'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_subscriptions_user_id', 'subscriptions', ['user_id'], unique=True)
    op.create_index('ix_subscriptions_stripe_customer_id', 'subscriptions', ['stripe_customer_id'])
    op.create_index('ix_subscriptions_stripe_subscription_id', 'subscriptions', ['stripe_subscription_id'])

    op.create_table('purchases',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('product_lookup_key', sa.String(length=100), nullable=False),
        sa.Column('status', sa.String(length=50), nullable=False, server_default='completed'),
        sa.Column('amount', sa.Integer(), nullable=True),
        sa.Column('stripe_payment_intent_id', sa.String(length=100), nullable=True),
        sa.Column('stripe_checkout_session_id', sa.String(length=100), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'product_lookup_key', name='uq_purchases_user_product')
    )
    op.create_index('ix_purchases_user_id', 'purchases', ['user_id'])

    # Support
    op.create_table('appointments',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=True),
        sa.Column('starts_at', sa.String(length=40), nullable=False),
        sa.Column('ends_at', sa.String(length=40), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('channel', sa.String(length=50), nullable=True, server_default='native'),
        sa.Column('status', sa.String(length=50), nullable=True, server_default='pending'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_appointments_user_id', 'appointments', ['user_id'])

    op.create_table('kb_articles',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('tags', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('faqs',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('category', sa.String(length=100), nullable=True),
        sa.Column('question', sa.Text(), nullable=False),
        sa.Column('answer', sa.Text(), nullable=False),
        sa.Column('keywords', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )


def downgrade() -> None:
    op.drop_table('faqs')
    op.drop_table('kb_articles')
    op.drop_index('ix_appointments_user_id', table_name='appointments')
    op.drop_table('appointments')

    op.drop_index('ix_purchases_user_id', table_name='purchases')
    op.drop_table('purchases')
    op.drop_index('ix_subscriptions_stripe_subscription_id', table_name='subscriptions')
    op.drop_index('ix_subscriptions_stripe_customer_id', table_name='subscriptions')
    op.drop_index('ix_subscriptions_user_id', table_name='subscriptions')
    op.drop_table('subscriptions')

    for table in reversed(list(PLAN_RECORD_TABLES)):
        op.drop_index(f'ix_{table}_plan_id', table_name=table)
        op.drop_table(table)
    op.drop_index('ix_personal_profiles_plan_id', table_name='personal_profiles')
    op.drop_table('personal_profiles')

    op.drop_index('ix_plans_owner_user_id', table_name='plans')
    op.drop_index('ix_plans_org_id', table_name='plans')
    op.drop_index('ix_plans_id', table_name='plans')
    op.drop_table('plans')

    op.drop_index('uq_org_members_single_owner', table_name='org_members')
    op.drop_index('ix_org_members_user_id', table_name='org_members')
    op.drop_index('ix_org_members_org_id', table_name='org_members')
    op.drop_table('org_members')
    op.drop_index('ix_orgs_id', table_name='orgs')
    op.drop_table('orgs')
    op.drop_index('ix_user_roles_user_id', table_name='user_roles')
    op.drop_table('user_roles')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_index('ix_users_id', table_name='users')
    op.drop_table('users')
