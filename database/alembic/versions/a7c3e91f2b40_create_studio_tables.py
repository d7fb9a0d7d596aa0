"""Create studio tables: users, clients, artists, appointments, expenses

Revision ID: a7c3e91f2b40
Revises:
Create Date: 2025-06-02 10:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = 'a7c3e91f2b40'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


appointment_status = postgresql.ENUM(
    'scheduled', 'completed', 'canceled', 'no-show',
    name='appointment_status', create_type=False,
)
payment_status = postgresql.ENUM(
    'pending', 'deposit_paid', 'fully_paid',
    name='payment_status', create_type=False,
)
expense_category = postgresql.ENUM(
    'rent', 'supplies', 'utilities', 'other',
    name='expense_category', create_type=False,
)

TABLES_WITH_UPDATED_AT = ('clients', 'artists', 'appointments', 'expenses')


def upgrade() -> None:
    # btree_gist provides "=" on uuid inside a GiST exclusion constraint
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")

    op.execute("""
        CREATE OR REPLACE FUNCTION update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)

    appointment_status.create(op.get_bind(), checkfirst=True)
    payment_status.create(op.get_bind(), checkfirst=True)
    expense_category.create(op.get_bind(), checkfirst=True)

    # Users
    op.create_table('users',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('username', sa.String(length=100), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username', name='uq_users_username'),
    )

    # Clients
    op.create_table('clients',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('phone', sa.String(length=30), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email', name='uq_clients_email'),
    )
    op.create_index('idx_clients_name', 'clients', ['name'])

    # Artists
    op.create_table('artists',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', name='uq_artists_name'),
    )

    # Appointments
    op.create_table('appointments',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('client_id', sa.UUID(), nullable=False),
        sa.Column('artist_id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=True),
        sa.Column('appointment_time', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('ends_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', appointment_status, server_default='scheduled', nullable=False),
        sa.Column('payment_status', payment_status, server_default='pending', nullable=False),
        sa.Column('total_price', sa.Integer(), nullable=True),
        sa.Column('amount_paid', sa.Integer(), server_default='0', nullable=False),
        sa.Column('deposit_paid_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('completed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(
            ['client_id'], ['clients.id'],
            name='fk_appointments_client_id', ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['artist_id'], ['artists.id'],
            name='fk_appointments_artist_id', ondelete='RESTRICT',
        ),
        sa.ForeignKeyConstraint(
            ['user_id'], ['users.id'],
            name='fk_appointments_user_id', ondelete='SET NULL',
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('duration_minutes > 0', name='check_appointment_duration_positive'),
        sa.CheckConstraint('ends_at > appointment_time', name='check_appointment_ends_after_start'),
        sa.CheckConstraint(
            "ends_at = appointment_time + duration_minutes * interval '1 minute'",
            name='check_appointment_ends_at_matches_duration',
        ),
        sa.CheckConstraint('amount_paid >= 0', name='check_amount_paid_non_negative'),
        sa.CheckConstraint(
            'total_price IS NULL OR total_price >= 0', name='check_total_price_non_negative'
        ),
        sa.CheckConstraint(
            'total_price IS NULL OR amount_paid <= total_price',
            name='check_amount_paid_within_total',
        ),
    )
    op.create_index('ix_appointments_client_id', 'appointments', ['client_id'])
    op.create_index('ix_appointments_artist_id', 'appointments', ['artist_id'])
    op.create_index('ix_appointments_appointment_time', 'appointments', ['appointment_time'])
    op.create_index('ix_appointments_status', 'appointments', ['status'])
    op.create_index(
        'idx_appointments_artist_time_active', 'appointments', ['artist_id', 'appointment_time'],
        postgresql_where=sa.text("status <> 'canceled'"),
    )
    op.create_index(
        'idx_appointments_deposit_paid_at', 'appointments', ['deposit_paid_at'],
        postgresql_where=sa.text('deposit_paid_at IS NOT NULL'),
    )
    op.create_index(
        'idx_appointments_completed_at', 'appointments', ['completed_at'],
        postgresql_where=sa.text('completed_at IS NOT NULL'),
    )

    # No two active appointments of one artist may overlap ([) ranges: touching is fine)
    op.execute("""
        ALTER TABLE appointments
        ADD CONSTRAINT excl_appointments_artist_overlap
        EXCLUDE USING gist (
            artist_id WITH =,
            tstzrange(appointment_time, ends_at, '[)') WITH &&
        ) WHERE (status <> 'canceled');
    """)

    # Expenses
    op.create_table('expenses',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('category', expense_category, nullable=False),
        sa.Column('expense_date', sa.DATE(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('amount > 0', name='check_expense_amount_positive'),
    )
    op.create_index('ix_expenses_expense_date', 'expenses', ['expense_date'])

    for table in TABLES_WITH_UPDATED_AT:
        op.execute(f"""
            CREATE TRIGGER update_{table}_updated_at
            BEFORE UPDATE ON {table}
            FOR EACH ROW
            EXECUTE FUNCTION update_updated_at_column();
        """)


def downgrade() -> None:
    for table in TABLES_WITH_UPDATED_AT:
        op.execute(f"DROP TRIGGER IF EXISTS update_{table}_updated_at ON {table}")

    op.drop_index('ix_expenses_expense_date', table_name='expenses')
    op.drop_table('expenses')

    op.execute("ALTER TABLE appointments DROP CONSTRAINT IF EXISTS excl_appointments_artist_overlap")
    op.drop_index('idx_appointments_completed_at', table_name='appointments')
    op.drop_index('idx_appointments_deposit_paid_at', table_name='appointments')
    op.drop_index('idx_appointments_artist_time_active', table_name='appointments')
    op.drop_index('ix_appointments_status', table_name='appointments')
    op.drop_index('ix_appointments_appointment_time', table_name='appointments')
    op.drop_index('ix_appointments_artist_id', table_name='appointments')
    op.drop_index('ix_appointments_client_id', table_name='appointments')
    op.drop_table('appointments')

    op.drop_table('artists')
    op.drop_index('idx_clients_name', table_name='clients')
    op.drop_table('clients')
    op.drop_table('users')

    expense_category.drop(op.get_bind(), checkfirst=True)
    payment_status.drop(op.get_bind(), checkfirst=True)
    appointment_status.drop(op.get_bind(), checkfirst=True)

    op.execute("DROP FUNCTION IF EXISTS update_updated_at_column()")
