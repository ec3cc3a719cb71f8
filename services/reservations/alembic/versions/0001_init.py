from alembic import op
import sqlalchemy as sa

revision = '0001_init'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='PATIENT'),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now())
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'medicines',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('name', sa.String(200), nullable=False, index=True),
        sa.Column('active_ingredient', sa.String(200), nullable=False),
        sa.Column('dosage', sa.String(100), nullable=False),
        sa.Column('prescription_required', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('category', sa.String(100), nullable=False),
        sa.Column('price_range', sa.String(50), nullable=False)
    )

    op.create_table(
        'pharmacies',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.id'), nullable=False, unique=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('address', sa.String(300), nullable=False),
        sa.Column('phone', sa.String(50), nullable=False),
        sa.Column('working_hours', sa.String(200), nullable=False),
        sa.Column('is_approved', sa.Boolean, nullable=False, server_default=sa.false())
    )

    op.create_table(
        'inventory',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('pharmacy_id', sa.Integer, sa.ForeignKey('pharmacies.id'), nullable=False, index=True),
        sa.Column('medicine_id', sa.Integer, sa.ForeignKey('medicines.id'), nullable=False, index=True),
        sa.Column('quantity', sa.Integer, nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('last_updated', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('pharmacy_id', 'medicine_id', name='uq_inventory_pharmacy_medicine'),
        sa.CheckConstraint('quantity >= 0', name='ck_inventory_quantity_non_negative')
    )

    op.create_table(
        'reservations',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('patient_id', sa.Integer, sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('pharmacy_id', sa.Integer, sa.ForeignKey('pharmacies.id'), nullable=False, index=True),
        sa.Column('medicine_id', sa.Integer, sa.ForeignKey('medicines.id'), nullable=False),
        sa.Column('quantity', sa.Integer, nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('request_time', sa.DateTime, nullable=False),
        sa.Column('accepted_time', sa.DateTime, nullable=True),
        sa.Column('rejected_time', sa.DateTime, nullable=True),
        sa.Column('no_response_time', sa.DateTime, nullable=True),
        sa.Column('patient_phone', sa.String(50), nullable=True),
        sa.Column('note', sa.Text, nullable=True),
        sa.CheckConstraint('quantity > 0', name='ck_reservations_quantity_positive')
    )
    op.create_index('ix_reservations_status_request_time', 'reservations', ['status', 'request_time'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('message', sa.Text, nullable=False),
        sa.Column('is_read', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now())
    )


def downgrade():
    op.drop_table('notifications')
    op.drop_index('ix_reservations_status_request_time', table_name='reservations')
    op.drop_table('reservations')
    op.drop_table('inventory')
    op.drop_table('pharmacies')
    op.drop_table('medicines')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
