"""detach bookings from deleted slots

Revision ID: c71d3e9f0a42
Revises: 8b4e6d2a1c55
Create Date: 2026-04-02 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'c71d3e9f0a42'
down_revision = '8b4e6d2a1c55'
branch_labels = None
depends_on = None

# the initial schema left this FK unnamed; SQLite batch mode needs a name to drop it
NAMING = {"fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s"}


def _slot_fk_name():
    if op.get_bind().dialect.name == 'postgresql':
        return 'bookings_slot_id_fkey'
    return 'fk_bookings_slot_id_slots'


def upgrade():
    with op.batch_alter_table('bookings', schema=None, naming_convention=NAMING) as batch_op:
        batch_op.add_column(sa.Column('scheduled_date', sa.Date(), nullable=True))
        batch_op.add_column(sa.Column('scheduled_start', sa.Time(), nullable=True))
        batch_op.drop_constraint(_slot_fk_name(), type_='foreignkey')
        batch_op.alter_column('slot_id', existing_type=sa.Integer(), nullable=True)
        batch_op.create_foreign_key(_slot_fk_name(), 'slots', ['slot_id'], ['id'], ondelete='SET NULL')

    op.execute(
        "UPDATE bookings SET "
        "scheduled_date = (SELECT slots.date FROM slots WHERE slots.id = bookings.slot_id), "
        "scheduled_start = (SELECT slots.start_time FROM slots WHERE slots.id = bookings.slot_id)"
    )


def downgrade():
    op.execute("DELETE FROM bookings WHERE slot_id IS NULL")
    with op.batch_alter_table('bookings', schema=None, naming_convention=NAMING) as batch_op:
        batch_op.drop_constraint(_slot_fk_name(), type_='foreignkey')
        batch_op.alter_column('slot_id', existing_type=sa.Integer(), nullable=False)
        batch_op.create_foreign_key(_slot_fk_name(), 'slots', ['slot_id'], ['id'])
        batch_op.drop_column('scheduled_start')
        batch_op.drop_column('scheduled_date')
