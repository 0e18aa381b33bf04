"""tanks, fermentation batches and readings

Revision ID: 20261017_01
Revises:
Create Date: 2026-10-17 09:30:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20261017_01"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "tanks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=140), nullable=False),
        sa.Column("capacity_liters", sa.Float(), nullable=False),
        sa.Column("material", sa.String(length=30), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False),
        sa.Column("location", sa.String(length=140), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("current_batch_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_tanks_id"), "tanks", ["id"], unique=False)
    op.create_index(op.f("ix_tanks_status"), "tanks", ["status"], unique=False)

    op.create_table(
        "fermentation_batches",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tank_id", sa.Integer(), nullable=False),
        sa.Column("harvest_id", sa.String(length=64), nullable=True),
        sa.Column("name", sa.String(length=140), nullable=False),
        sa.Column("grape_variety", sa.String(length=140), nullable=False),
        sa.Column("volume_liters", sa.Float(), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False),
        sa.Column("target_temperature", sa.Float(), nullable=True),
        sa.Column("yeast_strain", sa.String(length=140), nullable=True),
        sa.Column("initial_brix", sa.Float(), nullable=True),
        sa.Column("initial_ph", sa.Float(), nullable=True),
        sa.Column("start_date", sa.DateTime(), nullable=True),
        sa.Column("end_date", sa.DateTime(), nullable=True),
        sa.Column("expected_end_date", sa.DateTime(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["tank_id"], ["tanks.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_fermentation_batches_id"), "fermentation_batches", ["id"], unique=False)
    op.create_index(op.f("ix_fermentation_batches_tank_id"), "fermentation_batches", ["tank_id"], unique=False)
    op.create_index(op.f("ix_fermentation_batches_status"), "fermentation_batches", ["status"], unique=False)

    op.create_table(
        "fermentation_readings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("batch_id", sa.Integer(), nullable=False),
        sa.Column("recorded_at", sa.DateTime(), nullable=False),
        sa.Column("source", sa.String(length=20), nullable=False),
        sa.Column("temperature", sa.Float(), nullable=True),
        sa.Column("brix", sa.Float(), nullable=True),
        sa.Column("ph", sa.Float(), nullable=True),
        sa.Column("density", sa.Float(), nullable=True),
        sa.Column("alcohol_percent", sa.Float(), nullable=True),
        sa.Column("volatile_acidity", sa.Float(), nullable=True),
        sa.Column("free_so2", sa.Float(), nullable=True),
        sa.Column("total_so2", sa.Float(), nullable=True),
        sa.Column("color", sa.String(length=60), nullable=True),
        sa.Column("clarity", sa.String(length=60), nullable=True),
        sa.Column("aroma_notes", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["batch_id"], ["fermentation_batches.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_fermentation_readings_id"), "fermentation_readings", ["id"], unique=False)
    op.create_index(op.f("ix_fermentation_readings_batch_id"), "fermentation_readings", ["batch_id"], unique=False)
    op.create_index(op.f("ix_fermentation_readings_recorded_at"), "fermentation_readings", ["recorded_at"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_fermentation_readings_recorded_at"), table_name="fermentation_readings")
    op.drop_index(op.f("ix_fermentation_readings_batch_id"), table_name="fermentation_readings")
    op.drop_index(op.f("ix_fermentation_readings_id"), table_name="fermentation_readings")
    op.drop_table("fermentation_readings")

    op.drop_index(op.f("ix_fermentation_batches_status"), table_name="fermentation_batches")
    op.drop_index(op.f("ix_fermentation_batches_tank_id"), table_name="fermentation_batches")
    op.drop_index(op.f("ix_fermentation_batches_id"), table_name="fermentation_batches")
    op.drop_table("fermentation_batches")

    op.drop_index(op.f("ix_tanks_status"), table_name="tanks")
    op.drop_index(op.f("ix_tanks_id"), table_name="tanks")
    op.drop_table("tanks")
