"""Create groups, students, payment concepts, debts and payments tables

Revision ID: 001_ledger_tables
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_ledger_tables"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(with_updated: bool = True) -> list[sa.Column]:
    columns = [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]
    if with_updated:
        columns.append(
            sa.Column(
                "updated_at",
                sa.DateTime(timezone=True),
                server_default=sa.func.now(),
                nullable=False,
            )
        )
    return columns


def upgrade() -> None:
    # Groups table
    op.create_table(
        "groups",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("level", sa.String(50), nullable=False),
        sa.Column("school_year", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_groups"),
    )

    # Students table
    op.create_table(
        "students",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("group_id", sa.BigInteger(), nullable=True),
        sa.Column("level", sa.String(50), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_students"),
        sa.ForeignKeyConstraint(
            ["group_id"], ["groups.id"], name="fk_students_group_id_groups"
        ),
    )
    op.create_index("ix_students_group_id", "students", ["group_id"])
    op.create_index("ix_students_status", "students", ["status"])

    # Payment concepts table
    op.create_table(
        "payment_concepts",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("base_amount", sa.Numeric(15, 2), nullable=False),
        sa.Column("applicable_level", sa.String(50), nullable=True),
        sa.Column(
            "application_type", sa.String(20), nullable=False, server_default="monthly"
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_payment_concepts"),
    )

    # Debts table
    op.create_table(
        "debts",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("student_id", sa.BigInteger(), nullable=False),
        sa.Column("concept_id", sa.BigInteger(), nullable=False),
        sa.Column("amount_total", sa.Numeric(15, 2), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_debts"),
        sa.ForeignKeyConstraint(
            ["student_id"], ["students.id"], name="fk_debts_student_id_students"
        ),
        sa.ForeignKeyConstraint(
            ["concept_id"], ["payment_concepts.id"], name="fk_debts_concept_id_payment_concepts"
        ),
        sa.CheckConstraint("amount_total > 0", name="ck_debts_amount_total_positive"),
    )
    op.create_index("ix_debts_student_id", "debts", ["student_id"])
    op.create_index("ix_debts_concept_id", "debts", ["concept_id"])
    op.create_index("ix_debts_due_date", "debts", ["due_date"])
    op.create_index("ix_debts_status", "debts", ["status"])
    op.create_index(
        "ix_debts_student_status_due", "debts", ["student_id", "status", "due_date"]
    )

    # Payments table
    op.create_table(
        "payments",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("student_id", sa.BigInteger(), nullable=False),
        sa.Column("concept_id", sa.BigInteger(), nullable=False),
        sa.Column("debt_id", sa.BigInteger(), nullable=True),
        sa.Column("amount", sa.Numeric(15, 2), nullable=False),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.Column("method", sa.String(20), nullable=False),
        sa.Column("reference", sa.String(100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(with_updated=False),
        sa.PrimaryKeyConstraint("id", name="pk_payments"),
        sa.ForeignKeyConstraint(
            ["student_id"], ["students.id"], name="fk_payments_student_id_students"
        ),
        sa.ForeignKeyConstraint(
            ["concept_id"],
            ["payment_concepts.id"],
            name="fk_payments_concept_id_payment_concepts",
        ),
        sa.ForeignKeyConstraint(
            ["debt_id"], ["debts.id"], name="fk_payments_debt_id_debts"
        ),
        sa.CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
    )
    op.create_index("ix_payments_student_id", "payments", ["student_id"])
    op.create_index("ix_payments_concept_id", "payments", ["concept_id"])
    op.create_index("ix_payments_debt_id", "payments", ["debt_id"])
    op.create_index("ix_payments_payment_date", "payments", ["payment_date"])


def downgrade() -> None:
    op.drop_table("payments")
    op.drop_table("debts")
    op.drop_table("payment_concepts")
    op.drop_table("students")
    op.drop_table("groups")
