#!/usr/bin/env python3
"""
Fill the database with a small, realistic school ledger for demos.

Groups, students, fee concepts, a school year of monthly tuition debts and a
mix of payments: some already linked, some unassigned (to be picked up by
reconciliation), one overpayment left as credit.

Usage:
    python scripts/seed_demo_ledger.py --dry-run   # nothing is written
    python scripts/seed_demo_ledger.py --confirm   # write to the database

Requires: migrations applied (alembic upgrade head), database reachable.
"""

import asyncio
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy import func, select
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import settings
from src.core.database.session import async_session
from src.modules.payments.models import (
    ApplicationType,
    Debt,
    DebtStatus,
    Payment,
    PaymentConcept,
    PaymentMethod,
)
from src.modules.students.models import Group, Student

SCHOOL_YEAR = "2024-2025"

GROUPS = [
    # (name, level)
    ("1A Preescolar", "Preescolar"),
    ("3A Primaria", "Primaria"),
    ("3B Primaria", "Primaria"),
]

STUDENTS = [
    # (full_name, group name)
    ("Sofía Hernández López", "1A Preescolar"),
    ("Mateo García Ruiz", "1A Preescolar"),
    ("Valentina Martínez Cruz", "3A Primaria"),
    ("Santiago Rodríguez Pérez", "3A Primaria"),
    ("Regina Flores Sánchez", "3B Primaria"),
    ("Diego Torres Ramírez", "3B Primaria"),
]

CONCEPTS = [
    # (name, base_amount, applicable_level, application_type)
    ("Colegiatura Preescolar", Decimal("2500.00"), "Preescolar", ApplicationType.MONTHLY),
    ("Colegiatura Primaria", Decimal("3200.00"), "Primaria", ApplicationType.MONTHLY),
    ("Inscripción", Decimal("4500.00"), None, ApplicationType.ANNUAL),
    ("Uniforme", Decimal("1200.00"), None, ApplicationType.ONE_TIME),
]

# Tuition months billed on the 10th
TUITION_MONTHS = [(2024, 9), (2024, 10), (2024, 11), (2024, 12), (2025, 1), (2025, 2), (2025, 3), (2025, 4)]


async def seed_groups(session: AsyncSession) -> dict[str, int]:
    name_to_id: dict[str, int] = {}
    for name, level in GROUPS:
        result = await session.execute(select(Group).where(Group.name == name))
        group = result.scalar_one_or_none()
        if not group:
            group = Group(name=name, level=level, school_year=SCHOOL_YEAR)
            session.add(group)
            await session.flush()
        name_to_id[name] = group.id
    print(f"  Groups: {len(name_to_id)}")
    return name_to_id


async def seed_concepts(session: AsyncSession) -> dict[str, PaymentConcept]:
    by_name: dict[str, PaymentConcept] = {}
    for name, amount, level, application_type in CONCEPTS:
        result = await session.execute(select(PaymentConcept).where(PaymentConcept.name == name))
        concept = result.scalar_one_or_none()
        if not concept:
            concept = PaymentConcept(
                name=name,
                base_amount=amount,
                applicable_level=level,
                application_type=application_type.value,
            )
            session.add(concept)
            await session.flush()
        by_name[name] = concept
    print(f"  Payment concepts: {len(by_name)}")
    return by_name


async def seed_students(session: AsyncSession, group_ids: dict[str, int]) -> list[Student]:
    students = []
    for full_name, group_name in STUDENTS:
        result = await session.execute(select(Student).where(Student.full_name == full_name))
        student = result.scalar_one_or_none()
        if not student:
            level = next(level for name, level in GROUPS if name == group_name)
            student = Student(full_name=full_name, group_id=group_ids[group_name], level=level)
            session.add(student)
            await session.flush()
        students.append(student)
    print(f"  Students: {len(students)}")
    return students


async def seed_ledger(
    session: AsyncSession,
    students: list[Student],
    concepts: dict[str, PaymentConcept],
) -> None:
    """
    Debts and payments per student. Payment behaviour by position in STUDENTS:
    0, 2: pay every month on time, linked to the debt (paid);
    1, 4: pay some months, unassigned (reconciliation links them);
    3: pays nothing since January (top debtor);
    5: prepaid every month, plus an overpayment that stays as credit.
    """
    existing = await session.execute(select(func.count(Debt.id)))
    if existing.scalar():
        print("  Ledger already seeded, skipping debts and payments.")
        return

    enrollment = concepts["Inscripción"]
    debts_count = 0
    payments_count = 0
    for index, student in enumerate(students):
        tuition = concepts[f"Colegiatura {student.level}"]

        debt = Debt(
            student_id=student.id,
            concept_id=enrollment.id,
            amount_total=enrollment.base_amount,
            due_date=date(2024, 8, 20),
            status=DebtStatus.PAID.value,
        )
        session.add(debt)
        await session.flush()
        session.add(Payment(
            student_id=student.id,
            concept_id=enrollment.id,
            debt_id=debt.id,
            amount=enrollment.base_amount,
            payment_date=date(2024, 8, 15),
            method=PaymentMethod.TRANSFER.value,
            reference=f"INS-{student.id:05d}",
        ))
        debts_count += 1
        payments_count += 1

        for year, month in TUITION_MONTHS:
            due = date(year, month, 10)
            on_time = index in (0, 2)
            debt = Debt(
                student_id=student.id,
                concept_id=tuition.id,
                amount_total=tuition.base_amount,
                due_date=due,
                status=DebtStatus.PAID.value if on_time else DebtStatus.PENDING.value,
            )
            session.add(debt)
            await session.flush()
            debts_count += 1

            if on_time:
                session.add(Payment(
                    student_id=student.id,
                    concept_id=tuition.id,
                    debt_id=debt.id,
                    amount=tuition.base_amount,
                    payment_date=date(year, month, 5),
                    method=PaymentMethod.SPEI.value,
                ))
                payments_count += 1
            elif index in (1, 4) and month % 2 == 1:
                session.add(Payment(
                    student_id=student.id,
                    concept_id=tuition.id,
                    amount=tuition.base_amount,
                    payment_date=date(year, month, 12),
                    method=PaymentMethod.CASH.value,
                ))
                payments_count += 1
            elif index == 3 and year == 2024:
                session.add(Payment(
                    student_id=student.id,
                    concept_id=tuition.id,
                    amount=tuition.base_amount,
                    payment_date=date(year, month, 9),
                    method=PaymentMethod.CARD.value,
                ))
                payments_count += 1

        if index == 5:
            # One transfer per month up front, plus a little extra left as credit
            for year, month in TUITION_MONTHS:
                session.add(Payment(
                    student_id=student.id,
                    concept_id=tuition.id,
                    amount=tuition.base_amount,
                    payment_date=date(2024, 8, 30),
                    method=PaymentMethod.TRANSFER.value,
                    reference=f"PRE-{student.id:05d}-{year}{month:02d}",
                ))
            session.add(Payment(
                student_id=student.id,
                concept_id=tuition.id,
                amount=Decimal("350.00"),
                payment_date=date(2024, 9, 2),
                method=PaymentMethod.CASH.value,
                notes="Overpayment",
            ))
            payments_count += len(TUITION_MONTHS) + 1

    await session.flush()
    print(f"  Debts: {debts_count}, payments: {payments_count}")


async def run_seed(session: AsyncSession, dry_run: bool) -> None:
    group_ids = await seed_groups(session)
    concepts = await seed_concepts(session)
    students = await seed_students(session, group_ids)
    await seed_ledger(session, students, concepts)

    if dry_run:
        await session.rollback()
        print("\n[DRY-RUN] Rolled back, no data written.")
    else:
        await session.commit()
        print("\nSeed completed successfully.")


async def main() -> None:
    import argparse
    parser = argparse.ArgumentParser(description="Seed database with a demo school ledger")
    parser.add_argument("--dry-run", action="store_true", help="Do not commit")
    parser.add_argument("--confirm", action="store_true", help="Commit changes")
    args = parser.parse_args()
    if not args.dry_run and not args.confirm:
        print("Use --dry-run or --confirm")
        sys.exit(1)

    print("Database:", make_url(settings.database_url).render_as_string(hide_password=True))
    print("Mode:", "DRY-RUN" if args.dry_run else "CONFIRM")
    async with async_session() as session:
        await run_seed(session, dry_run=args.dry_run)
    print("Done.")


if __name__ == "__main__":
    asyncio.run(main())
