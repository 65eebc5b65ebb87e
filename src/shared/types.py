"""Typed identifiers, one per ledger entity."""

from typing import NewType

StudentId = NewType("StudentId", int)
GroupId = NewType("GroupId", int)
ConceptId = NewType("ConceptId", int)
DebtId = NewType("DebtId", int)
PaymentId = NewType("PaymentId", int)
