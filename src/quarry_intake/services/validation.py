from __future__ import annotations

import math
from collections.abc import Callable, Mapping, Sequence

from ..models.row_schema import RowSchema
from ..models.staged_row import StagedRow
from ..models.validation_issue import ValidationIssue

"""Validation engine for staged rows.

Validation always runs over the whole staged set, never only the selection.
Each domain registers a list of rules; a rule takes the schema and the
staged rows and returns issues in row-encounter order. Any issue blocks the
commit.
"""

__all__ = [
    "MATERIAL_SWAP",
    "RULES",
    "Rule",
    "check_material_swap_balance",
    "check_sales_rules",
    "check_structure",
    "register_rule",
    "validate",
]

Rule = Callable[[RowSchema, Sequence[StagedRow]], list[ValidationIssue]]

MATERIAL_SWAP = "material swap"
_SWAP_TOLERANCE = 1e-9


def check_structure(schema: RowSchema, rows: Sequence[StagedRow]) -> list[ValidationIssue]:
    """Baseline for every domain: identity present, declared quantities >= 0."""
    issues: list[ValidationIssue] = []
    for row in rows:
        if not row.get(schema.identity_field):
            issues.append(
                ValidationIssue(schema.domain, f"Row {row.id}: {schema.identity_field} is required", frozenset({row.id}))
            )
        for name in schema.non_negative_fields:
            value = row.get(name)
            if not isinstance(value, (int, float)) or value < 0:
                issues.append(
                    ValidationIssue(
                        schema.domain,
                        f"Row {row.id}: {name} must be a non-negative number (got {value!r})",
                        frozenset({row.id}),
                    )
                )
    return issues


def _composite_key(row: StagedRow) -> tuple[str, str, str, str]:
    return (
        row.get("productName", ""),
        row.get("quarryName", ""),
        row.get("billingStatus", ""),
        row.get("paymentType", ""),
    )


def check_sales_rules(schema: RowSchema, rows: Sequence[StagedRow]) -> list[ValidationIssue]:
    """Sales billing rules.

    1. Unbilled + CASH is never allowed (one batch issue naming all such rows).
    2. Unbilled + GST rows must be unique on (product, quarry, billing, payment).
    3. Billed rows must be unique on the same key.

    For 2 and 3 the first occurrence of a key is accepted; every later
    occurrence raises its own issue carrying that row's id.
    """
    issues: list[ValidationIssue] = []

    unbilled_cash = [r.id for r in rows if r.get("billingStatus") == "Unbilled" and r.get("paymentType") == "CASH"]
    if unbilled_cash:
        issues.append(
            ValidationIssue(schema.domain, "Unbilled CASH entries are not allowed", frozenset(unbilled_cash))
        )

    seen_unbilled_gst: set[tuple[str, str, str, str]] = set()
    for row in rows:
        if row.get("billingStatus") != "Unbilled" or row.get("paymentType") != "GST":
            continue
        key = _composite_key(row)
        if key in seen_unbilled_gst:
            issues.append(
                ValidationIssue(
                    schema.domain,
                    f"Duplicate Unbilled GST entry found for Product: {row.get('productName')}, "
                    f"Quarry: {row.get('quarryName')}",
                    frozenset({row.id}),
                )
            )
        seen_unbilled_gst.add(key)

    seen_billed: set[tuple[str, str, str, str]] = set()
    for row in rows:
        if row.get("billingStatus") != "Billed":
            continue
        key = _composite_key(row)
        if key in seen_billed:
            issues.append(
                ValidationIssue(
                    schema.domain,
                    f"Duplicate Billed entry found for Product: {row.get('productName')}, "
                    f"Quarry: {row.get('quarryName')}, Payment Type: {row.get('paymentType')}",
                    frozenset({row.id}),
                )
            )
        seen_billed.add(key)

    return issues


def check_material_swap_balance(schema: RowSchema, rows: Sequence[StagedRow]) -> list[ValidationIssue]:
    """Material Swap rows must net to zero across every quarry column."""
    block = schema.dynamic_block
    if block is None:
        return []
    swaps = [r for r in rows if str(r.get(schema.identity_field, "")).strip().lower() == MATERIAL_SWAP]
    if not swaps:
        return []
    total = math.fsum(
        float(v) for r in swaps for v in (r.get(block.name) or {}).values() if isinstance(v, (int, float))
    )
    if math.isclose(total, 0.0, abs_tol=_SWAP_TOLERANCE):
        return []
    shown = int(total) if float(total).is_integer() else round(total, 6)
    return [
        ValidationIssue(
            schema.domain,
            f"Material Swap must total zero across all quarries (current total: {shown})",
            frozenset(r.id for r in swaps),
        )
    ]


RULES: dict[str, list[Rule]] = {
    "sales": [check_sales_rules],
    "inward-consumption-slurry": [check_material_swap_balance],
}


def register_rule(domain: str, rule: Rule) -> None:
    """Attach an extra business rule to a domain.

    Mutates the module-level ``RULES`` registry, so the rule applies to every
    coordinator in the process that was built without its own ``rules``.
    Pass ``rules=`` to ``validate`` or ``CommitCoordinator`` for a private set.
    """
    RULES.setdefault(domain, []).append(rule)


def validate(
    schema: RowSchema,
    rows: Sequence[StagedRow],
    rules: Mapping[str, Sequence[Rule]] | None = None,
) -> list[ValidationIssue]:
    """Run the structural baseline then the domain's rules over the full staged set.

    Args:
        schema: Domain schema
        rows: Every staged row (selection is ignored)
        rules: Rule registry (defaults to ``RULES``)

    Returns:
        Issues in report order; empty means the batch may proceed to the
        period lock check
    """
    registry = RULES if rules is None else rules
    issues = check_structure(schema, rows)
    for rule in registry.get(schema.domain, ()):
        issues.extend(rule(schema, rows))
    return issues
