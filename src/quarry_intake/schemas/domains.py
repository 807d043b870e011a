from __future__ import annotations

from collections.abc import Mapping

from ..models.row_schema import NUMBER, DynamicBlock, Endpoints, FieldSpec, RowSchema

"""Row schema declarations for the seven monthly data-entry domains.

Sheet positions follow the monthly input template: one workbook, one sheet
per domain, data starting on row 2 below a header row. Changing the
template layout shifts columns silently, so layouts can be overridden per
domain in config/intake.yml.
"""

__all__ = [
    "DOMAINS",
    "UnknownDomainError",
    "get_schema",
    "resolve_schemas",
]


class UnknownDomainError(Exception):
    """Raised when a domain name is not registered."""


SALES = RowSchema(
    domain="sales",
    label="sales",
    sheet_index=0,
    fields=(
        FieldSpec("productName", "A"),
        FieldSpec("quarryName", "B"),
        FieldSpec("salesInTons", "C", NUMBER),
        FieldSpec("salesInValue", "D", NUMBER),
        FieldSpec("productionStatus", "E"),
        FieldSpec("billingStatus", "F"),
        FieldSpec("paymentType", "G"),
        FieldSpec("gstValue", "H", NUMBER),
    ),
    identity_field="productName",
    non_negative_fields=("salesInTons", "salesInValue", "gstValue"),
    endpoints=Endpoints(
        exists="/input/check-sales-exists",
        listing="/input/sales",
        submit="/input/import-sales",
    ),
    committed_id_key="salesId",
)

LEDGER = RowSchema(
    domain="ledger",
    label="ledger",
    sheet_index=1,
    fields=(
        FieldSpec("listOfLedgers", "A", submit_as="ledgerName"),
        FieldSpec("amount", "B", NUMBER),
    ),
    identity_field="listOfLedgers",
    non_negative_fields=("amount",),
    endpoints=Endpoints(
        exists="/input/check-ledger-exists",
        listing="/input/ledger-entries",
        submit="/input/import-ledger-entries",
    ),
)

OTHER_INCOME = RowSchema(
    domain="other-income",
    label="income",
    sheet_index=2,
    fields=(
        FieldSpec("incomeName", "A", submit_as="incomeType"),
        FieldSpec("amount", "B", NUMBER),
    ),
    identity_field="incomeName",
    non_negative_fields=("amount",),
    endpoints=Endpoints(
        exists="/input/check-income-exists",
        listing="/input/income",
        submit="/input/import-income",
    ),
)

OTHER_EXPENSE = RowSchema(
    domain="other-expense",
    label="expense",
    sheet_index=3,
    fields=(
        FieldSpec("expenseName", "A", submit_as="expenseType"),
        FieldSpec("amount", "B", NUMBER),
    ),
    identity_field="expenseName",
    non_negative_fields=("amount",),
    endpoints=Endpoints(
        exists="/input/check-expense-exists",
        listing="/input/expense",
        submit="/input/import-expense",
    ),
)

CLOSING_STOCK = RowSchema(
    domain="closing-stock",
    label="stock",
    sheet_index=4,
    fields=(
        FieldSpec("materialName", "A", submit_as="productName"),
        FieldSpec("quarry", "B", submit_as="quarryName"),
        FieldSpec("closingStock", "C", NUMBER, submit_as="closingStockInTons"),
    ),
    identity_field="materialName",
    non_negative_fields=("closingStock",),
    endpoints=Endpoints(
        exists="/input/check-closing-stock-exists",
        listing="/input/closing-stock",
        submit="/input/import-closing-stock",
    ),
)

VSI_HOURS = RowSchema(
    domain="vsi-hours",
    label="VSI hours",
    sheet_index=5,
    fields=(
        FieldSpec("quarry", "A", submit_as="quarryName"),
        FieldSpec("vsiHours", "B", NUMBER),
    ),
    identity_field="quarry",
    footnote_marker="*",
    non_negative_fields=("vsiHours",),
    endpoints=Endpoints(
        exists="/input/check-vsi-hours-exists",
        listing="/input/vsi-hours",
        submit="/input/import-vsi-hours",
    ),
)

# Material Swap rows carry signed quantities, so no non-negative fields here.
INWARD_CONSUMPTION_SLURRY = RowSchema(
    domain="inward-consumption-slurry",
    label="inward consumption slurry",
    sheet_index=6,
    fields=(
        FieldSpec("serialNo", "A", NUMBER),
        FieldSpec("particulars", "B"),
    ),
    identity_field="particulars",
    serial_field="serialNo",
    dynamic_block=DynamicBlock(start_column="C", name="quarryValues"),
    endpoints=Endpoints(
        exists="/input/check-inward-consumption-slurry-exists",
        listing="/input/inward-consumption-slurry",
        submit="/input/import-inward-consumption-slurry",
    ),
)

DOMAINS: Mapping[str, RowSchema] = {
    s.domain: s
    for s in (
        SALES,
        LEDGER,
        OTHER_INCOME,
        OTHER_EXPENSE,
        CLOSING_STOCK,
        VSI_HOURS,
        INWARD_CONSUMPTION_SLURRY,
    )
}


def get_schema(domain: str, layouts: Mapping[str, Mapping[str, int]] | None = None) -> RowSchema:
    """Look up a domain schema, applying a configured sheet layout override.

    Args:
        domain: Registered domain name (e.g. "sales")
        layouts: Optional ``{domain: {"sheet_index": .., "first_row": ..}}``

    Raises:
        UnknownDomainError: If the domain is not registered
    """
    try:
        schema = DOMAINS[domain]
    except KeyError:
        raise UnknownDomainError(f"unknown domain: {domain!r} (known: {', '.join(DOMAINS)})") from None
    override = (layouts or {}).get(domain)
    if override:
        schema = schema.with_layout(
            sheet_index=override.get("sheet_index"),
            first_row=override.get("first_row"),
        )
    return schema


def resolve_schemas(
    domains: list[str] | None = None, layouts: Mapping[str, Mapping[str, int]] | None = None
) -> list[RowSchema]:
    """Schemas for ``domains`` (all registered domains, in registry order, when None)."""
    names = list(DOMAINS) if not domains else domains
    return [get_schema(n, layouts) for n in names]
