"""
SALES EXPORT INGESTION
======================

Turns one spreadsheet export (CSV text) into the customer dataset:

    raw text -> tokenized rows -> per-customer groups -> Customer records

Source rows are one (customer, brand) pair each, with one column per quarter.
Rows sharing a customer number "(CNxxxxxx)" are merged into one Customer whose
per-brand quarterly amounts are summed.

Diagnostics are collected, not raised:
- MISSING_COLUMNS / PARSE_ERROR are fatal: empty dataset plus that single error.
- INVALID_SALES_REP, INVALID_CUSTOMER_NUMBER and CUSTOMER_PROCESSING_ERROR are
  warnings; processing continues. A failing customer group never affects others.
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from typing import Any

from app.tmgr.constants import (
    CUSTOMER_PROCESSING_ERROR,
    FATAL_ERROR_CODES,
    MISSING_COLUMNS,
    PARSE_ERROR,
    TERRITORIES,
)
from app.tmgr.modules.customer_data.records import Customer, CustomerNotes, QuarterlySales, SalesData
from app.tmgr.modules.sales_import.parsers.csv import (
    ParseError,
    SalesRow,
    decode_csv_bytes,
    group_rows_by_customer,
    read_sales_csv,
)
from app.tmgr.modules.sales_import.utils import (
    clean_account_name,
    get_quarter_columns,
    missing_required_columns,
    normalize_brand,
    parse_amount,
)

logger = logging.getLogger(__name__)

CONTACT_TEMPLATE = "{next_steps}. Contact: {contact_name}"

# Colorado Springs sub-area markers (street names, zip codes)
_COLORADO_SPRINGS_NORTH = ("academy", "austin bluffs", "research", "80918", "80920")
_COLORADO_SPRINGS_CENTRAL = ("nevada", "80907", "downtown", "tejon")


@dataclass
class ParseMeta:
    total_rows: int = 0
    valid_rows: int = 0
    quarter_columns: list[dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalRows": self.total_rows,
            "validRows": self.valid_rows,
            "quarterColumns": [dict(q) for q in self.quarter_columns],
        }


@dataclass
class ParseResult:
    data: list[Customer]
    errors: list[ParseError]
    meta: ParseMeta

    @property
    def is_fatal(self) -> bool:
        return any(e.code in FATAL_ERROR_CODES for e in self.errors)

    def to_dict(self) -> dict[str, Any]:
        return {
            "data": [c.to_dict() for c in self.data],
            "errors": [e.to_dict() for e in self.errors],
            "meta": self.meta.to_dict(),
        }


def parse_sales_csv(source: str | bytes) -> ParseResult:
    """
    Parse a sales export into customers.

    Never raises for bad input; every problem is reported in ParseResult.errors.
    Parsing the same text twice yields equal results.
    """
    text = decode_csv_bytes(source) if isinstance(source, bytes) else source
    try:
        headers, rows = read_sales_csv(text)
    except csv.Error as e:
        logger.warning("Sales CSV tokenizer failure: %s", e)
        return ParseResult(data=[], errors=[ParseError(row=0, message=str(e), code=PARSE_ERROR)], meta=ParseMeta())

    meta = ParseMeta(quarter_columns=get_quarter_columns(headers))

    missing = missing_required_columns(headers)
    if missing:
        return ParseResult(
            data=[],
            errors=[ParseError(row=0, message=f"Missing required columns: {', '.join(missing)}", code=MISSING_COLUMNS)],
            meta=meta,
        )

    groups, errors = group_rows_by_customer(rows)

    customers: list[Customer] = []
    for customer_key, group in groups.items():
        try:
            customers.append(build_customer(customer_key, group, meta.quarter_columns))
        except Exception as e:
            logger.exception("Failed to aggregate customer %s", customer_key)
            errors.append(
                ParseError(
                    row=group[0].row_number,
                    message=f"Failed to process customer: {e}",
                    code=CUSTOMER_PROCESSING_ERROR,
                )
            )

    meta.total_rows = len(rows)
    meta.valid_rows = len(customers)
    if errors:
        logger.warning("Sales CSV parsed with %s warnings (%s customers)", len(errors), len(customers))
    return ParseResult(data=customers, errors=errors, meta=meta)


def build_customer(customer_key: str, rows: list[SalesRow], quarter_columns: list[dict[str, str]]) -> Customer:
    """Merge one customer's rows (one per brand, possibly repeated) into a Customer."""
    if not rows:
        raise ValueError(f"No rows for customer {customer_key}")

    first = rows[0]
    account_name = clean_account_name(first.account_name)

    sales_data = SalesData()
    for row in rows:
        brand = normalize_brand(row.brand)
        if not brand:
            continue
        target = sales_data.for_brand(brand)
        for period, amount in extract_quarterly_sales(row, quarter_columns).sales_by_period.items():
            target.add(period, amount)

    address = first.get("address")
    customer = Customer(
        customer_number=customer_key,
        account_name=account_name,
        business_address=address or placeholder_business_address(account_name),
        sales_rep=first.sales_rep,
        territory=infer_territory(account_name, address),
        notes=extract_notes(rows),
        sales_data=sales_data,
        is_q3_promo_target=determine_q3_promo_target(rows),
    )
    customer.recompute_total()
    return customer


def extract_quarterly_sales(row: SalesRow, quarter_columns: list[dict[str, str]]) -> QuarterlySales:
    sales = QuarterlySales()
    for q in quarter_columns:
        amount = parse_amount(row.values.get(q["original"]))
        if amount > 0:
            sales.sales_by_period[q["standardized"]] = amount
    return sales


def compose_contact(next_steps: str, contact_name: str) -> str:
    if next_steps and contact_name:
        return CONTACT_TEMPLATE.format(next_steps=next_steps, contact_name=contact_name)
    return next_steps or contact_name


def extract_notes(rows: list[SalesRow]) -> CustomerNotes:
    """Last non-empty value per note field wins across the group's rows."""
    notes = CustomerNotes()
    for row in rows:
        general = row.get("notes", "notes1")
        contact = compose_contact(row.get("next_steps"), row.get("contact")) or row.get("notes2")
        product = row.get("skinpen_notes", "notes3")
        if general:
            notes.general = general
        if contact:
            notes.contact = contact
        if product:
            notes.product = product
    return notes


def placeholder_business_address(account_name: str) -> str:
    # No geocoding: the export carries no address for this account.
    return f"{account_name}, Colorado"


def _char_code_sum(s: str) -> int:
    # UTF-16 code units, so names outside the BMP hash the same as in existing snapshots
    b = s.encode("utf-16-le")
    return sum(int.from_bytes(b[i : i + 2], "little") for i in range(0, len(b), 2))


def infer_territory(account_name: str, address: str | None) -> str:
    """
    Map an address onto one of the six sales territories.

    Without an address the territory is a stable hash of the account name
    (sum of character codes mod 6). That fallback is a placeholder, not a
    geographic assignment.
    """
    if not address:
        return TERRITORIES[_char_code_sum(account_name) % len(TERRITORIES)]

    a = address.lower()
    if "highlands ranch" in a:
        return "highlands-ranch"
    if "littleton" in a:
        return "littleton"
    if "castle rock" in a or "castle pines" in a:
        return "castle-rock"
    if "colorado springs" in a:
        if any(token in a for token in _COLORADO_SPRINGS_NORTH):
            return "colorado-springs-north"
        if any(token in a for token in _COLORADO_SPRINGS_CENTRAL):
            return "colorado-springs-central"
        return "colorado-springs-south"
    return "colorado-springs-central"


def determine_q3_promo_target(rows: list[SalesRow]) -> bool:
    # TODO: promo eligibility rule is still undefined by sales ops; every customer is False until it is.
    return False
