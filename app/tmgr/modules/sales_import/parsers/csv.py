from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field

from app.tmgr.constants import INVALID_CUSTOMER_NUMBER, INVALID_SALES_REP, KNOWN_SALES_REPS
from app.tmgr.modules.sales_import.utils import (
    extract_customer_key,
    is_total_row,
    normalize_header,
    normalize_text,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParseError:
    row: int
    message: str
    code: str
    field: str | None = None

    def to_dict(self) -> dict:
        d = {"row": self.row, "message": self.message, "code": self.code}
        if self.field:
            d["field"] = self.field
        return d


@dataclass
class SalesRow:
    """One data row, addressed by normalized header name."""

    row_number: int
    values: dict[str, str] = field(default_factory=dict)

    def get(self, *names: str) -> str:
        for n in names:
            v = self.values.get(n)
            if v:
                return v
        return ""

    @property
    def account_name(self) -> str:
        return self.get("account_name", "accountname")

    @property
    def sales_rep(self) -> str:
        return self.get("pac")

    @property
    def brand(self) -> str:
        return self.get("brand")


def decode_csv_bytes(file_bytes: bytes) -> str:
    return file_bytes.decode("utf-8-sig", errors="replace")


def read_sales_csv(text: str) -> tuple[list[str], list[SalesRow]]:
    """
    Tokenize a sales export.

    Returns (normalized headers, data rows). Every cell is trimmed and fully
    blank lines are skipped. Row numbers are 1-based records with the header as
    row 1. Raises csv.Error when the text is not well-formed CSV.
    """
    if text.startswith("\ufeff"):
        text = text[1:]
    reader = csv.reader(io.StringIO(text), strict=True)

    headers: list[str] = []
    rows: list[SalesRow] = []
    for idx, raw in enumerate(reader, start=1):
        if idx == 1:
            headers = [normalize_header(h) for h in raw]
            continue
        if not raw or all(not (v or "").strip() for v in raw):
            continue
        values: dict[str, str] = {}
        for name, value in zip(headers, raw):
            if name:
                values.setdefault(name, value.strip())
        rows.append(SalesRow(row_number=idx, values=values))
    return headers, rows


def group_rows_by_customer(rows: list[SalesRow]) -> tuple[dict[str, list[SalesRow]], list[ParseError]]:
    """
    Partition rows by customer number (first-seen order).

    Total/summary rows and rows without an account name or rep are skipped.
    Unknown reps are reported but kept; rows without a "(CNxxxxxx)" key are
    reported and dropped.
    """
    groups: dict[str, list[SalesRow]] = {}
    errors: list[ParseError] = []

    for row in rows:
        account_name = row.account_name
        if is_total_row(account_name) or not row.sales_rep or not account_name:
            continue

        if row.sales_rep not in KNOWN_SALES_REPS:
            errors.append(
                ParseError(
                    row=row.row_number,
                    field="pac",
                    message=f"Unknown sales representative: {row.sales_rep}",
                    code=INVALID_SALES_REP,
                )
            )

        customer_key = extract_customer_key(account_name)
        if not customer_key:
            errors.append(
                ParseError(
                    row=row.row_number,
                    field="account_name",
                    message=f"Could not extract customer number from: {normalize_text(account_name)}",
                    code=INVALID_CUSTOMER_NUMBER,
                )
            )
            continue

        groups.setdefault(customer_key, []).append(row)

    if errors:
        logger.debug("Row grouping produced %s diagnostics for %s rows", len(errors), len(rows))
    return groups, errors
