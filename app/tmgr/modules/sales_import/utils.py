from __future__ import annotations

import re

# Normalized header -> canonical field name
HEADER_ALIASES = {
    "i": "account_name",
    "account_name_cn": "account_name",
    "account_name": "account_name",
}

REQUIRED_COLUMNS = ("pac", "brand")

MIN_QUARTER_YEAR = 2020
MAX_QUARTER_YEAR = 2030

# Tried in order; first match wins. The separators also admit "_" so that
# normalized headers ("q2_2024", "2024_q2") classify the same as raw ones.
_QUARTER_PATTERNS = (
    ("quarter_year2", re.compile(r"^(\d)q(\d{2})$", re.IGNORECASE)),  # 2Q24
    ("quarter_year4", re.compile(r"^q(\d)[\s_]*(\d{4})$", re.IGNORECASE)),  # Q2 2024
    ("year_dash_quarter", re.compile(r"^(\d{4})[-_]q(\d)$", re.IGNORECASE)),  # 2024-Q2
    ("year_quarter", re.compile(r"^(\d{4})q(\d)$", re.IGNORECASE)),  # 2024Q2
)

PERIOD_KEY_RE = re.compile(r"^(\d{4})-Q([1-4])$")
CUSTOMER_KEY_RE = re.compile(r"\(CN(\d{6})\)")
ACCOUNT_SUFFIX_RE = re.compile(r"\s*\(CN\d{6}\)\s*$")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")
_MONEY_STRIP_RE = re.compile(r"[^0-9.\-]")
_LEADING_NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)")

_BRANDS_BY_TOKEN = {
    "DAXXIFY": "DAXXIFY",
    "RHA": "RHA",
    "SKINPEN": "SkinPen",
}


def normalize_text(s: str | None) -> str:
    return (s or "").strip()


def normalize_header(header: str | None) -> str:
    """
    Canonical column name: lowercase, runs of non-alphanumerics collapsed to "_".

        >>> normalize_header("Account Name (CN)")
        'account_name'
        >>> normalize_header("CONTACT ")
        'contact'
    """
    s = _NON_ALNUM_RE.sub("_", normalize_text(header).lower()).strip("_")
    return HEADER_ALIASES.get(s, s)


def missing_required_columns(headers: list[str]) -> list[str]:
    normalized = {normalize_header(h) for h in headers}
    return [col for col in REQUIRED_COLUMNS if col not in normalized]


def create_period_key(year: int, quarter: int) -> str:
    if quarter < 1 or quarter > 4:
        raise ValueError(f"Invalid quarter: {quarter}. Must be 1-4.")
    return f"{year}-Q{quarter}"


def parse_period_key(key: str) -> tuple[int, int] | None:
    m = PERIOD_KEY_RE.match(key or "")
    if not m:
        return None
    return int(m.group(1)), int(m.group(2))


def parse_quarter_column(column_name: str) -> str | None:
    """
    Classify a header as a quarterly sales column.

    Returns the canonical period key ("YYYY-Qn") or None when the header is not
    a quarter, or names a quarter outside 1-4 / a year outside 2020-2030.
    """
    trimmed = normalize_text(column_name)
    for kind, pattern in _QUARTER_PATTERNS:
        m = pattern.match(trimmed)
        if not m:
            continue
        first, second = int(m.group(1)), int(m.group(2))
        if kind == "quarter_year2":
            quarter, year = first, 2000 + second
        elif kind == "quarter_year4":
            quarter, year = first, second
        else:
            year, quarter = first, second
        if 1 <= quarter <= 4 and MIN_QUARTER_YEAR <= year <= MAX_QUARTER_YEAR:
            return create_period_key(year, quarter)
    return None


def is_quarter_column(column_name: str) -> bool:
    return parse_quarter_column(column_name) is not None


def get_quarter_columns(headers: list[str]) -> list[dict[str, str]]:
    """Quarter columns in header order, as {"original": ..., "standardized": ...}."""
    out: list[dict[str, str]] = []
    for header in headers:
        period = parse_quarter_column(header)
        if period is not None:
            out.append({"original": header, "standardized": period})
    return out


def parse_amount(value: str | None) -> float:
    """
    Money cell -> number. Keeps digits, "." and "-" only; anything unparseable is 0.

        >>> parse_amount("$1,632")
        1632.0
        >>> parse_amount("n/a")
        0.0
    """
    cleaned = _MONEY_STRIP_RE.sub("", value or "")
    # leading numeric prefix, so "1.2.3" reads as 1.2 rather than failing
    m = _LEADING_NUMBER_RE.match(cleaned)
    if not m:
        return 0.0
    try:
        return float(m.group(0))
    except ValueError:
        return 0.0


def normalize_brand(brand: str | None) -> str | None:
    return _BRANDS_BY_TOKEN.get(normalize_text(brand).upper())


def extract_customer_key(account_name: str | None) -> str | None:
    m = CUSTOMER_KEY_RE.search(account_name or "")
    return f"CN{m.group(1)}" if m else None


def clean_account_name(account_name: str | None) -> str:
    return ACCOUNT_SUFFIX_RE.sub("", account_name or "").strip()


def is_total_row(account_name: str | None) -> bool:
    return "total" in (account_name or "").lower()
