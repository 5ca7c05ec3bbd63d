from __future__ import annotations

# Lookup tables for policy-rule imports. Keys are compared lowercased.

CATEGORY_MAP: dict[str, str] = {
    "טיסות": "flights",
    "טיסה": "flights",
    "flights": "flights",
    "flight": "flights",
    "לינה": "accommodation",
    "accommodation": "accommodation",
    "מלון": "accommodation",
    "hotel": "accommodation",
    "אוכל": "food",
    "ארוחות": "food",
    "food": "food",
    "meals": "food",
    "תחבורה": "transportation",
    "transportation": "transportation",
    "transport": "transportation",
    "אחר": "miscellaneous",
    "miscellaneous": "miscellaneous",
    "שונות": "miscellaneous",
    "other": "miscellaneous",
}

DESTINATION_MAP: dict[str, str] = {
    "כל היעדים": "all",
    "all": "all",
    "הכל": "all",
    "מקומי": "domestic",
    "domestic": "domestic",
    "ארץ": "domestic",
    "בינלאומי": "international",
    "international": "international",
    'חו"ל': "international",
    "חול": "international",
}

PER_TYPE_MAP: dict[str, str] = {
    "לנסיעה": "per_trip",
    "per_trip": "per_trip",
    "per trip": "per_trip",
    "נסיעה": "per_trip",
    "ליום": "per_day",
    "per_day": "per_day",
    "per day": "per_day",
    "יום": "per_day",
    "לפריט": "per_item",
    "per_item": "per_item",
    "per item": "per_item",
    "פריט": "per_item",
}

CURRENCY_MAP: dict[str, str] = {
    "שקל": "ILS",
    'ש"ח': "ILS",
    "ils": "ILS",
    "₪": "ILS",
    "nis": "ILS",
    "דולר": "USD",
    "usd": "USD",
    "$": "USD",
    "אירו": "EUR",
    "יורו": "EUR",
    "eur": "EUR",
    "€": "EUR",
    "gbp": "GBP",
    "£": "GBP",
}

# Ordered synonyms per field; a header matches when it contains the synonym.
HEADER_SYNONYMS: dict[str, tuple[str, ...]] = {
    "category": ("קטגוריה", "category", "סוג"),
    "grade": ("דרגה", "grade", "רמה"),
    "max_amount": ("תקרה", "סכום", "amount", "max", "מקסימום"),
    "currency": ("מטבע", "currency"),
    "destination_type": ("יעד", "destination", "סוג יעד"),
    "per_type": ("לכל", "per", "תדירות"),
    "notes": ("הערות", "notes", "תיאור"),
}

GRADE_MARKERS: tuple[str, ...] = ("דרגה", "grade", "רמה")

VALID_CATEGORIES: frozenset[str] = frozenset(
    {"flights", "accommodation", "food", "transportation", "miscellaneous"}
)
VALID_DESTINATIONS: frozenset[str] = frozenset({"all", "domestic", "international"})
VALID_PER_TYPES: frozenset[str] = frozenset({"per_trip", "per_day", "per_item"})

DEFAULT_CURRENCY = "ILS"
DEFAULT_DESTINATION = "all"
DEFAULT_PER_TYPE = "per_trip"

CATEGORY_LABELS: dict[str, str] = {
    "flights": "טיסות",
    "accommodation": "לינה",
    "food": "אוכל",
    "transportation": "תחבורה",
    "miscellaneous": "שונות",
}

ERROR_INVALID_CATEGORY = "קטגוריה לא תקינה"
ERROR_INVALID_DESTINATION = "סוג יעד לא תקין"
ERROR_INVALID_PER_TYPE = "סוג תקרה לא תקין"
ERROR_EMPTY_FILE = "הקובץ ריק או חסרות שורות נתונים"
ERROR_NO_ROWS = "לא נמצאו נתונים תקינים בקובץ"
ERROR_UNSUPPORTED_FILE = "סוג קובץ לא נתמך. יש להעלות Excel (.xlsx, .xls), CSV, PDF או Word (.docx)"
ERROR_LEGACY_WORD = "קבצי .doc ישנים אינם נתמכים, יש לשמור את הקובץ כ-.docx"
ERROR_EXTRACTION_FAILED = "לא ניתן היה לחלץ חוקים מהמסמך"

TEMPLATE_SHEET_NAME = "חוקי מדיניות"
TEMPLATE_HEADERS: tuple[str, ...] = ("קטגוריה", "דרגה", "תקרה", "מטבע", "יעד", "לכל", "הערות")
TEMPLATE_EXAMPLE_ROWS: tuple[tuple[str, ...], ...] = (
    ("טיסות", "עובד", "5000", "ILS", "כל היעדים", "לנסיעה", "הערה לדוגמה"),
    ("לינה", "מנהל", "800", "USD", "בינלאומי", "ליום", ""),
    ("אוכל", "", "150", "ILS", "מקומי", "ליום", "כולל משקאות"),
)

RESTRICTION_DEFAULT_ACTION = "block"
CUSTOM_RULE_DEFAULT_ACTION = "warn"
