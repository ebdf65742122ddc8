"""
Field validators.

Every validator is a pure function returning an ordered list of
human-readable error strings; an empty list means the input is valid.
Whitelists live here as module constants so adding a type or sort field
is a single edit.
"""
import math
import re

from spendify.utils.dates import parse_date

TRANSACTION_TYPES = ("income", "expense")

# sort token -> (column attribute name, descending)
SORT_FIELDS = {
    "date": ("date", False),
    "-date": ("date", True),
    "amount": ("amount", False),
    "-amount": ("amount", True),
    "category": ("category", False),
    "-category": ("category", True),
    "type": ("type", False),
    "-type": ("type", True),
    "createdAt": ("created_at", False),
    "-createdAt": ("created_at", True),
}

CATEGORY_PATTERN = re.compile(r"^[\w\s\-&',().]+$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
CARD_NUMBER_PATTERN = re.compile(r"^\d{16}$")
EXPIRY_PATTERN = re.compile(r"^(0[1-9]|1[0-2])/\d{2}$")
CVV_PATTERN = re.compile(r"^\d{3,4}$")
CARD_TYPES = ("visa", "mastercard", "amex", "discover", "other")

MIN_AMOUNT = 0.01
MAX_AMOUNT = 1_000_000
MAX_CATEGORY_LENGTH = 50
MAX_DESCRIPTION_LENGTH = 200
MAX_SEARCH_LENGTH = 100
MAX_NAME_LENGTH = 50
MAX_PAGE_LIMIT = 100
MIN_PASSWORD_LENGTH = 12

PASSWORD_RULES = (
    (lambda p: len(p) >= MIN_PASSWORD_LENGTH, "Password must be at least 12 characters long"),
    (lambda p: re.search(r"[A-Z]", p), "Password must contain at least one uppercase letter (A-Z)"),
    (lambda p: re.search(r"[a-z]", p), "Password must contain at least one lowercase letter (a-z)"),
    (lambda p: re.search(r"[0-9]", p), "Password must contain at least one number (0-9)"),
    (lambda p: re.search(r"[^A-Za-z0-9]", p), "Password must contain at least one special character (e.g. !@#$%^&*)"),
)


def _format_bound(value):
    return f"{value:g}" if isinstance(value, float) else str(value)


def parse_amount(value):
    """Float value of a scalar amount, or None when it is not a finite number."""
    if value is None or isinstance(value, (bool, dict, list, tuple)):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def validate_amount(value, min_value=MIN_AMOUNT, max_value=MAX_AMOUNT):
    """Return an error string or None."""
    number = parse_amount(value)
    if number is None:
        return "Amount must be a valid number"
    if number < min_value:
        return f"Amount must be at least {_format_bound(min_value)}"
    if number > max_value:
        return f"Amount must not exceed {_format_bound(max_value)}"
    return None


def _parse_int(value):
    if isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def validate_description(description, errors):
    if description is None:
        return
    if not isinstance(description, str):
        errors.append("Description must be a string")
    elif len(description) > MAX_DESCRIPTION_LENGTH:
        errors.append("Description must be 200 characters or fewer")


def validate_category(category, errors):
    if not isinstance(category, str) or not category.strip():
        errors.append("Category is required")
    elif len(category.strip()) > MAX_CATEGORY_LENGTH:
        errors.append("Category must be 50 characters or fewer")
    elif not CATEGORY_PATTERN.match(category.strip()):
        errors.append("Category contains invalid characters")


def validate_transaction_body(data, partial=False):
    """
    Validate a transaction payload.

    With ``partial`` only the fields present are checked, which is what an
    edit needs.
    """
    errors = []

    if not partial or "amount" in data:
        error = validate_amount(data.get("amount"))
        if error:
            errors.append(error)

    if not partial or "type" in data:
        if data.get("type") not in TRANSACTION_TYPES:
            errors.append(f"Type must be one of: {', '.join(TRANSACTION_TYPES)}")

    if not partial or "category" in data:
        validate_category(data.get("category"), errors)

    validate_description(data.get("description"), errors)

    if data.get("date") is not None:
        try:
            parse_date(data["date"])
        except ValueError:
            errors.append("Date is not valid")

    return errors


def validate_pagination(args, errors=None):
    errors = [] if errors is None else errors

    page = args.get("page")
    if page is not None:
        p = _parse_int(page)
        if p is None or p < 1:
            errors.append("Page must be a positive integer")

    limit = args.get("limit")
    if limit is not None:
        l = _parse_int(limit)
        if l is None or l < 1 or l > MAX_PAGE_LIMIT:
            errors.append("Limit must be an integer between 1 and 100")

    return errors


def validate_transaction_query(args):
    errors = []

    kind = args.get("type")
    if kind and kind not in TRANSACTION_TYPES:
        errors.append(f"Type filter must be one of: {', '.join(TRANSACTION_TYPES)}")

    category = args.get("category")
    if category and len(category) > MAX_CATEGORY_LENGTH:
        errors.append("Category filter must be a string up to 50 characters")

    month = args.get("month")
    if month is not None:
        m = _parse_int(month)
        if m is None or m < 1 or m > 12:
            errors.append("Month must be an integer between 1 and 12")

    year = args.get("year")
    if year is not None:
        y = _parse_int(year)
        if y is None or y < 2000 or y > 2100:
            errors.append("Year must be an integer between 2000 and 2100")

    search = args.get("search")
    if search and len(search) > MAX_SEARCH_LENGTH:
        errors.append("Search term must be 100 characters or fewer")

    validate_pagination(args, errors)

    sort = args.get("sort")
    if sort and sort not in SORT_FIELDS:
        errors.append(f"Sort must be one of: {', '.join(SORT_FIELDS)}")

    return errors


def is_valid_email(value):
    return isinstance(value, str) and bool(EMAIL_PATTERN.match(value.strip()))


def validate_transfer_body(data):
    errors = []

    recipient = data.get("recipientEmail")
    if not isinstance(recipient, str) or not recipient.strip():
        errors.append("Recipient email is required")
    elif not is_valid_email(recipient):
        errors.append("Recipient email is not a valid email address")

    error = validate_amount(data.get("amount"))
    if error:
        errors.append(error)

    validate_description(data.get("description"), errors)
    return errors


def validate_search_query(args):
    errors = []
    email = args.get("email")
    if not email or not email.strip():
        errors.append("Email search term is required")
    elif len(email.strip()) > MAX_SEARCH_LENGTH:
        errors.append("Email search term must be 100 characters or fewer")
    return errors


def escape_like(term):
    """Escape every pattern-match metacharacter so the term matches literally.

    Use together with ``escape="\\\\"`` on ``like``/``ilike``.
    """
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def validate_password_strength(password):
    if not isinstance(password, str):
        return [PASSWORD_RULES[0][1]]
    return [message for check, message in PASSWORD_RULES if not check(password)]


def validate_registration(data):
    errors = []
    name, email, password = data.get("name"), data.get("email"), data.get("password")
    if not all(isinstance(v, str) and v.strip() for v in (name, email, password)):
        return ["Please provide name, email, and password"]
    if len(name.strip()) > MAX_NAME_LENGTH:
        errors.append("Name cannot be more than 50 characters")
    if not is_valid_email(email):
        errors.append("Please provide a valid email")
    return errors


def normalize_card_number(value):
    return re.sub(r"\s", "", value) if isinstance(value, str) else ""


def _validate_holder_and_expiry(data, errors, partial):
    if not partial or "cardHolderName" in data:
        holder = data.get("cardHolderName")
        if not isinstance(holder, str) or not holder.strip():
            errors.append("Please provide card holder name")
        elif len(holder.strip()) > MAX_NAME_LENGTH:
            errors.append("Card holder name cannot be more than 50 characters")

    if not partial or "expiry" in data:
        expiry = data.get("expiry")
        if not isinstance(expiry, str) or not EXPIRY_PATTERN.match(expiry):
            errors.append("Expiry must be in MM/YY format")


def validate_card_body(data):
    errors = []

    if not CARD_NUMBER_PATTERN.match(normalize_card_number(data.get("cardNumber"))):
        errors.append("Please provide a valid 16-digit card number")

    _validate_holder_and_expiry(data, errors, partial=False)

    cvv = data.get("cvv")
    if not isinstance(cvv, str) or not CVV_PATTERN.match(cvv):
        errors.append("CVV must be 3 or 4 digits")

    if data.get("balance") is not None:
        error = validate_amount(data["balance"], min_value=0)
        if error:
            errors.append(error.replace("Amount", "Balance"))

    card_type = data.get("cardType")
    if card_type is not None and card_type not in CARD_TYPES:
        errors.append(f"Card type must be one of: {', '.join(CARD_TYPES)}")

    return errors


def validate_card_update(data):
    errors = []
    unknown = sorted(set(data) - {"cardHolderName", "expiry"})
    if unknown:
        errors.append(f"Fields cannot be updated: {', '.join(unknown)}")
    _validate_holder_and_expiry(data, errors, partial=True)
    return errors


def validate_card_transfer(data):
    errors = []
    from_id, to_id = data.get("fromCardId"), data.get("toCardId")
    if not isinstance(from_id, str) or not isinstance(to_id, str) or not from_id or not to_id:
        errors.append("Please provide fromCardId, toCardId, and amount")
    elif from_id == to_id:
        errors.append("Source and destination cards must be different")

    error = validate_amount(data.get("amount"))
    if error:
        errors.append(error)
    return errors
