MIN_PHONE_DIGITS = 9


def _digits_only(value: str) -> str:
    return "".join(ch for ch in value if ch.isdigit())


def normalize_phone(phone: str) -> str:
    """Return the courier phone as stored in the couriers table (digits only).

    Couriers log in with the local 9-digit number (e.g. 901234567). Spaces,
    dashes and a leading + are stripped. Returns an empty string when fewer
    than 9 digits remain.
    """
    if phone is None:
        return ""
    raw = str(phone).strip()
    if not raw:
        return ""

    digits = _digits_only(raw)
    if len(digits) < MIN_PHONE_DIGITS:
        return ""
    return digits


def format_phone_display(phone: str) -> str:
    """Return a human friendly representation (90 123 45 67)."""
    digits = normalize_phone(phone)
    if not digits:
        return ""
    parts = [digits[:2], digits[2:5], digits[5:7], digits[7:]]
    return " ".join(p for p in parts if p)
