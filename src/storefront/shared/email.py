"""Email address validation shared by checkout, gift cards and subscriptions."""

from storefront.exceptions import InvalidContactError

_FORBIDDEN = (";", ",", "(", ")", '"', ":", "<", ">", "[", "]", "\\")


def is_valid_email(email: str | None) -> bool:
    """Structural check: one @, sane local and domain parts, no forbidden characters."""
    if not email or len(email) > 254:
        return False

    if any(ch.isspace() for ch in email):
        return False

    if email.count("@") != 1:
        return False

    local_part, domain_part = email.split("@", 1)

    if not local_part or local_part.startswith(".") or local_part.endswith("."):
        return False

    if not domain_part or domain_part.startswith(".") or domain_part.endswith("."):
        return False

    if "." not in domain_part:
        return False

    for label in domain_part.split("."):
        if not label or label.startswith("-") or label.endswith("-"):
            return False

    if ".." in local_part:
        return False

    return not any(forbidden in email for forbidden in _FORBIDDEN)


def normalize_email(email: str | None, field: str = "billing_email") -> str:
    """Return the trimmed, lower-cased address or raise ``InvalidContactError``."""
    candidate = (email or "").strip().lower()
    if not is_valid_email(candidate):
        raise InvalidContactError(field=field)
    return candidate
