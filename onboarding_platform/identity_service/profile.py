"""
Profile payload normalization.

Older clients sometimes send list fields such as ``experience`` or ``skills``
as plain strings ("none", "python, sql"). Every code path that builds or
merges a profile payload goes through these helpers so the stored payload
always carries real lists.
"""
from typing import Any, Dict, Optional, Tuple

LIST_FIELDS = ("skills", "experience")


def normalize_profile_payload(raw: Any) -> Dict[str, Any]:
    """
    Return a sanitized copy of a profile payload.

    Args:
        raw: Client supplied payload, possibly None or malformed

    Returns:
        A new dict where every list field is a list (missing or
        non-list values become ``[]``). Non-dict input yields ``{}``.
    """
    if not isinstance(raw, dict):
        return {}

    sanitized = dict(raw)
    for field in LIST_FIELDS:
        if not isinstance(sanitized.get(field), list):
            sanitized[field] = []
    return sanitized


def profile_for_account_type(
    account_type: str,
    personal_info: Optional[dict],
    company_info: Optional[dict],
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Pick the payload half that belongs to the account type and zero the other."""
    if account_type == "job_seeker":
        return normalize_profile_payload(personal_info), {}
    if account_type == "organization":
        return {}, merge_company_payload(None, company_info)
    raise ValueError(f"Unknown account type '{account_type}'")


def merge_profile_payload(existing: Optional[dict], patch: Optional[dict]) -> Dict[str, Any]:
    """Shallow-merge a patch over the stored payload and normalize the result."""
    merged = dict(existing) if isinstance(existing, dict) else {}
    if isinstance(patch, dict):
        merged.update(patch)
    return normalize_profile_payload(merged)


def merge_company_payload(existing: Optional[dict], patch: Optional[dict]) -> Dict[str, Any]:
    """Shallow-merge a patch over stored company info; company fields are not list-coerced."""
    merged = dict(existing) if isinstance(existing, dict) else {}
    if isinstance(patch, dict):
        merged.update(patch)
    return merged
