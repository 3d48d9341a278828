"""
UK postcode utilities.

UK Postcode Format:
- Outward code (district): 2-4 chars (e.g., SW1, W1A, EC1A)
- Inward code: 3 chars (e.g., 1AA)
- Area: the leading 1-2 letters of the outward code (e.g., SW, W, EC)
"""

import re
from typing import Optional

# Area only: SW, W, EC, NW
AREA_PATTERN = re.compile(r"^([A-Z]{1,2})")


def clean_postcode(postcode: Optional[str]) -> Optional[str]:
    """Upper-case and trim a postcode.

    Example:
        >>> clean_postcode("  sw1a 1aa ")
        'SW1A 1AA'
    """
    if postcode is None:
        return None
    cleaned = str(postcode).upper().strip()
    if not cleaned or cleaned == "NAN":
        return None
    return cleaned


def extract_postcode_area(postcode: Optional[str]) -> str:
    """Extract the postcode area (leading 1-2 letters).

    Returns an empty string when the postcode does not start with a letter.

    Example:
        >>> extract_postcode_area("LS1 4AB")
        'LS'
        >>> extract_postcode_area("M14 5TQ")
        'M'
    """
    cleaned = clean_postcode(postcode)
    if not cleaned:
        return ""
    match = AREA_PATTERN.match(cleaned)
    return match.group(1) if match else ""
