"""Field validation for deck and roast requests"""

import re
from typing import Any, Dict

from deckvault.domain.exceptions import InvalidRequestError
from deckvault.domain.models import SubmissionRequest, SubmissionType

EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")

DECK_REQUIRED_FIELDS = ["patreon_username", "email", "color_preference", "bracket", "budget", "coffee"]
ROAST_REQUIRED_FIELDS = [
    "preferred_name",
    "deck_description",
    "moxfield_link",
    "target_bracket",
    "art_choices_intentional",
]


def _missing_field(fields: Dict[str, Any], name: str) -> bool:
    value = fields.get(name)
    return not isinstance(value, str) or not value.strip()


def validate_deck_submission(fields: Dict[str, Any]) -> None:
    for name in DECK_REQUIRED_FIELDS:
        if _missing_field(fields, name):
            raise InvalidRequestError(f"Invalid submission data. Missing or invalid field: {name}")

    if not EMAIL_PATTERN.match(fields["email"].strip()):
        raise InvalidRequestError("Invalid submission data. Missing or invalid field: email (invalid format)")


def validate_roast_submission(fields: Dict[str, Any]) -> None:
    for name in ROAST_REQUIRED_FIELDS:
        if _missing_field(fields, name):
            raise InvalidRequestError(f"Invalid submission data. Missing or invalid field: {name}")

    link = fields["moxfield_link"]
    if "://moxfield.com/" not in link and "://www.moxfield.com/" not in link:
        raise InvalidRequestError("Deck link must point to moxfield.com")


def validate_submission(request: SubmissionRequest) -> None:
    """
    Check required fields before any credit is touched.

    Deck drafts skip validation so members can save partial forms.

    Raises:
        InvalidRequestError: On the first missing or malformed field
    """
    if request.submission_type is SubmissionType.DECK:
        if not request.is_draft:
            validate_deck_submission(request.fields)
    else:
        validate_roast_submission(request.fields)
