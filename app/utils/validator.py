"""
Validation for guestbook submissions.
"""
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

MAX_NAME_LENGTH = 100
MAX_MESSAGE_LENGTH = 10000


@dataclass
class ValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)


def validate_memory(data: Any) -> ValidationResult:
    """
    Validate a memory submission.

    Args:
        data: Mapping with "from" and "message" keys

    Returns:
        ValidationResult: valid flag plus every rule the data breaks
    """
    errors = []

    if not isinstance(data, Mapping):
        return ValidationResult(valid=False, errors=["Invalid data format"])

    from_name = data.get("from")
    message = data.get("message")

    if not from_name or not isinstance(from_name, str):
        errors.append("Name is required")
    elif len(from_name.strip()) == 0:
        errors.append("Name cannot be empty")
    elif len(from_name.strip()) > MAX_NAME_LENGTH:
        errors.append("Name must be less than 100 characters")

    if not message or not isinstance(message, str):
        errors.append("Message is required")
    elif len(message.strip()) == 0:
        errors.append("Message cannot be empty")
    elif len(message.strip()) > MAX_MESSAGE_LENGTH:
        errors.append("Message must be less than 10,000 characters")

    return ValidationResult(valid=not errors, errors=errors)


def validate_memory_update(from_name: Optional[str], message: Optional[str]) -> ValidationResult:
    """
    Validate an admin edit. Only supplied, non-blank values are checked;
    the rest are left as stored.
    """
    errors = []

    if from_name and len(from_name.strip()) > MAX_NAME_LENGTH:
        errors.append("Name must be less than 100 characters")
    if message and len(message.strip()) > MAX_MESSAGE_LENGTH:
        errors.append("Message must be less than 10,000 characters")

    return ValidationResult(valid=not errors, errors=errors)
