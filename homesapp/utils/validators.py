"""
Validation helpers for identifiers and pagination shared by services.
"""

import re
import uuid
from typing import Any, Optional, Tuple

from homesapp.utils.exceptions import ValidationError


class ValidationUtils:
    """Utility class for common validation operations."""

    UUID_PATTERN = re.compile(r'^[0-9a-f]{8}-?[0-9a-f]{4}-?[0-9a-f]{4}-?[0-9a-f]{4}-?[0-9a-f]{12}$', re.IGNORECASE)

    @staticmethod
    def parse_uuid(value: Any, field_name: str = "id") -> uuid.UUID:
        """
        Parse a UUID given as string or UUID.

        Raises:
            ValidationError: If the value is missing or malformed
        """
        if isinstance(value, uuid.UUID):
            return value
        if not value:
            raise ValidationError(f"{field_name} is required")

        uuid_str = str(value).strip()
        if not ValidationUtils.UUID_PATTERN.match(uuid_str):
            raise ValidationError(
                f"Invalid UUID format for {field_name}",
                field_errors=[{"field": field_name, "message": "must be a UUID"}]
            )
        return uuid.UUID(uuid_str)

    @staticmethod
    def parse_optional_uuid(value: Any, field_name: str = "id") -> Optional[uuid.UUID]:
        if value is None or value == "":
            return None
        return ValidationUtils.parse_uuid(value, field_name)

    @staticmethod
    def page_bounds(page: int, page_size: int, max_page_size: int = 100) -> Tuple[int, int]:
        """
        Convert a 1-based page into (skip, limit).

        Raises:
            ValidationError: If pagination parameters are out of range
        """
        if page < 1:
            raise ValidationError("page must be at least 1")
        if page_size < 1 or page_size > max_page_size:
            raise ValidationError(f"page_size must be between 1 and {max_page_size}")
        return (page - 1) * page_size, page_size
