"""Input validation for CLI commands."""

import re
from typing import Optional


class ValidationError(Exception):
    """Raised when a CLI argument is not acceptable."""


class Validator:
    """Validates and normalizes user supplied arguments."""

    COUNTRY_PATTERN = re.compile(r"^[A-Za-z]{2}$")
    LANGUAGE_PATTERN = re.compile(r"^[A-Za-z]{2,3}([-_][A-Za-z0-9]{2,8})*$")
    MAX_PAGES = 10

    def validate_app_id(self, app_id: str) -> int:
        """App Store ids are positive integers (e.g. 284882215)."""
        value = str(app_id).strip()
        if value.lower().startswith("id"):
            value = value[2:]
        if not (value.isascii() and value.isdigit()) or int(value) <= 0:
            raise ValidationError(f"Invalid App Store id: {app_id}")
        return int(value)

    def validate_country_code(self, country: str) -> str:
        value = (country or "").strip()
        if not self.COUNTRY_PATTERN.match(value):
            raise ValidationError(f"Country code must be two letters (e.g. US, TR): {country}")
        return value.lower()

    def validate_language(self, language: Optional[str]) -> Optional[str]:
        if language is None or not language.strip():
            return None
        value = language.strip()
        if not self.LANGUAGE_PATTERN.match(value):
            raise ValidationError(f"Invalid language code: {language}")
        return value

    def validate_pages(self, pages: int) -> int:
        if pages < 1:
            raise ValidationError("Pages must be at least 1")
        if pages > self.MAX_PAGES:
            raise ValidationError(f"Pages cannot exceed {self.MAX_PAGES}")
        return pages
