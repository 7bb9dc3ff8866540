# shopsmart/models/search_request.py

"""Transient search request, validated before any adapter call."""

from dataclasses import dataclass

from shopsmart.config.settings import Settings
from shopsmart.core.exceptions import ValidationError


@dataclass
class SearchRequest:
    """A single query against one marketplace."""

    query: str
    marketplace: str = Settings.DEFAULT_MARKETPLACE
    page: int = 1
    limit: int = Settings.DEFAULT_LIMIT

    def validate(self) -> str:
        """Check the request and return the trimmed query.

        Raises:
            ValidationError: blank query, ``page < 1`` or ``limit <= 0``.
        """
        if not isinstance(self.query, str) or not self.query.strip():
            raise ValidationError(
                "Search query is required", field="query"
            )
        if self.page < 1:
            raise ValidationError(
                "Page must be 1 or greater", field="page"
            )
        if self.limit <= 0:
            raise ValidationError(
                "Limit must be greater than 0", field="limit"
            )
        return self.query.strip()
