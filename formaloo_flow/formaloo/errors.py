from typing import List, Optional


class FormalooError(Exception):
    """Base class for all Formaloo adapter errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthenticationError(FormalooError):
    """Raised when credentials are missing or the token exchange fails."""
    pass


class InvalidResponseError(FormalooError):
    """Raised when a Formaloo payload does not have the expected shape."""
    pass


class ApiRequestError(FormalooError):
    """Raised when a Formaloo call fails in transport or returns a non-2xx status."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        method: Optional[str] = None,
        url: Optional[str] = None,
        response_text: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.method = method
        self.url = url
        self.response_text = response_text


class FieldOptionNotFoundError(FormalooError):
    """Raised when a choice value matches none of the field's options."""

    def __init__(self, value: str):
        super().__init__(f"Field option not found for value: {value}")
        self.value = value


class AmbiguousMatchError(FormalooError):
    """Raised when a city/country search has more than one exact match."""

    def __init__(self, search_term: str, matches: List[str]):
        super().__init__(
            f'Multiple exact matches found for "{search_term}": {", ".join(matches)}'
        )
        self.search_term = search_term
        self.matches = matches


class NotFoundError(FormalooError):
    """Raised when a city/country search finds nothing usable."""

    def __init__(self, message: str, search_term: str, suggestions: Optional[List[str]] = None):
        super().__init__(message)
        self.search_term = search_term
        self.suggestions = suggestions or []


class ValidationError(FormalooError):
    """Raised for missing form identifiers, empty submissions and bad node config."""
    pass
