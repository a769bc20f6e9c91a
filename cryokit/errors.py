"""Errors raised while turning user input into a query."""


class ParseError(Exception):
    """Raised when command line input or saved state cannot be understood."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message