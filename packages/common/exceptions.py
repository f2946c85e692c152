"""
Errors raised by catalog sources
"""


class CatalogUnavailableError(Exception):
    """Raised when the procedure catalog or recovery metadata source cannot be read"""

    def __init__(self, message: str, source: str = "catalog"):
        super().__init__(message)
        self.source = source
