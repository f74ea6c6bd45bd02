"""
Exceptions raised by the detection and conversion engine
"""

from typing import Optional


class CurrencyAnnotatorError(Exception):
    """Base class for all annotator errors"""


class DataLoadError(CurrencyAnnotatorError):
    """Raised when the currency registry source data is unreachable or malformed"""

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class ParseError(CurrencyAnnotatorError, ValueError):
    """Raised when a matched amount is not a valid non-negative decimal"""

    def __init__(self, message: str, raw_text: str):
        super().__init__(message)
        self.raw_text = raw_text


class RateFetchError(CurrencyAnnotatorError):
    """Raised when an exchange-rate payload cannot be fetched or validated"""


class EngineUnavailableError(CurrencyAnnotatorError):
    """Raised when a scan is requested while the registry failed to load"""

    def __init__(self, message: str, cause: Optional[DataLoadError] = None):
        super().__init__(message)
        self.cause = cause
