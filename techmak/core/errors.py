"""
Error taxonomy for quotation document generation.

Every error carries the HTTP status the API layer answers with. Nothing in
the generator retries: an error is terminal for that request and no partial
document is ever returned.
"""


class QuoteDocumentError(Exception):
    """Base class for all document-generation failures."""
    status = 500

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__doc__ or "Unknown error")
        self.message = str(self)

    def to_dict(self) -> dict:
        return {"error": self.message}


class InvalidRequest(QuoteDocumentError):
    """Invalid request"""
    status = 400


class MissingInput(InvalidRequest):
    """Missing quotation ID"""


class NotFound(QuoteDocumentError):
    """Quotation not found"""
    status = 404


class AssetUnavailable(QuoteDocumentError):
    """Logo image unavailable"""


class SerializationFailure(QuoteDocumentError):
    """PDF serialization failed"""


class LayoutClosed(QuoteDocumentError):
    """Document already emitted; no further drawing allowed"""
