from .schema import ErrorResponse, Identity, IndexResponse

__all__ = [
    "ErrorResponse",
    "Identity",
    "IndexResponse",
]
