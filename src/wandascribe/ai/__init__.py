"""Remote text-service client, reply normalization and result types."""

from .client import ClientSettings, TextServiceClient
from .errors import ServiceUnavailableError, UnknownActionTypeError, WandaScribeError
from .normalizer import ResponseNormalizer, normalize_response
from .results import (
    Misspellings,
    MisspelledWord,
    PlainText,
    ServiceError,
    Suggestion,
    TransformationKind,
    TransformationRequest,
    TransformationResult,
)

__all__ = [
    "ClientSettings",
    "TextServiceClient",
    "ResponseNormalizer",
    "normalize_response",
    "TransformationKind",
    "TransformationRequest",
    "TransformationResult",
    "Misspellings",
    "MisspelledWord",
    "Suggestion",
    "PlainText",
    "ServiceError",
    "WandaScribeError",
    "ServiceUnavailableError",
    "UnknownActionTypeError",
]
