"""
Contract Validation Module

Валидация метаданных trade offer против JSON Schema контрактов.
"""

from .validators import (
    OfferMetadataValidator,
    SchemaLoader,
    validate_offer_metadata,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "OfferMetadataValidator",
    # Functions
    "validate_offer_metadata",
]
