"""
Models for validation and serialization.
"""

from models.base import BaseSchema
from models.inventory_sync import (
    QuantitySource,
    Bucket,
    ParsedRow,
    IdentityKey,
    Location,
    RemoteVariant,
    ProductCandidate,
    ResolvedVariant,
    VariantResolution,
    VariantCache,
    ResultRow,
    SyncSummary,
)

__all__ = [
    "BaseSchema",
    "QuantitySource",
    "Bucket",
    "ParsedRow",
    "IdentityKey",
    "Location",
    "RemoteVariant",
    "ProductCandidate",
    "ResolvedVariant",
    "VariantResolution",
    "VariantCache",
    "ResultRow",
    "SyncSummary",
]
