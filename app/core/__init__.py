"""
Core Application - Infrastructure & Base Classes

Generic, reusable base classes with no notification or tenant logic.
Domain apps (businesses, notifications) extend them.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key
    - MetadataMixin: Flexible JSON metadata storage with merge helpers

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes
    - ExternalServiceError: Third-party service failures

Helpers (import from core.helpers):
    - validate_uuid: UUID validation
    - parse_int: Lenient leading-integer parsing for query parameters
    - calculate_offset_pagination: limit/offset/has_more metadata

Note:
    Django models and model mixins are NOT imported here to avoid
    AppRegistryNotReady errors. Import them directly from their modules.
"""

# Services (no Django model dependencies)
from .services import BaseService, ServiceResult

# Exceptions (no Django dependencies)
from .exceptions import (
    BaseApplicationError,
    ExternalServiceError,
)

# Helpers (no Django model dependencies)
from .helpers import (
    calculate_offset_pagination,
    parse_int,
    validate_uuid,
)

__all__ = [
    # Services
    "BaseService",
    "ServiceResult",
    # Exceptions
    "BaseApplicationError",
    "ExternalServiceError",
    # Helpers
    "calculate_offset_pagination",
    "parse_int",
    "validate_uuid",
]
