"""Common error taxonomy helpers."""

from common.errors.error_codes import ErrorCode, canonical_error_code_for_category, error_code_group

__all__ = [
    "ErrorCode",
    "canonical_error_code_for_category",
    "error_code_group",
]
