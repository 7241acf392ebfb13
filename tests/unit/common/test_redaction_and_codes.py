import pytest

from common.errors.error_codes import (
    ErrorCode,
    canonical_error_code_for_category,
    error_code_group,
    parse_error_code,
)
from common.models.error_metadata import ErrorCategory
from common.sanitization.text import redact_sensitive_info


@pytest.mark.parametrize(
    "raw,expected",
    [
        (
            "could not connect to postgresql://app:hunter2@db:5432/appdb",
            "could not connect to postgresql://<user>:<password>@db:5432/appdb",
        ),
        ("Authorization: Bearer abc.def-ghi", "Authorization: Bearer <redacted>"),
        ("password=hunter2; host=db", "password=<redacted>; host=db"),
        (
            "Access denied for user 'app'@'10.0.0.5'",
            "Access denied for user '<user>'@'<host>'",
        ),
        ("nothing to hide", "nothing to hide"),
        ("", ""),
    ],
)
def test_redact_sensitive_info(raw, expected):
    assert redact_sensitive_info(raw) == expected


def test_category_to_code_mapping():
    assert canonical_error_code_for_category("unauthorized") == ErrorCode.ACCESS_DENIED
    assert canonical_error_code_for_category(ErrorCategory.TIMEOUT) == ErrorCode.EXECUTION_FAILED
    assert canonical_error_code_for_category(None) == ErrorCode.INTERNAL_ERROR
    assert canonical_error_code_for_category("bogus") == ErrorCode.INTERNAL_ERROR


def test_code_parsing_and_groups():
    assert parse_error_code("NOT_FOUND") == ErrorCode.NOT_FOUND
    assert parse_error_code("nope") == ErrorCode.INTERNAL_ERROR
    assert error_code_group(ErrorCode.ROW_LIMIT_EXCEEDED) == "POLICY"
    assert error_code_group("EXECUTION_FAILED") == "DB"
