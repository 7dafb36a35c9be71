"""
Tests for the client exception hierarchy.
"""

from unittest.mock import patch

from orisa_client.exceptions import (
    RAW_PREVIEW_LENGTH,
    ConfigurationError,
    ErrorContext,
    MessageDecodeError,
    OrisaClientError,
)


class TestOrisaClientError:
    def test_to_dict_includes_context(self):
        error = OrisaClientError("broken", context=ErrorContext(username="zed", generation=3))

        data = error.to_dict()

        assert data["error_type"] == "OrisaClientError"
        assert data["context"]["username"] == "zed"
        assert data["context"]["generation"] == 3

    def test_logs_on_construction(self):
        with patch("orisa_client.exceptions.logger") as mock_logger:
            OrisaClientError("broken")

        mock_logger.error.assert_called_once()


class TestMessageDecodeError:
    def test_preview_is_truncated(self):
        error = MessageDecodeError("x" * 500, "too long")

        assert len(error.raw_preview) == RAW_PREVIEW_LENGTH
        assert error.details["reason"] == "too long"

    def test_bytes_are_decoded_for_preview(self):
        error = MessageDecodeError(b"\xffabc", "bad utf-8")

        assert error.raw_preview.endswith("abc")

    def test_logs_at_debug(self):
        with patch("orisa_client.exceptions.logger") as mock_logger:
            MessageDecodeError("{}", "empty")

        mock_logger.debug.assert_called_once()
        mock_logger.error.assert_not_called()


class TestConfigurationError:
    def test_setting_recorded(self):
        error = ConfigurationError("bad url", setting="url")

        assert error.setting == "url"
        assert error.details["setting"] == "url"
