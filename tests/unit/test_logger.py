"""
Unit tests for logger module.
"""

from unittest.mock import MagicMock, patch

from educrm.utils.logger import configure_logging, get_logger, mask_credentials


class TestMaskCredentials:
    """Test cases for mask_credentials processor."""

    def test_masks_password_field(self):
        """Test that password fields are masked."""
        event_dict = {"event": "SMTP login", "username": "crm", "password": "secret123"}

        result = mask_credentials(MagicMock(), "info", event_dict)

        assert result["password"] == "***MASKED***"
        assert result["username"] == "crm"

    def test_masks_prefixed_and_suffixed_fields(self):
        """Test that smtp_password / api_key_value style fields are masked."""
        event_dict = {"smtp_password": "x", "api_key": "sk-123", "access_token": "eyJ"}

        result = mask_credentials(MagicMock(), "info", event_dict)

        assert result["smtp_password"] == "***MASKED***"
        assert result["api_key"] == "***MASKED***"
        assert result["access_token"] == "***MASKED***"

    def test_masks_mail_credentials_and_identity_documents(self):
        """Test that SMTP settings and student identity documents are masked."""
        event_dict = {
            "SMTP_PASSWORD": "hunter2",
            "authorization": "Bearer abc",
            "passport_number": "X1234567",
            "student_visa_number": "V-99",
            "student_email": "ana@example.com",
        }

        result = mask_credentials(MagicMock(), "info", event_dict)

        assert result["SMTP_PASSWORD"] == "***MASKED***"
        assert result["authorization"] == "***MASKED***"
        assert result["passport_number"] == "***MASKED***"
        assert result["student_visa_number"] == "***MASKED***"
        assert result["student_email"] == "ana@example.com"

    def test_does_not_mask_non_sensitive_fields(self):
        """Test that workflow context is left untouched."""
        event_dict = {"event": "Inquiry scored", "inquiry_id": "inq-1", "lead_score": 72}

        result = mask_credentials(MagicMock(), "info", event_dict)

        assert result == {"event": "Inquiry scored", "inquiry_id": "inq-1", "lead_score": 72}


class TestConfigureLogging:
    """Test cases for configure_logging function."""

    @patch("educrm.utils.logger.Path")
    @patch("educrm.utils.logger.logging")
    @patch("educrm.utils.logger.structlog")
    def test_creates_log_directory_for_file(self, mock_structlog, mock_logging, mock_path):
        """Test that a log file's directory is created."""
        mock_log_path = MagicMock()
        mock_path.return_value = mock_log_path

        configure_logging(log_file="logs/educrm.log")

        mock_log_path.parent.mkdir.assert_called_once_with(parents=True, exist_ok=True)

    @patch("educrm.utils.logger.logging")
    @patch("educrm.utils.logger.structlog")
    def test_configures_structlog_processors(self, mock_structlog, mock_logging):
        """Test that configure_logging installs the processor chain."""
        configure_logging()

        mock_structlog.configure.assert_called_once()
        processors = mock_structlog.configure.call_args[1]["processors"]
        assert mask_credentials in processors


class TestGetLogger:
    """Test cases for get_logger function."""

    def test_generates_correlation_id_if_not_provided(self):
        logger = get_logger()

        assert logger is not None

    def test_binds_all_context_parameters(self):
        logger = get_logger(correlation_id="test-id", phase="reporting", component="custom_report")

        assert logger is not None
