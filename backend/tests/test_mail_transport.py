import smtplib
from unittest.mock import MagicMock, patch

import pytest

from dashhub.core.config import Settings
from dashhub.core.exceptions import DeliveryFailureError
from dashhub.services.mail_transport import SmtpMailTransport
from dashhub.services.report_renderer import ReportArtifact


@pytest.fixture
def config():
    return Settings(
        SMTP_HOST="smtp.test",
        SMTP_PORT=587,
        SMTP_USER="reports@test",
        SMTP_PASSWORD="pw",
        SMTP_FROM="reports@test",
        SMTP_USE_TLS=True,
        SMTP_USE_SSL=False,
    )


@pytest.fixture
def artifact():
    return ReportArtifact(filename="report-1.pdf", content=b"%PDF-1.4", mime_type="application/pdf")


def test_send_builds_message_with_attachment(config, artifact):
    smtp = MagicMock()
    with patch("dashhub.services.mail_transport.smtplib.SMTP", return_value=smtp) as smtp_cls:
        SmtpMailTransport(config).send("a@x.com", "Dashboard Report: Weekly", [artifact])

    smtp_cls.assert_called_once_with("smtp.test", 587, timeout=config.SMTP_TIMEOUT)
    smtp.starttls.assert_called_once()
    smtp.login.assert_called_once_with("reports@test", "pw")

    message = smtp.__enter__.return_value.send_message.call_args[0][0]
    assert message["To"] == "a@x.com"
    assert message["Subject"] == "Dashboard Report: Weekly"
    filenames = [part.get_filename() for part in message.iter_attachments()]
    assert filenames == ["report-1.pdf"]


def test_smtp_error_becomes_delivery_failure(config, artifact):
    smtp = MagicMock()
    smtp.__enter__.return_value.send_message.side_effect = smtplib.SMTPRecipientsRefused({})
    with patch("dashhub.services.mail_transport.smtplib.SMTP", return_value=smtp):
        with pytest.raises(DeliveryFailureError) as exc_info:
            SmtpMailTransport(config).send("b@x.com", "subject", [artifact])

    assert exc_info.value.recipient == "b@x.com"


def test_connection_error_becomes_delivery_failure(config, artifact):
    with patch("dashhub.services.mail_transport.smtplib.SMTP", side_effect=ConnectionRefusedError()):
        with pytest.raises(DeliveryFailureError):
            SmtpMailTransport(config).send("a@x.com", "subject", [artifact])


def test_verify_connection(config):
    with patch("dashhub.services.mail_transport.smtplib.SMTP", return_value=MagicMock()):
        assert SmtpMailTransport(config).verify_connection() is True

    with patch("dashhub.services.mail_transport.smtplib.SMTP", side_effect=OSError("unreachable")):
        assert SmtpMailTransport(config).verify_connection() is False
