"""
邮件发送（SMTP）

同步实现，由调度执行器放到线程池中调用。单个收件人发送失败统一抛出 DeliveryFailureError。
"""
import logging
import smtplib
from datetime import datetime
from email.message import EmailMessage
from typing import Iterable, Optional

from dashhub.core.config import Settings, settings as default_settings
from dashhub.core.exceptions import DeliveryFailureError
from dashhub.services.report_renderer import ReportArtifact

logger = logging.getLogger(__name__)


def build_report_email_html(report_title: str) -> str:
    generated = datetime.utcnow().strftime("%Y-%m-%d %H:%M UTC")
    return f"""
<html>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
    <h2 style="margin: 0;">Dashboard Report</h2>
    <p>{report_title}</p>
    <p>Hello,</p>
    <p>Your scheduled dashboard report is ready. Please find the latest data in the attachment.</p>
    <p><strong>Generated:</strong> {generated}</p>
    <p style="color: #6b7280; font-size: 12px;">This is an automated message. Please do not reply.</p>
</body>
</html>
"""


class SmtpMailTransport:
    """基于 smtplib 的邮件发送器"""

    def __init__(self, config: Optional[Settings] = None):
        self._config = config or default_settings

    @property
    def sender(self) -> str:
        return self._config.SMTP_FROM or self._config.SMTP_USER

    def _connect(self) -> smtplib.SMTP:
        cfg = self._config
        if cfg.SMTP_USE_SSL:
            smtp = smtplib.SMTP_SSL(cfg.SMTP_HOST, cfg.SMTP_PORT, timeout=cfg.SMTP_TIMEOUT)
        else:
            smtp = smtplib.SMTP(cfg.SMTP_HOST, cfg.SMTP_PORT, timeout=cfg.SMTP_TIMEOUT)
        try:
            if cfg.SMTP_USE_TLS and not cfg.SMTP_USE_SSL:
                smtp.starttls()
            if cfg.SMTP_USER:
                smtp.login(cfg.SMTP_USER, cfg.SMTP_PASSWORD)
        except Exception:
            smtp.close()
            raise
        return smtp

    def send(
        self,
        to_email: str,
        subject: str,
        attachments: Iterable[ReportArtifact],
        html_body: Optional[str] = None
    ) -> None:
        """
        发送带附件的报表邮件

        Raises:
            DeliveryFailureError: SMTP 连接或发送失败
        """
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to_email
        msg.set_content("Your scheduled dashboard report is attached.")
        msg.add_alternative(html_body or build_report_email_html(subject), subtype="html")

        for artifact in attachments:
            maintype, _, subtype = artifact.mime_type.partition("/")
            msg.add_attachment(
                artifact.content,
                maintype=maintype,
                subtype=subtype,
                filename=artifact.filename
            )

        try:
            with self._connect() as smtp:
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"发送邮件到 {to_email} 失败: {e}")
            raise DeliveryFailureError(to_email, f"Failed to send email: {e}") from e

        logger.info(f"报表邮件已发送: {to_email}")

    def verify_connection(self) -> bool:
        """检查 SMTP 连接与认证是否可用"""
        try:
            with self._connect() as smtp:
                smtp.noop()
            logger.info("SMTP 连接验证成功")
            return True
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP 连接验证失败: {e}")
            return False
