"""
邮件发送
通过 SMTP 发送 HTML 邮件，阻塞的 SMTP 会话放到线程中执行
"""

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr, formatdate
from html import escape
from typing import Optional, Tuple

from core.config import Settings, get_settings
from core.errors import AppException, ErrorCode

logger = logging.getLogger(__name__)

CODE_EMAIL_TEMPLATE = """\
<html>
  <body style="font-family: Arial, sans-serif; color: #333;">
    <h2>{app_name} {purpose}验证</h2>
    <p>您正在{purpose}，验证码为：</p>
    <p style="font-size: 24px; font-weight: bold; letter-spacing: 4px;">{code}</p>
    <p>验证码 {minutes} 分钟内有效，请勿泄露给他人。如非本人操作请忽略此邮件。</p>
  </body>
</html>
"""


def render_code_email(purpose: str, code: str, expire_seconds: int) -> Tuple[str, str]:
    """渲染验证码邮件，返回 (主题, HTML 正文)"""
    settings = get_settings()
    subject = f"【{settings.mail_from_name}】{purpose}验证码"
    html = CODE_EMAIL_TEMPLATE.format(
        app_name=escape(settings.app_name),
        purpose=escape(purpose),
        code=escape(code),
        minutes=max(expire_seconds // 60, 1),
    )
    return subject, html


class MailSender:
    """SMTP 邮件发送"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def build_message(self, to: str, subject: str, html: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = formataddr((self.settings.mail_from_name, self.settings.mail_from_address))
        message["To"] = to
        message["Subject"] = subject
        message["Date"] = formatdate(localtime=True)
        message.set_content("请使用支持 HTML 的邮件客户端查看此邮件。")
        message.add_alternative(html, subtype="html")
        return message

    def _deliver(self, message: EmailMessage) -> None:
        settings = self.settings
        smtp_class = smtplib.SMTP_SSL if settings.smtp_use_ssl else smtplib.SMTP
        with smtp_class(settings.smtp_host, settings.smtp_port, timeout=settings.smtp_timeout) as smtp:
            if settings.smtp_user:
                smtp.login(settings.smtp_user, settings.smtp_password or "")
            smtp.send_message(message)

    async def send_html(self, to: str, subject: str, html: str) -> None:
        """
        发送 HTML 邮件

        Raises:
            AppException: SMTP 会话失败
        """
        logger.info(f"发送邮件: {to} | {subject}")
        message = self.build_message(to, subject, html)
        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"邮件发送失败: {to} | {e}")
            raise AppException(ErrorCode.EMAIL_SEND_FAILED)
        logger.info(f"邮件发送成功: {to}")


def get_mail_sender() -> MailSender:
    return MailSender()
