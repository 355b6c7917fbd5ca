"""
SMTP client for submitting composed replies
"""
import logging
import smtplib
from typing import Optional

from .config import Settings
from .models import OutboundReply

logger = logging.getLogger(__name__)


class SendError(Exception):
    """Raised when the SMTP session cannot be opened or a message is rejected"""


class SMTPSender:
    """Scoped SMTP session: connect on enter, quit on exit"""

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        security: str = "ssl",
        timeout: float = 30.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.security = security
        self.timeout = timeout
        self.connection: Optional[smtplib.SMTP] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "SMTPSender":
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.email_user,
            password=settings.email_pass,
            security=settings.smtp_security,
            timeout=settings.smtp_timeout,
        )

    def connect(self) -> None:
        """Open and authenticate the SMTP session"""
        try:
            logger.debug(f"Connecting to SMTP {self.host}:{self.port} ({self.security})")
            if self.security == "ssl":
                self.connection = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
            else:
                self.connection = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
                if self.security == "starttls":
                    self.connection.starttls()
            self.connection.login(self.username, self.password)
        except (smtplib.SMTPException, OSError) as e:
            self.disconnect()
            raise SendError(f"Failed to connect to SMTP server {self.host}:{self.port}: {e}") from e

    def disconnect(self) -> None:
        """Close the SMTP session"""
        if self.connection:
            try:
                self.connection.quit()
            except (smtplib.SMTPException, OSError) as e:
                logger.warning(f"Error during SMTP disconnect: {e}")
            finally:
                self.connection = None

    def send(self, reply: OutboundReply) -> None:
        """
        Submit a reply.

        Raises:
            SendError: the server refused the message or the session broke
        """
        if not self.connection:
            raise SendError("Not connected to SMTP server")

        try:
            self.connection.send_message(
                reply.to_email_message(),
                from_addr=reply.from_address,
                to_addrs=[reply.to_address],
            )
        except (smtplib.SMTPException, OSError) as e:
            raise SendError(f"Failed to send reply to {reply.to_address}: {e}") from e

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()
