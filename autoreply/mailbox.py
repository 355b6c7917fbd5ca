"""
IMAP client for fetching unprocessed messages and flagging them handled
"""
import email.parser
import email.policy
import imaplib
import logging
from typing import Dict, List, Optional, Tuple

from .config import Settings
from .models import RawMessage

logger = logging.getLogger(__name__)

FETCH_PARTS = "(BODY.PEEK[HEADER] BODY.PEEK[TEXT])"


class MailboxError(Exception):
    """Raised when the IMAP session cannot be opened or a command is refused"""


def parse_header_block(header_bytes: bytes) -> Dict[str, List[str]]:
    """
    Split a raw header block into name -> values, keeping per-field order.

    The block is decoded as UTF-8 first so raw 8-bit display names and
    subjects survive instead of turning into replacement characters.
    """
    text = header_bytes.decode("utf-8", errors="replace")
    parsed = email.parser.HeaderParser(policy=email.policy.compat32).parsestr(text)

    headers: Dict[str, List[str]] = {}
    for key, value in parsed.items():
        headers.setdefault(key, []).append(str(value))
    return headers


def parse_fetch_response(data: list) -> Tuple[Optional[bytes], Optional[bytes]]:
    """
    Pick the header and text literals out of a UID FETCH response.

    imaplib returns a list mixing (descriptor, literal) tuples and bare
    closing bytes; the descriptor names the part, e.g. b'5 (UID 9 BODY[HEADER] {312}'.
    """
    header_bytes = None
    text_bytes = None

    for item in data or []:
        if not isinstance(item, tuple) or len(item) < 2:
            continue
        descriptor = item[0].upper() if isinstance(item[0], bytes) else b""
        if b"BODY[HEADER]" in descriptor:
            header_bytes = item[1]
        elif b"BODY[TEXT]" in descriptor:
            text_bytes = item[1]

    return header_bytes, text_bytes


class IMAPMailbox:
    """Scoped IMAP session over a single mailbox"""

    def __init__(
        self,
        host: str,
        username: str,
        password: str,
        port: int = 993,
        mailbox: str = "INBOX",
        timeout: float = 10.0,
    ):
        self.host = host
        self.username = username
        self.password = password
        self.port = port
        self.mailbox = mailbox
        self.timeout = timeout
        self.connection: Optional[imaplib.IMAP4_SSL] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "IMAPMailbox":
        return cls(
            host=settings.imap_host,
            username=settings.email_user,
            password=settings.email_pass,
            port=settings.imap_port,
            mailbox=settings.imap_mailbox,
            timeout=settings.imap_timeout,
        )

    def connect(self) -> None:
        """Establish and authenticate the IMAP connection"""
        try:
            logger.debug(f"Connecting to IMAP {self.host}:{self.port}")
            self.connection = imaplib.IMAP4_SSL(self.host, self.port, timeout=self.timeout)
            self.connection.login(self.username, self.password)
        except (imaplib.IMAP4.error, OSError) as e:
            self.disconnect()
            raise MailboxError(f"Failed to connect to IMAP server {self.host}:{self.port}: {e}") from e

    def disconnect(self) -> None:
        """Close connection to IMAP server"""
        if self.connection:
            try:
                self.connection.logout()
                logger.debug("Disconnected from IMAP server")
            except (imaplib.IMAP4.error, OSError) as e:
                logger.warning(f"Error during IMAP disconnect: {e}")
            finally:
                self.connection = None

    def _require_connection(self) -> imaplib.IMAP4_SSL:
        if not self.connection:
            raise MailboxError("Not connected to IMAP server")
        return self.connection

    def select_mailbox(self) -> None:
        status, _ = self._require_connection().select(self.mailbox)
        if status != "OK":
            raise MailboxError(f"Failed to select mailbox {self.mailbox}")

    def fetch_unprocessed(self) -> List[RawMessage]:
        """
        Fetch messages that are both unseen and unanswered, in server order.

        Parts are fetched with BODY.PEEK so fetching alone never sets \\Seen.
        """
        connection = self._require_connection()

        try:
            self.select_mailbox()
            status, data = connection.uid("SEARCH", None, "UNSEEN", "UNANSWERED")
        except (imaplib.IMAP4.error, OSError) as e:
            raise MailboxError(f"Failed to search mailbox {self.mailbox}: {e}") from e

        if status != "OK":
            raise MailboxError("Failed to search for unseen, unanswered messages")

        uids = data[0].split() if data and data[0] else []

        messages = []
        for uid in uids:
            uid_text = uid.decode() if isinstance(uid, bytes) else str(uid)
            try:
                status, fetched = connection.uid("FETCH", uid_text, FETCH_PARTS)
            except (imaplib.IMAP4.abort, OSError) as e:
                raise MailboxError(f"Connection lost while fetching UID {uid_text}: {e}") from e
            except imaplib.IMAP4.error as e:
                logger.error(f"Error fetching message UID {uid_text}: {e}")
                continue

            if status != "OK":
                logger.error(f"Failed to fetch message UID {uid_text}")
                continue

            header_bytes, text_bytes = parse_fetch_response(fetched)
            messages.append(
                RawMessage(
                    uid=uid_text,
                    headers=parse_header_block(header_bytes) if header_bytes else None,
                    body=text_bytes.decode("utf-8", errors="replace") if text_bytes else "",
                )
            )

        return messages

    def mark_handled(self, uid: str, seen: bool = True, answered: bool = False) -> None:
        """Add \\Seen and/or \\Answered to a message"""
        flags = []
        if seen:
            flags.append("\\Seen")
        if answered:
            flags.append("\\Answered")
        if not flags:
            return

        status, _ = self._require_connection().uid("STORE", uid, "+FLAGS", f"({' '.join(flags)})")
        if status != "OK":
            raise MailboxError(f"Failed to set {' '.join(flags)} on message UID {uid}")

    def __enter__(self):
        """Context manager entry"""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        self.disconnect()
