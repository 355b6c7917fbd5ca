"""
Rebuilds structured messages from the raw header/body parts fetched over IMAP
"""
import email
import email.message
import email.policy
import logging
from typing import Dict, List, Optional, Tuple, Union

from .models import InboundMessage, RawMessage

logger = logging.getLogger(__name__)

CRLF = "\r\n"
NO_SUBJECT = "(No Subject)"


class ExtractionError(Exception):
    """Raised when a fetched message cannot be turned into an InboundMessage"""


def build_raw_message(headers: Dict[str, Union[str, List[str]]], body: str = "") -> str:
    """
    Reassemble header fields into a canonical header block followed by the body.

    Each value becomes its own `Key: Value` line, so multi-valued headers are
    repeated; the block is terminated by a blank line.
    """
    lines = []
    for key, values in headers.items():
        if isinstance(values, str):
            values = [values]
        for value in values:
            lines.append(f"{key}: {value}{CRLF}")

    return "".join(lines) + CRLF + (body or "")


def extract(raw: RawMessage) -> InboundMessage:
    """
    Parse a fetched message into an InboundMessage.

    Raises:
        ExtractionError: no header part, or no resolvable sender address
    """
    if not raw.headers:
        raise ExtractionError(f"Message {raw.uid} has no header part")

    parsed = email.message_from_string(
        build_raw_message(raw.headers, raw.body), policy=email.policy.default
    )

    sender = _first_address(parsed, "From")
    if sender is None:
        raise ExtractionError(f"Message {raw.uid} has no resolvable sender address")
    sender_name, sender_address = sender

    reply_to = _first_address(parsed, "Reply-To")
    reply_to_name, reply_to_address = reply_to if reply_to else (None, None)

    return InboundMessage(
        uid=raw.uid,
        sender_address=sender_address,
        sender_name=sender_name,
        subject=_header_text(parsed, "Subject") or NO_SUBJECT,
        reply_to_address=reply_to_address,
        reply_to_name=reply_to_name or None,
        message_id=_header_text(parsed, "Message-ID") or None,
        references=_header_text(parsed, "References") or None,
        body=_extract_body(parsed, raw.body),
        headers=raw.headers,
    )


def _first_address(parsed: email.message.EmailMessage, field: str) -> Optional[Tuple[str, str]]:
    """First (display name, lowercase address) in an address header"""
    try:
        header = parsed[field]
    except (IndexError, ValueError, TypeError) as e:
        logger.warning(f"Could not parse {field} header: {e}")
        return None

    if header is None:
        return None

    for address in getattr(header, "addresses", ()):
        addr_spec = address.addr_spec.strip().strip("<>").lower()
        if addr_spec:
            return address.display_name or "", addr_spec

    return None


def _header_text(parsed: email.message.EmailMessage, field: str) -> str:
    """Decoded header value, or an empty string when absent or unparseable"""
    try:
        value = parsed[field]
    except (IndexError, ValueError, TypeError) as e:
        logger.warning(f"Could not parse {field} header: {e}")
        return ""

    return str(value).strip() if value is not None else ""


def _extract_body(parsed: email.message.EmailMessage, raw_body: str) -> str:
    """
    Collect the text parts of the reconstructed message.

    Falls back to the raw body blob when nothing decodable is found.
    """
    texts = []

    for part in parsed.walk():
        if part.is_multipart() or part.get_content_maintype() != "text":
            continue

        content_disposition = str(part.get("Content-Disposition", ""))
        if "attachment" in content_disposition:
            continue

        transfer_encoding = str(part.get("Content-Transfer-Encoding", "")).strip().lower()
        if transfer_encoding in ("base64", "quoted-printable"):
            payload = part.get_payload(decode=True)
            if not payload:
                continue
            charset = part.get_content_charset() or "utf-8"
            try:
                text = payload.decode(charset, errors="replace")
            except LookupError:
                text = payload.decode("utf-8", errors="replace")
        else:
            text = part.get_payload()

        if isinstance(text, str) and text.strip():
            texts.append(text)

    return "\n".join(texts) if texts else (raw_body or "")
