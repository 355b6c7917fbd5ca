"""
Data models for the auto-reply service
"""
import email.message
import email.policy
import email.utils
from datetime import datetime
from enum import Enum
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class RawMessage(BaseModel):
    """A message as fetched from the mailbox, before any parsing"""
    uid: str
    headers: Optional[Dict[str, List[str]]] = Field(
        default=None, description="Header name -> values; None when the server returned no header part"
    )
    body: str = ""


class InboundMessage(BaseModel):
    """Structured view of a fetched message"""
    model_config = ConfigDict(frozen=True)

    uid: str
    sender_address: str
    sender_name: str = ""
    subject: str = "(No Subject)"
    reply_to_address: Optional[str] = None
    reply_to_name: Optional[str] = None
    message_id: Optional[str] = None
    references: Optional[str] = None
    body: str = ""
    headers: Dict[str, List[str]] = Field(default_factory=dict)


class Correspondent(BaseModel):
    """The person a reply should be addressed to"""
    model_config = ConfigDict(frozen=True)

    email: str
    name: Optional[str] = None


class SkipReason(str, Enum):
    """Why a message does not get an auto-reply"""
    SELF_LOOP = "self-loop"
    AUTO_MAILER = "auto-mailer-detected"
    IGNORED_DOMAIN = "ignored-domain"
    UNRESOLVABLE_FORM_CORRESPONDENT = "unresolvable-form-correspondent"


class Skip(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: Literal["skip"] = "skip"
    reason: SkipReason


class Respond(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: Literal["respond"] = "respond"
    target_email: str
    target_name: str


ClassificationOutcome = Union[Skip, Respond]


class OutboundReply(BaseModel):
    """A composed acknowledgement ready to be submitted over SMTP"""
    model_config = ConfigDict(frozen=True)

    from_address: str
    from_name: str
    to_address: str
    to_name: str
    subject: str
    body: str
    in_reply_to: Optional[str] = None
    references: Optional[str] = None

    def to_email_message(self) -> email.message.EmailMessage:
        """Render as a standard EmailMessage with threading headers"""
        msg = email.message.EmailMessage(policy=email.policy.SMTP)
        msg["From"] = email.utils.formataddr((self.from_name, self.from_address))
        msg["To"] = email.utils.formataddr((self.to_name, self.to_address))
        msg["Subject"] = self.subject
        msg["Date"] = email.utils.formatdate(localtime=True)

        domain = self.from_address.rpartition("@")[2] or None
        msg["Message-ID"] = email.utils.make_msgid(domain=domain)

        if self.in_reply_to:
            msg["In-Reply-To"] = self.in_reply_to
        if self.references:
            msg["References"] = self.references

        msg.set_content(self.body)
        return msg


class CycleStatus(str, Enum):
    """How a polling cycle ended"""
    INACTIVE = "inactive"
    COMPLETED = "completed"
    CONNECTION_ERROR = "connection-error"


class CycleReport(BaseModel):
    """Counters for one polling cycle, kept in memory for the health endpoint"""
    started_at: datetime
    finished_at: Optional[datetime] = None
    status: CycleStatus = CycleStatus.COMPLETED
    fetched: int = 0
    replied: int = 0
    skipped: int = 0
    extraction_failures: int = 0
    send_failures: int = 0
    errors: int = 0
    error_message: Optional[str] = None
