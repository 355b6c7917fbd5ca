"""
Decides whether an inbound message gets an auto-reply, and to whom
"""
import logging
from typing import Optional, Sequence

from .config import Settings
from .form_adapters import DEFAULT_FORM_ADAPTERS, FormAdapter, resolve_from_body
from .models import ClassificationOutcome, Correspondent, InboundMessage, Respond, Skip, SkipReason

logger = logging.getLogger(__name__)

AUTO_MAILER_SENDER_MARKERS = ("no-reply", "noreply", "mailer-daemon")
AUTO_MAILER_SUBJECT_MARKER = "auto"
FALLBACK_NAME = "there"


def classify(
    message: InboundMessage,
    settings: Settings,
    form_adapters: Sequence[FormAdapter] = DEFAULT_FORM_ADAPTERS,
) -> ClassificationOutcome:
    """
    Run the ordered guard chain; the first matching rule wins.

    1. Our own earlier reply coming back (self-sent "Re:") -> skip
    2. Automated senders or "auto" subjects -> skip
    3. Ignored sender domains -> skip
    4. Self-sent messages are form notifications: reply to the submitter
       found in Reply-To or the body, skip if none can be found
    5. Everything else -> reply to the sender
    """
    sender = message.sender_address.lower()
    subject = message.subject.strip().lower()
    is_from_self = sender == settings.service_address

    if is_from_self and subject.startswith("re:"):
        return Skip(reason=SkipReason.SELF_LOOP)

    if any(marker in sender for marker in AUTO_MAILER_SENDER_MARKERS) or AUTO_MAILER_SUBJECT_MARKER in subject:
        return Skip(reason=SkipReason.AUTO_MAILER)

    if any(sender.endswith(domain) for domain in settings.ignore_domains):
        return Skip(reason=SkipReason.IGNORED_DOMAIN)

    # Every self-sent message that got this far is treated as a relayed form
    # notification; the form service sends through our own mailbox.
    if is_from_self:
        correspondent = resolve_form_correspondent(message, form_adapters)
        if correspondent is None:
            return Skip(reason=SkipReason.UNRESOLVABLE_FORM_CORRESPONDENT)
        return Respond(target_email=correspondent.email, target_name=correspondent.name or FALLBACK_NAME)

    return Respond(target_email=sender, target_name=message.sender_name or FALLBACK_NAME)


def resolve_form_correspondent(
    message: InboundMessage,
    form_adapters: Sequence[FormAdapter] = DEFAULT_FORM_ADAPTERS,
) -> Optional[Correspondent]:
    """Reply-To first, then the body adapters"""
    if message.reply_to_address:
        return Correspondent(email=message.reply_to_address.lower(), name=message.reply_to_name)

    if message.body:
        return resolve_from_body(message.body, form_adapters)

    return None
