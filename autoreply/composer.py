"""
Builds the acknowledgement reply for a message that passed classification
"""
from .config import Settings
from .models import InboundMessage, OutboundReply, Respond

REPLY_SUBJECT = "Re: We'll Reply Soon As Possible"

REPLY_BODY_TEMPLATE = """Dear {name},

Thank you for contacting {service_name}.

Your message has been received and is currently being reviewed by our team. One of our representatives will get back to you as soon as possible.

Kind regards,
{service_name} Team"""


def compose_reply(message: InboundMessage, outcome: Respond, settings: Settings) -> OutboundReply:
    """
    Build a threaded reply.

    References falls back to the original Message-ID when the inbound message
    carries no References chain.
    """
    return OutboundReply(
        from_address=settings.service_address,
        from_name=settings.service_name,
        to_address=outcome.target_email,
        to_name=outcome.target_name,
        subject=REPLY_SUBJECT,
        body=REPLY_BODY_TEMPLATE.format(name=outcome.target_name, service_name=settings.service_name),
        in_reply_to=message.message_id,
        references=message.references or message.message_id,
    )
