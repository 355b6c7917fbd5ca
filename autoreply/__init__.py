"""
Email Auto-Reply Service

Polls a single IMAP mailbox and acknowledges new inbound email:
- Skips our own replies, automated senders and ignored domains
- Resolves the real customer behind relayed web-form notifications
- Sends a threaded acknowledgement over SMTP and flags the message answered
"""

__version__ = "1.0.0"
