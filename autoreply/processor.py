"""
Polling cycle: fetch, classify, reply, flag

Runs one complete pass over the mailbox. The mailbox and SMTP sessions are
opened for the duration of the cycle and closed on every exit path.
"""
import logging
from datetime import datetime
from typing import Callable, Optional, Sequence

from .classifier import classify
from .composer import compose_reply
from .config import Settings
from .extractor import ExtractionError, extract
from .form_adapters import DEFAULT_FORM_ADAPTERS, FormAdapter
from .mailbox import IMAPMailbox, MailboxError
from .models import CycleReport, CycleStatus, RawMessage, Skip, SkipReason
from .smtp_sender import SendError, SMTPSender
from .time_window import is_active, now_in_timezone

logger = logging.getLogger(__name__)

SKIP_LOG_MESSAGES = {
    SkipReason.SELF_LOOP: "Our own auto-reply (loop prevention)",
    SkipReason.AUTO_MAILER: "Auto-mailer detected",
    SkipReason.IGNORED_DOMAIN: "Domain in ignore list",
    SkipReason.UNRESOLVABLE_FORM_CORRESPONDENT: "Cannot extract customer email from form submission",
}


class AutoReplyProcessor:
    """Runs polling cycles against one mailbox"""

    def __init__(
        self,
        settings: Settings,
        mailbox_factory: Optional[Callable[[Settings], IMAPMailbox]] = None,
        sender_factory: Optional[Callable[[Settings], SMTPSender]] = None,
        form_adapters: Sequence[FormAdapter] = DEFAULT_FORM_ADAPTERS,
        clock: Callable[[str], datetime] = now_in_timezone,
    ):
        """
        Args:
            settings: Loaded service settings
            mailbox_factory: Builds the IMAP session for a cycle
            sender_factory: Builds the SMTP session for a cycle
            form_adapters: Body scrapers tried for form notifications, in order
            clock: Returns the current time for a timezone name
        """
        self.settings = settings
        self.mailbox_factory = mailbox_factory or IMAPMailbox.from_settings
        self.sender_factory = sender_factory or SMTPSender.from_settings
        self.form_adapters = form_adapters
        self.clock = clock
        self.last_report: Optional[CycleReport] = None

    def run_cycle(self, now: Optional[datetime] = None) -> CycleReport:
        """Run one pass over unseen, unanswered messages"""
        now = now or self.clock(self.settings.timezone)
        report = CycleReport(started_at=now)

        if not is_active(now, self.settings):
            logger.info("Auto-reply inactive (outside active hours)")
            report.status = CycleStatus.INACTIVE
            return self._finish(report)

        try:
            with self.mailbox_factory(self.settings) as mailbox:
                messages = mailbox.fetch_unprocessed()
                report.fetched = len(messages)

                if not messages:
                    if self.settings.debug_mode:
                        logger.info("No new emails to process")
                    return self._finish(report)

                logger.info(f"Found {len(messages)} new email(s) to process")

                with self.sender_factory(self.settings) as sender:
                    handled_uids = set()
                    for raw in messages:
                        if raw.uid in handled_uids:
                            logger.debug(f"Skipping duplicate UID {raw.uid} in this cycle")
                            continue
                        handled_uids.add(raw.uid)
                        self.process_message(raw, mailbox, sender, report)

            logger.info("--- Auto-reply cycle completed ---")

        except (MailboxError, SendError) as e:
            logger.error(f"Connection error, cycle aborted: {e}")
            report.status = CycleStatus.CONNECTION_ERROR
            report.error_message = str(e)

        return self._finish(report)

    def process_message(self, raw: RawMessage, mailbox: IMAPMailbox, sender: SMTPSender, report: CycleReport) -> None:
        """
        Handle a single message. Failures stay inside this boundary.

        Skipped messages are flagged \\Seen; replied messages \\Seen and
        \\Answered after the send succeeded. Messages that could not be parsed
        or whose reply failed are left unflagged for the next cycle.
        """
        logger.info(f"Email UID: {raw.uid}")

        try:
            try:
                message = extract(raw)
            except ExtractionError as e:
                logger.warning(f"  → SKIPPED, left unflagged: {e}")
                report.extraction_failures += 1
                return

            outcome = classify(message, self.settings, self.form_adapters)

            if isinstance(outcome, Skip):
                logger.info(f"  → IGNORED: {SKIP_LOG_MESSAGES[outcome.reason]} ({message.sender_address})")
                mailbox.mark_handled(raw.uid, seen=True)
                report.skipped += 1
                return

            if message.sender_address == self.settings.service_address:
                logger.info(f"  → Form submission - replying to: {outcome.target_name} <{outcome.target_email}>")
            else:
                logger.info(f"  → Replying to: {outcome.target_name} <{outcome.target_email}>")

            reply = compose_reply(message, outcome, self.settings)

            try:
                sender.send(reply)
            except SendError as e:
                logger.error(f"  ✗ {e}")
                report.send_failures += 1
                return

            logger.info(f"  ✓ Auto-reply sent successfully to: {reply.to_address}")

            mailbox.mark_handled(raw.uid, seen=True, answered=True)
            logger.info("  ✓ Email marked as Seen and Answered")
            report.replied += 1

        except Exception as e:
            logger.error(f"Error processing email UID {raw.uid}: {e}", exc_info=True)
            report.errors += 1

    def _finish(self, report: CycleReport) -> CycleReport:
        report.finished_at = self.clock(self.settings.timezone)
        self.last_report = report
        return report
