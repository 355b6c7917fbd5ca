"""
Strategies for pulling the real correspondent out of form-notification bodies
"""
import logging
import re
from abc import ABC, abstractmethod
from typing import Optional, Tuple

from .models import Correspondent

logger = logging.getLogger(__name__)


class FormAdapter(ABC):
    """Given a message body, optionally produce a correspondent"""

    name = "base"

    @abstractmethod
    def extract(self, body: str) -> Optional[Correspondent]:
        """Return the submitter, or None when the body is not in this format"""


class HtmlTableFormAdapter(FormAdapter):
    """
    Reads notifications that lay submitted fields out as table rows:

        <tr><th><strong>Email</strong></th></tr>
        <tr><td>jane@example.com</td></tr>

    The header cell label is matched case-insensitively and the first data
    cell after it holds the value.
    """

    name = "html-table"

    def __init__(self, email_label: str = "Email", name_label: str = "Full Name"):
        self.email_pattern = self._row_pattern(email_label, r"([^\s<]+@[^\s<]+)")
        self.name_pattern = self._row_pattern(name_label, r"([^<]+?)")

    @staticmethod
    def _row_pattern(label: str, value: str) -> re.Pattern:
        return re.compile(
            r"<th[^>]*>\s*<strong[^>]*>\s*" + re.escape(label) + r"\s*</strong>\s*</th>"
            r"[\s\S]*?<td[^>]*>\s*" + value + r"\s*</td>",
            re.IGNORECASE,
        )

    def extract(self, body: str) -> Optional[Correspondent]:
        if not body:
            return None

        email_match = self.email_pattern.search(body)
        if not email_match:
            return None

        name_match = self.name_pattern.search(body)
        name = name_match.group(1).strip() if name_match else None

        return Correspondent(email=email_match.group(1).strip(), name=name or None)


DEFAULT_FORM_ADAPTERS: Tuple[FormAdapter, ...] = (HtmlTableFormAdapter(),)


def resolve_from_body(body: str, adapters=DEFAULT_FORM_ADAPTERS) -> Optional[Correspondent]:
    """Try each adapter in order; the first one that finds an address wins"""
    for adapter in adapters:
        correspondent = adapter.extract(body)
        if correspondent is not None:
            logger.debug(f"Form adapter '{adapter.name}' resolved {correspondent.email}")
            return correspondent
    return None
