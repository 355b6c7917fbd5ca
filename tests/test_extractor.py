"""
Tests for rebuilding messages from raw mailbox parts
"""
import pytest

from autoreply.extractor import ExtractionError, build_raw_message, extract
from autoreply.models import RawMessage
from factories import make_raw


class TestBuildRawMessage:
    """Header block reconstruction"""

    def test_one_line_per_value(self):
        raw = build_raw_message(
            {"From": ["a@example.org"], "Received": ["from one", "from two"]},
            "body text",
        )
        assert raw == (
            "From: a@example.org\r\n"
            "Received: from one\r\n"
            "Received: from two\r\n"
            "\r\n"
            "body text"
        )

    def test_single_string_values_are_accepted(self):
        raw = build_raw_message({"Subject": "Hello"})
        assert raw == "Subject: Hello\r\n\r\n"


class TestExtract:
    """Structured field extraction"""

    def test_sender_is_normalized(self):
        message = extract(make_raw(from_header="Alice Smith <Alice@Example.ORG>"))
        assert message.sender_address == "alice@example.org"
        assert message.sender_name == "Alice Smith"

    def test_sender_without_display_name(self):
        message = extract(make_raw(from_header="bob@example.org"))
        assert message.sender_address == "bob@example.org"
        assert message.sender_name == ""

    def test_missing_header_part_fails(self):
        with pytest.raises(ExtractionError):
            extract(RawMessage(uid="7", headers=None, body="hello"))

    def test_missing_sender_fails(self):
        with pytest.raises(ExtractionError):
            extract(make_raw(from_header=None))

    def test_sender_without_address_fails(self):
        with pytest.raises(ExtractionError):
            extract(make_raw(from_header="undisclosed-recipients:;"))

    def test_missing_subject_gets_placeholder(self):
        message = extract(make_raw(subject=None))
        assert message.subject == "(No Subject)"

    def test_encoded_subject_is_decoded(self):
        message = extract(make_raw(subject="=?utf-8?q?Caf=C3=A9_order?="))
        assert message.subject == "Café order"

    def test_threading_fields(self):
        message = extract(
            make_raw(
                message_id="<m2@example.org>",
                extra_headers={"References": ["<m0@example.org> <m1@example.org>"]},
            )
        )
        assert message.message_id == "<m2@example.org>"
        assert message.references == "<m0@example.org> <m1@example.org>"

    def test_absent_threading_fields_are_none(self):
        message = extract(make_raw(message_id=None))
        assert message.message_id is None
        assert message.references is None

    def test_reply_to(self):
        message = extract(make_raw(extra_headers={"Reply-To": ["Jane Doe <Jane@Example.com>"]}))
        assert message.reply_to_address == "jane@example.com"
        assert message.reply_to_name == "Jane Doe"

    def test_plain_body_is_kept(self):
        message = extract(make_raw(body="Hello there\r\nSecond line"))
        assert "Hello there" in message.body
        assert "Second line" in message.body

    def test_quoted_printable_body_is_decoded(self):
        raw = make_raw(
            body='<th style=3D"width:30%"><strong>Email</strong></th>',
            extra_headers={
                "Content-Type": ["text/html; charset=utf-8"],
                "Content-Transfer-Encoding": ["quoted-printable"],
            },
        )
        message = extract(raw)
        assert 'style="width:30%"' in message.body

    def test_multipart_body_collects_text_parts(self):
        body = (
            "--XYZ\r\n"
            "Content-Type: text/plain; charset=utf-8\r\n"
            "\r\n"
            "Plain version\r\n"
            "--XYZ\r\n"
            "Content-Type: text/html; charset=utf-8\r\n"
            "\r\n"
            "<p>HTML version</p>\r\n"
            "--XYZ--\r\n"
        )
        raw = make_raw(
            body=body,
            extra_headers={
                "MIME-Version": ["1.0"],
                "Content-Type": ['multipart/alternative; boundary="XYZ"'],
            },
        )
        message = extract(raw)
        assert "Plain version" in message.body
        assert "<p>HTML version</p>" in message.body
        assert "--XYZ" not in message.body

    def test_raw_headers_are_preserved(self):
        raw = make_raw(extra_headers={"Received": ["from one", "from two"]})
        message = extract(raw)
        assert message.headers["Received"] == ["from one", "from two"]
        assert message.uid == raw.uid
