"""
Tests for mail_builder module.

These tests cover how a send request becomes an email message:
- decode_text for plain, base64 and unrecognized encodings
- parse_mailbox for bare and named addresses
- build_message header assembly and failure modes
"""

import base64

import pytest

import kinds
import mail_builder
from errors import AddressError, EncodingError, MessageBuildError, ValidationError


def make_payload(**overrides):
    fields = {
        "from": "a@x.com",
        "to": ["b@y.com"],
        "subject": "Hi",
        "text": "hello",
        "encoding": "plain",
    }
    fields.update(overrides)
    return kinds.SendMailPayload.model_validate(fields)


def b64(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


class TestDecodeText:
    """Test decode_text function."""

    def test_plain_text_is_verbatim(self):
        assert mail_builder.decode_text("aGVsbG8=", "plain") == "aGVsbG8="

    def test_unrecognized_encoding_is_verbatim(self):
        """Unknown encodings are neither decoded nor rejected."""
        assert mail_builder.decode_text("aGVsbG8=", "quoted-printable") == "aGVsbG8="

    def test_base64_is_decoded(self):
        assert mail_builder.decode_text("aGVsbG8=", "base64") == "hello"

    @pytest.mark.parametrize(
        "text",
        ["hello", "", "Ciao, come va? àèìòù", "line one\nline two\n", "🚀 launch"],
    )
    def test_base64_round_trip(self, text):
        assert mail_builder.decode_text(b64(text), "base64") == text

    @pytest.mark.parametrize("text", ["not base64!!", "aGVsbG8", "aGVs bG8="])
    def test_invalid_base64_is_rejected(self, text):
        with pytest.raises(EncodingError):
            mail_builder.decode_text(text, "base64")

    def test_non_utf8_bytes_are_rejected(self):
        text = base64.b64encode(b"\xff\xfe\xfd").decode("ascii")
        with pytest.raises(EncodingError) as exc_info:
            mail_builder.decode_text(text, "base64")
        assert "UTF-8" in str(exc_info.value)


class TestParseMailbox:
    """Test parse_mailbox function."""

    def test_bare_address(self):
        address = mail_builder.parse_mailbox("b@y.com")
        assert address.addr_spec == "b@y.com"
        assert address.display_name == ""

    def test_named_address(self):
        address = mail_builder.parse_mailbox("Alice Example <alice@example.com>")
        assert address.addr_spec == "alice@example.com"
        assert address.display_name == "Alice Example"

    def test_quoted_name(self):
        address = mail_builder.parse_mailbox('"Example, Alice" <alice@example.com>')
        assert address.display_name == "Example, Alice"

    @pytest.mark.parametrize(
        ("value", "addr_spec"),
        [
            ("root@localhost", "root@localhost"),
            ("admin@server.local", "admin@server.local"),
            ("user@host.test", "user@host.test"),
            ("x@y.invalid", "x@y.invalid"),
            ("ops@intranet", "ops@intranet"),
            ("a@[127.0.0.1]", "a@[127.0.0.1]"),
        ],
    )
    def test_reserved_and_literal_domains(self, value, addr_spec):
        """Reserved names and IP literals are valid syntax for a private relay."""
        assert mail_builder.parse_mailbox(value).addr_spec == addr_spec

    @pytest.mark.parametrize(
        "value",
        ["not-an-email", "", "a@", "@x.com", "a b@x.com", "Alice <not-an-email>", "a@x..com"],
    )
    def test_invalid_address(self, value):
        with pytest.raises(AddressError) as exc_info:
            mail_builder.parse_mailbox(value)
        assert exc_info.value.address == value
        assert "Invalid email address" in str(exc_info.value)


class TestBuildMessage:
    """Test build_message function."""

    def test_headers_and_body(self):
        outbound = mail_builder.build_message(
            make_payload(to=["b@y.com", "Carol <c@z.com>"], subject="Greetings")
        )
        message = outbound.message

        assert message["From"] == "a@x.com"
        assert message["To"] == "b@y.com, Carol <c@z.com>"
        assert message["Subject"] == "Greetings"
        assert message["Date"]
        assert message["Message-ID"]
        assert message.get_content().rstrip("\r\n") == "hello"

    def test_local_sender_and_literal_recipient(self):
        outbound = mail_builder.build_message(
            make_payload(**{"from": "root@localhost", "to": ["a@[127.0.0.1]"]})
        )
        assert outbound.envelope_from == "root@localhost"
        assert outbound.envelope_to == ["a@[127.0.0.1]"]

    def test_envelope_preserves_recipient_order(self):
        outbound = mail_builder.build_message(make_payload(to=["c@z.com", "b@y.com", "a@x.com"]))
        assert outbound.envelope_from == "a@x.com"
        assert outbound.envelope_to == ["c@z.com", "b@y.com", "a@x.com"]

    def test_base64_body_round_trip(self):
        text = "Disk usage: 42%\nMemory: 1024 MB free\nàèìòù"
        outbound = mail_builder.build_message(make_payload(text=b64(text), encoding="base64"))
        assert outbound.body == text
        assert outbound.message.get_content().replace("\r\n", "\n").rstrip("\n") == text

    def test_invalid_sender(self):
        with pytest.raises(AddressError) as exc_info:
            mail_builder.build_message(make_payload(**{"from": "not-an-email"}))
        assert exc_info.value.address == "not-an-email"

    def test_first_invalid_recipient_is_reported(self):
        with pytest.raises(AddressError) as exc_info:
            mail_builder.build_message(make_payload(to=["b@y.com", "bad-one", "bad-two"]))
        assert exc_info.value.address == "bad-one"

    def test_encoding_is_checked_before_addresses(self):
        with pytest.raises(EncodingError):
            mail_builder.build_message(
                make_payload(**{"from": "not-an-email", "text": "%%%", "encoding": "base64"})
            )

    def test_empty_recipient_list(self):
        with pytest.raises(MessageBuildError) as exc_info:
            mail_builder.build_message(make_payload(to=[]))
        assert "missing destination address" in str(exc_info.value)

    def test_subject_with_line_break(self):
        with pytest.raises(MessageBuildError):
            mail_builder.build_message(make_payload(subject="Hi\r\nBcc: victim@example.com"))

    def test_errors_share_validation_base(self):
        assert issubclass(AddressError, ValidationError)
        assert issubclass(EncodingError, ValidationError)
        assert issubclass(MessageBuildError, ValidationError)
