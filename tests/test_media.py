"""Tests for attachment validation and base64 transport encoding."""

import base64
import unittest

from groupchat import media
from groupchat.errors import InvalidAttachmentError, PayloadTooLargeError, UnsupportedMediaTypeError


PNG_HEADER = b"\x89PNG\r\n\x1a\n" + bytes(range(256))


class TestEncode(unittest.TestCase):

    def test_decode_returns_original_bytes(self):
        for kind, mime in (("image", "image/png"), ("audio", "audio/webm")):
            attachment = media.encode(PNG_HEADER, mime, kind)
            self.assertEqual(media.decode(attachment), PNG_HEADER)
            self.assertEqual(attachment.size, len(PNG_HEADER))
            self.assertEqual(attachment.kind, kind)

    def test_mime_parameters_are_dropped(self):
        attachment = media.encode(b"opus", "audio/webm;codecs=opus", "audio")
        self.assertEqual(attachment.mime_type, "audio/webm")

    def test_six_mebibytes_is_rejected(self):
        with self.assertRaises(PayloadTooLargeError):
            media.encode(b"\0" * (6 * 1024 * 1024), "image/png", "image")

    def test_exactly_the_limit_is_accepted(self):
        attachment = media.encode(b"\0" * (5 * 1024 * 1024), "image/png", "image")
        self.assertEqual(attachment.size, 5 * 1024 * 1024)

    def test_mime_from_other_kind_is_rejected(self):
        with self.assertRaises(UnsupportedMediaTypeError):
            media.encode(b"abc", "audio/ogg", "image")
        with self.assertRaises(UnsupportedMediaTypeError):
            media.encode(b"abc", "image/svg+xml", "image")

    def test_unknown_kind_is_rejected(self):
        with self.assertRaises(UnsupportedMediaTypeError):
            media.encode(b"abc", "video/mp4", "video")

    def test_codec_errors_are_attachment_errors(self):
        self.assertTrue(issubclass(PayloadTooLargeError, InvalidAttachmentError))
        self.assertTrue(issubclass(UnsupportedMediaTypeError, InvalidAttachmentError))


class TestParseInbound(unittest.TestCase):

    def test_plain_base64(self):
        payload = {"kind": "image", "mime_type": "image/gif", "data": base64.b64encode(b"GIF89a").decode()}
        attachment = media.parse_inbound(payload)
        self.assertEqual(media.decode(attachment), b"GIF89a")
        self.assertEqual(attachment.mime_type, "image/gif")

    def test_data_url_supplies_mime_type(self):
        encoded = base64.b64encode(b"webm-bytes").decode()
        payload = {"kind": "audio", "data": f"data:audio/webm;codecs=opus;base64,{encoded}"}
        attachment = media.parse_inbound(payload)
        self.assertEqual(attachment.mime_type, "audio/webm")
        self.assertEqual(media.decode(attachment), b"webm-bytes")

    def test_invalid_base64_is_rejected(self):
        with self.assertRaises(InvalidAttachmentError):
            media.parse_inbound({"kind": "image", "mime_type": "image/png", "data": "not base64!!"})

    def test_missing_fields_are_rejected(self):
        with self.assertRaises(InvalidAttachmentError):
            media.parse_inbound({"kind": "image"})
        with self.assertRaises(InvalidAttachmentError):
            media.parse_inbound("image")
        with self.assertRaises(InvalidAttachmentError):
            media.parse_inbound({"kind": "image", "data": base64.b64encode(b"x").decode()})

    def test_oversized_payload_is_rejected_before_decoding(self):
        data = "A" * (8 * 1024 * 1024)
        with self.assertRaises(PayloadTooLargeError):
            media.parse_inbound({"kind": "image", "mime_type": "image/png", "data": data})


class TestDataUrl(unittest.TestCase):

    def test_data_url(self):
        self.assertEqual(media.data_url("image/png", b"\x00\x01"), "data:image/png;base64,AAE=")


if __name__ == "__main__":
    unittest.main()
