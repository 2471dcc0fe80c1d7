"""
Unit tests for page tokens and limit clamping.
"""
import base64

import pytest

from ledger.pagination import clamp_limit, decode_page_token, encode_page_token


@pytest.mark.unit
class TestPageTokens:
    """Tests for the opaque offset token."""

    def test_missing_token_is_offset_zero(self):
        assert decode_page_token(None) == 0
        assert decode_page_token("") == 0

    def test_token_is_base64_of_next_offset(self):
        token = encode_page_token(offset=0, limit=25, has_more=True)
        assert token == base64.b64encode(b"25").decode()
        assert decode_page_token(token) == 25

    def test_no_token_at_end_of_sequence(self):
        assert encode_page_token(offset=50, limit=25, has_more=False) is None

    def test_token_from_older_clients_decodes(self):
        """Tokens minted as base64("<offset>") keep working."""
        assert decode_page_token(base64.b64encode(b"100").decode()) == 100

    @pytest.mark.parametrize("token", ["not base64!", "@@@", base64.b64encode(b"abc").decode()])
    def test_garbage_token_restarts_at_zero(self, token):
        assert decode_page_token(token) == 0

    def test_negative_offset_is_rejected(self):
        assert decode_page_token(base64.b64encode(b"-5").decode()) == 0

    def test_walking_pages_covers_every_row_once(self):
        """Following tokens over 7 rows with limit 3 visits offsets 0, 3, 6."""
        total, limit = 7, 3
        offsets, token = [], None
        while True:
            offset = decode_page_token(token)
            offsets.append(offset)
            token = encode_page_token(offset, limit, offset + limit < total)
            if token is None:
                break
        assert offsets == [0, 3, 6]


@pytest.mark.unit
class TestClampLimit:
    """Tests for clamp_limit."""

    def test_default_when_absent(self):
        assert clamp_limit(None, 25) == 25
        assert clamp_limit("", 25) == 25

    def test_unparseable_falls_back_to_default(self):
        assert clamp_limit("lots", 25) == 25

    def test_clamped_to_range(self):
        assert clamp_limit("0", 25) == 1
        assert clamp_limit("-10", 25) == 1
        assert clamp_limit("1000", 25, maximum=500) == 500
        assert clamp_limit("150", 25, maximum=100) == 100

    def test_in_range_value_kept(self):
        assert clamp_limit("40", 25) == 40
        assert clamp_limit(7, 25) == 7
