"""Tests for :mod:`openvax_auth.tokens`."""

from unittest import TestCase, mock
from datetime import datetime, timedelta
import string

from hypothesis import given, settings
from hypothesis import strategies as st
from pytz import UTC

from openvax_auth import tokens
from openvax_auth.domain import SignedToken

NOW = datetime(2024, 3, 1, 12, 0, 0, tzinfo=UTC)

json_values = st.recursive(
    st.none() | st.booleans() | st.integers() | st.text(),
    lambda children: st.lists(children, max_size=4)
    | st.dictionaries(st.text(), children, max_size=4),
    max_leaves=10
)
payloads = st.dictionaries(st.text(), json_values, max_size=5)


class TestRoundTrip(TestCase):
    """A freshly issued token validates to its payload."""

    @settings(max_examples=200)
    @given(payload=payloads, secret=st.text(string.printable, min_size=1))
    def test_validate_issued_token(self, payload, secret):
        """Any JSON payload survives issue and validate."""
        token = tokens.issue(payload, secret, 60)
        self.assertEqual(tokens.validate(token, secret), payload)

    def test_token_format(self):
        """The token is base64url body, a dot, and a hex signature."""
        token = tokens.issue({'uid': 'abc', 'newEmail': 'a@x.com'}, 'foo', 60)
        body, signature = token.rsplit('.', 1)
        self.assertNotIn('=', body)
        self.assertEqual(len(signature), 64)
        int(signature, 16)

    @mock.patch(f'{tokens.__name__}._now')
    def test_decode(self, mock_now):
        """Issue and expiry times are carried in the token."""
        mock_now.return_value = NOW
        token = tokens.issue({'uid': 'abc'}, 'foo', 3600)
        signed = tokens.decode(token, 'foo')
        self.assertIsInstance(signed, SignedToken)
        self.assertEqual(signed.payload, {'uid': 'abc'})
        self.assertEqual(signed.issued_at, NOW)
        self.assertEqual(signed.expires_at, NOW + timedelta(hours=1))


class TestValidate(TestCase):
    """Validation fails closed."""

    @given(payload=payloads)
    def test_wrong_secret(self, payload):
        """A token signed with another secret is not valid."""
        token = tokens.issue(payload, 'foosecret', 60)
        self.assertIsNone(tokens.validate(token, 'barsecret'))

    @mock.patch(f'{tokens.__name__}._now')
    def test_expired(self, mock_now):
        """A token is valid until its expiry, and not after."""
        mock_now.return_value = NOW
        token = tokens.issue({'uid': 'abc'}, 'foo', 60)

        mock_now.return_value = NOW + timedelta(seconds=60)
        self.assertEqual(tokens.validate(token, 'foo'), {'uid': 'abc'})

        mock_now.return_value = NOW + timedelta(seconds=61)
        self.assertIsNone(tokens.validate(token, 'foo'))

    def test_tampered_payload(self):
        """Changing the body invalidates the signature."""
        token = tokens.issue({'uid': 'abc'}, 'foo', 60)
        _, signature = token.rsplit('.', 1)
        forged = tokens._serialize({'uid': 'eve'}, 0, 10 ** 13)
        self.assertIsNone(
            tokens.validate(tokens._b64encode(forged) + '.' + signature,
                            'foo')
        )

    def test_malformed(self):
        """Garbage never raises."""
        for token in ['', 'nodot', '.', 'abc.', '.abc', '!!!.zz', 'a.b.c',
                      tokens._b64encode(b'not json') + '.00']:
            self.assertIsNone(tokens.validate(token, 'foo'), token)
        self.assertIsNone(tokens.validate(None, 'foo'))

    def test_signed_non_object(self):
        """A correctly signed body without a payload object is rejected."""
        body = b'[1, 2, 3]'
        token = tokens._b64encode(body) + '.' + tokens._sign(body, 'foo').hex()
        self.assertIsNone(tokens.validate(token, 'foo'))
