"""Tests for :mod:`openvax_auth.controllers.util`."""

from unittest import TestCase
from http import HTTPStatus as status

from openvax_auth.controllers import util
from openvax_auth.exceptions import EmailInUse, ExpiredError, \
    IdentityProviderError, InvalidBearerToken, NoSuchIdentity, \
    ValidationError, AuthorizationError


class TestStatusFor(TestCase):
    """Each handled error maps to one status code."""

    def test_status_codes(self):
        """Subclasses get the code of their category."""
        self.assertEqual(util.status_for(InvalidBearerToken('x')),
                         status.UNAUTHORIZED)
        self.assertEqual(util.status_for(AuthorizationError('x')),
                         status.FORBIDDEN)
        self.assertEqual(util.status_for(ValidationError('x')),
                         status.BAD_REQUEST)
        self.assertEqual(util.status_for(NoSuchIdentity('x')),
                         status.NOT_FOUND)
        self.assertEqual(util.status_for(ExpiredError('x')),
                         status.BAD_REQUEST)
        self.assertEqual(util.status_for(EmailInUse('a@b.org')),
                         status.CONFLICT)
        self.assertEqual(util.status_for(IdentityProviderError('x')),
                         status.INTERNAL_SERVER_ERROR)

    def test_unknown_error(self):
        """Anything else is a server error."""
        self.assertEqual(util.status_for(KeyError('x')),
                         status.INTERNAL_SERVER_ERROR)


class TestHandleErrors(TestCase):
    """Handled errors become failed responses."""

    def test_handled(self):
        """The message and status come from the error."""
        @util.handle_errors
        def controller():
            raise ValidationError('Email is required')

        data, code, headers = controller()
        self.assertEqual(data, {'success': False,
                                'message': 'Email is required'})
        self.assertEqual(code, status.BAD_REQUEST)
        self.assertEqual(headers, {})

    def test_server_error_logged(self):
        """Collaborator failures are logged as errors."""
        @util.handle_errors
        def controller():
            raise IdentityProviderError('unreachable')

        with self.assertLogs(util.__name__, level='ERROR'):
            _, code, _ = controller()
        self.assertEqual(code, status.INTERNAL_SERVER_ERROR)

    def test_unhandled(self):
        """Programming errors propagate."""
        @util.handle_errors
        def controller():
            raise KeyError('uid')

        with self.assertRaises(KeyError):
            controller()

    def test_success(self):
        """Successful responses pass through."""
        @util.handle_errors
        def controller():
            return util.success(uid='abc', message='User created')

        data, code, _ = controller()
        self.assertEqual(data, {'success': True, 'uid': 'abc',
                                'message': 'User created'})
        self.assertEqual(code, status.OK)


class TestAsBool(TestCase):
    def test_strings(self):
        """Common spellings of true and false are understood."""
        self.assertTrue(util.as_bool('true'))
        self.assertTrue(util.as_bool(' Yes '))
        self.assertFalse(util.as_bool('false'))
        self.assertFalse(util.as_bool('0'))
        self.assertTrue(util.as_bool(True))
        self.assertFalse(util.as_bool(0))
