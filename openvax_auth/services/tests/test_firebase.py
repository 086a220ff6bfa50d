"""Tests for :mod:`openvax_auth.services.firebase`."""

from unittest import TestCase, mock

from google.api_core.exceptions import ServiceUnavailable

from openvax_auth.exceptions import IdentityExists, IdentityProviderError, \
    InvalidBearerToken, NoSuchIdentity, StoreError
from openvax_auth.services import DELETE_FIELD
from openvax_auth.services import firebase


def _record(uid='abc', email='jane@clinic.org', disabled=False,
            email_verified=True):
    record = mock.MagicMock(uid=uid, email=email, disabled=disabled,
                            email_verified=email_verified)
    return record


class TestInitialize(TestCase):
    """The Firebase app is created once."""

    @mock.patch(f'{firebase.__name__}.firebase_admin')
    def test_existing_app(self, mock_firebase_admin):
        """An existing app is reused."""
        app = firebase.initialize('key.json')
        self.assertEqual(app, mock_firebase_admin.get_app.return_value)
        mock_firebase_admin.initialize_app.assert_not_called()

    @mock.patch(f'{firebase.__name__}.credentials')
    @mock.patch(f'{firebase.__name__}.firebase_admin')
    def test_default_credentials(self, mock_firebase_admin, mock_credentials):
        """Without a key file, application default credentials are used."""
        mock_firebase_admin.get_app.side_effect = ValueError
        with self.assertLogs(firebase.__name__, level='ERROR'):
            firebase.initialize('/nonexistent/key.json')
        mock_credentials.ApplicationDefault.assert_called_once_with()
        mock_credentials.Certificate.assert_not_called()
        mock_firebase_admin.initialize_app.assert_called_once_with(
            mock_credentials.ApplicationDefault.return_value,
            name=firebase.APP_NAME
        )


class TestFirebaseIdentityProvider(TestCase):
    """Firebase Auth errors are translated."""

    def setUp(self):
        self.app = mock.MagicMock()
        self.identities = firebase.FirebaseIdentityProvider(self.app)

    @mock.patch.object(firebase.auth, 'create_user')
    def test_create(self, mock_create):
        """The new UID is returned."""
        mock_create.return_value = _record(uid='newuid')
        uid = self.identities.create_identity('jane@clinic.org', 'pw')
        self.assertEqual(uid, 'newuid')
        mock_create.assert_called_once_with(
            email='jane@clinic.org', password='pw', email_verified=True,
            disabled=False, app=self.app
        )

    @mock.patch.object(firebase.auth, 'create_user')
    def test_create_exists(self, mock_create):
        """An existing email is :class:`.IdentityExists`."""
        mock_create.side_effect = \
            firebase.auth.EmailAlreadyExistsError('exists', None, None)
        with self.assertRaises(IdentityExists):
            self.identities.create_identity('jane@clinic.org', 'pw')

    @mock.patch.object(firebase.auth, 'create_user')
    def test_create_invalid(self, mock_create):
        """Invalid arguments are provider errors."""
        mock_create.side_effect = ValueError('password too short')
        with self.assertRaises(IdentityProviderError):
            self.identities.create_identity('jane@clinic.org', 'pw')

    @mock.patch.object(firebase.auth, 'get_user_by_email')
    def test_get_by_email(self, mock_get):
        """Users are returned as :class:`.Identity`."""
        mock_get.return_value = _record(disabled=True)
        identity = self.identities.get_identity_by_email('jane@clinic.org')
        self.assertEqual(identity.identity_id, 'abc')
        self.assertTrue(identity.disabled)

    @mock.patch.object(firebase.auth, 'get_user')
    def test_get_missing(self, mock_get):
        """A missing user is :class:`.NoSuchIdentity`."""
        mock_get.side_effect = firebase.auth.UserNotFoundError('missing')
        with self.assertRaises(NoSuchIdentity):
            self.identities.get_identity('abc')

    @mock.patch.object(firebase.auth, 'update_user')
    def test_update(self, mock_update):
        """Fields are passed through."""
        self.identities.update_identity('abc', disabled=True)
        mock_update.assert_called_once_with('abc', app=self.app,
                                            disabled=True)
        with self.assertRaises(ValueError):
            self.identities.update_identity('abc', role='admin')

    @mock.patch.object(firebase.auth, 'update_user')
    def test_update_email_taken(self, mock_update):
        """Taking another user's email is :class:`.IdentityExists`."""
        mock_update.side_effect = \
            firebase.auth.EmailAlreadyExistsError('exists', None, None)
        with self.assertRaises(IdentityExists):
            self.identities.update_identity('abc', email='john@clinic.org')

    @mock.patch.object(firebase.auth, 'delete_user')
    def test_delete_missing(self, mock_delete):
        """Deleting a missing user is :class:`.NoSuchIdentity`."""
        mock_delete.side_effect = firebase.auth.UserNotFoundError('missing')
        with self.assertRaises(NoSuchIdentity):
            self.identities.delete_identity('abc')

    @mock.patch.object(firebase.auth, 'verify_id_token')
    def test_verify(self, mock_verify):
        """ID token claims identify the requester."""
        mock_verify.return_value = {'uid': 'abc', 'email': 'j@clinic.org',
                                    'email_verified': True}
        identity = self.identities.verify_bearer_token('idtoken')
        self.assertEqual(identity.identity_id, 'abc')
        self.assertEqual(identity.email, 'j@clinic.org')

    @mock.patch.object(firebase.auth, 'verify_id_token')
    def test_verify_invalid(self, mock_verify):
        """Rejected tokens are :class:`.InvalidBearerToken`."""
        mock_verify.side_effect = firebase.auth.InvalidIdTokenError('bad')
        with self.assertRaises(InvalidBearerToken):
            self.identities.verify_bearer_token('idtoken')


@mock.patch(f'{firebase.__name__}.firestore.client')
class TestFirestoreDocumentStore(TestCase):
    """Firestore calls are wrapped."""

    def test_get(self, mock_client):
        """Missing documents are ``None``."""
        db = mock_client.return_value
        snapshot = db.collection.return_value.document.return_value \
            .get.return_value
        snapshot.exists = False
        store = firebase.FirestoreDocumentStore(mock.MagicMock())
        self.assertIsNone(store.get('users', 'abc'))
        snapshot.exists = True
        snapshot.to_dict.return_value = {'role': 'admin'}
        self.assertEqual(store.get('users', 'abc'), {'role': 'admin'})

    def test_set_translates_delete(self, mock_client):
        """The delete sentinel becomes Firestore's."""
        db = mock_client.return_value
        ref = db.collection.return_value.document.return_value
        store = firebase.FirestoreDocumentStore(mock.MagicMock())
        store.set('users', 'abc', {'a': 1, 'b': DELETE_FIELD}, merge=True)
        ref.set.assert_called_once_with(
            {'a': 1, 'b': firebase.firestore.DELETE_FIELD}, merge=True
        )

    def test_query(self, mock_client):
        """Query results are documents with their keys."""
        db = mock_client.return_value
        query = db.collection.return_value.where.return_value
        query.stream.return_value = [
            mock.MagicMock(id='s1', **{'to_dict.return_value': {'x': 1}})
        ]
        store = firebase.FirestoreDocumentStore(mock.MagicMock())
        found = store.query('vaccineStock', 'createdBy.email', '==', 'a@x')
        self.assertEqual([(d.key, d.data) for d in found], [('s1', {'x': 1})])

    def test_batch_update(self, mock_client):
        """Updates are committed in one batch."""
        db = mock_client.return_value
        batch = db.batch.return_value
        store = firebase.FirestoreDocumentStore(mock.MagicMock())
        store.batch_update('vaccineStock', [('s1', {'isArchived': True}),
                                            ('s2', {'isArchived': True})])
        self.assertEqual(batch.update.call_count, 2)
        batch.commit.assert_called_once_with()

    def test_batch_failure(self, mock_client):
        """A failed commit is a :class:`.StoreError`."""
        db = mock_client.return_value
        db.batch.return_value.commit.side_effect = ServiceUnavailable('down')
        store = firebase.FirestoreDocumentStore(mock.MagicMock())
        with self.assertRaises(StoreError):
            store.batch_update('vaccineStock', [('s1', {'isArchived': True})])
