"""Tests for :mod:`openvax_auth.services.memory`."""

from unittest import TestCase

from openvax_auth.domain import MailMessage
from openvax_auth.exceptions import IdentityExists, InvalidBearerToken, \
    MailNotConfigured, NoSuchIdentity, StoreError
from openvax_auth.services import DELETE_FIELD
from openvax_auth.services import memory


class TestMemoryIdentityProvider(TestCase):
    """The in-memory provider behaves like the real one."""

    def setUp(self):
        self.identities = memory.MemoryIdentityProvider()
        self.uid = self.identities.create_identity('jane@clinic.org', 'pw')

    def test_duplicate_email(self):
        """Emails are unique."""
        with self.assertRaises(IdentityExists):
            self.identities.create_identity('jane@clinic.org', 'pw')

    def test_update(self):
        """Known fields can be updated."""
        self.identities.update_identity(self.uid, disabled=True,
                                        password='new')
        self.assertTrue(self.identities.get_identity(self.uid).disabled)
        self.assertEqual(self.identities.password_for(self.uid), 'new')
        with self.assertRaises(ValueError):
            self.identities.update_identity(self.uid, role='admin')

    def test_update_email_taken(self):
        """Changing to another identity's email fails."""
        self.identities.create_identity('john@clinic.org', 'pw')
        with self.assertRaises(IdentityExists):
            self.identities.update_identity(self.uid,
                                            email='john@clinic.org')
        self.identities.update_identity(self.uid, email='jane@clinic.org')

    def test_delete(self):
        """Deleted identities are gone, and so are their tokens."""
        token = self.identities.issue_token(self.uid)
        self.identities.delete_identity(self.uid)
        with self.assertRaises(NoSuchIdentity):
            self.identities.get_identity(self.uid)
        with self.assertRaises(NoSuchIdentity):
            self.identities.delete_identity(self.uid)
        with self.assertRaises(InvalidBearerToken):
            self.identities.verify_bearer_token(token)

    def test_tokens(self):
        """Issued tokens resolve to their identity."""
        token = self.identities.issue_token(self.uid)
        identity = self.identities.verify_bearer_token(token)
        self.assertEqual(identity.identity_id, self.uid)
        self.assertEqual(identity.email, 'jane@clinic.org')


class TestMemoryDocumentStore(TestCase):
    """The in-memory store behaves like Firestore."""

    def setUp(self):
        self.store = memory.MemoryDocumentStore()
        self.store.put('stock', 'a', {'qty': 1, 'createdBy': {'email': 'x'}})
        self.store.put('stock', 'b', {'qty': 2, 'createdBy': {'email': 'y'}})
        self.store.put('stock', 'c', {'qty': 3})

    def test_set_and_merge(self):
        """Set replaces a document unless merging."""
        self.store.set('stock', 'a', {'qty': 5}, merge=True)
        self.assertEqual(self.store.get('stock', 'a'),
                         {'qty': 5, 'createdBy': {'email': 'x'}})
        self.store.set('stock', 'a', {'qty': 6})
        self.assertEqual(self.store.get('stock', 'a'), {'qty': 6})
        self.store.set('stock', 'a', {'qty': DELETE_FIELD}, merge=True)
        self.assertEqual(self.store.get('stock', 'a'), {})

    def test_copies(self):
        """Documents are not shared with callers."""
        document = self.store.get('stock', 'a')
        document['createdBy']['email'] = 'changed'
        self.assertEqual(self.store.get('stock', 'a')['createdBy']['email'],
                         'x')

    def test_delete(self):
        """Deleting a missing document is fine."""
        self.store.delete('stock', 'a')
        self.store.delete('stock', 'a')
        self.assertIsNone(self.store.get('stock', 'a'))

    def test_query(self):
        """Dotted paths reach into nested fields."""
        found = self.store.query('stock', 'createdBy.email', '==', 'x')
        self.assertEqual([document.key for document in found], ['a'])
        found = self.store.query('stock', 'qty', '>=', 2)
        self.assertEqual(sorted(document.key for document in found),
                         ['b', 'c'])
        with self.assertRaises(StoreError):
            self.store.query('stock', 'qty', 'like', 2)

    def test_batch_update(self):
        """Batches apply to every document."""
        self.store.batch_update('stock', [('a', {'qty': 10}),
                                          ('b', {'qty': DELETE_FIELD})])
        self.assertEqual(self.store.get('stock', 'a')['qty'], 10)
        self.assertNotIn('qty', self.store.get('stock', 'b'))

    def test_batch_update_atomic(self):
        """Nothing is written if any document is missing."""
        with self.assertRaises(StoreError):
            self.store.batch_update('stock', [('a', {'qty': 10}),
                                              ('missing', {'qty': 1})])
        self.assertEqual(self.store.get('stock', 'a')['qty'], 1)


class TestOutboxMailTransport(TestCase):
    def test_send(self):
        """Messages are kept, unless the transport is unconfigured."""
        message = MailMessage(sender='a@x.com', to='b@x.com', subject='Hi')
        transport = memory.OutboxMailTransport()
        transport.send(message)
        self.assertEqual(transport.outbox, [message])
        with self.assertRaises(MailNotConfigured):
            memory.OutboxMailTransport(configured=False).send(message)
