"""
test_inbox_service.py — Tests for services/inbox_service.py

Sender folders, received/labeled filters, latest-per-thread listings
and show_thread. Uses in-memory SQLite.

Called by: pytest
Depends on: messaging/services/inbox_service.py, conftest.py
"""

from messaging.services import inbox_service


def _ids(rows):
    return [r.id for r in rows]


# ── Sender folders ──────────────────────────────────────────────────


class TestSenderFolders:
    def test_unsent_and_sent_split(self, db_session, make_message, alice, bob):
        draft = make_message(alice, to=[bob], state="unsent")
        queued = make_message(alice, to=[bob], state="queued")
        sent = make_message(alice, to=[bob], state="sent")
        make_message(bob, to=[alice], state="unsent")  # someone else's draft

        assert _ids(inbox_service.unsent_messages(db_session, alice)) == [draft.id]
        assert _ids(inbox_service.sent_messages(db_session, alice)) == [sent.id, queued.id]

    def test_hidden_messages_excluded(self, db_session, make_message, alice, bob):
        msg = make_message(alice, to=[bob])
        msg.hide()
        db_session.commit()
        assert inbox_service.sent_messages(db_session, alice).all() == []


# ── Received filters ────────────────────────────────────────────────


class TestReceived:
    def test_only_sent_and_visible(self, db_session, make_message, recipient_for, alice, bob):
        visible = make_message(bob, to=[alice])
        make_message(bob, to=[alice], state="unsent")
        make_message(bob, to=[alice], state="queued")
        hidden = make_message(bob, to=[alice])
        recipient_for(hidden, alice).hide()
        db_session.commit()

        rows = inbox_service.received_messages(db_session, alice).all()
        assert _ids(rows) == [recipient_for(visible, alice).id]

    def test_newest_first(self, db_session, make_message, recipient_for, alice, bob):
        older = make_message(bob, to=[alice])
        newer = make_message(bob, to=[alice])
        rows = inbox_service.received_messages(db_session, alice).all()
        assert _ids(rows) == [recipient_for(newer, alice).id, recipient_for(older, alice).id]

    def test_labeled_and_unlabeled(self, db_session, make_message, recipient_for, alice, bob):
        plain = recipient_for(make_message(bob, to=[alice]), alice)
        archived = recipient_for(make_message(bob, to=[alice]), alice)
        spam = recipient_for(make_message(bob, to=[alice]), alice)
        archived.archive()
        spam.mark_spam()
        db_session.commit()

        assert _ids(inbox_service.unlabeled_messages(db_session, alice)) == [plain.id]
        assert set(_ids(inbox_service.labeled_messages(db_session, alice))) == {archived.id, spam.id}
        assert _ids(inbox_service.labeled_messages(db_session, alice, "spam")) == [spam.id]

    def test_other_receivers_rows_excluded(self, db_session, make_message, alice, bob):
        make_message(alice, to=[bob])
        assert inbox_service.received_messages(db_session, alice).all() == []


# ── Latest per thread ───────────────────────────────────────────────


class TestLastPerThread:
    def test_one_row_per_thread_newest_first(self, db_session, make_message, recipient_for,
                                             alice, bob, carol):
        root = make_message(bob, to=[alice])
        reply = make_message(carol, to=[alice], original=root)
        other = make_message(carol, to=[alice])

        rows = inbox_service.last_message_per_thread(db_session, alice).all()
        assert _ids(rows) == [recipient_for(other, alice).id, recipient_for(reply, alice).id]

    def test_labeled_rows_skipped(self, db_session, make_message, recipient_for, alice, bob):
        root = make_message(bob, to=[alice])
        reply = make_message(bob, to=[alice], original=root)
        recipient_for(reply, alice).archive()
        db_session.commit()

        rows = inbox_service.last_message_per_thread(db_session, alice).all()
        assert _ids(rows) == [recipient_for(root, alice).id]

    def test_last_unread(self, db_session, make_message, recipient_for, alice, bob):
        root = make_message(bob, to=[alice])
        reply = make_message(bob, to=[alice], original=root)
        recipient_for(reply, alice).view()
        db_session.commit()

        rows = inbox_service.last_unread_message_per_thread(db_session, alice).all()
        assert _ids(rows) == [recipient_for(root, alice).id]

    def test_last_sent_only_own_messages(self, db_session, make_message, recipient_for,
                                         alice, bob):
        make_message(bob, to=[alice])
        mine = make_message(alice, to=[alice, bob])

        rows = inbox_service.last_sent_message_per_thread(db_session, alice).all()
        assert _ids(rows) == [recipient_for(mine, alice).id]

    def test_last_archived(self, db_session, make_message, recipient_for, alice, bob):
        root = make_message(bob, to=[alice])
        reply = make_message(bob, to=[alice], original=root)
        loose = make_message(bob, to=[alice])
        for msg in (root, reply):
            recipient_for(msg, alice).archive()
        recipient_for(loose, alice).mark_spam()
        db_session.commit()

        rows = inbox_service.last_archived_message_per_thread(db_session, alice).all()
        assert _ids(rows) == [recipient_for(reply, alice).id]

    def test_queued_messages_not_listed(self, db_session, make_message, alice, bob):
        make_message(bob, to=[alice], state="queued")
        assert inbox_service.last_message_per_thread(db_session, alice).all() == []


# ── show_thread ─────────────────────────────────────────────────────


class TestShowThread:
    def test_unlabeled_rows_of_thread(self, db_session, make_message, recipient_for,
                                      alice, bob):
        root = make_message(bob, to=[alice])
        reply = make_message(bob, to=[alice], original=root)
        make_message(bob, to=[alice])  # different thread

        rows = inbox_service.show_thread(db_session, alice, recipient_for(reply, alice).id, "none")
        assert set(_ids(rows)) == {recipient_for(root, alice).id, recipient_for(reply, alice).id}

    def test_label_filter(self, db_session, make_message, recipient_for, alice, bob):
        root = make_message(bob, to=[alice])
        reply = make_message(bob, to=[alice], original=root)
        recipient_for(reply, alice).mark_spam()
        db_session.commit()
        root_row = recipient_for(root, alice)

        assert _ids(inbox_service.show_thread(db_session, alice, root_row.id, "spam")) == [
            recipient_for(reply, alice).id
        ]
        assert inbox_service.show_thread(db_session, alice, root_row.id, "archived") == []
        assert _ids(inbox_service.show_thread(db_session, alice, root_row.id, None)) == [root_row.id]

    def test_unknown_recipient_returns_empty(self, db_session, alice):
        assert inbox_service.show_thread(db_session, alice, 12345, "none") == []

    def test_foreign_recipient_returns_empty(self, db_session, make_message, recipient_for,
                                             alice, bob):
        msg = make_message(alice, to=[bob])
        assert inbox_service.show_thread(db_session, alice, recipient_for(msg, bob).id) == []
