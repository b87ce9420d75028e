"""
test_composer.py — Tests for services/composer.py

Forward / reply / reply-all draft shapes and thread anchoring.

Called by: pytest
Depends on: messaging/services/composer.py, conftest.py
"""

import pytest

from messaging.models import User
from messaging.services import message_service
from messaging.services.composer import forward, reply, reply_to_all


@pytest.fixture()
def dave(db_session):
    user = User(email="dave@example.com", name="Dave")
    db_session.add(user)
    db_session.commit()
    return user


def _ids(users):
    return [u.id for u in users]


class TestForward:
    def test_forward_copies_subject_and_body(self, db_session, make_message, recipient_for,
                                             alice, bob):
        msg = make_message(bob, to=[alice], subject="Hi", body="B")
        fwd = forward(recipient_for(msg, alice))

        assert (fwd.subject, fwd.body) == ("Hi", "B")
        assert fwd.state == "unsent"
        assert fwd.sender.id == alice.id
        assert fwd.recipients == []
        assert fwd.original_message_id is None
        assert fwd not in db_session

    def test_forward_of_reply_starts_new_thread(self, make_message, recipient_for, alice, bob):
        root = make_message(bob, to=[alice])
        rep = make_message(bob, to=[alice], original=root)
        assert forward(recipient_for(rep, alice)).original_message_id is None


class TestReply:
    def test_reply_addresses_original_sender(self, make_message, recipient_for, alice, bob, carol):
        msg = make_message(bob, to=[alice, carol], subject="Hi", body="B")
        draft = reply(recipient_for(msg, alice))

        assert draft.sender.id == alice.id
        assert _ids(draft.to) == [bob.id]
        assert draft.cc == [] and draft.bcc == []
        assert (draft.subject, draft.body) == ("Hi", "B")
        assert draft.state == "unsent"

    def test_reply_to_root_anchors_on_root(self, make_message, recipient_for, alice, bob):
        root = make_message(bob, to=[alice])
        draft = reply(recipient_for(root, alice))
        assert draft.original_message_id == root.id

    def test_deep_replies_never_chain(self, db_session, make_message, recipient_for, alice, bob):
        root = make_message(bob, to=[alice])

        first = message_service.save_draft(db_session, reply(recipient_for(root, alice)))
        message_service.deliver(db_session, first)
        second = message_service.save_draft(db_session, reply(recipient_for(first, bob)))
        message_service.deliver(db_session, second)
        third = reply(recipient_for(second, alice))

        for draft in (first, second, third):
            assert draft.original_message_id == root.id
            assert draft.original_message.original_message is None


class TestReplyToAll:
    def test_reply_all_lists(self, make_message, recipient_for, alice, bob, carol, dave):
        msg = make_message(bob, to=[alice, carol], cc=[dave, alice], bcc=[alice])
        draft = reply_to_all(recipient_for(msg, alice))

        assert _ids(draft.to) == [alice.id, carol.id, bob.id]
        assert _ids(draft.cc) == [dave.id]
        assert draft.bcc == []
        assert draft.sender.id == alice.id

    def test_reply_all_from_cc(self, make_message, recipient_for, alice, bob, carol, dave):
        msg = make_message(bob, to=[carol], cc=[alice, dave])
        draft = reply_to_all(recipient_for(msg, alice, "cc"))

        assert _ids(draft.to) == [carol.id, bob.id]
        assert _ids(draft.cc) == [dave.id]

    def test_sender_already_on_to_is_not_duplicated(self, make_message, recipient_for,
                                                    alice, bob):
        msg = make_message(bob, to=[alice, bob])
        draft = reply_to_all(recipient_for(msg, alice))
        assert _ids(draft.to) == [alice.id, bob.id]

    def test_positions_are_contiguous(self, make_message, recipient_for, alice, bob, carol, dave):
        msg = make_message(bob, to=[alice, carol, dave])
        draft = reply_to_all(recipient_for(msg, alice))
        assert [r.position for r in draft.recipients_of("to")] == [1, 2, 3, 4]

    def test_reply_all_anchors_like_reply(self, make_message, recipient_for, alice, bob, carol):
        root = make_message(bob, to=[alice, carol])
        rep = make_message(carol, to=[alice, bob], original=root)
        draft = reply_to_all(recipient_for(rep, alice))
        assert draft.original_message_id == root.id
