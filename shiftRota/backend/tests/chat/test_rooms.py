import pytest

from app.db.models.availabilities import AvailabilityStatus
from app.db.models.chat_rooms import ChatRooms
from app.db.models.notifications import Notifications, NotificationKind
from app.services.chat.rooms import (
    get_or_create_room,
    mark_read,
    post_message,
    unread_count,
    unread_counts,
)
from app.services.errors import ForbiddenError, NotFoundError, ValidationError
from app.services.realtime import events
from app.services.scheduling import store
from app.services.scheduling.availability import set_status
from app.services.scheduling.types import ScheduleKey

from conftest import RecordingHandle, SAT_MORNING, SCENARIO_DAY, submit

KEY = ScheduleKey(SCENARIO_DAY, SAT_MORNING)


@pytest.fixture
def schedule_id(db, registry, marco, giulia):
    for user in (marco, giulia):
        entry = submit(db, registry, user)
        set_status(db, registry, entry.id, AvailabilityStatus.CONFIRMED)
    return store.find(db, KEY).id


class TestGetOrCreate:

    def test_room_snapshots_assignees(self, db, schedule_id, marco, giulia):
        room = get_or_create_room(db, schedule_id, marco)
        assert sorted(room.participant_ids) == sorted([marco.id, giulia.id])
        assert room.messages == []

    def test_second_access_returns_same_room(self, db, schedule_id, marco, giulia):
        first = get_or_create_room(db, schedule_id, marco)
        second = get_or_create_room(db, schedule_id, giulia)
        assert first.id == second.id
        assert db.query(ChatRooms).count() == 1

    def test_participants_do_not_follow_roster(self, db, registry, schedule_id, marco, giulia, sara):
        get_or_create_room(db, schedule_id, marco)
        entry = submit(db, registry, sara)
        set_status(db, registry, entry.id, AvailabilityStatus.CONFIRMED)

        room = get_or_create_room(db, schedule_id, sara)
        assert sara.id not in room.participant_ids

    def test_non_assignee_is_forbidden(self, db, schedule_id, sara):
        with pytest.raises(ForbiddenError):
            get_or_create_room(db, schedule_id, sara)

    def test_admin_may_read(self, db, schedule_id, admin):
        room = get_or_create_room(db, schedule_id, admin)
        assert admin.id not in room.participant_ids

    def test_missing_schedule(self, db, marco):
        with pytest.raises(NotFoundError):
            get_or_create_room(db, 999, marco)


class TestPostMessage:

    def test_message_is_stored_with_author(self, db, registry, schedule_id, marco):
        message = post_message(db, registry, schedule_id, marco, "  see you there  ")
        assert message.text == "see you there"
        assert message.user.firstname == "Marco"

    def test_other_participants_are_notified(self, db, registry, schedule_id, marco, giulia):
        giulia_session = RecordingHandle(giulia.id)
        registry.register(giulia.id, giulia_session)

        post_message(db, registry, schedule_id, marco, "hello")

        chat_notes = db.query(Notifications).filter(Notifications.kind == NotificationKind.CHAT).all()
        assert [n.user_id for n in chat_notes] == [giulia.id]
        signals = giulia_session.events(events.SCHEDULE_MESSAGE_NOTIFICATION)
        assert len(signals) == 1
        assert signals[0]["schedule_id"] == schedule_id
        assert signals[0]["message"]["text"] == "hello"
        assert len(giulia_session.events(events.NOTIFICATION)) == 1

    def test_room_members_receive_the_message(self, db, registry, schedule_id, marco):
        listener = RecordingHandle(marco.id)
        registry.join_room(events.schedule_room(schedule_id), listener)

        post_message(db, registry, schedule_id, marco, "hello")

        assert [m["message"]["text"] for m in listener.events(events.SCHEDULE_CHAT_MESSAGE)] == ["hello"]

    def test_admin_cannot_post_unless_assigned(self, db, registry, schedule_id, admin):
        with pytest.raises(ForbiddenError):
            post_message(db, registry, schedule_id, admin, "hi")

    def test_empty_message(self, db, registry, schedule_id, marco):
        with pytest.raises(ValidationError):
            post_message(db, registry, schedule_id, marco, "   ")

    def test_broken_session_does_not_fail_post(self, db, registry, schedule_id, marco, giulia):
        from conftest import FailingHandle
        broken = FailingHandle()
        registry.register(giulia.id, broken)
        message = post_message(db, registry, schedule_id, marco, "hello")
        assert message.id is not None


class TestUnread:

    @pytest.mark.parametrize("ids,last,expected", [
        ([1, 2, 3], None, 3),
        ([1, 2, 3], 1, 2),
        ([1, 2, 3], 3, 0),
        ([1, 2, 3], 42, 3),
        ([], None, 0),
    ])
    def test_unread_count(self, ids, last, expected):
        assert unread_count(ids, last) == expected

    def test_counts_per_schedule(self, db, registry, schedule_id, marco, giulia):
        for text in ("one", "two", "three"):
            post_message(db, registry, schedule_id, marco, text)

        assert unread_counts(db, giulia.id) == {schedule_id: 3}

        mark_read(db, schedule_id, giulia)
        assert unread_counts(db, giulia.id) == {schedule_id: 0}

        post_message(db, registry, schedule_id, marco, "four")
        assert unread_counts(db, giulia.id) == {schedule_id: 1}

    def test_schedule_without_room_counts_zero(self, db, schedule_id, marco):
        assert unread_counts(db, marco.id) == {schedule_id: 0}

    def test_mark_read_without_messages(self, db, schedule_id, marco):
        assert mark_read(db, schedule_id, marco) is None
