import pytest

from unipool.core.exceptions import ChatNotFoundError, NotOwnerError, RideNotFoundError, ValidationError
from unipool.models.notification import NotificationType
from unipool.services.chat import MAX_MESSAGE_LENGTH, ChatService

from conftest import DRIVER_ID, RIDER_A, RIDER_B


@pytest.fixture
def chats(session, emitter):
    return ChatService(session, emitter)


@pytest.fixture
async def chat(chats):
    return await chats.get_or_create_chat(RIDER_A, DRIVER_ID, "Ana", "Dana")


class TestOpenChat:

    async def test_same_chat_whichever_side_opens_it(self, chats, chat):
        again = await chats.get_or_create_chat(DRIVER_ID, RIDER_A, "Dana", "Ana")

        assert again.id == chat.id
        assert sorted(chat.participants) == [DRIVER_ID, RIDER_A]
        assert chat.name_of(RIDER_A) == "Ana"
        assert chat.name_of(DRIVER_ID) == "Dana"

    async def test_chat_with_yourself(self, chats):
        with pytest.raises(ValidationError):
            await chats.get_or_create_chat(RIDER_A, RIDER_A, "Ana", "Ana")

    async def test_chat_about_unknown_ride(self, chats):
        with pytest.raises(RideNotFoundError):
            await chats.get_or_create_chat(RIDER_A, DRIVER_ID, "Ana", "Dana", ride_id=9999)

        assert await chats.list_user_chats(RIDER_A) == []

    async def test_chat_about_a_ride(self, chats, make_ride):
        ride = await make_ride()

        chat = await chats.get_or_create_chat(RIDER_A, DRIVER_ID, "Ana", "Dana", ride_id=ride.id)

        assert chat.ride_id == ride.id

    async def test_unknown_chat(self, chats):
        with pytest.raises(ChatNotFoundError):
            await chats.get_chat(31337)

    async def test_user_chat_list(self, chats, chat):
        other = await chats.get_or_create_chat(RIDER_B, DRIVER_ID, "Ben", "Dana")

        assert {c.id for c in await chats.list_user_chats(DRIVER_ID)} == {chat.id, other.id}
        assert [c.id for c in await chats.list_user_chats(RIDER_B)] == [other.id]


class TestMessages:

    async def test_send_updates_chat_and_notifies_the_other_side(self, chats, chat, emitter):
        message = await chats.send_message(chat.id, RIDER_A, "  Running 5 min late  ")

        assert message.text == "Running 5 min late"
        assert message.sender_name == "Ana"
        assert chat.last_message == "Running 5 min late"

        sent = emitter.for_user(DRIVER_ID, NotificationType.MESSAGE)
        assert len(sent) == 1
        assert sent[0]["payload"]["chat_id"] == chat.id
        assert emitter.for_user(RIDER_A) == []

    async def test_messages_come_back_oldest_first(self, chats, chat):
        await chats.send_message(chat.id, RIDER_A, "Hi")
        await chats.send_message(chat.id, DRIVER_ID, "Hello")

        messages = await chats.get_messages(chat.id, RIDER_A)

        assert [m.text for m in messages] == ["Hi", "Hello"]

    async def test_outsiders_cannot_post_or_read(self, chats, chat):
        with pytest.raises(NotOwnerError):
            await chats.send_message(chat.id, RIDER_B, "hey")
        with pytest.raises(NotOwnerError):
            await chats.get_messages(chat.id, RIDER_B)

    @pytest.mark.parametrize("text", ["", "   ", "x" * (MAX_MESSAGE_LENGTH + 1)])
    async def test_invalid_text(self, chats, chat, text):
        with pytest.raises(ValidationError):
            await chats.send_message(chat.id, RIDER_A, text)

    async def test_mark_read_only_touches_the_other_sides_messages(self, chats, chat):
        await chats.send_message(chat.id, RIDER_A, "one")
        await chats.send_message(chat.id, RIDER_A, "two")
        await chats.send_message(chat.id, DRIVER_ID, "three")

        assert await chats.mark_messages_read(chat.id, DRIVER_ID) == 2
        assert await chats.mark_messages_read(chat.id, DRIVER_ID) == 0
        assert await chats.mark_messages_read(chat.id, RIDER_A) == 1
