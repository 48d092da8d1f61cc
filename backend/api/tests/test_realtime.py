from realtime.push import USER_OFFLINE, USER_ONLINE, LocalPushChannel, publish_safely, set_push_channel
from realtime.registry import ConnectionRegistry


def test_registry_tracks_multiple_connections_per_user():
    registry = ConnectionRegistry()

    assert registry.add(1, "a") is True
    assert registry.add(1, "b") is False
    assert registry.lookup(1) == {"a", "b"}
    assert registry.is_online(1)
    assert registry.connection_count() == 2

    assert registry.remove("a") == (1, False)
    assert registry.remove("b") == (1, True)
    assert not registry.is_online(1)
    assert registry.remove("missing") == (None, False)


def test_rooms_forget_closed_connections():
    registry = ConnectionRegistry()
    registry.add(1, "a")
    registry.join("a", "conversation:7")
    assert registry.room_members("conversation:7") == {"a"}

    registry.remove("a")
    assert registry.room_members("conversation:7") == set()


def test_presence_events_fire_on_first_and_last_connection():
    sent = []
    channel = LocalPushChannel(transport=lambda conn, event, payload: sent.append((conn, event, payload)))

    channel.connect(1, "watcher")
    channel.connect(2, "tab-1")
    channel.connect(2, "tab-2")
    channel.disconnect("tab-1")
    channel.disconnect("tab-2")

    presence = [(event, payload["user_id"]) for _, event, payload in sent]
    assert presence.count((USER_ONLINE, 2)) == 2  # delivered to watcher and tab-1
    assert (USER_OFFLINE, 2) in presence
    assert channel.registry.online_user_ids() == [1]


def test_publish_safely_swallows_transport_errors():
    def broken(conn, event, payload):
        raise ConnectionError("gone")

    channel = LocalPushChannel()
    channel.connect(1, "a")
    channel.transport = broken
    set_push_channel(channel)

    assert publish_safely("newMessage", {}, user_id=1) == 0
    assert publish_safely("newMessage", {}, user_id=2) == 0
