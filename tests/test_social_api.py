from datetime import datetime, timedelta, timezone

from domain.models import Conversation, Follower, Like, Message, Notification, Post

from .conftest import auth_headers


def add_post(db, author, content="hello", minutes_ago=0, **fields):
    post = Post(
        user_id=author.id,
        type=fields.pop("type", "code"),
        content=content,
        code_content=fields.pop("code_content", "print(1)"),
        created_at=datetime.now(timezone.utc) - timedelta(minutes=minutes_ago),
        **fields,
    )
    db.add(post)
    db.commit()
    return post


def test_create_post_validates_and_counts(client, db, make_profile):
    author = make_profile("writer")
    headers = auth_headers(author.id)

    assert client.post("/posts", json={"type": "poem"}, headers=headers).status_code == 400
    assert client.post("/posts", json={"type": "code", "code_content": "  "}, headers=headers).status_code == 400
    assert client.post("/posts", json={"type": "project"}, headers=headers).status_code == 400

    res = client.post(
        "/posts",
        json={"type": "code", "content": "look", "code_language": "python", "code_content": "x = 1", "tags": ["py"]},
        headers=headers,
    )
    assert res.status_code == 201
    body = res.json()
    assert body["author"]["username"] == "writer"
    assert body["tags"] == ["py"]
    assert body["is_liked"] is False

    db.refresh(author)
    assert author.posts_count == 1


def test_feed_pages_and_likes(client, db, make_profile):
    author = make_profile("writer")
    reader = make_profile("reader")
    posts = [add_post(db, author, content=f"post {i}", minutes_ago=i) for i in range(3)]
    db.add(Like(post_id=posts[1].id, user_id=reader.id))
    db.commit()

    body = client.get("/posts", params={"page_size": 2}, headers=auth_headers(reader.id)).json()
    assert [p["content"] for p in body["items"]] == ["post 0", "post 1"]
    assert [p["is_liked"] for p in body["items"]] == [False, True]
    assert body["has_more"] is True

    body = client.get("/posts", params={"page": 2, "page_size": 2}).json()
    assert [p["content"] for p in body["items"]] == ["post 2"]
    assert body["has_more"] is False

    other = make_profile("other")
    add_post(db, other, content="elsewhere")
    assert len(client.get("/posts", params={"user_id": other.id}).json()["items"]) == 1


def test_like_is_idempotent_and_notifies(client, db, make_profile):
    author = make_profile("writer")
    fan = make_profile("fan")
    post = add_post(db, author)
    headers = auth_headers(fan.id)

    assert client.post(f"/posts/{post.id}/like", headers=headers).json() == {"liked": True, "likes_count": 1}
    assert client.post(f"/posts/{post.id}/like", headers=headers).json()["likes_count"] == 1
    assert db.query(Notification).filter(Notification.recipient_id == author.id).count() == 1

    assert client.delete(f"/posts/{post.id}/like", headers=headers).json() == {"liked": False, "likes_count": 0}
    assert client.delete(f"/posts/{post.id}/like", headers=headers).json()["likes_count"] == 0

    assert client.post("/posts/missing/like", headers=headers).status_code == 404


def test_no_notification_for_own_like_or_when_disabled(client, db, make_profile):
    author = make_profile("writer", receive_post_like_notifications=False)
    fan = make_profile("fan")
    post = add_post(db, author)

    client.post(f"/posts/{post.id}/like", headers=auth_headers(author.id))
    client.post(f"/posts/{post.id}/like", headers=auth_headers(fan.id))
    assert db.query(Notification).count() == 0


def test_notifications(client, db, make_profile):
    me = make_profile("me")
    friend = make_profile("friend")
    db.add_all([
        Notification(recipient_id=me.id, sender_id=friend.id, type="follow"),
        Notification(recipient_id=me.id, sender_id=friend.id, type="post_like"),
        Notification(recipient_id=friend.id, sender_id=me.id, type="follow"),
    ])
    db.commit()
    headers = auth_headers(me.id)

    items = client.get("/notifications", headers=headers).json()["items"]
    assert len(items) == 2
    assert items[0]["sender"]["username"] == "friend"
    assert client.get("/notifications/unread-count", headers=headers).json() == {"count": 2}

    assert client.post(f"/notifications/{items[0]['id']}/read", headers=headers).json() == {"success": True}
    assert client.get("/notifications/unread-count", headers=headers).json() == {"count": 1}
    assert client.post("/notifications/read-all", headers=headers).json() == {"updated": 1}
    assert client.get("/notifications/unread-count", headers=headers).json() == {"count": 0}

    foreign = db.query(Notification).filter(Notification.recipient_id == friend.id).one()
    assert client.post(f"/notifications/{foreign.id}/read", headers=headers).status_code == 404


def test_conversations_list_other_participant(client, db, make_profile):
    me = make_profile("me")
    ann = make_profile("ann")
    bob = make_profile("bob")
    now = datetime.now(timezone.utc)
    db.add_all([
        Conversation(participant_1=me.id, participant_2=ann.id, last_message_at=now - timedelta(hours=2)),
        Conversation(participant_1=bob.id, participant_2=me.id, last_message_at=now),
        Conversation(participant_1=ann.id, participant_2=bob.id, last_message_at=now),
    ])
    db.commit()

    items = client.get("/conversations", headers=auth_headers(me.id)).json()["items"]
    assert [c["other_participant"]["username"] for c in items] == ["bob", "ann"]


def test_follow_and_unfollow(client, db, make_profile):
    me = make_profile("neo")
    star = make_profile("star")
    headers = auth_headers(me.id)

    assert client.post("/profiles/neo/follow", headers=headers).json()["detail"] == "You cannot follow yourself"

    assert client.post("/profiles/star/follow", headers=headers).json() == {"following": True, "followers_count": 1}
    assert client.post("/profiles/star/follow", headers=headers).json()["followers_count"] == 1
    db.refresh(me)
    assert me.following_count == 1
    assert db.query(Notification).filter(Notification.recipient_id == star.id, Notification.type == "follow").count() == 1

    page = client.get("/profiles/star", headers=headers).json()
    assert page["is_following"] is True
    assert page["is_current_user"] is False

    assert client.delete("/profiles/star/follow", headers=headers).json() == {"following": False, "followers_count": 0}
    assert db.query(Follower).count() == 0
    assert client.post("/profiles/nobody/follow", headers=headers).status_code == 404


def test_profile_page_paginates_posts(client, db, make_profile):
    author = make_profile("writer")
    for i in range(7):
        add_post(db, author, content=f"post {i}", minutes_ago=i)

    first = client.get("/profiles/writer", headers=auth_headers(author.id)).json()
    assert first["profile"]["username"] == "writer"
    assert first["is_current_user"] is True
    assert len(first["posts"]) == 6
    assert first["posts"][0]["content"] == "post 0"
    assert first["has_more"] is True

    second = client.get("/profiles/writer", params={"page": 2}).json()
    assert [p["content"] for p in second["posts"]] == ["post 6"]
    assert second["has_more"] is False

    oldest = client.get("/profiles/writer", params={"sort": "oldest"}).json()
    assert oldest["posts"][0]["content"] == "post 6"

    assert client.get("/profiles/writer", params={"sort": "popular"}).status_code == 400
    assert client.get("/profiles/ghost").json()["detail"] == "Profile not found"


def test_update_my_profile(client, db, make_profile):
    me = make_profile("neo")
    make_profile("trinity")
    headers = auth_headers(me.id)

    body = client.patch("/profiles/me", json={"bio": "The One", "location": "Zion"}, headers=headers).json()
    assert body["bio"] == "The One"
    assert body["username"] == "neo"

    assert client.patch("/profiles/me", json={"username": "trinity"}, headers=headers).status_code == 400
    assert client.patch("/profiles/me", json={"username": "x"}, headers=headers).status_code == 400
    assert client.patch("/profiles/me", json={"username": "thomas_a"}, headers=headers).json()["username"] == "thomas_a"

    unknown = auth_headers("00000000-0000-0000-0000-000000000000")
    assert client.patch("/profiles/me", json={"bio": "?"}, headers=unknown).status_code == 401


def test_search_profiles(client, make_profile):
    make_profile("alice", display_name="Alice Liddell")
    make_profile("bob", display_name="Bob Builder")

    assert [p["username"] for p in client.get("/profiles/search", params={"q": "LIDD"}).json()["items"]] == ["alice"]
    assert client.get("/profiles/search", params={"q": " "}).json() == {"items": []}
    assert [p["username"] for p in client.get("/profiles/search", params={"q": "b"}).json()["items"]] == ["bob"]


def test_public_profile_hides_private_fields(client, make_profile):
    me = make_profile("neo", receive_message_notifications=False)

    page = client.get("/profiles/neo").json()["profile"]
    assert page["username"] == "neo"
    assert "email" not in page
    assert not [key for key in page if key.startswith("receive_")]

    own = client.patch("/profiles/me", json={"bio": "hi"}, headers=auth_headers(me.id)).json()
    assert own["email"] == "neo@example.com"


def test_start_conversation_reuses_existing_thread(client, db, make_profile):
    neo = make_profile("neo")
    make_profile("trinity")
    headers = auth_headers(neo.id)

    first = client.post("/conversations", json={"username": "trinity"}, headers=headers).json()
    assert first["other_participant"]["username"] == "trinity"
    again = client.post("/conversations", json={"username": "trinity"}, headers=headers).json()
    assert again["id"] == first["id"]
    assert db.query(Conversation).count() == 1

    assert client.post("/conversations", json={"username": "neo"}, headers=headers).status_code == 400
    assert client.post("/conversations", json={"username": "smith"}, headers=headers).status_code == 404


def test_send_and_load_messages(client, db, make_profile):
    neo = make_profile("neo")
    trinity = make_profile("trinity")
    chat = Conversation(participant_1=neo.id, participant_2=trinity.id)
    db.add(chat)
    db.commit()

    assert client.post(f"/conversations/{chat.id}/messages", json={"content": "   "}, headers=auth_headers(neo.id)).status_code == 400

    res = client.post(f"/conversations/{chat.id}/messages", json={"content": "  follow the white rabbit "}, headers=auth_headers(neo.id))
    assert res.status_code == 201
    sent = res.json()
    assert sent["content"] == "follow the white rabbit"
    assert sent["message_type"] == "text"
    assert sent["sender"]["username"] == "neo"

    db.refresh(chat)
    assert chat.last_message_id == sent["id"]
    assert chat.last_message_at is not None
    notification = db.query(Notification).filter(Notification.recipient_id == trinity.id).one()
    assert notification.type == "message"

    client.post(f"/conversations/{chat.id}/messages", json={"content": "knock knock"}, headers=auth_headers(trinity.id))

    items = client.get(f"/conversations/{chat.id}/messages", headers=auth_headers(trinity.id)).json()["items"]
    assert [m["content"] for m in items] == ["follow the white rabbit", "knock knock"]
    assert items[0]["is_read"] is False

    # opening the thread marks neo's message as read, not trinity's own
    db.expire_all()
    by_content = {m.content: m.is_read for m in db.query(Message).all()}
    assert by_content == {"follow the white rabbit": True, "knock knock": False}


def test_message_notifications_respect_preferences(client, db, make_profile):
    neo = make_profile("neo")
    quiet = make_profile("quiet", receive_message_notifications=False)
    chat = Conversation(participant_1=neo.id, participant_2=quiet.id)
    db.add(chat)
    db.commit()

    client.post(f"/conversations/{chat.id}/messages", json={"content": "hello"}, headers=auth_headers(neo.id))
    assert db.query(Message).count() == 1
    assert db.query(Notification).count() == 0


def test_messages_are_private_to_participants(client, db, make_profile):
    neo = make_profile("neo")
    trinity = make_profile("trinity")
    smith = make_profile("smith")
    chat = Conversation(participant_1=neo.id, participant_2=trinity.id)
    db.add(chat)
    db.commit()
    spy = auth_headers(smith.id)

    assert client.get(f"/conversations/{chat.id}/messages", headers=spy).status_code == 403
    assert client.post(f"/conversations/{chat.id}/messages", json={"content": "hi"}, headers=spy).status_code == 403
    assert client.post(f"/conversations/{chat.id}/read", headers=spy).status_code == 403
    assert client.get("/conversations/missing/messages", headers=spy).status_code == 404
    assert client.get(f"/conversations/{chat.id}/messages").status_code == 401


def test_mark_conversation_read(client, db, make_profile):
    neo = make_profile("neo")
    trinity = make_profile("trinity")
    chat = Conversation(participant_1=neo.id, participant_2=trinity.id)
    db.add(chat)
    db.commit()
    db.add_all([
        Message(conversation_id=chat.id, sender_id=trinity.id, content="one"),
        Message(conversation_id=chat.id, sender_id=trinity.id, content="two"),
        Message(conversation_id=chat.id, sender_id=neo.id, content="mine"),
    ])
    db.commit()

    headers = auth_headers(neo.id)
    assert client.post(f"/conversations/{chat.id}/read", headers=headers).json() == {"updated": 2}
    assert client.post(f"/conversations/{chat.id}/read", headers=headers).json() == {"updated": 0}
