from petnest.models.notification import Notification
from petnest.models.post import MissingPost
from petnest.models.social import Comment, Upvote


def test_create_missing_post_notifies_area(client, app, make_user):
    owner = make_user("u@example.com")
    neighbour = make_user("v@example.com")
    make_user("far@example.com", city="Varna", area="Center")

    rv = client.post("/api/users/missingposts", headers=owner.headers, json={
        "title": "Rex went missing",
        "species": "Dog",
        "last_seen_at": "2026-10-10",
        "contact_info": "call 0888",
        "city": "Sofia",
        "area": "Lozenets",
    })
    assert rv.status_code == 201
    body = rv.get_json()
    assert body["last_seen_at"] == "2026-10-10"
    assert body["is_found"] is False

    with app.app_context():
        notes = Notification.query.all()
        assert [n.user_id for n in notes] == [neighbour.id]
        assert notes[0].kind == "missing_post"
        assert notes[0].message == "Missing pet reported in your area: Rex went missing"
        assert notes[0].link == f"/missingposts/{body['id']}"


def test_found_posts_hidden_unless_requested(client, make_user, make_missing):
    owner = make_user("u@example.com")
    make_missing(owner.id, title="Still lost")
    make_missing(owner.id, title="Back home", is_found=True)

    titles = [p["title"] for p in client.get("/api/users/missingposts").get_json()["items"]]
    assert titles == ["Still lost"]

    rv = client.get("/api/users/missingposts?include_found=true")
    assert len(rv.get_json()["items"]) == 2


def test_upvote_and_remove_upvote_alias(client, app, make_user, make_missing, fetch):
    owner = make_user("u@example.com")
    fan = make_user("fan@example.com")
    post_id = make_missing(owner.id)

    assert client.post(f"/api/users/missingposts/{post_id}/upvote", headers=fan.headers).status_code == 200
    assert client.post(f"/api/users/missingposts/{post_id}/upvote", headers=fan.headers).status_code == 409

    rv = client.post(f"/api/users/missingposts/{post_id}/remove-upvote", headers=fan.headers)
    assert rv.status_code == 200
    assert rv.get_json()["upvotes_count"] == 0
    assert client.post(f"/api/users/missingposts/{post_id}/remove-upvote", headers=fan.headers).status_code == 409

    with app.app_context():
        assert Upvote.query.filter_by(missing_post_id=post_id).count() == 0
    assert fetch(MissingPost, post_id)["upvotes_count"] == 0


def test_mark_found_by_owner_only(client, make_user, make_missing, fetch):
    owner = make_user("u@example.com")
    stranger = make_user("x@example.com")
    post_id = make_missing(owner.id)

    rv = client.put(f"/api/users/missingposts/{post_id}", headers=stranger.headers, json={"is_found": True})
    assert rv.status_code == 403
    assert fetch(MissingPost, post_id)["is_found"] is False

    rv = client.put(f"/api/users/missingposts/{post_id}", headers=owner.headers, json={"is_found": True})
    assert rv.status_code == 200
    assert fetch(MissingPost, post_id)["is_found"] is True


def test_detail_shows_comments_and_viewer_flags(client, make_user, make_missing):
    owner = make_user("u@example.com")
    fan = make_user("fan@example.com", "Fan")
    post_id = make_missing(owner.id)
    client.post(f"/api/users/missingposts/{post_id}/comment", headers=fan.headers,
                json={"content": "Saw him near the park"})
    client.post(f"/api/users/missingposts/{post_id}/upvote", headers=fan.headers)

    body = client.get(f"/api/users/missingposts/{post_id}", headers=fan.headers).get_json()
    assert [c["content"] for c in body["comments"]] == ["Saw him near the park"]
    assert body["has_upvoted"] is True
    assert body["is_owner"] is False

    anon = client.get(f"/api/users/missingposts/{post_id}").get_json()
    assert anon["has_upvoted"] is False


def test_delete_removes_comments_and_upvotes(client, app, make_user, make_missing, fetch):
    owner = make_user("u@example.com")
    fan = make_user("fan@example.com")
    post_id = make_missing(owner.id)
    client.post(f"/api/users/missingposts/{post_id}/comment", headers=fan.headers, json={"content": "hi"})
    client.post(f"/api/users/missingposts/{post_id}/upvote", headers=fan.headers)

    assert client.delete(f"/api/users/missingposts/{post_id}", headers=owner.headers).status_code == 200
    assert fetch(MissingPost, post_id) is None
    with app.app_context():
        assert Comment.query.filter_by(missing_post_id=post_id).count() == 0
        assert Upvote.query.filter_by(missing_post_id=post_id).count() == 0


def test_marking_found_notifies_area_once(client, app, make_user, make_missing):
    owner = make_user("u@example.com")
    neighbour = make_user("v@example.com")
    post_id = make_missing(owner.id, title="Rex")

    client.put(f"/api/users/missingposts/{post_id}", headers=owner.headers, json={"is_found": True})
    client.put(f"/api/users/missingposts/{post_id}", headers=owner.headers, json={"is_found": True})

    with app.app_context():
        notes = Notification.query.filter_by(kind="pet_found").all()
        assert [n.user_id for n in notes] == [neighbour.id]
        assert "has been found: Rex" in notes[0].message


def test_update_rejects_blank_title_and_location(client, make_user, make_missing, fetch):
    owner = make_user("u@example.com")
    post_id = make_missing(owner.id)

    for field in ("title", "city", "area"):
        rv = client.put(f"/api/users/missingposts/{post_id}", headers=owner.headers, json={field: "  "})
        assert rv.status_code == 400
        assert field in rv.get_json()["fields"]

    row = fetch(MissingPost, post_id)
    assert row["title"] == "Rex went missing"
    assert (row["city"], row["area"]) == ("sofia", "lozenets")


def test_json_null_counts_as_not_sent(client, make_user, make_missing, fetch):
    owner = make_user("u@example.com")
    post_id = make_missing(owner.id, breed="Beagle")

    rv = client.put(f"/api/users/missingposts/{post_id}", headers=owner.headers,
                    json={"breed": None, "last_seen_at": None, "is_found": None})
    assert rv.status_code == 200
    row = fetch(MissingPost, post_id)
    assert row["breed"] == "Beagle"
    assert row["is_found"] is False
