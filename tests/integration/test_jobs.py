from datetime import date, timedelta

from petnest.models.job import Application, JobPost, Review
from petnest.models.notification import Notification


def _apply(client, caregiver, job_id, amount=40, proposal="I love dogs"):
    return client.post("/api/caregivers/jobs/apply", headers=caregiver.headers, json={
        "job_id": job_id, "proposal": proposal, "requested_amount": amount,
    })


def test_create_job_validates_ranges(client, make_user):
    owner = make_user("u@example.com")
    start = date.today() + timedelta(days=2)
    payload = {
        "title": "Cat sitting",
        "tags": ["Cat", "overnight", "cat"],
        "min_price": 0,
        "max_price": 50,
        "start_date": start.isoformat(),
        "end_date": (start + timedelta(days=1)).isoformat(),
        "city": "Sofia",
        "area": "Center",
    }
    rv = client.post("/api/users/jobs", headers=owner.headers, json=payload)
    assert rv.status_code == 201
    body = rv.get_json()
    assert body["status"] == "OPEN"
    assert body["tags"] == ["cat", "overnight"]
    assert body["selected_caregiver"] is None

    bad = dict(payload, min_price=80)
    rv = client.post("/api/users/jobs", headers=owner.headers, json=bad)
    assert rv.status_code == 400
    assert rv.get_json()["error"] == "Minimum price cannot exceed maximum price"

    bad = dict(payload, end_date=(start - timedelta(days=1)).isoformat())
    rv = client.post("/api/users/jobs", headers=owner.headers, json=bad)
    assert rv.status_code == 400
    assert "end_date" in rv.get_json()["fields"]


def test_caregiver_lists_open_jobs_by_tag(client, make_user, make_caregiver, make_job):
    owner = make_user("u@example.com")
    care = make_caregiver("c@example.com")
    make_job(owner.id, title="Dog walk")
    make_job(owner.id, title="Closed one", status="CLOSED")

    rv = client.get("/api/caregivers/jobs?tag=weekend&city=sofia", headers=care.headers)
    assert rv.status_code == 200
    assert [j["title"] for j in rv.get_json()["items"]] == ["Dog walk"]

    rv = client.get("/api/caregivers/jobs?tag=cat", headers=care.headers)
    assert rv.get_json()["items"] == []

    assert client.get("/api/caregivers/jobs", headers=owner.headers).status_code == 403


def test_apply_rules(client, app, make_user, make_caregiver, make_job):
    owner = make_user("u@example.com")
    care = make_caregiver("c@example.com", "Ivo")
    job_id = make_job(owner.id)

    rv = _apply(client, care, job_id, amount=100)
    assert rv.status_code == 400
    assert rv.get_json()["error"] == "Requested amount must be between 20 and 60"

    assert _apply(client, care, job_id).status_code == 201
    rv = _apply(client, care, job_id)
    assert rv.status_code == 409
    assert rv.get_json()["error"] == "You have already applied for this job"

    with app.app_context():
        assert Application.query.filter_by(job_post_id=job_id).count() == 1
        n = Notification.query.filter_by(user_id=owner.id, kind="job_application").one()
        assert "Ivo" in n.message


def test_full_lifecycle_select_end_review(client, app, make_user, make_caregiver, make_job, fetch):
    owner = make_user("u@example.com")
    ana = make_caregiver("ana@example.com", "Ana")
    bob = make_caregiver("bob@example.com", "Bob")
    job_id = make_job(owner.id)

    a1 = _apply(client, ana, job_id).get_json()["id"]
    a2 = _apply(client, bob, job_id, amount=30).get_json()["id"]

    rv = client.get(f"/api/users/jobs/{job_id}", headers=owner.headers)
    assert {a["id"] for a in rv.get_json()["applications"]} == {a1, a2}

    rv = client.patch(f"/api/users/jobs/{job_id}", headers=owner.headers,
                      json={"action": "select_caregiver", "application_id": a1})
    assert rv.status_code == 200
    body = rv.get_json()
    assert body["status"] == "ONGOING"
    assert body["selected_caregiver"]["id"] == ana.id
    assert fetch(Application, a1)["status"] == "ACCEPTED"
    assert fetch(Application, a2)["status"] == "REJECTED"

    # a second selection is refused and changes nothing
    rv = client.patch(f"/api/users/jobs/{job_id}", headers=owner.headers,
                      json={"action": "select_caregiver", "application_id": a2})
    assert rv.status_code == 409
    assert fetch(JobPost, job_id)["selected_caregiver_id"] == ana.id

    assert _apply(client, make_caregiver("late@example.com"), job_id).status_code == 409

    rv = client.patch(f"/api/users/jobs/{job_id}", headers=owner.headers,
                      json={"action": "end_job", "rating": 5, "comment": " Great with Rex "})
    assert rv.status_code == 200
    assert rv.get_json()["status"] == "CLOSED"

    with app.app_context():
        review = Review.query.filter_by(job_post_id=job_id).one()
        assert review.caregiver_id == ana.id
        assert review.comment == "Great with Rex"

    rv = client.get(f"/api/caregivers/caregivers/{ana.id}")
    assert rv.get_json()["average_rating"] == 5.0
    assert rv.get_json()["review_count"] == 1

    rv = client.post("/api/users/reviews", headers=owner.headers, json={"job_id": job_id, "rating": 4})
    assert rv.status_code == 409


def test_review_without_ending(client, make_user, make_caregiver, make_job, fetch):
    owner = make_user("u@example.com")
    care = make_caregiver("c@example.com")
    job_id = make_job(owner.id)

    rv = client.post("/api/users/reviews", headers=owner.headers, json={"job_id": job_id, "rating": 4})
    assert rv.status_code == 409

    app_id = _apply(client, care, job_id).get_json()["id"]
    client.patch(f"/api/users/jobs/{job_id}", headers=owner.headers,
                 json={"action": "select_caregiver", "application_id": app_id})
    rv = client.post("/api/users/reviews", headers=owner.headers, json={"job_id": job_id, "rating": 4})
    assert rv.status_code == 201
    assert fetch(JobPost, job_id)["status"] == "ONGOING"


def test_cancel_open_job_rejects_pending(client, make_user, make_caregiver, make_job, fetch):
    owner = make_user("u@example.com")
    care = make_caregiver("c@example.com")
    job_id = make_job(owner.id)
    app_id = _apply(client, care, job_id).get_json()["id"]

    rv = client.patch(f"/api/users/jobs/{job_id}", headers=owner.headers, json={"action": "cancel"})
    assert rv.status_code == 200
    row = fetch(JobPost, job_id)
    assert row["status"] == "CLOSED"
    assert row["selected_caregiver_id"] is None
    assert fetch(Application, app_id)["status"] == "REJECTED"

    rv = client.patch(f"/api/users/jobs/{job_id}", headers=owner.headers, json={"action": "end_job"})
    assert rv.status_code == 409


def test_unknown_action_and_missing_application(client, make_user, make_job):
    owner = make_user("u@example.com")
    job_id = make_job(owner.id)

    rv = client.patch(f"/api/users/jobs/{job_id}", headers=owner.headers, json={"action": "archive"})
    assert rv.status_code == 400
    rv = client.patch(f"/api/users/jobs/{job_id}", headers=owner.headers,
                      json={"action": "select_caregiver"})
    assert rv.status_code == 400
    assert "application_id" in rv.get_json()["fields"]


def test_other_users_cannot_manage_job(client, make_user, make_job, fetch):
    owner = make_user("u@example.com")
    stranger = make_user("x@example.com")
    job_id = make_job(owner.id)

    assert client.get(f"/api/users/jobs/{job_id}", headers=stranger.headers).status_code == 403
    rv = client.patch(f"/api/users/jobs/{job_id}", headers=stranger.headers, json={"action": "cancel"})
    assert rv.status_code == 403
    assert client.delete(f"/api/users/jobs/{job_id}", headers=stranger.headers).status_code == 403
    assert fetch(JobPost, job_id)["status"] == "OPEN"


def test_update_and_delete_only_while_open(client, make_user, make_caregiver, make_job, fetch):
    owner = make_user("u@example.com")
    care = make_caregiver("c@example.com")
    job_id = make_job(owner.id)

    rv = client.put(f"/api/users/jobs/{job_id}", headers=owner.headers, json={"max_price": 80})
    assert rv.status_code == 200
    assert fetch(JobPost, job_id)["max_price"] == 80

    rv = client.put(f"/api/users/jobs/{job_id}", headers=owner.headers, json={"min_price": 90})
    assert rv.status_code == 400
    assert fetch(JobPost, job_id)["min_price"] == 20

    app_id = _apply(client, care, job_id, amount=50).get_json()["id"]
    client.patch(f"/api/users/jobs/{job_id}", headers=owner.headers,
                 json={"action": "select_caregiver", "application_id": app_id})
    assert client.put(f"/api/users/jobs/{job_id}", headers=owner.headers, json={"title": "x"}).status_code == 409
    assert client.delete(f"/api/users/jobs/{job_id}", headers=owner.headers).status_code == 409

    other_id = make_job(owner.id, title="Spare")
    _apply(client, care, other_id)
    assert client.delete(f"/api/users/jobs/{other_id}", headers=owner.headers).status_code == 200
    assert fetch(JobPost, other_id) is None


def test_update_ignores_null_and_rejects_blank(client, make_user, make_job, fetch):
    owner = make_user("u@example.com")
    job_id = make_job(owner.id)

    rv = client.put(f"/api/users/jobs/{job_id}", headers=owner.headers,
                    json={"min_price": None, "max_price": None, "start_date": None})
    assert rv.status_code == 200
    row = fetch(JobPost, job_id)
    assert (row["min_price"], row["max_price"]) == (20, 60)

    for field in ("title", "city", "area"):
        rv = client.put(f"/api/users/jobs/{job_id}", headers=owner.headers, json={field: " "})
        assert rv.status_code == 400
        assert field in rv.get_json()["fields"]
    row = fetch(JobPost, job_id)
    assert row["title"] == "Weekend dog sitting"
    assert row["city"] == "sofia"


def test_caregiver_views_and_schedule(client, make_user, make_caregiver, make_job):
    owner = make_user("u@example.com")
    care = make_caregiver("c@example.com")
    job_id = make_job(owner.id)
    app_id = _apply(client, care, job_id).get_json()["id"]

    rv = client.get(f"/api/caregivers/jobs/{job_id}", headers=care.headers)
    body = rv.get_json()
    assert body["my_application"]["id"] == app_id
    assert body["application_count"] == 1
    assert "applications" not in body

    rv = client.get("/api/caregivers/applications", headers=care.headers)
    assert [a["job"]["id"] for a in rv.get_json()] == [job_id]

    assert client.get(f"/api/caregivers/caregivers/{care.id}/schedule").get_json() == []
    client.patch(f"/api/users/jobs/{job_id}", headers=owner.headers,
                 json={"action": "select_caregiver", "application_id": app_id})
    schedule = client.get(f"/api/caregivers/caregivers/{care.id}/schedule").get_json()
    assert [s["job_id"] for s in schedule] == [job_id]
    assert client.get("/api/caregivers/caregivers/999/schedule").status_code == 404
