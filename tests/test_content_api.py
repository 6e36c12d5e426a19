ABOUT = {"title": "About Us", "content": "Little Forest grows indigenous seedlings.", "type": "page", "status": "published"}
POST = {"title": "When to plant Mukau", "content": "Plant at the start of the long rains.", "type": "blog"}


def test_create_and_list_content(client):
    res = client.post("/api/content", json=ABOUT)
    assert res.status_code == 201
    assert res.json()["status"] == "published"

    post = client.post("/api/content", json=POST).json()
    assert post["status"] == "draft"

    assert len(client.get("/api/content").json()) == 2
    blogs = client.get("/api/content", params={"type": "blog"}).json()
    assert [c["id"] for c in blogs] == [post["id"]]


def test_lookup_by_exact_title(client):
    client.post("/api/content", json=ABOUT)
    client.post("/api/content", json=POST)

    found = client.get("/api/content", params={"title": "About Us"}).json()
    assert len(found) == 1
    assert found[0]["content"] == ABOUT["content"]
    assert client.get("/api/content", params={"title": "about us"}).json() == []


def test_published_filter(client):
    client.post("/api/content", json=ABOUT)
    client.post("/api/content", json=POST)
    published = client.get("/api/content", params={"status": "published"}).json()
    assert [c["title"] for c in published] == ["About Us"]


def test_invalid_type_is_400(client):
    res = client.post("/api/content", json={**POST, "type": "newsletter"})
    assert res.status_code == 400
    assert res.json() == {"error": "Invalid request body"}


def test_publish_draft_and_delete(client):
    post = client.post("/api/content", json=POST).json()

    res = client.put(f"/api/content/{post['id']}", json={"status": "published"})
    assert res.status_code == 200
    assert res.json()["status"] == "published"
    assert res.json()["title"] == POST["title"]

    assert client.get(f"/api/content/{post['id']}").json()["status"] == "published"
    assert client.delete(f"/api/content/{post['id']}").status_code == 204
    res = client.get(f"/api/content/{post['id']}")
    assert res.status_code == 404
    assert res.json() == {"error": "Content not found"}


def test_update_missing_content_is_404(client):
    res = client.put("/api/content/3f1c2a7e-0000-4000-8000-000000000000", json={"title": "x"})
    assert res.status_code == 404


def test_legacy_about_type_still_lists(client, fake_db):
    legacy = fake_db.add("content", {"title": "About", "content": "Since 2009.", "type": "about", "status": None})
    client.post("/api/content", json=POST)

    res = client.get("/api/content")
    assert res.status_code == 200
    about = next(c for c in res.json() if c["id"] == legacy["id"])
    assert about["type"] == "about"
    assert about["status"] == "draft"
    assert client.get("/api/content", params={"type": "about"}).json()[0]["title"] == "About"


def test_put_null_type_or_status_is_400(client, fake_db):
    post = client.post("/api/content", json=POST).json()
    for field in ("type", "status", "title", "content"):
        res = client.put(f"/api/content/{post['id']}", json={field: None})
        assert res.status_code == 400
    assert fake_db.tables["content"][0]["type"] == "blog"
    assert client.get("/api/content").status_code == 200
