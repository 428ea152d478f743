"""Integration tests for API endpoints."""

import json

import pytest
from fastapi.testclient import TestClient

from conftest import make_source
from postkit.api import dependencies
from postkit.api.app import create_app

HELLO_ID = "/rails/2017/05/21/hello/"
SECOND_ID = "/rails/2017/06/01/second-post/"


@pytest.fixture
def config_file(tmp_path, posts_dir):
    """Config pointing at the sample posts and a temporary index."""
    path = tmp_path / "postkit.yaml"
    path.write_text(
        f"""
content:
  content_dir: {posts_dir.as_posix()}
storage:
  documents_path: {(tmp_path / "_index" / "documents.jsonl").as_posix()}
  manifest_path: {(tmp_path / "_index" / "manifest.json").as_posix()}
pipeline:
  show_progress: false
""",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def app(config_file, monkeypatch):
    """Create test app over a fresh pipeline and store."""
    monkeypatch.setenv("POSTKIT_CONFIG", str(config_file))
    dependencies.reset()
    yield create_app()
    dependencies.reset()


@pytest.fixture
def client(app):
    """Create test client; entering it runs the startup hook."""
    with TestClient(app) as test_client:
        yield test_client


class TestHealth:
    """Test suite for /health endpoint."""

    def test_health(self, client):
        """Test startup loaded the posts directory."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "documents": 2}

    def test_degraded_when_a_post_is_broken(self, app, posts_dir):
        """Test startup problems are reported instead of blocking."""
        (posts_dir / "broken.md").write_text("---\ntitle: x\n", encoding="utf-8")

        with TestClient(app) as client:
            body = client.get("/health").json()

        assert body["status"] == "degraded"
        assert "broken.md" in body["startup_errors"][0]
        assert body["documents"] == 2


class TestDocumentsEndpoint:
    """Test suite for /documents endpoints."""

    def test_list_documents(self, client):
        """Test listing is most recent first."""
        response = client.get("/documents")

        assert response.status_code == 200
        assert [d["identifier"] for d in response.json()] == [SECOND_ID, HELLO_ID]

    def test_list_by_category(self, client):
        """Test the category filter."""
        response = client.get("/documents", params={"category": "web"})

        assert [d["identifier"] for d in response.json()] == [SECOND_ID]

    def test_list_by_date(self, client):
        """Test the date range filter."""
        response = client.get("/documents", params={"until": "2017-05-25T00:00:00"})

        assert [d["identifier"] for d in response.json()] == [HELLO_ID]

    def test_lookup(self, client):
        """Test fetching one rendered document."""
        response = client.get("/documents/lookup", params={"identifier": HELLO_ID})

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Hello!"
        assert data["categories"] == ["Rails"]
        assert data["source"] == "2017-05-21-hello.md"
        assert 'data-lang="ruby">class A\nend</code>' in data["rendered_body"]

    def test_lookup_unknown(self, client):
        """Test an unknown identifier is 404."""
        response = client.get("/documents/lookup", params={"identifier": "/nope/"})

        assert response.status_code == 404

    def test_render_new_document(self, client, tmp_path):
        """Test posting a source indexes and persists it."""
        content = make_source("Fresh Post", "2018-02-03 08:00:00", ["Ruby"])

        response = client.post("/documents", json={"content": content, "source": "fresh.md"})

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "inserted"
        assert data["document"]["identifier"] == "/ruby/2018/02/03/fresh-post/"
        assert client.get("/documents").json()[0]["identifier"] == "/ruby/2018/02/03/fresh-post/"

        stored = (tmp_path / "_index" / "documents.jsonl").read_text(encoding="utf-8").splitlines()
        assert "/ruby/2018/02/03/fresh-post/" in [json.loads(line)["identifier"] for line in stored]

    def test_render_same_source_twice(self, client):
        """Test re-posting identical content is unchanged."""
        content = make_source("Fresh Post")
        client.post("/documents", json={"content": content, "source": "fresh.md"})

        response = client.post("/documents", json={"content": content, "source": "fresh.md"})

        assert response.status_code == 201
        assert response.json()["status"] == "unchanged"

    def test_render_reports_warnings(self, client):
        """Test skipped metadata lines come back with the document."""
        content = "---\ntitle: Warned\ndate: 2018-01-01\nnot metadata\n---\nbody"

        response = client.post("/documents", json={"content": content})

        warnings = response.json()["document"]["warnings"]
        assert warnings == [{"line": 4, "text": "not metadata", "reason": "expected 'key: value' or 'key:'"}]

    def test_duplicate_identifier(self, client, hello_source):
        """Test another source claiming a used identifier is 409."""
        response = client.post("/documents", json={"content": hello_source, "source": "copy.md"})

        assert response.status_code == 409
        assert "Duplicate identifier" in response.json()["detail"]
        lookup = client.get("/documents/lookup", params={"identifier": HELLO_ID}).json()
        assert lookup["source"] == "2017-05-21-hello.md"

    def test_broken_source(self, client):
        """Test structural errors are 422 with their location."""
        response = client.post("/documents", json={"content": "---\ntitle: x\n", "source": "bad.md"})

        assert response.status_code == 422
        assert "never closed" in response.json()["detail"]
        assert "bad.md" in response.json()["detail"]
        assert len(client.get("/documents").json()) == 2

    def test_empty_content_is_rejected(self, client):
        """Test request validation."""
        response = client.post("/documents", json={"content": ""})

        assert response.status_code == 422

    def test_delete(self, client):
        """Test removal and repeated removal."""
        response = client.delete("/documents", params={"identifier": HELLO_ID})

        assert response.status_code == 200
        assert response.json() == {"identifier": HELLO_ID, "removed": True}
        assert client.delete("/documents", params={"identifier": HELLO_ID}).status_code == 404
        assert [d["identifier"] for d in client.get("/documents").json()] == [SECOND_ID]


class TestCategoriesEndpoint:
    """Test suite for /categories endpoints."""

    def test_list_categories(self, client):
        """Test labels and counts."""
        response = client.get("/categories")

        assert response.status_code == 200
        assert response.json() == [{"label": "Rails", "count": 2}, {"label": "Web", "count": 1}]

    def test_category_documents(self, client):
        """Test one category's documents, case-insensitively."""
        response = client.get("/categories/RAILS")

        assert [d["identifier"] for d in response.json()] == [SECOND_ID, HELLO_ID]

    def test_unknown_category(self, client):
        """Test an unknown category is empty."""
        response = client.get("/categories/nothing")

        assert response.status_code == 200
        assert response.json() == []
