"""
API tests for the image upload routes.

Run: pytest tests/unit/test_image_uploads_routes.py -v
"""

import json

import pytest

from tests.factories import ImageFactory

BASE = "/api/image-uploads"


def _file(filename: str, content: bytes = None, mime: str = "image/jpeg"):
    return ("images", (filename, content or ImageFactory.jpeg(), mime))


@pytest.fixture
def client(test_client_with_mock_db, catalog):
    catalog.get_table_data("products").append({
        "id": "prod-real1",
        "sku": "REAL1",
        "name": "Real One",
        "slug": "real-one",
        "primary_image_id": None,
        "gallery_image_ids": None,
    })
    return test_client_with_mock_db


class TestUploadConfig:
    def test_returns_limits(self, client):
        response = client.get(f"{BASE}/config")

        assert response.status_code == 200
        data = response.json()
        assert data["max_file_size_label"] == "10 MB"
        assert data["allowed_types"] == ["jpeg", "jpg", "png", "gif", "webp"]
        assert data["min_width"] == 50
        assert data["chunk_size"] == 10


class TestUploadBatch:
    """Tests for POST /api/image-uploads"""

    def test_batch_results(self, client):
        # Act
        response = client.post(BASE, files=[
            _file("ABC123.jpg"),
            _file("XYZ999-2.jpg"),
            _file("UNKNOWN.jpg"),
        ])

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert [r["status"] for r in data["results"]] == ["success", "success", "invalid"]
        assert data["results"][0]["is_featured"] is True
        assert data["summary"] == {"successful": 2, "failed": 1, "skipped": 0, "total": 3}
        assert data["session_id"]

    def test_no_images(self, client):
        response = client.post(BASE, data={"rename_enabled": "false"})

        assert response.status_code == 400
        assert response.json()["detail"] == "No images were uploaded."

    def test_stored_type_follows_extension(self, client, catalog):
        """The client's declared content type is ignored."""
        # Act
        response = client.post(BASE, files=[
            _file("ABC123.png", ImageFactory.png(), mime="application/octet-stream")
        ])

        # Assert
        assert response.json()["results"][0]["status"] == "success"
        stored = [
            opts for path, opts in catalog.bucket.options.items()
            if path.endswith("ABC123.png")
        ]
        assert stored == [{"content-type": "image/png"}]

    def test_zero_byte_upload(self, client):
        response = client.post(BASE, files=[("images", ("ABC123.jpg", b"", "image/jpeg"))])

        result = response.json()["results"][0]
        assert result["status"] == "error"
        assert result["message"] == "File is empty"


class TestRenameRound:
    """Tests for POST /sessions/{id}/renames"""

    def test_rename_flow(self, client):
        # Arrange
        content = ImageFactory.jpeg()
        staged = client.post(
            BASE,
            data={"rename_enabled": "true"},
            files=[_file("foo.jpg", content)],
        ).json()
        assert staged["pending_renames"] == [
            {"index": 0, "filename": "foo.jpg", "original_sku": "foo"}
        ]

        # Act
        response = client.post(
            f"{BASE}/sessions/{staged['session_id']}/renames",
            data={"renames": json.dumps([{"index": 0, "new_sku": "REAL1"}])},
            files=[_file("foo.jpg", content)],
        )

        # Assert
        assert response.status_code == 200
        result = response.json()["results"][0]
        assert result["status"] == "success"
        assert result["product_id"] == "prod-real1"

    def test_malformed_payload(self, client):
        staged = client.post(
            BASE, data={"rename_enabled": "true"}, files=[_file("foo.jpg")]
        ).json()

        response = client.post(
            f"{BASE}/sessions/{staged['session_id']}/renames",
            data={"renames": "not json"},
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INVALID_PAYLOAD"

    def test_unknown_session(self, client):
        response = client.post(
            f"{BASE}/sessions/missing/renames",
            data={"renames": "[]"},
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "UPLOAD_SESSION_NOT_FOUND"


class TestConflictRound:
    """Tests for POST /sessions/{id}/conflicts"""

    def test_use_new(self, client, catalog):
        # Arrange
        content = ImageFactory.jpeg(200, 200)
        staged = client.post(
            BASE,
            data={"handle_conflicts": "true"},
            files=[_file("XYZ999.jpg", content)],
        ).json()
        conflict = staged["pending_conflicts"][0]

        # Act
        response = client.post(
            f"{BASE}/sessions/{staged['session_id']}/conflicts",
            data={"conflicts": json.dumps([
                {"index": conflict["index"], "product_id": conflict["product_id"], "choice": "use_new"}
            ])},
            files=[_file("XYZ999.jpg", content)],
        )

        # Assert
        assert response.status_code == 200
        result = response.json()["results"][0]
        assert result["status"] == "success"
        assert result["is_featured"] is True
        assert "img-1" not in [r["id"] for r in catalog.get_table_data("product_images")]

    def test_pending_renames_block_conflicts(self, client):
        staged = client.post(
            BASE,
            data={"rename_enabled": "true", "handle_conflicts": "true"},
            files=[_file("foo.jpg"), _file("XYZ999.jpg")],
        ).json()

        response = client.post(
            f"{BASE}/sessions/{staged['session_id']}/conflicts",
            data={"conflicts": "[]"},
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "PENDING_RENAMES"


class TestReportAndUndo:
    """Tests for report downloads and undo"""

    def test_session_report(self, client):
        # Arrange
        staged = client.post(BASE, files=[_file("ABC123.jpg"), _file("UNKNOWN.jpg")]).json()

        # Act
        response = client.get(f"{BASE}/sessions/{staged['session_id']}/report.csv")

        # Assert
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "image2sku-report-" in response.headers["content-disposition"]
        lines = response.text.splitlines()
        assert lines[0] == "Filename,Status,Message"
        assert lines[1] == '"ABC123.jpg","success","Image set as featured"'
        assert lines[2] == '"UNKNOWN.jpg","invalid","No product found with SKU: UNKNOWN"'

    def test_posted_report(self, client):
        response = client.post(f"{BASE}/report.csv", json={"results": [
            {"filename": "a.jpg", "status": "skipped", "message": "Rename skipped"}
        ]})

        assert response.status_code == 200
        assert response.text.splitlines()[1] == '"a.jpg","skipped","Rename skipped"'

    def test_undo(self, client, catalog):
        # Arrange
        staged = client.post(BASE, files=[_file("ABC123.jpg")]).json()
        result = staged["results"][0]

        # Act
        response = client.post(f"{BASE}/undo", json={"records": [{
            "attachment_id": result["attachment_id"],
            "product_id": result["product_id"],
            "is_featured": result["is_featured"],
        }]})

        # Assert
        assert response.status_code == 200
        assert response.json() == {
            "undone": 1,
            "errors": 0,
            "message": "Successfully undone 1 upload(s)",
        }
        product = next(p for p in catalog.get_table_data("products") if p["id"] == "prod-abc")
        assert product["primary_image_id"] is None

    def test_undo_without_records(self, client):
        response = client.post(f"{BASE}/undo", json={"records": []})

        assert response.status_code == 400
        assert response.json()["detail"] == "No undo data provided."
