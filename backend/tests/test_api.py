"""
School Registry Backend: API Endpoint Tests
=============================================

What:  End-to-end tests through the HTTP layer.
How:   HTTPX AsyncClient over ASGITransport against an app whose database
       is a temporary SQLite file (aiosqlite) and whose image directory is
       a temporary folder.
"""

import asyncio
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError

from school_registry.main import create_app, lifespan

SIX_MIB = 6 * 1024 * 1024


async def create_school(client, form, files=None):
    return await client.post("/api/schools", data=form, files=files)


def image_files(test_app):
    return sorted(p.name for p in test_app.state.image_storage.image_dir.iterdir())


class TestCreateAndList:

    @pytest.mark.asyncio
    async def test_create_without_image(self, test_client, school_form):
        response = await create_school(test_client, school_form)

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "School added successfully"
        assert isinstance(body["schoolId"], int)

        listing = (await test_client.get("/api/schools")).json()
        assert listing["success"] is True
        first = listing["schools"][0]
        assert first["id"] == body["schoolId"]
        assert first["image"] is None
        assert first["contact"] == 9876543210
        assert first["email_id"] == "office@greenvalley.edu"
        assert first["created_at"]

    @pytest.mark.asyncio
    async def test_list_is_newest_first(self, test_client, school_form):
        first_id = (await create_school(test_client, school_form)).json()["schoolId"]
        second_id = (
            await create_school(test_client, {**school_form, "name": "Riverdale Public School"})
        ).json()["schoolId"]

        assert second_id != first_id
        schools = (await test_client.get("/api/schools")).json()["schools"]
        assert [s["id"] for s in schools] == [second_id, first_id]

    @pytest.mark.asyncio
    async def test_list_empty(self, test_client):
        response = await test_client.get("/api/schools")
        assert response.status_code == 200
        assert response.json() == {"success": True, "schools": []}

    @pytest.mark.asyncio
    async def test_create_with_png_serves_same_bytes(self, test_client, school_form, png_bytes):
        response = await create_school(
            test_client, school_form, files={"image": ("logo.png", png_bytes, "image/png")}
        )
        assert response.status_code == 201
        school_id = response.json()["schoolId"]

        school = (await test_client.get(f"/api/schools/{school_id}")).json()["school"]
        assert school["image"].startswith("http://test/schoolImages/school-")
        assert school["image"].endswith(".png")

        listed = (await test_client.get("/api/schools")).json()["schools"][0]
        assert listed["image"] == school["image"]

        image_response = await test_client.get(school["image"])
        assert image_response.status_code == 200
        assert image_response.content == png_bytes
        assert image_response.headers["content-type"] == "image/png"

    @pytest.mark.asyncio
    async def test_image_url_follows_request_host(self, test_client, school_form, png_bytes):
        response = await create_school(
            test_client, school_form, files={"image": ("logo.png", png_bytes, "image/png")}
        )
        school_id = response.json()["schoolId"]

        school = (
            await test_client.get(
                f"/api/schools/{school_id}", headers={"Host": "schools.example.com:8080"}
            )
        ).json()["school"]

        assert school["image"].startswith("http://schools.example.com:8080/schoolImages/")


class TestCreateRejections:

    @pytest.mark.asyncio
    async def test_text_file_rejected(self, test_client, test_app, school_form):
        response = await create_school(
            test_client, school_form, files={"image": ("notes.txt", b"hello", "text/plain")}
        )

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Only image files are allowed"
        assert (await test_client.get("/api/schools")).json()["schools"] == []
        assert image_files(test_app) == []

    @pytest.mark.asyncio
    async def test_six_mib_image_rejected(self, test_client, test_app, school_form):
        response = await create_school(
            test_client,
            school_form,
            files={"image": ("big.png", b"\x00" * SIX_MIB, "image/png")},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "File too large. Maximum size is 5MB."
        assert (await test_client.get("/api/schools")).json()["schools"] == []
        assert image_files(test_app) == []

    @pytest.mark.asyncio
    async def test_missing_fields_rejected(self, test_client, test_app, school_form, png_bytes):
        form = {k: v for k, v in school_form.items() if k not in {"name", "email_id"}}

        response = await create_school(
            test_client, form, files={"image": ("logo.png", png_bytes, "image/png")}
        )

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert "email_id" in body["message"]
        assert "name" in body["message"]
        assert (await test_client.get("/api/schools")).json()["schools"] == []
        assert image_files(test_app) == []

    @pytest.mark.asyncio
    async def test_non_numeric_contact_rejected(self, test_client, school_form):
        response = await create_school(test_client, {**school_form, "contact": "not-a-number"})

        assert response.status_code == 400
        assert "contact" in response.json()["message"]


class TestGetById:

    @pytest.mark.asyncio
    async def test_get_existing(self, test_client, school_form):
        school_id = (await create_school(test_client, school_form)).json()["schoolId"]

        response = await test_client.get(f"/api/schools/{school_id}")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["school"]["id"] == school_id
        assert body["school"]["name"] == "Green Valley High School"
        assert body["school"]["image"] is None

    @pytest.mark.asyncio
    async def test_get_unknown_id_is_not_found(self, test_client, school_form):
        school_id = (await create_school(test_client, school_form)).json()["schoolId"]

        response = await test_client.get(f"/api/schools/{school_id + 1}")

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "School not found"

    @pytest.mark.parametrize("school_id", ["0", "2147483648", "99999999999999999999"])
    @pytest.mark.asyncio
    async def test_get_id_outside_column_range_is_not_found(self, test_client, school_id):
        response = await test_client.get(f"/api/schools/{school_id}")

        assert response.status_code == 404
        assert response.json()["message"] == "School not found"

    @pytest.mark.asyncio
    async def test_get_non_integer_id(self, test_client):
        response = await test_client.get("/api/schools/abc")
        assert response.status_code == 400
        assert response.json()["success"] is False


class TestConcurrency:

    @pytest.mark.asyncio
    async def test_concurrent_creates_get_distinct_ids_and_files(
        self, test_client, school_form, png_bytes
    ):
        responses = await asyncio.gather(
            *[
                create_school(
                    test_client,
                    {**school_form, "name": f"School {i}"},
                    files={"image": (f"logo{i}.png", png_bytes, "image/png")},
                )
                for i in range(2)
            ]
        )

        assert [r.status_code for r in responses] == [201, 201]
        ids = {r.json()["schoolId"] for r in responses}
        assert len(ids) == 2

        schools = (await test_client.get("/api/schools")).json()["schools"]
        images = {s["image"] for s in schools}
        assert len(images) == 2


class TestImagesAndMisc:

    @pytest.mark.asyncio
    async def test_missing_image_file_is_404(self, test_client):
        response = await test_client.get("/schoolImages/school-0-0.png")
        assert response.status_code == 404
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_unknown_route_is_json_404(self, test_client):
        response = await test_client.get("/api/students")
        assert response.status_code == 404
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, test_client):
        response = await test_client.get("/api/schools", headers={"X-Request-ID": "abc12345"})
        assert response.headers["X-Request-ID"] == "abc12345"

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"


class TestDatabaseFailures:
    """App wired to a mock Database handle that fails every statement."""

    @pytest.mark.asyncio
    async def test_create_surfaces_raw_driver_error(
        self, app_settings, mock_database, school_form, png_bytes
    ):
        mock_database.execute.side_effect = IntegrityError(
            "INSERT INTO schools ...", {}, Exception("duplicate key value violates unique constraint")
        )
        app = create_app(app_settings, database=mock_database)

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await create_school(
                client, school_form, files={"image": ("logo.png", png_bytes, "image/png")}
            )

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Failed to add school"
        assert body["error"] == "duplicate key value violates unique constraint"
        assert image_files(app) == []

    @pytest.mark.asyncio
    async def test_list_failure_is_500(self, app_settings, mock_database):
        mock_database.execute.side_effect = OperationalError(
            "SELECT ...", {}, Exception("could not connect to server")
        )
        app = create_app(app_settings, database=mock_database)

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/api/schools")

        assert response.status_code == 500
        assert response.json()["message"] == "Failed to fetch schools"
        assert response.json()["error"] == "could not connect to server"

    @pytest.mark.asyncio
    async def test_health_reports_unreachable_database(self, app_settings, mock_database):
        mock_database.ping.side_effect = OperationalError("SELECT 1", {}, Exception("down"))
        app = create_app(app_settings, database=mock_database)

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/health")

        assert response.status_code == 503
        assert response.json()["database"] == "disconnected"


class TestStartup:

    @pytest.mark.asyncio
    async def test_schema_failure_aborts_startup(self, app_settings, mock_database):
        mock_database.init_schema.side_effect = OperationalError(
            "CREATE TABLE ...", {}, Exception("SSL connection is required")
        )
        app = create_app(app_settings, database=mock_database)
        entered = MagicMock()

        with pytest.raises(OperationalError):
            async with lifespan(app):
                entered()

        entered.assert_not_called()
        mock_database.dispose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_startup_creates_table_and_image_dir(self, test_app, app_settings):
        async with lifespan(test_app):
            assert Path(app_settings.image_dir).is_dir()
            rows = await test_app.state.database.execute(
                text("SELECT COUNT(*) AS n FROM schools")
            )
        assert rows == [{"n": 0}]

    @pytest.mark.asyncio
    async def test_schema_init_is_idempotent(self, test_app):
        async with lifespan(test_app):
            await test_app.state.database.init_schema()
            await test_app.state.database.init_schema()
