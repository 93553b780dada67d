"""Tests for tag mutation and suggestion endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from backend.provider.base import RemoteFile
from tests.conftest import app_of

if TYPE_CHECKING:
    from httpx import AsyncClient

    from tests.conftest import FakeDriveProvider


def _file(provider: FakeDriveProvider, tags: str | None = None) -> RemoteFile:
    properties = {"tags": tags} if tags is not None else {}
    return provider.add(
        RemoteFile(id="f1", name="report.pdf", mime_type="application/pdf", properties=properties)
    )


class TestUpdateTags:
    async def test_add_first_tag(self, client: AsyncClient, provider: FakeDriveProvider) -> None:
        _file(provider)
        resp = await client.post(
            "/update-tags", json={"fileId": "f1", "action": "add", "tag": "invoice"}
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["message"] == "Tag added"
        assert data["tags"] == ["invoice"]
        assert data["backendSyncStatus"] == "synced"
        assert provider.files["f1"].properties == {"tags": "invoice"}

    async def test_add_appends_in_order(
        self, client: AsyncClient, provider: FakeDriveProvider
    ) -> None:
        _file(provider, "invoice")
        resp = await client.post(
            "/update-tags", json={"fileId": "f1", "action": "add", "tag": "2024"}
        )
        assert resp.json()["tags"] == ["invoice", "2024"]
        assert provider.files["f1"].properties["tags"] == "invoice,2024"

    async def test_add_present_tag_is_noop(
        self, client: AsyncClient, provider: FakeDriveProvider
    ) -> None:
        _file(provider, "invoice")
        resp = await client.post(
            "/update-tags", json={"fileId": "f1", "action": "add", "tag": "invoice"}
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["message"] == "No changes"
        assert data["tags"] == ["invoice"]
        assert data["backendSyncStatus"] == "synced"
        assert provider.property_writes == []

    async def test_remove_absent_tag_is_noop(
        self, client: AsyncClient, provider: FakeDriveProvider
    ) -> None:
        _file(provider, "invoice")
        resp = await client.post(
            "/update-tags", json={"fileId": "f1", "action": "remove", "tag": "draft"}
        )
        assert resp.json()["message"] == "No changes"
        assert provider.property_writes == []

    async def test_remove_last_tag_clears_property(
        self, client: AsyncClient, provider: FakeDriveProvider
    ) -> None:
        _file(provider, "invoice")
        resp = await client.post(
            "/update-tags", json={"fileId": "f1", "action": "remove", "tag": "invoice"}
        )
        data = resp.json()
        assert data["message"] == "Tag removed"
        assert data["tags"] == []
        assert provider.property_writes == [("f1", {"tags": None})]
        assert "tags" not in provider.files["f1"].properties

    async def test_unacknowledged_write_reports_pending(
        self, client: AsyncClient, provider: FakeDriveProvider
    ) -> None:
        _file(provider, "invoice")
        provider.lagging.add("f1")
        resp = await client.post(
            "/update-tags", json={"fileId": "f1", "action": "add", "tag": "2024"}
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["backendSyncStatus"] == "pending"
        assert data["tags"] == ["invoice"]

    async def test_tag_is_trimmed(self, client: AsyncClient, provider: FakeDriveProvider) -> None:
        _file(provider)
        resp = await client.post(
            "/update-tags", json={"fileId": "f1", "action": "add", "tag": "  invoice  "}
        )
        assert resp.json()["tags"] == ["invoice"]

    async def test_missing_file_id(self, client: AsyncClient) -> None:
        resp = await client.post("/update-tags", json={"action": "add", "tag": "x"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "File ID is required"

    async def test_unknown_action(self, client: AsyncClient, provider: FakeDriveProvider) -> None:
        _file(provider)
        resp = await client.post(
            "/update-tags", json={"fileId": "f1", "action": "rename", "tag": "x"}
        )
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Action must be 'add' or 'remove'"

        resp = await client.post("/update-tags", json={"fileId": "f1", "tag": "x"})
        assert resp.status_code == 400
        assert provider.property_writes == []

    async def test_invalid_tags_rejected(
        self, client: AsyncClient, provider: FakeDriveProvider
    ) -> None:
        _file(provider)
        for tag, detail in (
            ("", "Tag is required"),
            ("   ", "Tag is required"),
            ("a,b", "Tag must not contain a comma"),
            ("x" * 101, "Tag must be at most 100 characters"),
        ):
            resp = await client.post(
                "/update-tags", json={"fileId": "f1", "action": "add", "tag": tag}
            )
            assert resp.status_code == 400
            assert resp.json()["detail"] == detail
        assert provider.property_writes == []

    async def test_provider_failure_returns_500(
        self, client: AsyncClient, provider: FakeDriveProvider
    ) -> None:
        _file(provider)
        provider.failing.add("update_properties")
        resp = await client.post(
            "/update-tags", json={"fileId": "f1", "action": "add", "tag": "invoice"}
        )
        assert resp.status_code == 500
        assert resp.json()["detail"] == "Error updating tags"

    async def test_unknown_file_returns_500(self, client: AsyncClient) -> None:
        resp = await client.post(
            "/update-tags", json={"fileId": "missing", "action": "add", "tag": "invoice"}
        )
        assert resp.status_code == 500

    async def test_added_tag_joins_suggestions(
        self, client: AsyncClient, provider: FakeDriveProvider
    ) -> None:
        _file(provider)
        await client.post("/update-tags", json={"fileId": "f1", "action": "add", "tag": "invoice"})
        assert "invoice" in app_of(client).state.tag_index.tags

    async def test_requires_credentials(self, anonymous_client: AsyncClient) -> None:
        resp = await anonymous_client.post(
            "/update-tags", json={"fileId": "f1", "action": "add", "tag": "x"}
        )
        assert resp.status_code == 401


class TestTagSuggestions:
    async def test_suggests_from_last_listing(
        self, client: AsyncClient, provider: FakeDriveProvider
    ) -> None:
        provider.add(
            RemoteFile(
                id="a",
                name="a.pdf",
                mime_type="application/pdf",
                properties={"tags": "Invoice,receipt"},
            )
        )
        provider.add(
            RemoteFile(id="b", name="b.pdf", mime_type="application/pdf", properties={"tags": "tax"})
        )
        await client.get("/files")

        resp = await client.get("/tags", params={"q": "INV"})
        assert resp.status_code == 200
        assert resp.json() == {"tags": ["Invoice"], "canCreate": True}

    async def test_exact_match_cannot_be_created(
        self, client: AsyncClient, provider: FakeDriveProvider
    ) -> None:
        provider.add(
            RemoteFile(id="a", name="a.pdf", mime_type="application/pdf", properties={"tags": "tax"})
        )
        await client.get("/files")

        resp = await client.get("/tags", params={"q": "TAX"})
        assert resp.json() == {"tags": ["tax"], "canCreate": False}

    async def test_empty_text_lists_everything(
        self, client: AsyncClient, provider: FakeDriveProvider
    ) -> None:
        provider.add(
            RemoteFile(
                id="a", name="a.pdf", mime_type="application/pdf", properties={"tags": "b,a"}
            )
        )
        await client.get("/files")

        resp = await client.get("/tags")
        assert resp.json() == {"tags": ["a", "b"], "canCreate": False}
