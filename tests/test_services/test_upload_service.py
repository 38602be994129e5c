"""Tests for upload registry operations."""

from __future__ import annotations

import io
from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, patch

import pytest
from PIL import Image
from sqlalchemy import select

from backend.models.upload import FileType, Upload, is_allowed_mime_type
from backend.services.image_service import thumbnail_path
from backend.services.upload_service import (
    NewUpload,
    delete_upload,
    get_upload,
    human_file_size,
    list_uploads,
    store_upload,
    store_uploads,
    update_upload,
    upload_statistics,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from backend.storage.registry import DiskRegistry

MAX_BYTES = 1024
IMAGE_MAX_BYTES = 1024 * 1024


def png_bytes(width: int = 400, height: int = 200) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), (180, 40, 40)).save(buf, format="PNG")
    return buf.getvalue()


def new_upload(**overrides: object) -> NewUpload:
    values: dict[str, object] = {
        "data": b"%PDF-1.4",
        "original_name": "Syllabus.pdf",
        "mime_type": "application/pdf",
        "disk": "public",
    }
    values.update(overrides)
    return NewUpload(**values)  # type: ignore[arg-type]


def image_upload(**overrides: object) -> NewUpload:
    values: dict[str, object] = {
        "data": png_bytes(),
        "original_name": "Campus Map.PNG",
        "mime_type": "image/png",
    }
    values.update(overrides)
    return new_upload(**values)


class TestHumanFileSize:
    @pytest.mark.parametrize(
        ("size", "expected"),
        [
            (0, "0 B"),
            (1024, "1024 B"),
            (1536, "1.5 KB"),
            (10 * 1024 * 1024, "10 MB"),
            (3 * 1024**4 + 1, "3 TB"),
        ],
    )
    def test_formats(self, size: int, expected: str) -> None:
        assert human_file_size(size) == expected


class TestFileType:
    def test_classification(self) -> None:
        assert FileType.from_mime_type("image/png") is FileType.IMAGE
        assert FileType.from_mime_type("application/pdf") is FileType.DOCUMENT
        assert FileType.from_mime_type("application/zip") is FileType.ARCHIVE
        assert FileType.from_mime_type("application/x-msdownload") is FileType.OTHER

    def test_allowed_mime_types(self) -> None:
        assert is_allowed_mime_type("video/mp4")
        assert not is_allowed_mime_type("image/x-icon")
        assert not is_allowed_mime_type("application/x-msdownload")


class TestStoreUpload:
    async def test_writes_file_and_record(
        self, db_session: AsyncSession, disks: DiskRegistry
    ) -> None:
        upload = await store_upload(db_session, disks, new_upload(), max_bytes=MAX_BYTES)

        assert upload.id is not None
        assert upload.file_type == "document"
        assert upload.file_size == 8
        assert upload.file_path.startswith("uploads/document/")
        assert upload.file_path.endswith(".pdf")
        assert disks.get("public").read(upload.file_path) == b"%PDF-1.4"

    async def test_rejects_empty_file(self, db_session: AsyncSession, disks: DiskRegistry) -> None:
        with pytest.raises(ValueError, match="empty"):
            await store_upload(db_session, disks, new_upload(data=b""), max_bytes=MAX_BYTES)

    async def test_rejects_oversized_file(
        self, db_session: AsyncSession, disks: DiskRegistry
    ) -> None:
        with pytest.raises(ValueError, match="maximum allowed size of 1024 B"):
            await store_upload(
                db_session, disks, new_upload(data=b"x" * 1025), max_bytes=MAX_BYTES
            )

    async def test_rejects_disallowed_mime_type(
        self, db_session: AsyncSession, disks: DiskRegistry
    ) -> None:
        with pytest.raises(ValueError, match="MIME type not allowed"):
            await store_upload(
                db_session,
                disks,
                new_upload(mime_type="application/x-msdownload"),
                max_bytes=MAX_BYTES,
            )

    async def test_rejects_folder_traversal(
        self, db_session: AsyncSession, disks: DiskRegistry
    ) -> None:
        with pytest.raises(ValueError):
            await store_upload(
                db_session, disks, new_upload(folder="../secrets"), max_bytes=MAX_BYTES
            )

    async def test_removes_file_when_commit_fails(
        self, db_session: AsyncSession, disks: DiskRegistry
    ) -> None:
        with (
            patch.object(db_session, "commit", AsyncMock(side_effect=RuntimeError("db down"))),
            pytest.raises(RuntimeError),
        ):
            await store_upload(db_session, disks, new_upload(), max_bytes=MAX_BYTES)

        assert disks.get("public").all_files("uploads") == []


class TestQueries:
    async def test_list_filters_and_paginates(
        self, db_session: AsyncSession, disks: DiskRegistry
    ) -> None:
        for i in range(3):
            await store_upload(
                db_session,
                disks,
                new_upload(original_name=f"notes-{i}.txt", mime_type="text/plain", user_id=7),
                max_bytes=MAX_BYTES,
            )
        await store_upload(
            db_session,
            disks,
            new_upload(original_name="cat.png", mime_type="image/png"),
            max_bytes=MAX_BYTES,
        )

        page, total = await list_uploads(db_session, user_id=7, page=1, per_page=2)
        assert total == 3
        assert len(page) == 2

        images, total = await list_uploads(db_session, file_type=FileType.IMAGE)
        assert total == 1
        assert images[0].original_name == "cat.png"

        found, total = await list_uploads(db_session, search="notes-1")
        assert total == 1

    async def test_deleted_uploads_are_hidden(
        self, db_session: AsyncSession, disks: DiskRegistry
    ) -> None:
        upload = await store_upload(db_session, disks, new_upload(), max_bytes=MAX_BYTES)
        await delete_upload(db_session, disks, upload)

        assert await get_upload(db_session, upload.id) is None
        _, total = await list_uploads(db_session)
        assert total == 0

    async def test_update(self, db_session: AsyncSession, disks: DiskRegistry) -> None:
        upload = await store_upload(db_session, disks, new_upload(), max_bytes=MAX_BYTES)

        updated = await update_upload(
            db_session, upload, original_name="Renamed.pdf", is_public=True, metadata={"k": 1}
        )

        assert updated.original_name == "Renamed.pdf"
        assert updated.is_public is True
        assert updated.metadata_ == {"k": 1}

    async def test_update_keeps_image_metadata(
        self, db_session: AsyncSession, disks: DiskRegistry
    ) -> None:
        upload = await store_upload(db_session, disks, image_upload(), max_bytes=IMAGE_MAX_BYTES)
        thumbnails = upload.thumbnail_paths

        updated = await update_upload(
            db_session,
            upload,
            metadata={"caption": "Campus", "width": 1, "thumbnails": {"thumb": "elsewhere.png"}},
        )

        assert updated.metadata_["caption"] == "Campus"
        assert updated.metadata_["width"] == 400
        assert updated.thumbnail_paths == thumbnails


class TestImageUploads:
    async def test_image_gets_thumbnails_and_dimensions(
        self, db_session: AsyncSession, disks: DiskRegistry
    ) -> None:
        upload = await store_upload(
            db_session, disks, image_upload(), max_bytes=IMAGE_MAX_BYTES
        )

        assert upload.file_path.startswith("uploads/image/")
        assert upload.metadata_["width"] == 400
        assert upload.metadata_["height"] == 200
        assert upload.metadata_["original_extension"] == "png"
        assert set(upload.thumbnail_paths) == {"thumb", "small", "medium"}
        for size, path in upload.thumbnail_paths.items():
            assert path == thumbnail_path(upload.file_path, size)
            assert disks.get("public").exists(path)

    async def test_thumbnails_can_be_disabled(
        self, db_session: AsyncSession, disks: DiskRegistry
    ) -> None:
        upload = await store_upload(
            db_session,
            disks,
            image_upload(generate_thumbnails=False),
            max_bytes=IMAGE_MAX_BYTES,
        )

        assert upload.thumbnail_paths == {}
        assert disks.get("public").all_files("uploads") == [upload.file_path]

    async def test_custom_sizes(self, db_session: AsyncSession, disks: DiskRegistry) -> None:
        upload = await store_upload(
            db_session,
            disks,
            image_upload(),
            max_bytes=IMAGE_MAX_BYTES,
            thumbnail_sizes={"icon": 16},
        )

        assert list(upload.thumbnail_paths) == ["icon"]

    async def test_undecodable_image_is_still_stored(
        self, db_session: AsyncSession, disks: DiskRegistry
    ) -> None:
        upload = await store_upload(
            db_session, disks, image_upload(data=b"not a png"), max_bytes=IMAGE_MAX_BYTES
        )

        assert upload.id is not None
        assert upload.thumbnail_paths == {}
        assert "width" not in upload.metadata_

    async def test_commit_failure_removes_thumbnails(
        self, db_session: AsyncSession, disks: DiskRegistry
    ) -> None:
        with (
            patch.object(db_session, "commit", AsyncMock(side_effect=RuntimeError("db down"))),
            pytest.raises(RuntimeError),
        ):
            await store_upload(db_session, disks, image_upload(), max_bytes=IMAGE_MAX_BYTES)

        assert disks.get("public").all_files("uploads") == []


class TestStoreUploads:
    async def test_rejected_files_do_not_stop_the_batch(
        self, db_session: AsyncSession, disks: DiskRegistry
    ) -> None:
        batch = [
            new_upload(original_name="a.pdf"),
            new_upload(original_name="setup.exe", mime_type="application/x-msdownload"),
            new_upload(original_name="empty.pdf", data=b""),
            new_upload(original_name="b.pdf"),
        ]

        stored, rejected = await store_uploads(db_session, disks, batch, max_bytes=MAX_BYTES)

        assert [u.original_name for u in stored] == ["a.pdf", "b.pdf"]
        assert set(rejected) == {"setup.exe", "empty.pdf"}
        assert "MIME type not allowed" in rejected["setup.exe"]
        _, total = await list_uploads(db_session)
        assert total == 2


class TestDeleteUpload:
    async def test_deletes_file_and_thumbnails(
        self, db_session: AsyncSession, disks: DiskRegistry
    ) -> None:
        public = disks.get("public")
        upload = await store_upload(db_session, disks, image_upload(), max_bytes=IMAGE_MAX_BYTES)
        thumbnails = list(upload.thumbnail_paths.values())
        assert thumbnails

        await delete_upload(db_session, disks, upload)

        assert public.all_files("uploads") == []
        row = (await db_session.execute(select(Upload).where(Upload.id == upload.id))).scalar_one()
        assert row.deleted_at is not None

    async def test_foreign_thumbnail_paths_are_not_deleted(
        self, db_session: AsyncSession, disks: DiskRegistry
    ) -> None:
        public = disks.get("public")
        first = await store_upload(db_session, disks, new_upload(), max_bytes=MAX_BYTES)
        second = await store_upload(db_session, disks, new_upload(), max_bytes=MAX_BYTES)
        first.metadata_ = {"thumbnails": {"thumb": second.file_path}}
        await db_session.commit()

        await delete_upload(db_session, disks, first)

        assert not public.exists(first.file_path)
        assert public.exists(second.file_path)

    async def test_missing_file_still_soft_deletes(
        self, db_session: AsyncSession, disks: DiskRegistry
    ) -> None:
        upload = await store_upload(db_session, disks, new_upload(), max_bytes=MAX_BYTES)
        disks.get("public").delete(upload.file_path)

        await delete_upload(db_session, disks, upload)

        assert upload.is_deleted


class TestStatistics:
    async def test_totals_and_groups(self, db_session: AsyncSession, disks: DiskRegistry) -> None:
        await store_upload(db_session, disks, new_upload(), max_bytes=MAX_BYTES)
        await store_upload(
            db_session,
            disks,
            new_upload(original_name="cat.png", mime_type="image/png", data=b"1234"),
            max_bytes=MAX_BYTES,
        )
        gone = await store_upload(db_session, disks, new_upload(), max_bytes=MAX_BYTES)
        await delete_upload(db_session, disks, gone)

        stats = await upload_statistics(db_session)

        assert stats["total_uploads"] == 2
        assert stats["total_size"] == 12
        assert stats["human_total_size"] == "12 B"
        assert stats["by_type"]["document"]["count"] == 1
        assert stats["by_type"]["image"]["total_size"] == 4
        assert stats["by_disk"]["public"]["count"] == 2
        assert len(stats["recent_uploads"]) == 2
