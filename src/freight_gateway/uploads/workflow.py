"""Prepare → transfer → confirm upload workflow."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from freight_gateway.uploads.transfer import ProgressCallback, upload_file_to_presigned_url

DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class UploadFileInfo:
    file_name: str
    mime_type: str
    file_size_bytes: int


@dataclass(frozen=True)
class PreparedUpload:
    upload_url: str
    object_key: str


@dataclass(frozen=True)
class UploadedFileResult:
    object_key: str
    file_name: str
    mime_type: str
    file_size_bytes: int


PrepareFn = Callable[[UploadFileInfo], Awaitable[PreparedUpload]]
ConfirmFn = Callable[[UploadedFileResult], Awaitable[Any]]


async def prepare_and_upload_single_file(
    file_name: str,
    content: bytes,
    mime_type: str | None,
    *,
    prepare: PrepareFn,
    confirm: ConfirmFn | None = None,
    on_progress: ProgressCallback | None = None,
    **transfer_options: Any,
) -> UploadedFileResult:
    """Announce the file, PUT it to the issued URL, then optionally confirm it.

    ``transfer_options`` are passed to ``upload_file_to_presigned_url``.
    """
    if on_progress is not None:
        on_progress(0)

    info = UploadFileInfo(
        file_name=file_name,
        mime_type=mime_type or DEFAULT_MIME_TYPE,
        file_size_bytes=len(content),
    )
    prepared = await prepare(info)

    await upload_file_to_presigned_url(
        prepared.upload_url,
        content,
        info.mime_type,
        on_progress=on_progress,
        **transfer_options,
    )

    result = UploadedFileResult(
        object_key=prepared.object_key,
        file_name=info.file_name,
        mime_type=info.mime_type,
        file_size_bytes=info.file_size_bytes,
    )
    if confirm is not None:
        await confirm(result)
    return result
