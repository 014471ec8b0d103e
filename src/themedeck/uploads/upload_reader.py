"""Bounded reading of multipart uploads."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import UploadFile

from ..config import UploadLimits
from .uploads_errors import PayloadTooLargeError, UploadReadError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class UploadReader:
    """Read an upload in chunks, refusing to buffer more than the cap."""

    limits: UploadLimits

    async def read(self, upload: UploadFile) -> bytes:
        cap = self.limits.max_bytes
        chunks: list[bytes] = []
        size = 0

        try:
            while True:
                chunk = await upload.read(self.limits.chunk_size_bytes)
                if not chunk:
                    break
                size += len(chunk)
                if size > cap:
                    logger.warning(
                        "uploads.upload.payload_too_large",
                        extra={"size_bytes": size, "limit_bytes": cap},
                    )
                    raise PayloadTooLargeError(size)
                chunks.append(chunk)
        except PayloadTooLargeError:
            raise
        except Exception as exc:  # pragma: no cover
            logger.error("uploads.upload.read_failed", exc_info=exc)
            raise UploadReadError(str(exc)) from exc
        finally:
            await upload.close()

        return b"".join(chunks)
