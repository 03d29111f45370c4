# ========================================
# recruitdesk/routes/files.py
# ========================================

import io

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from recruitdesk.database import get_store

router = APIRouter(prefix="/files", tags=["Files"])


# ✅ 1. DOWNLOAD AN UPLOADED FILE (PUBLIC URL)
@router.get("/{bucket}/{path:path}")
async def download_file(bucket: str, path: str, store=Depends(get_store)):
    contents, content_type = await store.open_file(bucket, path)
    filename = path.rsplit("/", 1)[-1]
    return StreamingResponse(
        io.BytesIO(contents),
        media_type=content_type,
        headers={"Content-Disposition": f"inline; filename={filename}"},
    )
