"""
PotTogether Backend: Stored File Route
=======================================

Serves objects written by ObjectStore at the URLs it handed out
({public_base_url}/files/<key>). Keys that resolve outside the storage
root are rejected.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from pottogether.exceptions import NotFoundError
from pottogether.services.object_store import ObjectStore, get_object_store

router = APIRouter(tags=["Files"])


@router.get("/files/{key:path}", summary="Serve a stored image")
async def serve_file(key: str, store: ObjectStore = Depends(get_object_store)) -> FileResponse:
    path = store.resolve(key)
    if not path.is_file():
        raise NotFoundError(resource="file", resource_id=key)

    # Stored objects never change under the same key
    return FileResponse(
        path=str(path),
        headers={"Cache-Control": "public, max-age=86400, immutable"},
    )
