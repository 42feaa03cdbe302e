"""API endpoints for browsing and changing the folder tree"""

from fastapi import APIRouter, Body, Query, Request, Response, status
from pydantic import BaseModel, Field

from prefixfs.api.caching import hashed_browser_cache
from prefixfs.connections import namespace
from prefixfs.models import Breadcrumb, FolderContents, SearchItem, SearchType, VirtualDocument, VirtualFolder

app_folders = APIRouter(prefix="", tags=["folders"])


class CreateFolder(BaseModel):
    parent: str | None = Field(None, description="Prefix of the parent folder, empty or missing for the root")
    name: str = Field(description="Name of the new folder (a single path segment)")
    icon_type: str | None = Field(None, description="If given, also return a signed URL to upload a custom icon of this type")


class CreatedFolder(BaseModel):
    id: str = Field(description="Prefix of the new folder")
    icon_upload_url: str | None = None


class Rename(BaseModel):
    old_path: str = Field(description="Key of the document or prefix of the folder to rename")
    new_name: str


@app_folders.get("/folders")
@hashed_browser_cache
async def list_folder(
    request: Request,
    response: Response,
    prefix: str | None = Query(None, description="Folder to list, empty or missing for the root"),
) -> FolderContents:
    """
    List the subfolders and documents of a folder.
    Document URLs are short lived signed URLs; if one has expired, get a new one from /documents/{key}.
    """
    return await namespace().contents(prefix)


@app_folders.get("/folders/info")
async def folder_info(prefix: str | None = Query(None)) -> VirtualFolder:
    return await namespace().folder(prefix)


@app_folders.get("/folders/breadcrumbs")
async def breadcrumbs(prefix: str | None = Query(None)) -> list[Breadcrumb]:
    """
    The path from the top level folder to the given folder. Empty for the root.
    """
    return await namespace().breadcrumbs(prefix)


@app_folders.get("/documents/{key:path}")
async def get_document(key: str) -> VirtualDocument:
    """Get a document with a freshly signed URL"""
    return await namespace().document(key)


@app_folders.post("/folders", status_code=status.HTTP_201_CREATED)
async def create_folder(body: CreateFolder) -> CreatedFolder:
    ns = namespace()
    id = await ns.create_folder(body.parent, body.name)
    icon_url = await ns.icon_upload_url(id, body.icon_type) if body.icon_type else None
    return CreatedFolder(id=id, icon_upload_url=icon_url)


@app_folders.put("/rename", status_code=status.HTTP_204_NO_CONTENT)
async def rename(body: Rename):
    """Rename a folder or document. Renaming a folder is not atomic; on error, part of it may be renamed."""
    await namespace().rename(body.old_path, body.new_name)


@app_folders.delete("/delete", status_code=status.HTTP_204_NO_CONTENT)
async def delete(path: str = Body(..., embed=True, description="Key of the document or prefix of the folder")):
    """Delete a document, or a folder and everything in it. Not atomic."""
    await namespace().delete(path)


@app_folders.get("/search")
async def search(
    q: str = Query(..., min_length=1),
    type: SearchType = Query("all"),
    limit: int = Query(100, ge=1, le=1000),
) -> list[SearchItem]:
    return await namespace().search(q, type, limit)
