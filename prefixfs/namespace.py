"""
The namespace as seen by the UI: cached folder listings, breadcrumbs, mutations and search.

Listings are cached per prefix under "folders:<prefix>" and "docs:<prefix>". Every mutation goes
straight to the object store and then drops both cache namespaces, since a rename or delete can
affect any cached listing below or above the touched prefix.

Signed document URLs are issued with each listing and are not checked for expiry before use.
A client that gets a 403 on a document URL should call Namespace.document(key) for a fresh one.
"""

import asyncio
import logging
from collections import deque

from prefixfs.cache import Cache
from prefixfs.hierarchy import HierarchyResolver
from prefixfs.models import Breadcrumb, FolderContents, SearchItem, SearchType, VirtualDocument, VirtualFolder
from prefixfs.objectstore.filetypes import document_type
from prefixfs.objectstore.gateway import GatewayError, ObjectStoreGateway
from prefixfs.paths import child_prefix, file_name, folder_of, normalize

FOLDERS = "folders:"
DOCS = "docs:"


class Namespace:
    def __init__(
        self,
        gateway: ObjectStoreGateway,
        cache: Cache,
        ttl: float = 300,
        search_scan_cap: int = 2000,
    ):
        self.gateway = gateway
        self.cache = cache
        self.ttl = ttl
        self.search_scan_cap = search_scan_cap
        self.resolver = HierarchyResolver(gateway)

    ######################## READS #########################

    async def folders(self, prefix: str | None = None) -> list[VirtualFolder]:
        prefix = normalize(prefix)
        return await self.cache.swr(FOLDERS + prefix, self.ttl, lambda: self.resolver.list_folders(prefix))

    async def documents(self, prefix: str | None = None) -> list[VirtualDocument]:
        prefix = normalize(prefix)
        return await self.cache.swr(DOCS + prefix, self.ttl, lambda: self.resolver.list_documents(prefix))

    async def contents(self, prefix: str | None = None) -> FolderContents:
        folders, documents = await asyncio.gather(self.folders(prefix), self.documents(prefix))
        return FolderContents(folders=folders, documents=documents)

    async def breadcrumbs(self, prefix: str | None) -> list[Breadcrumb]:
        return await self.resolver.build_breadcrumb_path(prefix)

    async def folder(self, prefix: str | None) -> VirtualFolder:
        return await self.resolver.folder_info(prefix)

    async def document(self, key: str) -> VirtualDocument:
        """A single document with a freshly signed URL, bypassing the cache"""
        if not key or key.endswith("/"):
            raise ValueError(f"Not a document key: {key!r}")
        name = file_name(key)
        return VirtualDocument(
            id=key,
            name=name,
            type=document_type(name),
            url=await self.gateway.fetch_url(key),
            folder_id=folder_of(key) or None,
        )

    ######################## MUTATIONS #########################

    def invalidate(self) -> None:
        dropped = self.cache.invalidate_by_prefix(FOLDERS) + self.cache.invalidate_by_prefix(DOCS)
        logging.debug(f"Dropped {dropped} cached listings")

    async def create_folder(self, parent: str | None, name: str) -> str:
        """Create a folder below parent, returning the prefix of the new folder"""
        _check_name(name)
        parent = normalize(parent)
        try:
            await self.gateway.create(parent, name)
        finally:
            self.invalidate()
        return child_prefix(parent, name)

    async def rename(self, old_path: str, new_name: str) -> None:
        """
        Rename a folder or document. For a folder every key below it is renamed by the store, which is
        not atomic: on failure some keys may already carry the new name. The error is raised as is,
        and the cache is dropped either way so the partial result becomes visible.
        """
        _check_name(new_name)
        if not old_path.strip("/"):
            raise ValueError("Cannot rename the root folder")
        try:
            await self.gateway.rename(old_path, new_name)
        finally:
            self.invalidate()

    async def delete(self, path: str) -> None:
        """Delete a document, or a folder with everything below it (not atomic, see rename)"""
        if not path.strip("/"):
            raise ValueError("Cannot delete the root folder")
        try:
            await self.gateway.delete(path)
        finally:
            self.invalidate()

    async def icon_upload_url(self, item_path: str, icon_type: str = "png") -> str:
        """Signed URL to PUT a custom icon for a folder or document"""
        return await self.gateway.icon_upload_url(item_path, icon_type.lower())

    ######################## SEARCH #########################

    async def search(self, q: str, type: SearchType = "all", limit: int = 100) -> list[SearchItem]:
        """
        Search files and folders by name. Uses the search endpoint of the store if it has one,
        and otherwise walks the tree breadth first (visiting at most search_scan_cap folders).
        """
        try:
            return (await self.gateway.search(q, type, limit))[:limit]
        except GatewayError as e:
            if e.status_code != 404:
                raise
        logging.info("Object store has no search endpoint, searching client side")
        return await self._scan(q, type, limit)

    async def _scan(self, q: str, type: SearchType, limit: int) -> list[SearchItem]:
        needle = q.lower()
        out: list[SearchItem] = []
        queue = deque([""])
        visited: set[str] = set()
        while queue and len(visited) < self.search_scan_cap and len(out) < limit:
            prefix = queue.popleft()
            if prefix in visited:
                continue
            visited.add(prefix)
            folder_entries, document_entries = await self.resolver.entries(prefix)
            if type in ("all", "files"):
                out.extend(SearchItem(key=e.key, type="file") for e in document_entries if needle in file_name(e.key).lower())
            for entry in folder_entries:
                folder = normalize(entry.key)
                if type in ("all", "folders") and needle in folder.rstrip("/").split("/")[-1].lower():
                    out.append(SearchItem(key=folder, type="folder"))
                queue.append(folder)
        return out[:limit]


def _check_name(name: str) -> None:
    if not name or not name.strip():
        raise ValueError("Name cannot be empty")
    if "/" in name:
        raise ValueError(f"Name cannot contain '/': {name!r}")
