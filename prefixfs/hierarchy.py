"""
Reconstruct a folder tree from flat prefix listings.

There is no server side tree: a folder is any key ending in '/', its parent is the prefix one
segment up, and its display name follows from the key itself (see prefixfs.paths).
"""

import asyncio
import unicodedata

from prefixfs.models import Breadcrumb, FolderContents, ListingEntry, VirtualDocument, VirtualFolder
from prefixfs.objectstore.filetypes import document_type, format_size
from prefixfs.objectstore.gateway import ObjectStoreGateway
from prefixfs.paths import display_name, file_name, normalize, parent_prefix, segments


def sort_key(name: str) -> str:
    """
    Case and accent insensitive sort key for display names, so "étude" sorts with "e" instead of after "z".
    It does not depend on the locale of the process.
    """
    decomposed = unicodedata.normalize("NFKD", name)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()


class HierarchyResolver:
    def __init__(self, gateway: ObjectStoreGateway):
        self.gateway = gateway

    async def list_children(self, prefix: str | None) -> FolderContents:
        """
        List the folders and documents directly below prefix.

        Every folder gets its item count from a nested listing of its own prefix, and every document
        gets a freshly signed URL, so this costs one request per child on top of the listing itself.
        Folders and documents are each sorted by name; names that compare equal keep the listing order.
        Gateway errors propagate unchanged.
        """
        prefix = normalize(prefix)
        folder_entries, document_entries = await self.entries(prefix)
        return FolderContents(
            folders=await self._folders(folder_entries, prefix),
            documents=await self._documents(document_entries, prefix),
        )

    async def list_folders(self, prefix: str | None) -> list[VirtualFolder]:
        prefix = normalize(prefix)
        folder_entries, _ = await self.entries(prefix)
        return await self._folders(folder_entries, prefix)

    async def list_documents(self, prefix: str | None) -> list[VirtualDocument]:
        prefix = normalize(prefix)
        _, document_entries = await self.entries(prefix)
        return await self._documents(document_entries, prefix)

    async def entries(self, prefix: str) -> tuple[list[ListingEntry], list[ListingEntry]]:
        """Split one level of a listing into folder and document entries, by key"""
        listing = await self.gateway.list_prefix(prefix)
        folder_entries: list[ListingEntry] = []
        document_entries: list[ListingEntry] = []
        for entry in [*listing.folders, *listing.files]:
            # some stores return the folder marker object itself
            if not entry.key or entry.key == prefix:
                continue
            if entry.key.endswith("/"):
                folder_entries.append(entry)
            else:
                document_entries.append(entry)
        return folder_entries, document_entries

    async def _folders(self, entries: list[ListingEntry], parent: str) -> list[VirtualFolder]:
        folders = await asyncio.gather(*[self._folder(entry, parent) for entry in entries])
        return sorted(folders, key=lambda f: sort_key(f.name))

    async def _documents(self, entries: list[ListingEntry], folder: str) -> list[VirtualDocument]:
        documents = await asyncio.gather(*[self._document(entry, folder) for entry in entries])
        return sorted(documents, key=lambda d: sort_key(d.name))

    async def count_items(self, prefix: str) -> int:
        """Number of documents directly inside a folder"""
        _, document_entries = await self.entries(prefix)
        return len(document_entries)

    async def _folder(self, entry: ListingEntry, parent: str) -> VirtualFolder:
        id = normalize(entry.key)
        return VirtualFolder(
            id=id,
            name=display_name(id),
            parent_id=parent,
            item_count=await self.count_items(id),
            icon_url=entry.icon_url,
            is_bookmarked=entry.is_bookmarked,
        )

    async def _document(self, entry: ListingEntry, folder: str) -> VirtualDocument:
        name = file_name(entry.key)
        return VirtualDocument(
            id=entry.key,
            name=name,
            type=document_type(name),
            url=await self.gateway.fetch_url(entry.key),
            size=format_size(entry.size),
            folder_id=folder or None,
            icon_url=entry.icon_url,
            is_bookmarked=entry.is_bookmarked,
        )

    async def folder_info(self, prefix: str | None) -> VirtualFolder:
        """Resolve a single folder from its own listing"""
        prefix = normalize(prefix)
        return VirtualFolder(
            id=prefix,
            name=display_name(prefix),
            parent_id=parent_prefix(prefix),
            item_count=await self.count_items(prefix),
        )

    async def build_breadcrumb_path(self, prefix: str | None) -> list[Breadcrumb]:
        """
        The chain of folders from the top level down to prefix, empty for the root.

        Each ancestor is resolved on its own (one request per segment) so a renamed ancestor shows up
        the next time the path is built. A failure for any segment fails the whole path.
        """
        path = []
        for partial in segments(prefix):
            folder = await self.folder_info(partial)
            path.append(Breadcrumb(id=partial, name=folder.name))
        return path
