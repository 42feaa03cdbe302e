import pytest

from prefixfs.hierarchy import HierarchyResolver, sort_key
from prefixfs.models import Listing, ListingEntry
from prefixfs.objectstore.gateway import GatewayError


@pytest.mark.anyio
async def test_list_children_documents(gateway, store):
    contents = await HierarchyResolver(gateway).list_children("reports/q3/")
    assert contents.folders == []
    assert [d.name for d in contents.documents] == ["a.pdf", "b.pdf"]
    a = contents.documents[0]
    assert a.id == "reports/q3/a.pdf"
    assert a.type == "pdf"
    assert a.folder_id == "reports/q3/"
    assert a.url.startswith("https://signed.example.com/reports/q3/a.pdf")
    assert a.size == "Unknown"
    # one listing and one signed url per document
    assert store.calls["/list"] == 1
    assert store.calls["/files/fetch"] == 2


@pytest.mark.anyio
async def test_list_children_folders(gateway):
    contents = await HierarchyResolver(gateway).list_children(None)
    assert [(f.id, f.name, f.item_count, f.parent_id) for f in contents.folders] == [
        ("reports/", "Reports", 1, ""),
        ("sales-team/", "Sales Team", 2, ""),
    ]
    assert [d.id for d in contents.documents] == ["readme.txt"]
    assert contents.documents[0].folder_id is None
    assert contents.documents[0].type == "file"

    contents = await HierarchyResolver(gateway).list_children("/sales-team")
    assert [(f.id, f.name, f.item_count, f.parent_id) for f in contents.folders] == [
        ("sales-team/clients/", "Clients", 0, "sales-team/")
    ]
    assert [(d.name, d.type) for d in contents.documents] == [("deck.pptx", "presentation"), ("photo.png", "image")]


@pytest.mark.anyio
async def test_sort_is_case_insensitive_and_stable(store, gateway):
    store.keys = dict.fromkeys(["x/Beta.pdf", "x/alpha.pdf", "x/beta.pdf", "x/Zeta/", "x/alpha/"])
    resolver = HierarchyResolver(gateway)
    assert [d.name for d in await resolver.list_documents("x")] == ["alpha.pdf", "Beta.pdf", "beta.pdf"]
    assert [f.name for f in await resolver.list_folders("x")] == ["Alpha", "Zeta"]


@pytest.mark.anyio
async def test_sort_ignores_accents(store, gateway):
    store.keys = dict.fromkeys(["x/zeta.pdf", "x/étude.pdf", "x/f.pdf", "x/Zebra/", "x/Ärger/", "x/apfel/"])
    resolver = HierarchyResolver(gateway)
    assert [d.name for d in await resolver.list_documents("x")] == ["étude.pdf", "f.pdf", "zeta.pdf"]
    assert [f.name for f in await resolver.list_folders("x")] == ["Apfel", "Ärger", "Zebra"]


def test_sort_key():
    assert sort_key("Étude") == sort_key("etude")
    assert sort_key("Ångström") < sort_key("b")
    assert sort_key("Straße") == "strasse"


class ListingGateway:
    """Returns a fixed listing, for keys the fake store would never produce"""

    def __init__(self, listing: Listing):
        self.listing = listing

    async def list_prefix(self, prefix):
        return self.listing

    async def fetch_url(self, key):
        return f"https://signed/{key}"


@pytest.mark.anyio
async def test_entries_classified_by_key():
    listing = Listing(
        folders=[ListingEntry(key="docs/"), ListingEntry(key="docs/sub/"), ListingEntry(key="")],
        # some stores list folder markers among the files
        files=[ListingEntry(key="docs/other/", is_bookmarked=True), ListingEntry(key="docs/x.pdf", size=2048)],
    )
    folders, documents = await HierarchyResolver(ListingGateway(listing)).entries("docs/")
    assert [e.key for e in folders] == ["docs/sub/", "docs/other/"]
    assert [e.key for e in documents] == ["docs/x.pdf"]
    [document] = await HierarchyResolver(ListingGateway(listing)).list_documents("docs/")
    assert (document.size, document.url) == ("2.0 KB", "https://signed/docs/x.pdf")


@pytest.mark.anyio
async def test_errors_propagate(store, gateway):
    store.fail["/files/fetch"] = 500
    with pytest.raises(GatewayError):
        await HierarchyResolver(gateway).list_children("reports/q3/")
    store.fail = {"/list": 503}
    with pytest.raises(GatewayError) as e:
        await HierarchyResolver(gateway).list_children("")
    assert e.value.status_code == 503


@pytest.mark.anyio
async def test_folder_info(gateway):
    folder = await HierarchyResolver(gateway).folder_info("reports/q3")
    assert (folder.id, folder.name, folder.parent_id, folder.item_count) == ("reports/q3/", "Q3", "reports/", 2)
    root = await HierarchyResolver(gateway).folder_info("")
    assert (root.id, root.name, root.parent_id, root.item_count) == ("", "Root", None, 1)


@pytest.mark.anyio
async def test_breadcrumbs(store, gateway):
    resolver = HierarchyResolver(gateway)
    path = await resolver.build_breadcrumb_path("reports/q3/")
    assert [(b.id, b.name) for b in path] == [("reports/", "Reports"), ("reports/q3/", "Q3")]
    # one resolution per segment
    assert store.calls["/list"] == 2
    assert await resolver.build_breadcrumb_path("") == []
    assert await resolver.build_breadcrumb_path("/") == []


@pytest.mark.anyio
async def test_breadcrumbs_follow_rename(store, gateway):
    resolver = HierarchyResolver(gateway)
    await gateway.rename("reports/", "annual-reports")
    path = await resolver.build_breadcrumb_path("annual-reports/q3/")
    assert [(b.id, b.name) for b in path] == [("annual-reports/", "Annual Reports"), ("annual-reports/q3/", "Q3")]


@pytest.mark.anyio
async def test_breadcrumbs_fail_as_a_whole(store, gateway):
    store.fail["/list"] = 500
    with pytest.raises(GatewayError):
        await HierarchyResolver(gateway).build_breadcrumb_path("reports/q3/")
