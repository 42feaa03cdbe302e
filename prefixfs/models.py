from datetime import UTC, datetime
from typing import Annotated, Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Prefix = Annotated[str, Field(title="Normalized key prefix, ending in '/' for folders, '' for the root")]

T = TypeVar("T")


class GatewayModel(BaseModel):
    """Base for shapes exchanged with the object store, which uses camelCase keys"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


######################## LISTINGS #########################


class ListingEntry(GatewayModel):
    key: str
    size: int | None = None
    icon_url: str | None = None
    is_bookmarked: bool = False


class Listing(GatewayModel):
    """One level of a prefix as returned by the object store"""

    folders: list[ListingEntry] = []
    files: list[ListingEntry] = []


DocumentType = Literal["pdf", "image", "video", "audio", "spreadsheet", "document", "presentation", "file"]


class VirtualFolder(BaseModel):
    id: Prefix
    name: str
    parent_id: Prefix | None = None
    item_count: int = 0
    icon_url: str | None = None
    is_bookmarked: bool = False


class VirtualDocument(BaseModel):
    id: str = Field(description="Full object key (never ends in '/')")
    name: str
    type: DocumentType = "file"
    url: str = Field(description="Short lived signed URL, do not keep beyond the listing that produced it")
    size: str = "Unknown"
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    folder_id: Prefix | None = None
    icon_url: str | None = None
    is_bookmarked: bool = False


class FolderContents(BaseModel):
    folders: list[VirtualFolder] = []
    documents: list[VirtualDocument] = []


class Breadcrumb(BaseModel):
    id: Prefix
    name: str


class SearchItem(BaseModel):
    key: str
    type: Literal["file", "folder"]


SearchType = Literal["all", "files", "folders"]


######################## PAGINATION #########################


class PageWindow(BaseModel, Generic[T]):
    """
    A single page of a cursor based listing.
    next_cursor is None if and only if this is the last page. Cursors are opaque.
    """

    items: list[T]
    next_cursor: str | None = None
    total: int | None = Field(default=None, description="Total number of items in the listing, if the backend reports it")


class PageNavigationState(BaseModel):
    current_page: int = 0
    prev_cursor_stack: list[str] = []
    next_cursor: str | None = None


class MetricsQuery(GatewayModel):
    """Filter and sort parameters of the metrics endpoint (the cursor and limit are managed by the pager)"""

    q: str | None = None
    sort: str | None = None
    order: Literal["asc", "desc"] | None = None
    activity: Literal["all", "active", "inactive", "new"] | None = None
    include_overall: bool = False

    def as_params(self) -> dict[str, Any]:
        params = self.model_dump(by_alias=True, exclude_none=True)
        if not params.get("includeOverall"):
            params.pop("includeOverall", None)
        else:
            params["includeOverall"] = "true"
        return params


class UserMetrics(GatewayModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str
    fullname: str | None = None
    email: str | None = None
    role: str | None = None
    created_at: str | None = None
    last_sign_in: str | None = None
    number_of_sign_ins: int = 0
    documents_viewed: int = 0
    time_spent: float = 0
    recent_docs: list[str] = []
    days_inactive: int | None = None


class OverallMetrics(GatewayModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    total_users: int = 0
    active_users: int = 0
    inactive_users: int = 0
    average_time_spent: float = 0
    total_document_views: int = 0
    average_sign_ins: float = 0
    new_users_this_week: int = 0


class PageInfo(GatewayModel):
    next_cursor: str | None = None
    has_next_page: bool = False
    count: int | None = None


class MetricsPage(GatewayModel):
    items: list[UserMetrics] = []
    page_info: PageInfo = PageInfo()
    overall: OverallMetrics | None = None
