"""Document type detection and size formatting for object keys"""

from prefixfs.models import DocumentType

EXTENSION_TYPES: dict[str, DocumentType] = {
    "pdf": "pdf",
    "png": "image",
    "jpg": "image",
    "jpeg": "image",
    "gif": "image",
    "svg": "image",
    "mp4": "video",
    "mov": "video",
    "avi": "video",
    "mp3": "audio",
    "wav": "audio",
    "xlsx": "spreadsheet",
    "xls": "spreadsheet",
    "docx": "document",
    "doc": "document",
    "pptx": "presentation",
    "ppt": "presentation",
}


def document_type(key: str) -> DocumentType:
    name = key.split("/")[-1]
    if "." not in name:
        return "file"
    extension = name.rsplit(".", 1)[-1].lower()
    return EXTENSION_TYPES.get(extension, "file")


def format_size(size: int | None) -> str:
    if size is None:
        return "Unknown"
    if size < 1024:
        return f"{size} B"
    for unit, factor in (("KB", 1024), ("MB", 1024**2)):
        if size < factor * 1024:
            return f"{size / factor:.1f} {unit}"
    return f"{size / 1024 ** 3:.1f} GB"
