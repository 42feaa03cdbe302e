from functools import wraps
import hashlib
import json
import logging
from typing import Any, Callable, TypeVar

from fastapi import Request, Response
from fastapi.encoders import jsonable_encoder

ResponseBody = TypeVar("ResponseBody")


def hashed_browser_cache(func: Callable) -> Callable:
    """
    Decorator to add ETag-based caching to FastAPI endpoints.
    The ETag is based on a hash of the response content. If the client sends
    an If-None-Match header with a matching ETag, a 304 Not Modified response is returned.
    Folder listings rarely change between two polls of the same folder, so this saves
    sending the same listing again.
    """

    @wraps(func)
    async def wrapper(*args, request: Request, response: Response, **kwargs) -> Any:
        result = await func(*args, request=request, response=response, **kwargs)
        return response_with_etag(request, response, result)

    return wrapper


def response_with_etag(request: Request, response: Response, data: ResponseBody) -> ResponseBody | Response:
    try:
        content_str = json.dumps(jsonable_encoder(data), sort_keys=True, ensure_ascii=False).encode("utf-8")
    except TypeError as e:
        logging.warning(f"Warning: Data could not be serialized for ETag hashing: {e}")
        return data

    hash = hashlib.sha1(content_str).hexdigest()
    etag = f'"{hash}"'

    # Check if client has a (previous) matching ETag for this endpoint that matches the current content
    if_none_match = request.headers.get("if-none-match")
    if if_none_match == etag:
        return Response(status_code=304, headers={"ETag": etag})

    response.headers["ETag"] = etag

    return data
