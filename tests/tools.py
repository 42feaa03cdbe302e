from httpx import AsyncClient, Response


async def check(response: Response, expected: int, msg: str | None = None):
    assert response.status_code == expected, (
        f"{msg or ''}{': ' if msg else ''}Unexpected status: received {response.status_code} != expected {expected};"
        f" reply: {response.text}"
    )


async def get_json(client: AsyncClient, url, expected=200, **kargs):
    """Get the given URL. If expected is 2xx, return the result as parsed json"""
    response = await client.get(url, **kargs)
    content = response.json() if response.content else None
    assert response.status_code == expected, f"GET {url} returned {response.status_code}, expected {expected}, {content}"
    if expected // 100 == 2:
        return content


async def post_json(client: AsyncClient, url, expected=201, **kargs):
    response = await client.post(url, **kargs)
    assert response.status_code == expected, f"POST {url} returned {response.status_code}, expected {expected}\n{response.text}"
    if expected != 204:
        return response.json()
