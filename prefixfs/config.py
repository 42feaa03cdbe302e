"""
prefixfs Configuration

We read configuration from 2 sources, in order of precedence (higher is more priority)
- Environment variables
- A .env file, either in the current working directory or in a location specified
  by the PREFIXFS_ENV_FILE environment variable
"""

import functools
from pathlib import Path
from typing import Annotated

from dotenv import load_dotenv
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PREFIX = "prefixfs_"


class Settings(BaseSettings):
    env_file: Annotated[
        Path,
        Field(
            description="Location of a .env file (if used) relative to working directory",
        ),
    ] = Path(".env")

    gateway_url: Annotated[
        str,
        Field(
            description="Base URL of the object store API (list, fetch, create, rename, delete and metrics endpoints)",
        ),
    ] = "http://localhost:3000/api"

    gateway_token: Annotated[
        str | None,
        Field(description="Bearer token sent to the object store API, if it requires one"),
    ] = None

    gateway_timeout: Annotated[
        float,
        Field(description="Timeout in seconds for a single object store request"),
    ] = 30.0

    listing_ttl: Annotated[
        float,
        Field(description="Seconds a folder listing stays in the read cache", gt=0),
    ] = 300.0

    page_size: Annotated[int, Field(description="Items per page for interactive metrics paging")] = 20

    export_page_size: Annotated[int, Field(description="Items per page when collecting a full metrics export")] = 200

    search_scan_cap: Annotated[
        int,
        Field(description="Max number of folders visited by the client side search fallback"),
    ] = 2000

    @model_validator(mode="after")
    def strip_gateway_url(self) -> "Settings":
        self.gateway_url = self.gateway_url.rstrip("/")
        return self

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX)


@functools.lru_cache()
def get_settings() -> Settings:
    temp = Settings()
    load_dotenv(temp.env_file, override=False)
    return Settings()


if __name__ == "__main__":
    # Echo the settings
    for k, v in get_settings().model_dump().items():
        print(f"{ENV_PREFIX.upper()}{k.upper()}={v}")
