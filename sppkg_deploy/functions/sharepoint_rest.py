"""
SharePoint REST lookups needed before an app package can be deployed.

All calls take an open ``aiohttp.ClientSession`` and the request headers for
the run. HTTP status codes are not checked: SharePoint error bodies simply lack
the expected fields and are reported as shape errors.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import aiohttp

from ..errors import ShapeError, TransportError
from ..states import DeploymentState

logger = logging.getLogger(__name__)

TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError)
APP_CATALOG_FOLDER = "AppCatalog"


@dataclass(frozen=True)
class WebAndListIds:
    web_id: str
    list_id: str


@dataclass(frozen=True)
class FileInfo:
    """List item ID and ``owshiddenversion`` of the package file."""
    item_id: int
    version: int


@dataclass(frozen=True)
class SiteIdentity:
    site_id: str
    web_id: str
    list_id: str


def _field(result: Any, *path: str) -> Optional[Any]:
    """Walk nested JSON objects, returning ``None`` if any step is missing."""
    for key in path:
        if not isinstance(result, dict):
            return None
        result = result.get(key)
    return result


async def get_json(session: aiohttp.ClientSession, api_url: str, headers: Mapping[str, str]) -> Any:
    """
    GET *api_url* and return the parsed JSON body.

    A body that is not JSON raises ``json.JSONDecodeError``.
    """
    logger.debug("GET %s", api_url)
    try:
        async with session.get(api_url, headers=dict(headers)) as response:
            body = await response.text()
            logger.debug("Response status: %s", response.status)
    except TRANSPORT_ERRORS as e:
        logger.debug("GET %s failed: %s", api_url, e)
        raise TransportError(f"Failed to call the API URL: {api_url}",
                             stage=DeploymentState.RESOLVING_METADATA) from e

    logger.debug("Response snippet: %s", body[:500])
    return json.loads(body)


async def get_digest_value(session: aiohttp.ClientSession, site_url: str,
                           headers: Mapping[str, str]) -> str:
    """Retrieve the FormDigestValue required by write calls on *site_url*."""
    api_url = f"{site_url}/_api/contextinfo?$select=FormDigestValue"
    logger.debug("POST %s", api_url)
    try:
        async with session.post(api_url, headers=dict(headers)) as response:
            body = await response.text()
            logger.debug("Response status: %s", response.status)
    except TRANSPORT_ERRORS as e:
        logger.debug("POST %s failed: %s", api_url, e)
        raise TransportError("Failed to retrieve the site and web ID",
                             stage=DeploymentState.FETCHING_DIGEST) from e

    digest = _field(json.loads(body), "FormDigestValue")
    if not digest:
        logger.debug("No FormDigestValue in response: %s", body[:500])
        raise ShapeError("The FormDigestValue could not be retrieved",
                         stage=DeploymentState.FETCHING_DIGEST)
    return digest


async def get_site_id(session: aiohttp.ClientSession, site_url: str,
                      headers: Mapping[str, str]) -> str:
    """Retrieve the site collection ID."""
    result = await get_json(session, f"{site_url}/_api/site?$select=Id", headers)
    site_id = _field(result, "Id")
    if not site_id:
        logger.debug("No site ID in response: %s", json.dumps(result)[:500])
        raise ShapeError("The site ID could not be retrieved",
                         stage=DeploymentState.RESOLVING_METADATA)
    return site_id


async def get_web_and_list_id(session: aiohttp.ClientSession, site_url: str, site: str,
                              headers: Mapping[str, str]) -> WebAndListIds:
    """
    Retrieve the app catalog list ID and the ID of the web that contains it.

    The list's own ``Id`` is the list ID; the expanded ``ParentWeb.Id`` is the
    web ID.
    """
    api_url = (f"{site_url}/_api/web/getList('/{site}/appcatalog')"
               "?$select=Id,ParentWeb/Id&$expand=ParentWeb")
    result = await get_json(session, api_url, headers)
    list_id = _field(result, "Id")
    web_id = _field(result, "ParentWeb", "Id")
    if not (list_id and web_id):
        logger.debug("No web/list ID in response: %s", json.dumps(result)[:500])
        raise ShapeError("The web ID and list ID could not be retrieved",
                         stage=DeploymentState.RESOLVING_METADATA)
    return WebAndListIds(web_id=web_id, list_id=list_id)


async def get_file_info(session: aiohttp.ClientSession, site_url: str, filename: str,
                        headers: Mapping[str, str]) -> FileInfo:
    """
    Retrieve the list item ID and hidden version of the package file.

    A hidden version of ``0`` is rejected along with a missing one.
    """
    api_url = (f"{site_url}/_api/web/GetFolderByServerRelativeUrl('{APP_CATALOG_FOLDER}')"
               f"/Files('{filename}')?$expand=ListItemAllFields"
               "&$select=ListItemAllFields/Id,ListItemAllFields/owshiddenversion")
    result = await get_json(session, api_url, headers)
    item_id = _field(result, "ListItemAllFields", "Id")
    version = _field(result, "ListItemAllFields", "owshiddenversion")
    if not (item_id and version):
        logger.debug("No file information in response: %s", json.dumps(result)[:500])
        raise ShapeError("The file information could not be retrieved",
                         stage=DeploymentState.RESOLVING_METADATA)
    return FileInfo(item_id=int(item_id), version=int(version))
