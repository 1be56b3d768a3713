"""
Tests for the SharePoint REST lookups.
"""

import asyncio
import json

import aiohttp
import pytest

from sppkg_deploy.errors import ShapeError, TransportError
from sppkg_deploy.functions.sharepoint_rest import (
    FileInfo,
    WebAndListIds,
    get_digest_value,
    get_file_info,
    get_json,
    get_site_id,
    get_web_and_list_id,
)
from sppkg_deploy.states import DeploymentState
from sppkg_deploy.tests.dummies import SITE_URL, DummySession

HEADERS = {"Cookie": "FedAuth=a; rtFa=b", "Accept": "application/json"}


def test_get_json_returns_parsed_body():
    session = DummySession({("GET", "/_api/site"): {"Id": "abc"}})
    result = asyncio.run(get_json(session, f"{SITE_URL}/_api/site", HEADERS))

    assert result == {"Id": "abc"}
    assert session.calls[0]["headers"] == HEADERS


def test_get_json_transport_error_names_url():
    url = f"{SITE_URL}/_api/site?$select=Id"
    session = DummySession({("GET", "/_api/site"): aiohttp.ClientConnectionError("reset")})

    with pytest.raises(TransportError) as excinfo:
        asyncio.run(get_json(session, url, HEADERS))

    assert str(excinfo.value) == f"Failed to call the API URL: {url}"
    assert excinfo.value.stage == DeploymentState.RESOLVING_METADATA


def test_get_json_timeout_is_transport_error():
    session = DummySession({("GET", "/_api/site"): asyncio.TimeoutError()})
    with pytest.raises(TransportError):
        asyncio.run(get_json(session, f"{SITE_URL}/_api/site", HEADERS))


def test_get_json_malformed_body_propagates():
    session = DummySession({("GET", "/_api/site"): "<html>Sign in</html>"})
    with pytest.raises(json.JSONDecodeError):
        asyncio.run(get_json(session, f"{SITE_URL}/_api/site", HEADERS))


def test_digest_value():
    session = DummySession({("POST", "/_api/contextinfo"): {"FormDigestValue": "0xDIGEST"}})
    digest = asyncio.run(get_digest_value(session, SITE_URL, HEADERS))

    assert digest == "0xDIGEST"
    assert session.calls[0]["url"] == f"{SITE_URL}/_api/contextinfo?$select=FormDigestValue"


def test_digest_transport_error():
    session = DummySession({("POST", "/_api/contextinfo"): aiohttp.ClientConnectionError()})

    with pytest.raises(TransportError) as excinfo:
        asyncio.run(get_digest_value(session, SITE_URL, HEADERS))

    assert str(excinfo.value) == "Failed to retrieve the site and web ID"
    assert excinfo.value.stage == DeploymentState.FETCHING_DIGEST


def test_digest_missing_field():
    session = DummySession({("POST", "/_api/contextinfo"): {"error": {"code": "-2147024891"}}})
    with pytest.raises(ShapeError, match="The FormDigestValue could not be retrieved"):
        asyncio.run(get_digest_value(session, SITE_URL, HEADERS))


def test_site_id():
    session = DummySession({("GET", "/_api/site?"): {"Id": "site-guid"}})
    assert asyncio.run(get_site_id(session, SITE_URL, HEADERS)) == "site-guid"
    assert session.urls() == [f"{SITE_URL}/_api/site?$select=Id"]


@pytest.mark.parametrize("reply", [{}, {"Id": ""}, {"Id": None}, []])
def test_site_id_missing(reply):
    session = DummySession({("GET", "/_api/site?"): reply})
    with pytest.raises(ShapeError, match="The site ID could not be retrieved"):
        asyncio.run(get_site_id(session, SITE_URL, HEADERS))


def test_web_and_list_id_field_inversion():
    session = DummySession({("GET", "/_api/web/getList("): {"Id": "abc", "ParentWeb": {"Id": "xyz"}}})
    result = asyncio.run(get_web_and_list_id(session, SITE_URL, "sites/apps", HEADERS))

    assert result == WebAndListIds(web_id="xyz", list_id="abc")
    assert session.urls() == [
        f"{SITE_URL}/_api/web/getList('/sites/apps/appcatalog')?$select=Id,ParentWeb/Id&$expand=ParentWeb"
    ]


@pytest.mark.parametrize("reply", [
    {"Id": "abc"},
    {"Id": "abc", "ParentWeb": {}},
    {"Id": "abc", "ParentWeb": None},
    {"ParentWeb": {"Id": "xyz"}},
])
def test_web_and_list_id_missing(reply):
    session = DummySession({("GET", "/_api/web/getList("): reply})
    with pytest.raises(ShapeError, match="The web ID and list ID could not be retrieved"):
        asyncio.run(get_web_and_list_id(session, SITE_URL, "sites/apps", HEADERS))


def test_file_info():
    session = DummySession({
        ("GET", "GetFolderByServerRelativeUrl("): {"ListItemAllFields": {"Id": 42, "owshiddenversion": 7}},
    })
    result = asyncio.run(get_file_info(session, SITE_URL, "solution.sppkg", HEADERS))

    assert result == FileInfo(item_id=42, version=7)
    assert session.urls() == [
        f"{SITE_URL}/_api/web/GetFolderByServerRelativeUrl('AppCatalog')/Files('solution.sppkg')"
        "?$expand=ListItemAllFields&$select=ListItemAllFields/Id,ListItemAllFields/owshiddenversion"
    ]


@pytest.mark.parametrize("reply", [
    {},
    {"ListItemAllFields": None},
    {"ListItemAllFields": {"Id": 42}},
    {"ListItemAllFields": {"owshiddenversion": 7}},
    # A version counter of 0 cannot be told apart from a missing one.
    {"ListItemAllFields": {"Id": 42, "owshiddenversion": 0}},
])
def test_file_info_missing(reply):
    session = DummySession({("GET", "GetFolderByServerRelativeUrl("): reply})
    with pytest.raises(ShapeError, match="The file information could not be retrieved"):
        asyncio.run(get_file_info(session, SITE_URL, "solution.sppkg", HEADERS))
