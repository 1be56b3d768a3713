"""
Deploy call against the CSOM ``ProcessQuery`` endpoint.
"""

import json
import logging
from typing import Any, Mapping

import aiohttp

from ..errors import ShapeError, TransportError
from ..states import DeploymentState
from .sharepoint_rest import TRANSPORT_ERRORS

logger = logging.getLogger(__name__)

PROCESS_QUERY_PATH = "/_vti_bin/client.svc/ProcessQuery"
DEPLOYED_FIELD = "IsClientSideSolutionCurrentVersionDeployed"
# ProcessQuery answers with a list of frames; the query result for the
# package item is the third one.
RESULT_FRAME_INDEX = 2
DEPLOY_FAILED_MESSAGE = "Failed to deploy the app package file."


def is_current_version_deployed(result: Any) -> bool:
    """Return True if the ProcessQuery response confirms the deployment."""
    if not isinstance(result, list) or len(result) <= RESULT_FRAME_INDEX:
        return False
    frame = result[RESULT_FRAME_INDEX]
    if not isinstance(frame, dict):
        return False
    return frame.get(DEPLOYED_FIELD) is True


async def deploy_app_package(session: aiohttp.ClientSession, site_url: str,
                             headers: Mapping[str, str], xml_body: str) -> None:
    """
    Post the ProcessQuery script and check that the package is deployed.

    The XML content type applies to this call only; *headers* is not changed.
    """
    api_url = f"{site_url}{PROCESS_QUERY_PATH}"
    request_headers = {**headers, "Content-type": "application/xml"}

    logger.debug("POST %s", api_url)
    try:
        async with session.post(api_url, headers=request_headers, data=xml_body) as response:
            body = await response.text()
            logger.debug("Response status: %s", response.status)
    except TRANSPORT_ERRORS as e:
        logger.debug("POST %s failed: %s", api_url, e)
        raise TransportError(DEPLOY_FAILED_MESSAGE, stage=DeploymentState.DEPLOYING) from e

    if not is_current_version_deployed(json.loads(body)):
        logger.debug("Deployment not confirmed: %s", body[:500])
        raise ShapeError(DEPLOY_FAILED_MESSAGE, stage=DeploymentState.DEPLOYING)
