"""
SharePoint Online authentication.

Signs in with a username and password through the Office 365 REST client's
``AuthenticationContext``. The library performs the security token exchange
and sets the ``FedAuth``/``rtFa`` cookies on a request; the headers of that
request are what the rest of the pipeline sends on REST and CSOM calls.

The pipeline only needs the returned headers, so any callable with the same
signature as ``get_auth_headers`` can be used in its place.
"""

import logging
from typing import Dict
from urllib.parse import urlsplit

import requests
from office365.runtime.auth.authentication_context import AuthenticationContext
from office365.runtime.auth.user_credential import UserCredential
from office365.runtime.http.request_options import RequestOptions

from ..errors import AuthError
from ..states import DeploymentState

logger = logging.getLogger(__name__)


def _check_site_url(site_url: str) -> None:
    parts = urlsplit(site_url)
    if not parts.scheme or not parts.netloc:
        raise AuthError(f"Cannot authenticate against an invalid site URL: {site_url}",
                        stage=DeploymentState.AUTHENTICATING)


def get_auth_headers(site_url: str, credentials: Dict[str, str]) -> Dict[str, str]:
    """
    Sign in to SharePoint Online with user credentials.

    Parameters
    ----------
    site_url : str
        URL of the site the deployment runs against.
    credentials : dict
        ``{"username": ..., "password": ...}``

    Returns
    -------
    dict
        Request headers carrying the authentication cookies.
    """
    _check_site_url(site_url)
    logger.debug("Authenticating %s against %s", credentials["username"], site_url)

    context = AuthenticationContext(site_url)
    context.with_credentials(UserCredential(credentials["username"], credentials["password"]))
    request = RequestOptions(site_url)
    try:
        context.authenticate_request(request)
    except (ValueError, requests.exceptions.RequestException) as e:
        logger.debug("Sign-in failed: %s", e)
        raise AuthError(f"Failed to authenticate against SharePoint: {e}",
                        stage=DeploymentState.AUTHENTICATING) from e

    headers = dict(request.headers)
    if not headers.get("Cookie"):
        raise AuthError("Failed to authenticate against SharePoint: no authentication cookie was issued",
                        stage=DeploymentState.AUTHENTICATING)
    return headers
