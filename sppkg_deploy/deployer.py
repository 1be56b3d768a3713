"""
App Package Deployment Pipeline

Deploys a package that is already uploaded to a SharePoint Online app catalog.
A run walks through a fixed sequence of stages:

1. Validate the options (on construction)
2. Resolve the site URL
3. Authenticate
4. Fetch the form digest
5. Resolve site ID, web/list ID and file info (concurrently)
6. Build the ProcessQuery XML body
7. Post it and confirm the deployment

The first failing stage ends the run; nothing is retried or rolled back.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Mapping, Optional, Union

import aiohttp

from .config import DeploymentConfig, http_timeout_from_env, resolve_site_url
from .errors import DeploymentError
from .functions.auth import get_auth_headers
from .functions.process_query import deploy_app_package
from .functions.sharepoint_rest import (
    SiteIdentity,
    get_digest_value,
    get_file_info,
    get_site_id,
    get_web_and_list_id,
)
from .functions.xml_payload import build_payload, load_template
from .states import DeploymentState

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"

Authenticator = Callable[[str, Dict[str, str]], Mapping[str, str]]


class AppPackageDeployer:
    """
    Runs one deployment of an app catalog package.

    Parameters
    ----------
    options : DeploymentConfig or mapping
        Raw options are validated immediately; a ``ConfigError`` is raised for
        the first missing required option.
    authenticator : callable, optional
        ``(site_url, credentials) -> headers``. Defaults to the SharePoint
        Online user credential sign-in.
    template : str, optional
        ProcessQuery template. Read from the packaged template when omitted.
    timeout : float, optional
        Total timeout in seconds for each SharePoint call.

    ``state`` is the current ``DeploymentState``; ``history`` lists every state
    entered so far. In verbose mode a basic logging configuration is installed
    when the application has none, so the stage lines reach stderr.
    """

    def __init__(
        self,
        options: Union[DeploymentConfig, Mapping[str, Any]],
        authenticator: Optional[Authenticator] = None,
        template: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.state = DeploymentState.VALIDATING
        self.history = [self.state]
        if isinstance(options, DeploymentConfig):
            self.config = options
        else:
            self.config = DeploymentConfig.from_options(options)
        if self.config.verbose and not logging.getLogger().handlers:
            logging.basicConfig(level=logging.INFO)
        self._authenticator = authenticator or get_auth_headers
        self._template = template
        self._timeout = timeout
        self.site_url: Optional[str] = None
        self.identity: Optional[SiteIdentity] = None

    def _log(self, level: int, msg: str, *args) -> None:
        # Stage lines are only surfaced in verbose mode.
        logger.log(level if self.config.verbose else logging.DEBUG, msg, *args)

    def _enter(self, state: str) -> None:
        self.state = state
        self.history.append(state)
        logger.debug("Deployment state: %s", state)

    async def start(self) -> None:
        """Run the pipeline. Raises the first stage error encountered."""
        try:
            await self._run()
        except Exception as e:
            failed_stage = self.state
            self._enter(DeploymentState.FAILED)
            self._log(logging.ERROR, "Deployment failed at %s: %s", failed_stage, e)
            raise
        self._enter(DeploymentState.SUCCEEDED)
        self._log(logging.INFO, "Deployment completed")

    async def _run(self) -> None:
        self._enter(DeploymentState.RESOLVING_URL)
        site_url = resolve_site_url(self.config)
        self.site_url = site_url
        self._log(logging.INFO, "Site URL - %s", site_url)

        self._enter(DeploymentState.AUTHENTICATING)
        auth_headers = await asyncio.to_thread(self._authenticator, site_url, self.config.credentials)
        headers = {**auth_headers, "Accept": JSON_CONTENT_TYPE, "Content-type": JSON_CONTENT_TYPE}
        self._log(logging.INFO, "Authenticated as %s", self.config.username)

        # No timeout unless one was configured.
        timeout = aiohttp.ClientTimeout(total=self._timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            self._enter(DeploymentState.FETCHING_DIGEST)
            digest = await get_digest_value(session, site_url, headers)
            headers = {**headers, "X-RequestDigest": digest}
            self._log(logging.INFO, "FormDigestValue retrieved")

            self._enter(DeploymentState.RESOLVING_METADATA)
            identity, file_info = await self._resolve_metadata(session, site_url, headers)
            self.identity = identity

            self._enter(DeploymentState.BUILDING_PAYLOAD)
            template = self._template if self._template is not None else load_template()
            xml_body = build_payload(
                template,
                identity.site_id,
                identity.web_id,
                identity.list_id,
                file_info,
                self.config.skip_feature_deployment,
            )

            self._enter(DeploymentState.DEPLOYING)
            await deploy_app_package(session, site_url, headers, xml_body)
            self._log(logging.INFO, "App package has been deployed")

    async def _resolve_metadata(self, session, site_url, headers):
        # The three lookups are independent. All are awaited before the first
        # failure (in pipeline order) is raised so no request outlives the session.
        results = await asyncio.gather(
            get_site_id(session, site_url, headers),
            get_web_and_list_id(session, site_url, self.config.site, headers),
            get_file_info(session, site_url, self.config.filename, headers),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result

        site_id, web_and_list, file_info = results
        self._log(logging.INFO, "Site ID - %s", site_id)
        self._log(logging.INFO, "Web ID - %s / List ID - %s", web_and_list.web_id, web_and_list.list_id)
        self._log(logging.INFO, "List item ID - %s / version - %s", file_info.item_id, file_info.version)
        identity = SiteIdentity(site_id=site_id, web_id=web_and_list.web_id, list_id=web_and_list.list_id)
        return identity, file_info


async def deploy(options: Union[DeploymentConfig, Mapping[str, Any]], **kwargs) -> None:
    """
    Deploy an app catalog package in one call.

    Keyword arguments are passed to ``AppPackageDeployer``. When no timeout is
    given, ``SPPKG_HTTP_TIMEOUT`` is used if set.
    """
    if kwargs.get("timeout") is None:
        kwargs["timeout"] = http_timeout_from_env()
    await AppPackageDeployer(options, **kwargs).start()


__all__ = ["AppPackageDeployer", "Authenticator", "DeploymentError", "deploy"]
