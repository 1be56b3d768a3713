"""
Deployment configuration.

Options can come from a mapping (API request, caller code) or from environment
variables. ``DeploymentConfig`` validates on construction so an invalid
configuration never reaches the network.

Environment Variables
---------------------
SPPKG_USERNAME, SPPKG_PASSWORD : str
    Account used to sign in to SharePoint Online.
SPPKG_TENANT : str
    Tenant name, e.g. ``contoso`` for ``contoso.sharepoint.com``.
SPPKG_HOSTNAME : str
    Full host including scheme. Takes precedence over the tenant.
SPPKG_SITE : str
    Server relative path of the app catalog site, e.g. ``sites/apps``.
SPPKG_FILENAME : str
    Name of the package file in the app catalog.
SPPKG_SKIP_FEATURE_DEPLOYMENT, SPPKG_VERBOSE : bool
    ``true``/``false`` flags.
SPPKG_HTTP_TIMEOUT : float
    Optional total timeout in seconds for each SharePoint call.
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from .errors import ConfigError
from .states import DeploymentState

ENV_PREFIX = "SPPKG_"
_STRING_OPTIONS = ("username", "password", "tenant", "hostname", "site", "filename")
_TRUE_VALUES = {"1", "true", "yes", "on"}


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


def _coerce_bool(value: Any, default: bool) -> bool:
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    if isinstance(value, str):
        return _parse_bool(value)
    return bool(value)


def options_from_env(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Return the deployment options found in the environment.

    Only variables that are set are returned so the result can be layered
    under explicit options with ``{**options_from_env(), **options}``.
    """
    environ = os.environ if environ is None else environ
    options: Dict[str, Any] = {}

    for name in _STRING_OPTIONS:
        value = environ.get(f"{ENV_PREFIX}{name.upper()}")
        if value:
            options[name] = value

    skip = environ.get(f"{ENV_PREFIX}SKIP_FEATURE_DEPLOYMENT")
    if skip is not None and skip.strip():
        options["skip_feature_deployment"] = _parse_bool(skip)

    verbose = environ.get(f"{ENV_PREFIX}VERBOSE")
    if verbose is not None and verbose.strip():
        options["verbose"] = _parse_bool(verbose)

    return options


def http_timeout_from_env(environ: Optional[Mapping[str, str]] = None) -> Optional[float]:
    """Total per-call timeout in seconds, or ``None`` when unset."""
    environ = os.environ if environ is None else environ
    value = environ.get(f"{ENV_PREFIX}HTTP_TIMEOUT")
    if not value:
        return None
    try:
        timeout = float(value)
    except ValueError:
        raise ConfigError(f"Invalid {ENV_PREFIX}HTTP_TIMEOUT value: {value}", stage=DeploymentState.VALIDATING) from None
    if timeout <= 0:
        raise ConfigError(f"Invalid {ENV_PREFIX}HTTP_TIMEOUT value: {value}", stage=DeploymentState.VALIDATING)
    return timeout


@dataclass(frozen=True)
class DeploymentConfig:
    """Validated options for one deployment run."""

    username: str
    password: str
    site: str
    filename: str
    tenant: str = ""
    hostname: str = ""
    skip_feature_deployment: bool = True
    verbose: bool = False

    def __post_init__(self):
        # Checked in this order so the first missing option is reported.
        if not self.username:
            raise ConfigError("Username argument is required", stage=DeploymentState.VALIDATING)
        if not self.password:
            raise ConfigError("Password argument is required", stage=DeploymentState.VALIDATING)
        if not self.tenant and not self.hostname:
            raise ConfigError("Tenant OR hostname argument is required", stage=DeploymentState.VALIDATING)
        if not self.site:
            raise ConfigError("Site argument is required", stage=DeploymentState.VALIDATING)
        if not self.filename:
            raise ConfigError("Filename argument is required", stage=DeploymentState.VALIDATING)

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> "DeploymentConfig":
        """Apply defaults to a raw options mapping and validate it.

        Missing or ``None`` string options become ``""``. A missing
        ``skip_feature_deployment`` (or ``skipFeatureDeployment``) defaults to
        ``True``; an explicit ``False`` is kept. Flag values given as strings
        are parsed like the environment flags, so ``"false"`` is ``False``.
        """
        values = {name: options.get(name) or "" for name in _STRING_OPTIONS}

        skip = options.get("skip_feature_deployment")
        if skip is None:
            skip = options.get("skipFeatureDeployment")
        values["skip_feature_deployment"] = _coerce_bool(skip, default=True)
        values["verbose"] = _coerce_bool(options.get("verbose"), default=False)
        return cls(**values)

    @property
    def credentials(self) -> Dict[str, str]:
        return {"username": self.username, "password": self.password}

    def __repr__(self) -> str:
        return (
            f"DeploymentConfig(username={self.username!r}, password='***', "
            f"tenant={self.tenant!r}, hostname={self.hostname!r}, site={self.site!r}, "
            f"filename={self.filename!r}, skip_feature_deployment={self.skip_feature_deployment!r}, "
            f"verbose={self.verbose!r})"
        )


def resolve_site_url(config: DeploymentConfig) -> str:
    """Build the app catalog site URL.

    The hostname is used verbatim (it carries its own scheme); otherwise the
    SharePoint Online URL is derived from the tenant name.
    """
    if config.hostname:
        return f"{config.hostname}/{config.site}"
    return f"https://{config.tenant}.sharepoint.com/{config.site}"
