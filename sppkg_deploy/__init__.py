"""
SharePoint app catalog package deployment
"""
from .config import DeploymentConfig, options_from_env, resolve_site_url
from .deployer import AppPackageDeployer, deploy
from .errors import (
    AuthError,
    ConfigError,
    DeploymentError,
    ShapeError,
    TemplateError,
    TransportError,
)
from .states import DeploymentState
