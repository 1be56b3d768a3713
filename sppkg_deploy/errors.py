"""
Error types raised by the app package deployment pipeline.

Every failure surfaced by ``deploy()`` is a ``DeploymentError`` subclass whose
``str()`` is the human readable message and whose ``stage`` names the pipeline
state that was active when it was raised.
"""

from typing import Optional


class DeploymentError(Exception):
    """Base class for all deployment failures."""

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage

    def __str__(self) -> str:
        return self.message


class ConfigError(DeploymentError):
    """A required option is missing."""


class AuthError(DeploymentError):
    """Credentials could not be exchanged for request headers."""


class TransportError(DeploymentError):
    """A network call failed before a response body was received."""


class ShapeError(DeploymentError):
    """A response was received but lacks the expected fields."""


class TemplateError(DeploymentError):
    """The ProcessQuery request template is empty or unusable."""
