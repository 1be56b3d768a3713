"""
ProcessQuery request body construction.

The request body is a CSOM XML script kept in ``templates/request-body.xml``.
It contains ``{token}`` placeholders that are replaced with the identifiers
resolved for the package being deployed.
"""

import logging
import uuid
from pathlib import Path

from ..errors import TemplateError
from ..states import DeploymentState
from .sharepoint_rest import FileInfo

logger = logging.getLogger(__name__)

TEMPLATE_PATH = Path(__file__).resolve().parent.parent / "templates" / "request-body.xml"


def load_template(path: Path = TEMPLATE_PATH) -> str:
    """Read the ProcessQuery request template."""
    return Path(path).read_text(encoding="utf-8")


def build_payload(template: str, site_id: str, web_id: str, list_id: str,
                  file_info: FileInfo, skip_deployment: bool) -> str:
    """
    Replace every token in *template* with its value.

    All ``{randomId}`` occurrences share one freshly generated GUID.
    """
    if not template:
        logger.debug("Empty ProcessQuery template: %r", template)
        raise TemplateError("Something wrong with the xmlBody",
                            stage=DeploymentState.BUILDING_PAYLOAD)

    replacements = (
        ("{randomId}", str(uuid.uuid4())),
        ("{siteId}", site_id),
        ("{webId}", web_id),
        ("{listId}", list_id),
        ("{itemId}", str(file_info.item_id)),
        ("{fileVersion}", str(file_info.version)),
        ("{skipFeatureDeployment}", "true" if skip_deployment else "false"),
    )
    for token, value in replacements:
        template = template.replace(token, value)
    return template
