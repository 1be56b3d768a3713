"""
HTTP API for deploying app catalog packages.

Run with ``python -m sppkg_deploy.api`` or ``uvicorn sppkg_deploy.api:app``.
Request fields left out fall back to the ``SPPKG_*`` environment variables.
"""

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from .config import DeploymentConfig, options_from_env, resolve_site_url
from .deployer import deploy
from .errors import AuthError, ConfigError, DeploymentError

logger = logging.getLogger(__name__)

app = FastAPI(title="SharePoint App Package Deployment API")


class DeployRequest(BaseModel):
    """Request model for the /deploy endpoint"""
    username: Optional[str] = None
    password: Optional[str] = None
    tenant: Optional[str] = None
    hostname: Optional[str] = None
    site: Optional[str] = None
    filename: Optional[str] = None
    skip_feature_deployment: Optional[bool] = None
    verbose: Optional[bool] = None


@app.get("/")
async def root():
    return {"message": "Welcome to the SharePoint App Package Deployment API"}


@app.post("/deploy", response_model=dict)
async def deploy_app_package(body: DeployRequest):
    """
    Deploy a package that is already uploaded to the app catalog.

    Returns
    -------
    dict
        ``status``, ``filename`` and the ``site_url`` the package was deployed on.
    """
    explicit = body.model_dump(exclude_none=True)
    options = {**options_from_env(), **explicit}

    try:
        config = DeploymentConfig.from_options(options)
        await deploy(config)
    except ConfigError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except AuthError as exc:
        raise HTTPException(status_code=401, detail=str(exc))
    except DeploymentError as exc:
        logger.error(f"Deployment of {options.get('filename')} failed at {exc.stage}: {exc}")
        raise HTTPException(status_code=502, detail=str(exc))
    except Exception as exc:
        logger.error(f"Error deploying app package: {str(exc)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"An unexpected error occurred during app package deployment: {str(exc)}")

    logger.info(f"App package {config.filename} deployed")
    return {"status": "deployed", "filename": config.filename, "site_url": resolve_site_url(config)}


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=8000)
