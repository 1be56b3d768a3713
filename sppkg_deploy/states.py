"""
Pipeline states for a deployment run.
"""


class DeploymentState:
    """Enum-like class for the states a deployment run moves through"""
    VALIDATING = "Validating"
    RESOLVING_URL = "ResolvingUrl"
    AUTHENTICATING = "Authenticating"
    FETCHING_DIGEST = "FetchingDigest"
    RESOLVING_METADATA = "ResolvingMetadata"
    BUILDING_PAYLOAD = "BuildingPayload"
    DEPLOYING = "Deploying"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"

    # Order the pipeline walks through on a successful run.
    SEQUENCE = (
        VALIDATING,
        RESOLVING_URL,
        AUTHENTICATING,
        FETCHING_DIGEST,
        RESOLVING_METADATA,
        BUILDING_PAYLOAD,
        DEPLOYING,
        SUCCEEDED,
    )
