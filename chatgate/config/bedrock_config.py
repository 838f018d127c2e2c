import logging
import os
import threading
from typing import Any

import boto3
from botocore.config import Config as BotoConfig

from chatgate.config.config import Config

logger = logging.getLogger(__name__)

_bedrock_client: Any | None = None
_bedrock_client_lock = threading.Lock()


def _build_client() -> Any:
    client_kwargs: dict[str, Any] = {
        "service_name": "bedrock-runtime",
        "region_name": Config.AWS_REGION,
        # Streams run as long as the model keeps generating
        "config": BotoConfig(
            read_timeout=int(os.environ.get("BEDROCK_READ_TIMEOUT", "3600")),
            retries={"max_attempts": 3, "mode": "standard"},
        ),
    }

    endpoint_url = os.environ.get("BEDROCK_ENDPOINT_URL")
    if endpoint_url:
        client_kwargs["endpoint_url"] = endpoint_url
        logger.info(f"Using custom Bedrock endpoint: {endpoint_url}")

    client = boto3.client(**client_kwargs)
    logger.info(f"Bedrock runtime client initialized (region: {Config.AWS_REGION})")
    return client


def get_bedrock_client() -> Any:
    """Return the process-wide bedrock-runtime client, creating it on first use."""
    global _bedrock_client

    if _bedrock_client is None:
        with _bedrock_client_lock:
            if _bedrock_client is None:
                _bedrock_client = _build_client()
    return _bedrock_client
