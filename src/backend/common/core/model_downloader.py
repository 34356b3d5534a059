# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
"""Model artifact resolution and download cache."""
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import httpx

from common.config import config
from common.errors import ModelUnavailableError

logger = logging.getLogger(__name__)


def is_remote_location(location: str) -> bool:
    """Return True for http(s) model locations."""
    return urlparse(str(location)).scheme in ("http", "https")


def cached_model_path(url: str, cache_dir: Optional[Path] = None) -> Path:
    """Return where a remote model is cached, keyed by its file name."""
    cache_dir = cache_dir or config.MODEL_CACHE_DIR
    name = Path(urlparse(url).path).name
    if not name:
        raise ModelUnavailableError(f"Cannot derive a model file name from '{url}'")
    return cache_dir / name


async def ensure_model_available(
    location: str,
    cache_dir: Optional[Path] = None,
    timeout: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Path:
    """Ensure the model artifact exists locally and return its path.

    Args:
        location: Local file path or http(s) URL of the model.
        cache_dir: Directory for downloaded models (default: MODEL_CACHE_DIR).
        timeout: Download timeout in seconds (default: MODEL_DOWNLOAD_TIMEOUT).
        transport: Optional httpx transport, used to stub the network.

    Returns:
        Path to the model file

    Raises:
        ModelUnavailableError: If the file is missing or cannot be downloaded
    """
    if not is_remote_location(location):
        model_path = Path(location).expanduser().resolve()
        if not model_path.is_file():
            raise ModelUnavailableError(f"Model not found at '{model_path}'")
        logger.debug("Using local model at %s", model_path)
        return model_path

    model_path = cached_model_path(location, cache_dir)
    if model_path.is_file():
        logger.debug("Using cached model at %s", model_path)
        return model_path

    logger.info("Downloading model %s...", location)
    model_path.parent.mkdir(parents=True, exist_ok=True)
    partial = model_path.with_suffix(model_path.suffix + ".part")
    try:
        async with httpx.AsyncClient(
            timeout=timeout or config.MODEL_DOWNLOAD_TIMEOUT,
            transport=transport,
            follow_redirects=True,
        ) as client:
            async with client.stream("GET", location) as res:
                res.raise_for_status()
                with partial.open("wb") as fh:
                    async for chunk in res.aiter_bytes():
                        fh.write(chunk)
        partial.replace(model_path)
    except (httpx.HTTPError, OSError) as e:
        partial.unlink(missing_ok=True)
        error_msg = f"Failed to download model {location}: {e}"
        logger.error(error_msg)
        raise ModelUnavailableError(error_msg) from e

    logger.info("Model cached at %s", model_path)
    return model_path
