import logging
from pathlib import Path
from typing import Iterable, Optional, Union

from .signature import compute_signature
from ..layers import Layer

logger = logging.getLogger(__name__)


def check_cache(
    layer: Layer,
    tokens: Iterable[str] = (),
    files: Iterable[Union[str, Path]] = (),
    base_dir: Optional[Union[str, Path]] = None,
) -> bool:
    """
    Decide whether a layer's contents from the previous build can be reused

    The fresh signature is stored on the layer either way, so the metadata
    written at the end of the build always describes the current inputs.
    On a miss the caller clears the layer before repopulating it.

    Args:
        layer: layer to check
        tokens: ordered opaque strings (e.g. runtime version, install flags)
        files: ordered dependency files whose bytes are hashed
        base_dir: directory relative file entries are resolved against

    Returns:
        bool: True on a cache hit

    Raises:
        CacheError: a file could not be hashed; never treated as hit or miss
    """
    current = compute_signature(tokens, files, base_dir)
    previous = layer.previous_signature
    layer.signature = current

    if previous is None:
        logger.debug(f"Layer '{layer.name}' has no previous signature")
        return False
    if previous != current:
        logger.debug(f"Layer '{layer.name}' signature changed: {previous} -> {current}")
        return False
    return True
