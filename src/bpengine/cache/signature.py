import hashlib
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from pydantic import BaseModel, Field

from ..exceptions import CacheError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# Kind tags keep a token and a file with equal bytes from hashing alike
_TOKEN_TAG = b"s"
_FILE_TAG = b"f"
_CHUNK_SIZE = 1 << 16


class CacheSignature(BaseModel):
    """
    Deterministic digest over ordered string tokens and ordered file contents

    Every item is framed as ``tag + length + bytes`` so that reordering,
    splitting or merging inputs always changes the digest. Paths, mtimes and
    sizes outside the content itself are never hashed.
    """

    tokens: List[str] = Field(default_factory=list)
    files: List[str] = Field(default_factory=list)

    def compute(self, base_dir: Optional[PathLike] = None) -> str:
        """
        Compute the hex digest

        Args:
            base_dir: directory relative file entries are resolved against

        Returns:
            str: SHA256 hex digest

        Raises:
            CacheError: a listed file is missing or unreadable
        """
        h = hashlib.sha256()
        for token in self.tokens:
            data = token.encode("utf-8")
            h.update(_TOKEN_TAG)
            h.update(len(data).to_bytes(8, "big"))
            h.update(data)
        for file in self.files:
            path = Path(file)
            if base_dir is not None and not path.is_absolute():
                path = Path(base_dir) / path
            self._update_file(h, path)
        return h.hexdigest()

    @staticmethod
    def _update_file(h, path: Path) -> None:
        try:
            size = path.stat().st_size
            h.update(_FILE_TAG)
            h.update(size.to_bytes(8, "big"))
            read = 0
            with open(path, "rb") as f:
                while chunk := f.read(_CHUNK_SIZE):
                    read += len(chunk)
                    h.update(chunk)
        except OSError as e:
            raise CacheError(f"hashing {path}: {e}") from e
        if read != size:
            raise CacheError(f"hashing {path}: file changed while reading")


def compute_signature(tokens: Iterable[str] = (), files: Iterable[PathLike] = (), base_dir: Optional[PathLike] = None) -> str:
    """Shorthand for ``CacheSignature(tokens=..., files=...).compute(base_dir)``."""
    signature = CacheSignature(tokens=list(tokens), files=[str(f) for f in files])
    digest = signature.compute(base_dir)
    logger.debug(f"Signature over {len(signature.tokens)} token(s) and {len(signature.files)} file(s): {digest}")
    return digest
