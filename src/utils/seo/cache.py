import os
import abc
import json
import time
import logging
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from src.utils.seo.models import Credential

logger = logging.getLogger(__name__)


class BaseSignatureCache(abc.ABC):
    """
    Keyed store of signed credentials, one entry per subject.

    Subclasses only decide where the serialized store lives. Entries are
    replaced wholesale on save and never deleted; an expired entry reads as
    a miss and is overwritten by the next successful mint.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock

    @abc.abstractmethod
    def read_store(self) -> Dict[str, Any]:
        """
        Return the whole store

        Raises:
            ValueError: if the stored data cannot be parsed
            OSError: if the store cannot be read
        """
        pass

    @abc.abstractmethod
    def write_store(self, store: Dict[str, Any]) -> None:
        """Replace the whole store"""
        pass

    def load(self, subject: str) -> Optional[Credential]:
        """Return the cached credential for subject if it is still valid"""
        try:
            store = self.read_store()
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to read signature cache, treating as empty: {e}")
            return None

        entry = store.get(subject)
        if not isinstance(entry, dict):
            return None

        try:
            credential = Credential.from_cache_entry(subject, entry)
        except (KeyError, TypeError) as e:
            logger.warning(f"Ignoring malformed cache entry for {subject}: {e}")
            return None

        if not credential.is_usable(self.clock()):
            logger.info(
                f"Cached signature for {subject} expired at {credential.valid_until}"
            )
            return None

        return credential

    def save(self, subject: str, credential: Credential) -> bool:
        """Merge credential into the store; False when the write failed"""
        try:
            store = self.read_store()
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to parse signature cache, creating new cache: {e}")
            store = {}

        store[subject] = credential.to_cache_entry()

        try:
            self.write_store(store)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save signature to cache for {subject}: {e}")
            return False
        return True


class FileSignatureCache(BaseSignatureCache):
    """Signature cache backed by a single JSON file"""

    def __init__(self, cache_file: Path, clock: Callable[[], float] = time.time):
        super().__init__(clock)
        self.cache_file = Path(cache_file)

    def read_store(self) -> Dict[str, Any]:
        if not self.cache_file.exists():
            return {}

        with open(self.cache_file, "r") as f:
            store = json.load(f)

        if not isinstance(store, dict):
            raise ValueError(f"expected a JSON object in {self.cache_file}")
        return store

    def write_store(self, store: Dict[str, Any]) -> None:
        self.cache_file.parent.mkdir(parents=True, exist_ok=True)

        # Write to a sibling temp file and rename over the target
        fd, tmp_path = tempfile.mkstemp(
            dir=self.cache_file.parent, prefix=".signature_cache", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(store, f, indent=2)
            os.replace(tmp_path, self.cache_file)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise


class MemorySignatureCache(BaseSignatureCache):
    """Signature cache kept in process memory"""

    def __init__(
        self,
        store: Optional[Dict[str, Any]] = None,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(clock)
        self.store = store if store is not None else {}

    def read_store(self) -> Dict[str, Any]:
        return dict(self.store)

    def write_store(self, store: Dict[str, Any]) -> None:
        # Stored as its JSON round-trip, like the file cache
        self.store = json.loads(json.dumps(store))
