# Identifier allocation for Xcode project objects.
#
# Identifiers are derived from a node key with a name-based UUID so that the
# same inputs always produce the same document. Every identifier handed out or
# reserved is tracked; a derived identifier that is already taken is re-derived
# from a salted key, and allocation gives up after a bounded number of attempts.

import logging
import re
import uuid
from typing import Iterator, Optional, Set

from xcscaffold.errors import IdentifierCollision
from xcscaffold.generators.xcode.model import XcodeID

logger = logging.getLogger(__name__)

IDENTIFIER_LENGTH = 24
IDENTIFIER_PATTERN = re.compile(r"[0-9A-F]{24}")
MAX_ALLOCATION_ATTEMPTS = 32


def generate_id(key: str) -> XcodeID:
    return XcodeID(uuid.uuid5(uuid.NAMESPACE_X500, key).hex.upper()[:IDENTIFIER_LENGTH])


def is_valid_id(value: str) -> bool:
    return IDENTIFIER_PATTERN.fullmatch(value) is not None


class IdentityAllocator:
    def __init__(self, namespace: str = ""):
        self.namespace = namespace
        self._allocated: Set[XcodeID] = set()
        self._counter = 0

    def __contains__(self, id: object) -> bool:
        return id in self._allocated

    def __len__(self) -> int:
        return len(self._allocated)

    def __iter__(self) -> Iterator[XcodeID]:
        return iter(sorted(self._allocated))

    def allocate(self, key: Optional[str] = None) -> XcodeID:
        if key is None:
            self._counter += 1
            key = f"#{self._counter}"
        seed = f"{self.namespace}:{key}"
        for attempt in range(MAX_ALLOCATION_ATTEMPTS):
            candidate = generate_id(seed if attempt == 0 else f"{seed}#{attempt}")
            if candidate not in self._allocated:
                self._allocated.add(candidate)
                return candidate
            logger.debug("identifier %s for %r already taken, retrying", candidate, key)
        raise IdentifierCollision(
            f"unable to allocate a unique identifier for {key!r} "
            f"after {MAX_ALLOCATION_ATTEMPTS} attempts"
        )

    # Record an identifier that came from an existing document
    def reserve(self, id: str) -> XcodeID:
        if not is_valid_id(id):
            raise ValueError(
                f"identifier {id!r} is not {IDENTIFIER_LENGTH} uppercase hexadecimal characters"
            )
        if id in self._allocated:
            raise IdentifierCollision(f"identifier {id} is already in use")
        self._allocated.add(XcodeID(id))
        return XcodeID(id)
