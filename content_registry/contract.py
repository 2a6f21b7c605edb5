# =============================================================================
#  ContentRegistry — content registration ledger
#  -----------------------------------------------------------------------------
#  Records are keyed twice: by a sequential 64-bit id and by a 32-byte content
#  hash. Each record remembers who registered it; only that principal may
#  change its title, description, IPFS link or price afterwards.
# =============================================================================
#
#  STORAGE MODEL
#  -------------
#    contents     : Dict[int, ContentRecord]    id   -> record
#    ids_by_hash  : Dict[bytes, int]            hash -> id
#    updates      : Dict[int, ContentUpdate]    id   -> last update only
#
#  The first two are always written together inside one exclusive section, so
#  a reader never sees a record without its hash entry or the other way round.
#
#  FEES
#  ----
#  Every successful registration pays ``platform_fee`` from the caller to the
#  authority through the fee backend. The transfer runs after all checks and
#  before anything is stored; if it raises, the registration is dropped.
#
# =============================================================================

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, Optional, Sequence, Tuple

from .errors import ErrorCode, Result
from .fees import FeeBackend, FeeLedger
from .locking import ReadWriteLock

logger = logging.getLogger(__name__)

HASH_LENGTH = 32
MAX_TITLE_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500
MAX_IPFS_LINK_LENGTH = 100
MAX_ROYALTY_RATE = 100
MAX_CATEGORY_LENGTH = 50
MAX_TAGS = 10
MAX_TAG_LENGTH = 20

DEFAULT_PLATFORM_FEE = 100


@dataclass(frozen=True)
class ContentRecord:
    content_hash: bytes
    creator: str
    title: str
    description: str
    ipfs_link: str
    price: int
    royalty_rate: int
    category: str
    tags: Tuple[str, ...]
    created_at: int
    updated_at: int
    is_active: bool = True


@dataclass(frozen=True)
class ContentUpdate:
    title: str
    description: str
    ipfs_link: str
    price: int
    updated_at: int
    updater: str


def _hash_bytes(value) -> Optional[bytes]:
    """Bytes-like input as bytes; None for anything else (ints, str)."""
    try:
        return bytes(memoryview(value))
    except TypeError:
        return None


def _check_editable_fields(title: str, description: str, ipfs_link: str, price: int) -> Optional[ErrorCode]:
    if not title or len(title) > MAX_TITLE_LENGTH:
        return ErrorCode.INVALID_TITLE
    if len(description) > MAX_DESCRIPTION_LENGTH:
        return ErrorCode.INVALID_DESCRIPTION
    if not ipfs_link or len(ipfs_link) > MAX_IPFS_LINK_LENGTH:
        return ErrorCode.INVALID_IPFS_LINK
    if price < 0:
        return ErrorCode.INVALID_PRICE
    return None


@dataclass
class _RegistryState:
    next_content_id: int = 0
    platform_fee: int = DEFAULT_PLATFORM_FEE
    authority: Optional[str] = None
    contents: Dict[int, ContentRecord] = field(default_factory=dict)
    ids_by_hash: Dict[bytes, int] = field(default_factory=dict)
    updates: Dict[int, ContentUpdate] = field(default_factory=dict)


class ContentRegistry:
    """
    In-memory content registry.

    Parameters
    ----------
    clock : Callable[[], int]
        Logical timestamp source (block height or similar). Must never go
        backwards.
    fee_backend : FeeBackend, optional
        Performs the registration fee transfer. Defaults to a ``FeeLedger``
        that only records and logs the transfers.
    platform_fee : int
        Initial fee charged per registration.

    Mutating operations take the caller identity as their first argument.
    Rule violations come back as failed ``Result`` objects with an
    ``ErrorCode``; nothing is stored unless every check passed.
    """

    def __init__(
        self,
        clock: Callable[[], int],
        fee_backend: Optional[FeeBackend] = None,
        platform_fee: int = DEFAULT_PLATFORM_FEE,
    ) -> None:
        if platform_fee < 0:
            raise ValueError("platform fee cannot be negative")
        self.clock = clock
        self.fee_backend = fee_backend if fee_backend is not None else FeeLedger()
        self._initial_fee = platform_fee
        self._state = _RegistryState(platform_fee=platform_fee)
        self._lock = ReadWriteLock()

    # ── Configuration ────────────────────────────────────────────────────────

    @property
    def authority(self) -> Optional[str]:
        with self._lock.read():
            return self._state.authority

    @property
    def platform_fee(self) -> int:
        with self._lock.read():
            return self._state.platform_fee

    def set_authority(self, principal: str) -> bool:
        """Set the fee-receiving authority. Works once; later calls return False."""
        with self._lock.write():
            if self._state.authority is not None:
                logger.warning(f"[REGISTRY] Authority already set to {self._state.authority}, ignoring {principal}")
                return False
            self._state.authority = principal
        logger.info(f"[REGISTRY] Authority set to {principal}")
        return True

    def set_platform_fee(self, new_fee: int) -> bool:
        """
        Replace the registration fee.

        Who may call this is decided by the authority mechanism in front of the
        registry; here we only require that an authority exists.
        """
        with self._lock.write():
            if self._state.authority is None or new_fee < 0:
                return False
            self._state.platform_fee = new_fee
        logger.info(f"[REGISTRY] Platform fee set to {new_fee}")
        return True

    # ── Writes ───────────────────────────────────────────────────────────────

    def register_content(
        self,
        caller: str,
        content_hash: bytes,
        title: str,
        description: str,
        ipfs_link: str,
        price: int,
        royalty_rate: int,
        category: str,
        tags: Sequence[str],
    ) -> Result[int]:
        """
        Register new content and return its id.

        Checks run in a fixed order and the first failure wins: authority,
        hash, title, description, IPFS link, price, royalty, category, tags,
        then hash uniqueness.
        """
        raw_hash = _hash_bytes(content_hash)
        tags = tuple(tags)

        with self._lock.write():
            state = self._state
            code = None
            if state.authority is None:
                code = ErrorCode.AUTHORITY_NOT_SET
            elif raw_hash is None or len(raw_hash) != HASH_LENGTH:
                code = ErrorCode.INVALID_HASH
            else:
                code = _check_editable_fields(title, description, ipfs_link, price)
            if code is None:
                if not 0 <= royalty_rate <= MAX_ROYALTY_RATE:
                    code = ErrorCode.INVALID_ROYALTY
                elif not category or len(category) > MAX_CATEGORY_LENGTH:
                    code = ErrorCode.INVALID_CATEGORY
                elif len(tags) > MAX_TAGS or any(not tag or len(tag) > MAX_TAG_LENGTH for tag in tags):
                    code = ErrorCode.INVALID_TAG
                elif raw_hash in state.ids_by_hash:
                    code = ErrorCode.DUPLICATE_CONTENT
            if code is not None:
                logger.info(f"[REGISTRY] Registration by {caller} rejected: {code.name} ({code.value})")
                return Result.failure(code)

            now = self.clock()
            # Raises FeeTransferError before anything below is stored
            self.fee_backend(state.platform_fee, caller, state.authority)

            content_id = state.next_content_id
            state.contents[content_id] = ContentRecord(
                content_hash=raw_hash,
                creator=caller,
                title=title,
                description=description,
                ipfs_link=ipfs_link,
                price=price,
                royalty_rate=royalty_rate,
                category=category,
                tags=tags,
                created_at=now,
                updated_at=now,
            )
            state.ids_by_hash[raw_hash] = content_id
            state.next_content_id += 1

        logger.info(f"[REGISTRY] Content #{content_id} registered by {caller} (hash {raw_hash.hex()[:16]}...)")
        return Result.success(content_id)

    def update_content(
        self,
        caller: str,
        content_id: int,
        title: str,
        description: str,
        ipfs_link: str,
        price: int,
    ) -> Result[bool]:
        """Change the mutable fields of a record. Only its creator may do this."""
        with self._lock.write():
            record = self._state.contents.get(content_id)
            if record is None:
                code = ErrorCode.CONTENT_NOT_FOUND
            elif record.creator != caller:
                code = ErrorCode.NOT_AUTHORIZED
            else:
                code = _check_editable_fields(title, description, ipfs_link, price)
            if code is not None:
                logger.info(f"[REGISTRY] Update of #{content_id} by {caller} rejected: {code.name} ({code.value})")
                return Result.failure(code)

            now = self.clock()
            self._state.contents[content_id] = replace(
                record,
                title=title,
                description=description,
                ipfs_link=ipfs_link,
                price=price,
                updated_at=now,
            )
            # Last write wins: one history entry per id
            self._state.updates[content_id] = ContentUpdate(
                title=title,
                description=description,
                ipfs_link=ipfs_link,
                price=price,
                updated_at=now,
                updater=caller,
            )

        logger.info(f"[REGISTRY] Content #{content_id} updated by {caller}")
        return Result.success(True)

    # ── Reads ────────────────────────────────────────────────────────────────

    def get_content(self, content_id: int) -> Optional[ContentRecord]:
        with self._lock.read():
            return self._state.contents.get(content_id)

    def get_content_by_hash(self, content_hash: bytes) -> Optional[ContentRecord]:
        with self._lock.read():
            content_id = self._state.ids_by_hash.get(_hash_bytes(content_hash))
            if content_id is None:
                return None
            return self._state.contents.get(content_id)

    def get_content_update(self, content_id: int) -> Optional[ContentUpdate]:
        with self._lock.read():
            return self._state.updates.get(content_id)

    def get_content_count(self) -> int:
        """Total ever registered, i.e. the next id to be assigned."""
        with self._lock.read():
            return self._state.next_content_id

    def is_content_registered(self, content_hash: bytes) -> bool:
        with self._lock.read():
            return _hash_bytes(content_hash) in self._state.ids_by_hash

    def reset(self) -> None:
        """Drop every record and return to the freshly constructed state."""
        with self._lock.write():
            self._state = _RegistryState(platform_fee=self._initial_fee)
            if isinstance(self.fee_backend, FeeLedger):
                self.fee_backend.clear()
        logger.info("[REGISTRY] Registry reset")
