from typing import Awaitable, Callable, List, Optional, Sequence
import asyncio
import enum
import structlog

from app.pricing.models import SchemeRecord


logger = structlog.get_logger("scheme_directory")

# Terms of two characters or fewer ("of", "a", "-") are noise
MIN_TOKEN_LENGTH = 3


class DirectoryState(str, enum.Enum):
    NOT_LOADED = "not_loaded"
    LOADED = "loaded"
    LOAD_FAILED = "load_failed"


SchemeLoader = Callable[[], Awaitable[List[SchemeRecord]]]


def tokenize_query(query: str) -> List[str]:
    """Lower-cased search terms with noise words removed"""
    return [term for term in query.lower().split() if len(term) >= MIN_TOKEN_LENGTH]


def match_scheme(query: str, records: Sequence[SchemeRecord]) -> Optional[SchemeRecord]:
    """First record, in directory order, whose name matches the query.

    A record matches when its name contains every query term as a
    substring. If no record does, the first record containing the whole
    query verbatim is used instead. This is a heuristic, not a ranking:
    earlier records always win.
    """
    lowered = query.strip().lower()
    if not lowered:
        return None

    terms = tokenize_query(lowered)
    # A query with no retained term ("FD") goes straight to the whole-query
    # pass; testing zero terms would match the first record in the catalog
    if terms:
        for record in records:
            name = record.scheme_name.lower()
            if all(term in name for term in terms):
                return record

    for record in records:
        if lowered in record.scheme_name.lower():
            return record

    return None


class SchemeDirectory:
    """Mutual fund scheme catalog, loaded once on first lookup.

    A failed or timed out load is not retried: the directory stays empty and every
    lookup returns None until the process restarts.
    """

    def __init__(self, loader: SchemeLoader, load_timeout_seconds: Optional[float] = None):
        self._loader = loader
        self._load_timeout_seconds = load_timeout_seconds
        self._records: List[SchemeRecord] = []
        self._state = DirectoryState.NOT_LOADED
        self._load_lock = asyncio.Lock()

    @classmethod
    def from_records(cls, records: Sequence[SchemeRecord]) -> "SchemeDirectory":
        """Directory with a fixed, already loaded catalog"""

        async def _unused_loader() -> List[SchemeRecord]:
            return list(records)

        directory = cls(_unused_loader)
        directory._records = list(records)
        directory._state = DirectoryState.LOADED
        return directory

    @property
    def state(self) -> DirectoryState:
        return self._state

    @property
    def records(self) -> List[SchemeRecord]:
        return list(self._records)

    async def ensure_loaded(self) -> DirectoryState:
        """Load the catalog if nobody has tried yet"""
        if self._state != DirectoryState.NOT_LOADED:
            return self._state

        async with self._load_lock:
            # Another task may have finished the load while we waited
            if self._state != DirectoryState.NOT_LOADED:
                return self._state

            try:
                records = await asyncio.wait_for(self._loader(), timeout=self._load_timeout_seconds)
            except asyncio.TimeoutError:
                logger.error("Scheme directory load timed out", timeout_seconds=self._load_timeout_seconds)
                self._state = DirectoryState.LOAD_FAILED
                return self._state
            except Exception as e:
                logger.error("Failed to load scheme directory", error=str(e))
                self._state = DirectoryState.LOAD_FAILED
                return self._state

            self._records = list(records)
            self._state = DirectoryState.LOADED
            logger.info("Loaded scheme directory", scheme_count=len(self._records))

        return self._state

    async def find_scheme(self, query: str) -> Optional[SchemeRecord]:
        """Look up a scheme by free-text name"""
        if not query or not query.strip():
            return None

        await self.ensure_loaded()

        scheme = match_scheme(query, self._records)
        if scheme is None:
            logger.info("No scheme matched query", query=query, directory_state=self._state.value)
        return scheme
