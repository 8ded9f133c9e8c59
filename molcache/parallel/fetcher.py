import multiprocessing as mp
import warnings
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from pydantic import ValidationError
from tqdm.auto import tqdm

from ..core.cache import CompoundCache
from ..core.key import SerCompound
from ..core.record import CompoundProperties
from .executor import FetchOutcome, Provider, ProviderExecutor, call_provider


class InvalidKeyError(Exception):
    """Invalid compound key input error."""
    pass


class InvalidProviderError(Exception):
    """Invalid compound provider error."""
    pass


class CompoundFetcher:
    """Fills a CompoundCache from a provider on cache misses.

    The provider is any callable taking a SerCompound and returning a
    CompoundProperties, a PubChem-style property mapping, or None when the
    compound is unknown. Provider calls run on a worker pool; inserts always
    happen in the calling thread, so the cache is never shared across threads.
    """

    def __init__(
        self,
        cache: CompoundCache,
        provider: Provider,
        n_workers: Optional[int] = None,
        use_threading: bool = True,
        batch_size: int = 100,
        show_progress: bool = True,
    ):
        """Initialize CompoundFetcher.

        Args:
            cache: Cache to read from and insert into
            provider: Callable resolving a key to a compound record
            n_workers: Number of concurrent provider calls
            use_threading: Use threads instead of processes
            batch_size: Number of keys fetched per batch
            show_progress: Whether to show progress bar
        """
        if not isinstance(cache, CompoundCache):
            raise TypeError(f"cache must be a CompoundCache, got {type(cache).__name__}")
        if not callable(provider):
            raise InvalidProviderError(f"Provider must be callable, got {type(provider).__name__}")
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")

        self.cache = cache
        self.provider = provider
        self.n_workers = n_workers or mp.cpu_count()
        self.use_threading = use_threading
        self.batch_size = batch_size
        self.show_progress = show_progress
        self.executor = ProviderExecutor(self.n_workers, use_threading=use_threading)
        if self.n_workers > batch_size:
            warnings.warn(
                f"n_workers ({self.n_workers}) exceeds batch_size ({batch_size}); extra workers will be idle.",
                UserWarning
            )

    @staticmethod
    def _check_key(key: Any) -> SerCompound:
        if key is None:
            raise InvalidKeyError("key cannot be None")
        if not isinstance(key, SerCompound):
            raise InvalidKeyError(f"Invalid input type for key: {type(key).__name__}")
        return key

    def _to_record(self, outcome: FetchOutcome) -> Optional[CompoundProperties]:
        key, result, error = outcome
        if error is not None:
            warnings.warn(f"Error fetching {key}: {error}", UserWarning)
            return None
        if result is None or isinstance(result, CompoundProperties):
            return result
        try:
            return CompoundProperties.model_validate(result)
        except ValidationError as e:
            warnings.warn(f"Invalid record from provider for {key}: {e}", UserWarning)
            return None

    def _fetch(self, key: SerCompound) -> Optional[CompoundProperties]:
        return self._to_record(call_provider(key, self.provider))

    def get(self, key: SerCompound) -> Tuple[bool, Optional[CompoundProperties]]:
        """Look a key up, fetching and caching it on a miss.

        Returns:
            (hit, record) where ``hit`` tells whether the record was already cached
            and ``record`` is None when the provider could not resolve the key
        """
        key = self._check_key(key)
        record = self.cache.get(key)
        if record is not None:
            return True, record
        record = self._fetch(key)
        if record is not None:
            self.cache.insert(key, record)
        return False, record

    def store(self, key: SerCompound) -> bool:
        """Fetch and insert ``key`` only if it is not cached yet. Returns True if inserted."""
        key = self._check_key(key)
        if key in self.cache:
            return False
        record = self._fetch(key)
        if record is None:
            return False
        self.cache.insert(key, record)
        return True

    def overwrite(self, key: SerCompound) -> Optional[CompoundProperties]:
        """Fetch ``key`` and replace any cached record.

        The cache is left unchanged when the provider fails or finds nothing.
        Returns the fetched record.
        """
        key = self._check_key(key)
        record = self._fetch(key)
        if record is not None:
            self.cache.insert(key, record)
        return record

    def fetch_missing(self, keys: Union[SerCompound, Iterable[SerCompound]]) -> Dict[SerCompound, CompoundProperties]:
        """Resolve many keys, fetching only the ones not cached.

        Args:
            keys: Key or iterable of keys; duplicates are looked up once

        Returns:
            Mapping of every resolvable key to its record, in input order
        """
        if keys is None:
            raise InvalidKeyError("keys cannot be None")
        try:
            key_list: List[SerCompound] = [keys] if isinstance(keys, SerCompound) else list(keys)
        except TypeError as e:
            raise InvalidKeyError(f"Invalid input type for keys: {e}")
        key_list = list(dict.fromkeys(self._check_key(k) for k in key_list))

        found: Dict[SerCompound, CompoundProperties] = {}
        missing: List[SerCompound] = []
        for key in key_list:
            record = self.cache.get(key)
            if record is None:
                missing.append(key)
            else:
                found[key] = record

        batches = [missing[i:i + self.batch_size] for i in range(0, len(missing), self.batch_size)]
        with tqdm(total=len(missing), disable=not self.show_progress) as pbar:
            for batch in batches:
                for outcome in self.executor.fetch_batch(batch, self.provider):
                    record = self._to_record(outcome)
                    if record is not None:
                        self.cache.insert(outcome.key, record)
                        found[outcome.key] = record
                pbar.update(len(batch))

        return {key: found[key] for key in key_list if key in found}
