from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor
from functools import partial
from typing import Any, Callable, List, Mapping, NamedTuple, Optional, Sequence, Union

from ..core.key import SerCompound
from ..core.record import CompoundProperties

ProviderResult = Union[CompoundProperties, Mapping[str, Any], None]
Provider = Callable[[SerCompound], ProviderResult]


class FetchOutcome(NamedTuple):
    """Result of asking the provider for one key; ``error`` is set when the call raised."""

    key: SerCompound
    result: ProviderResult
    error: Optional[str] = None


def call_provider(key: SerCompound, provider: Provider) -> FetchOutcome:
    """Call the provider for one key, capturing any exception as an error message."""
    try:
        return FetchOutcome(key, provider(key))
    except Exception as e:
        return FetchOutcome(key, None, f"{type(e).__name__}: {e}")


class ProviderExecutor:
    """Runs provider lookups for a batch of compound keys on a worker pool."""

    def __init__(self, n_workers: int, use_threading: bool = True):
        """Initialize provider executor.
        Args:
            n_workers: Maximum number of concurrent provider calls
            use_threading: Use threads instead of processes; processes need a picklable provider
        """
        if n_workers < 1:
            raise ValueError(f"n_workers must be at least 1, got {n_workers}")
        self.n_workers = n_workers
        self.use_threading = use_threading

    def fetch_batch(self, keys: Sequence[SerCompound], provider: Provider) -> List[FetchOutcome]:
        """Fetch every key in the batch, returning outcomes in key order."""
        if not keys:
            return []
        if len(keys) == 1 or self.n_workers == 1:
            return [call_provider(key, provider) for key in keys]
        Executor = ThreadPoolExecutor if self.use_threading else ProcessPoolExecutor
        with Executor(max_workers=min(self.n_workers, len(keys))) as executor:
            return list(executor.map(partial(call_provider, provider=provider), keys))
