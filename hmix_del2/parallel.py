"""Fork-join loops over disjoint edge partitions."""
from concurrent.futures import Executor, ThreadPoolExecutor, wait
from typing import Callable, List, Optional


def edge_partitions(n_edges: int, n_workers: int) -> List[slice]:
    """Split ``range(n_edges)`` into at most ``n_workers`` contiguous, disjoint slices."""
    if n_workers < 1:
        raise ValueError(f"n_workers must be >= 1, got {n_workers}.")
    n_parts = max(1, min(n_workers, n_edges))
    bounds = [n_edges * i // n_parts for i in range(n_parts + 1)]
    return [slice(start, stop) for start, stop in zip(bounds[:-1], bounds[1:])]


def make_executor(n_workers: int) -> Optional[ThreadPoolExecutor]:
    """Thread pool shared by the edge loops, or ``None`` when they run inline."""
    if n_workers < 1:
        raise ValueError(f"n_workers must be >= 1, got {n_workers}.")
    if n_workers == 1:
        return None
    return ThreadPoolExecutor(max_workers=n_workers, thread_name_prefix="hmix_del2")


def parallel_for(
    body: Callable[[slice], None],
    n_edges: int,
    n_workers: int = 1,
    executor: Optional[Executor] = None,
):
    """Run ``body(edges)`` over disjoint partitions of the first ``n_edges`` edges.

    Each call of ``body`` may only write the edges of its own slice. Returns once
    every partition has finished, so consecutive calls are separated by a full
    barrier. Exceptions raised by a worker propagate to the caller.

    Partitions are submitted to ``executor`` when one is given; otherwise a
    pool lives for this call only.
    """
    partitions = edge_partitions(n_edges, n_workers)
    if len(partitions) == 1:
        body(partitions[0])
        return

    if executor is None:
        with ThreadPoolExecutor(max_workers=n_workers) as executor:
            _join([executor.submit(body, edges) for edges in partitions])
    else:
        _join([executor.submit(body, edges) for edges in partitions])


def _join(futures):
    # every partition finishes before the first error is re-raised
    wait(futures)
    for future in futures:
        future.result()
