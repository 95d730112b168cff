"""Reciprocal Rank Fusion of independently ranked result lists."""

from typing import Mapping, Sequence

from mdquery.models import FusedResult, SearchResult

DEFAULT_RRF_K = 60.0


def reciprocal_rank_fusion(
    runs: Mapping[str, Sequence[SearchResult]],
    k: float = DEFAULT_RRF_K,
) -> list[FusedResult]:
    """Merge ranked lists into one, keyed by file path.

    Each list contributes ``1 / (rank + k)`` for every candidate it contains,
    with ``rank`` starting at 1. Ties are broken by the best rank a candidate
    reached in any list, then by file path.

    Args:
        runs: Named result lists, each ordered best-first
        k: Damping constant, must be positive

    Returns:
        Fused results, highest score first
    """
    if k <= 0:
        raise ValueError(f"RRF damping constant must be positive, got {k}")

    scores: dict[str, float] = {}
    ranks: dict[str, dict[str, int]] = {}
    representative: dict[str, SearchResult] = {}

    for name, results in runs.items():
        for rank, result in enumerate(results, start=1):
            if name in ranks.get(result.file, {}):
                continue
            scores[result.file] = scores.get(result.file, 0.0) + 1.0 / (rank + k)
            ranks.setdefault(result.file, {})[name] = rank
            # First list to report a file supplies its title and body
            representative.setdefault(result.file, result)

    fused = [
        FusedResult(result=representative[file], score=score, ranks=ranks[file])
        for file, score in scores.items()
    ]
    fused.sort(key=lambda item: (-item.score, item.best_rank, item.result.file))
    return fused
