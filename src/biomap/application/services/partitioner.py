"""Partition candidate papers into labeled, non-overlapping branches.

Two interchangeable strategies share the ``List[Branch]`` output shape:

- ``group_by_label``: groups by the paper's ``approach`` tag
- ``kmeans``: iterative centroid assignment over paper embeddings
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

import numpy as np

from biomap.application.services.similarity import cosine_similarity, cosine_similarity_matrix
from biomap.domain.research import DEFAULT_APPROACH, Branch, Paper, RankedPaper

logger = logging.getLogger(__name__)

Vector = List[float]


class BranchRanker(Protocol):
    """Scores papers of a label-grouped branch."""

    def score(self, branch_index: int, paper: Paper) -> float: ...


class DecreasingBranchRanker:
    """Placeholder relevance: earlier-discovered groups rank higher.

    Every paper in group ``idx`` gets ``start - idx * step`` (floored at 0).
    """

    def __init__(self, start: float = 0.85, step: float = 0.05):
        self.start = start
        self.step = step

    def score(self, branch_index: int, paper: Paper) -> float:
        return max(0.0, round(self.start - branch_index * self.step, 6))


def _branch_id(index: int) -> str:
    return f"cluster_{index + 1}"


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def group_by_label(
    papers: Sequence[Paper],
    max_groups: int = 5,
    ranker: Optional[BranchRanker] = None,
) -> List[Branch]:
    """Group papers by ``approach``, keeping first-seen group order.

    Only the first ``max_groups`` groups are emitted. Papers whose approach
    falls outside them are dropped, not merged into a catch-all branch.
    """
    ranker = ranker or DecreasingBranchRanker()

    groups: Dict[str, List[Paper]] = {}
    for paper in papers:
        key = (paper.approach or "").strip() or DEFAULT_APPROACH
        groups.setdefault(key, []).append(paper)

    kept = list(groups.items())[: max(0, int(max_groups))]
    dropped = list(groups)[len(kept) :]
    if dropped:
        logger.info(
            "group_by_label dropped %d overflow group(s) beyond max_groups=%d: %s",
            len(dropped),
            max_groups,
            ", ".join(dropped),
        )

    branches: List[Branch] = []
    for idx, (label, members) in enumerate(kept):
        ranked = [RankedPaper(paper=p, similarity=ranker.score(idx, p)) for p in members]
        branches.append(
            Branch(
                branch_id=_branch_id(idx),
                label=label,
                papers=ranked,
                avg_similarity=_mean([r.similarity for r in ranked]),
            )
        )
    return branches


def overflow_labels(papers: Sequence[Paper], max_groups: int = 5) -> List[str]:
    """Approach labels that ``group_by_label`` would drop for this input."""
    seen: List[str] = []
    for paper in papers:
        key = (paper.approach or "").strip() or DEFAULT_APPROACH
        if key not in seen:
            seen.append(key)
    return seen[max(0, int(max_groups)) :]


def assign_to_centroids(
    embeddings: np.ndarray, centroids: np.ndarray
) -> Tuple[np.ndarray, np.ndarray]:
    """Nearest centroid (by cosine) per embedding; ties go to the lowest index.

    Returns ``(labels, similarities)``, both of shape ``(n,)``.
    """
    sim = cosine_similarity_matrix(embeddings, centroids)
    # argmax returns the first maximum
    labels = np.argmax(sim, axis=1)
    return labels, sim[np.arange(len(labels)), labels]


def recompute_centroids(
    embeddings: np.ndarray, labels: np.ndarray, centroids: np.ndarray
) -> np.ndarray:
    """Coordinate-wise mean of each centroid's members.

    A centroid with no members keeps its previous coordinates.
    """
    updated = np.array(centroids, dtype=float, copy=True)
    for idx in range(len(updated)):
        members = embeddings[labels == idx]
        if len(members):
            updated[idx] = members.mean(axis=0)
    return updated


@dataclass
class CentroidFit:
    labels: np.ndarray
    similarities: np.ndarray
    centroids: np.ndarray
    initial_centroids: np.ndarray


def fit_centroids(
    embeddings: np.ndarray,
    k: int,
    max_iterations: int = 10,
    rng: Optional[random.Random] = None,
) -> CentroidFit:
    """Seed ``k`` centroids from distinct rows, then run the full iteration cap.

    There is no convergence early exit.
    """
    rng = rng or random.Random()
    seeds = rng.sample(range(len(embeddings)), k)
    initial = np.array(embeddings[seeds], dtype=float)

    centroids = initial
    labels = np.zeros(len(embeddings), dtype=int)
    similarities = np.zeros(len(embeddings), dtype=float)
    for _ in range(max(1, int(max_iterations))):
        labels, similarities = assign_to_centroids(embeddings, centroids)
        centroids = recompute_centroids(embeddings, labels, centroids)

    return CentroidFit(
        labels=labels,
        similarities=similarities,
        centroids=centroids,
        initial_centroids=initial,
    )


def kmeans(
    papers: Sequence[Paper],
    k: int,
    max_iterations: int = 10,
    *,
    reference: Optional[Vector] = None,
    rng: Optional[random.Random] = None,
) -> List[Branch]:
    """Cluster papers by embedding with cosine-assignment k-means.

    Every paper must carry an ``embedding``. Centroids start from ``k``
    distinct papers drawn with ``rng`` (unseeded by default).
    """
    if not papers:
        return []
    for paper in papers:
        if paper.embedding is None:
            raise ValueError(f"paper {paper.paper_id or paper.title!r} has no embedding")

    k = max(1, int(k))
    if len(papers) < k:
        branches = []
        for idx, paper in enumerate(papers):
            sim = cosine_similarity(paper.embedding, reference) if reference is not None else 0.0
            branches.append(
                Branch(
                    branch_id=_branch_id(idx),
                    label=_branch_id(idx),
                    papers=[RankedPaper(paper=paper, similarity=sim)],
                    avg_similarity=sim,
                )
            )
        return branches

    embeddings = np.array([p.embedding for p in papers], dtype=float)
    fit = fit_centroids(embeddings, k, max_iterations, rng)

    grouped: List[List[RankedPaper]] = [[] for _ in range(k)]
    for paper, idx, sim in zip(papers, fit.labels, fit.similarities):
        grouped[int(idx)].append(RankedPaper(paper=paper, similarity=float(sim)))

    branches = []
    for ranked in (g for g in grouped if g):
        n = len(branches)
        branches.append(
            Branch(
                branch_id=_branch_id(n),
                label=_branch_id(n),
                papers=ranked,
                avg_similarity=_mean([r.similarity for r in ranked]),
            )
        )
    return branches
