"""Agency benchmarks: per-competency distribution statistics across assessments.

Benchmarks are computed from the stored results documents of every completed
assessment that used a template. A single assessment's position within a
benchmark is reported as a percentile rank from a logistic approximation of
the normal CDF, clamped to [1, 99].
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from tr_assessments.core.stats import mean, percentile, round2, sample_std_dev

# Logistic approximation of the standard normal CDF: Phi(z) ~ 1 / (1 + e^(-1.7 z))
_LOGISTIC_SCALE: float = 1.7
_MIN_PERCENTILE: float = 1.0
_MAX_PERCENTILE: float = 99.0


@dataclass(frozen=True)
class CompetencyBenchmark:
    """Distribution of one competency's others' averages across assessments."""

    mean: float = 0.0
    median: float = 0.0
    p25: float = 0.0
    p75: float = 0.0
    std_dev: float = 0.0
    sample_size: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "mean": self.mean,
            "median": self.median,
            "p25": self.p25,
            "p75": self.p75,
            "stdDev": self.std_dev,
            "sampleSize": self.sample_size,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CompetencyBenchmark":
        return cls(
            mean=float(data.get("mean", 0.0)),
            median=float(data.get("median", 0.0)),
            p25=float(data.get("p25", 0.0)),
            p75=float(data.get("p75", 0.0)),
            std_dev=float(data.get("stdDev", 0.0)),
            sample_size=int(data.get("sampleSize", 0)),
        )


@dataclass(frozen=True)
class BenchmarkPosition:
    """Where one assessment's competency score falls within its benchmark."""

    competency_id: str
    competency_name: str
    score: float
    benchmark: CompetencyBenchmark
    percentile_rank: int


def summarise_scores(scores: Iterable[float]) -> CompetencyBenchmark:
    """Compute benchmark statistics for one competency's scores."""
    ordered = sorted(scores)
    if not ordered:
        return CompetencyBenchmark()
    return CompetencyBenchmark(
        mean=round2(mean(ordered)),
        median=round2(percentile(ordered, 50)),
        p25=round2(percentile(ordered, 25)),
        p75=round2(percentile(ordered, 75)),
        std_dev=round2(sample_std_dev(ordered)),
        sample_size=len(ordered),
    )


def compute_benchmarks(
    competency_ids: Iterable[str],
    documents: Iterable[dict[str, Any]],
) -> dict[str, CompetencyBenchmark]:
    """Aggregate results documents into per-competency benchmarks.

    Args:
        competency_ids: Competencies of the template, in template order.
        documents: Stored results documents of completed assessments.

    Returns:
        competency_id -> CompetencyBenchmark. Competencies without any
        rated data get a zeroed benchmark with sample_size 0.
    """
    scores: dict[str, list[float]] = {cid: [] for cid in competency_ids}
    for document in documents:
        for entry in document.get("competencyScores") or []:
            competency_id = entry.get("competencyId")
            if competency_id not in scores:
                continue
            if entry.get("othersResponseCount", 1) == 0:
                continue
            scores[competency_id].append(float(entry.get("overallAverage", 0.0)))

    return {cid: summarise_scores(values) for cid, values in scores.items()}


def percentile_rank(score: float, benchmark: CompetencyBenchmark) -> int:
    """Approximate percentile of a score within a benchmark distribution.

    Returns:
        Integer in [1, 99]; 50 when the benchmark has no sample or no spread.
    """
    if benchmark.sample_size == 0 or benchmark.std_dev == 0:
        return 50
    z = (score - benchmark.mean) / benchmark.std_dev
    value = 100 / (1 + math.exp(-_LOGISTIC_SCALE * z))
    return round(min(max(value, _MIN_PERCENTILE), _MAX_PERCENTILE))


def compare_to_benchmarks(
    document: dict[str, Any],
    benchmarks: dict[str, CompetencyBenchmark],
) -> list[BenchmarkPosition]:
    """Position each rated competency of one results document against benchmarks.

    Competencies missing from the benchmark set or without non-self ratings
    are skipped.
    """
    positions: list[BenchmarkPosition] = []
    for entry in document.get("competencyScores") or []:
        competency_id = entry.get("competencyId")
        benchmark = benchmarks.get(competency_id)
        if benchmark is None or entry.get("othersResponseCount", 1) == 0:
            continue
        score = float(entry.get("overallAverage", 0.0))
        positions.append(
            BenchmarkPosition(
                competency_id=competency_id,
                competency_name=str(entry.get("competencyName", competency_id)),
                score=score,
                benchmark=benchmark,
                percentile_rank=percentile_rank(score, benchmark),
            )
        )
    return positions
