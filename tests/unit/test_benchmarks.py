"""Unit tests for agency benchmark statistics."""

from typing import Any

import pytest

from tr_assessments.core.benchmarks import (
    CompetencyBenchmark,
    compare_to_benchmarks,
    compute_benchmarks,
    percentile_rank,
    summarise_scores,
)


def _document(**averages: float) -> dict[str, Any]:
    return {
        "competencyScores": [
            {
                "competencyId": cid,
                "competencyName": cid.title(),
                "overallAverage": avg,
                "othersResponseCount": 3,
            }
            for cid, avg in averages.items()
        ]
    }


class TestSummariseScores:
    def test_distribution_statistics(self) -> None:
        benchmark = summarise_scores([5.0, 1.0, 3.0, 2.0, 4.0])

        assert benchmark.mean == 3.0
        assert benchmark.median == 3.0
        assert benchmark.p25 == 2.0
        assert benchmark.p75 == 4.0
        assert benchmark.std_dev == 1.58
        assert benchmark.sample_size == 5

    def test_interpolated_percentiles(self) -> None:
        benchmark = summarise_scores([1.0, 2.0, 3.0, 4.0])

        assert benchmark.median == 2.5
        assert benchmark.p25 == 1.75
        assert benchmark.p75 == 3.25

    def test_empty_is_zeroed(self) -> None:
        assert summarise_scores([]) == CompetencyBenchmark()


class TestComputeBenchmarks:
    def test_groups_by_competency(self) -> None:
        documents = [
            _document(vision=3.0, coaching=4.0),
            _document(vision=4.0),
            _document(vision=5.0, retired=1.0),
        ]

        benchmarks = compute_benchmarks(["vision", "coaching", "confidence"], documents)

        assert list(benchmarks) == ["vision", "coaching", "confidence"]
        assert benchmarks["vision"].mean == 4.0
        assert benchmarks["vision"].sample_size == 3
        assert benchmarks["coaching"].sample_size == 1
        assert benchmarks["confidence"] == CompetencyBenchmark()

    def test_skips_competencies_without_other_raters(self) -> None:
        document = _document(vision=0.0)
        document["competencyScores"][0]["othersResponseCount"] = 0

        benchmarks = compute_benchmarks(["vision"], [document])

        assert benchmarks["vision"].sample_size == 0

    def test_dict_round_trip(self) -> None:
        benchmark = summarise_scores([2.0, 3.0, 4.0])
        data = benchmark.to_dict()

        assert set(data) == {"mean", "median", "p25", "p75", "stdDev", "sampleSize"}
        assert CompetencyBenchmark.from_dict(data) == benchmark


class TestPercentileRank:
    def test_at_mean_is_median(self) -> None:
        benchmark = CompetencyBenchmark(mean=3.0, std_dev=0.5, sample_size=10)
        assert percentile_rank(3.0, benchmark) == 50

    def test_one_deviation_above(self) -> None:
        benchmark = CompetencyBenchmark(mean=3.0, std_dev=0.5, sample_size=10)
        assert percentile_rank(3.5, benchmark) == 85
        assert percentile_rank(2.5, benchmark) == 15

    def test_clamped_to_range(self) -> None:
        benchmark = CompetencyBenchmark(mean=3.0, std_dev=0.1, sample_size=10)
        assert percentile_rank(5.0, benchmark) == 99
        assert percentile_rank(1.0, benchmark) == 1

    @pytest.mark.parametrize(
        "benchmark",
        [CompetencyBenchmark(), CompetencyBenchmark(mean=3.0, std_dev=0.0, sample_size=4)],
    )
    def test_degenerate_benchmark(self, benchmark: CompetencyBenchmark) -> None:
        assert percentile_rank(4.2, benchmark) == 50


class TestCompareToBenchmarks:
    def test_positions_for_benchmarked_competencies(self) -> None:
        benchmarks = {"vision": CompetencyBenchmark(mean=3.0, std_dev=0.5, sample_size=10)}

        positions = compare_to_benchmarks(_document(vision=3.5, coaching=4.0), benchmarks)

        assert len(positions) == 1
        assert positions[0].competency_id == "vision"
        assert positions[0].competency_name == "Vision"
        assert positions[0].score == 3.5
        assert positions[0].percentile_rank == 85
