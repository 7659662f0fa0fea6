"""Tests for the correlation analyzer and its statistics helpers."""

import pytest
from datetime import date, datetime, timedelta, timezone

from energy_today.engine.correlation import (
    CorrelationAnalyzer,
    activity_stats,
    advice_rates,
    exercise_score,
    prediction_accuracy,
    score_band,
    score_band_stats,
    score_outcome_correlation,
    sleep_score,
    success_rate,
)
from energy_today.engine.history import OutcomeHistory, ReadingHistory, SignalHistory
from energy_today.engine.registry import MODEL_IDS
from energy_today.models.personalization import AdjustmentFactor, PersonalizationProfile

D = [date(2026, 2, 1) + timedelta(days=i) for i in range(12)]


@pytest.fixture
def analyzer(r):
    return CorrelationAnalyzer(ReadingHistory(r), OutcomeHistory(r), SignalHistory(r))


def _seed(analyzer, profile_id, make_outcome, make_reading, rows):
    """rows: (date, {model_id: sub_score}, result, score_at_logging)"""
    for day, subs, result, score in rows:
        analyzer.readings.append(profile_id, make_reading(day, 60, sub_scores=subs))
        analyzer.outcomes.append(
            profile_id,
            make_outcome(date=day, result=result, composite_score_at_logging=score),
        )


# ═══════════════════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════════════════


class TestHelpers:
    def test_success_rate(self, make_outcome):
        outcomes = [make_outcome(result=r) for r in ("success", "failure", "neutral", "success")]
        assert success_rate(outcomes) == 0.5
        assert success_rate([]) is None

    def test_prediction_accuracy_excludes_neutral_band(self, make_outcome):
        outcomes = [
            make_outcome(composite_score_at_logging=80, result="success"),   # correct
            make_outcome(composite_score_at_logging=85, result="failure"),   # wrong
            make_outcome(composite_score_at_logging=40, result="failure"),   # correct
            make_outcome(composite_score_at_logging=60, result="success"),   # no call
            make_outcome(composite_score_at_logging=69.9, result="failure"), # no call
        ]
        assert prediction_accuracy(outcomes) == pytest.approx(66.7)

    def test_prediction_boundaries(self, make_outcome):
        at_70 = [make_outcome(composite_score_at_logging=70, result="success")]
        at_55 = [make_outcome(composite_score_at_logging=55, result="failure")]
        assert prediction_accuracy(at_70) == 100.0
        assert prediction_accuracy(at_55) is None

    def test_neutral_result_counts_as_miss(self, make_outcome):
        outcomes = [make_outcome(composite_score_at_logging=90, result="neutral")]
        assert prediction_accuracy(outcomes) == 0.0

    def test_score_bands(self, make_outcome):
        assert [score_band(s) for s in (100, 85, 84.9, 70, 69, 50, 49, 0)] == [
            "85-100", "85-100", "70-84", "70-84", "50-69", "50-69", "0-49", "0-49",
        ]
        stats = score_band_stats([
            make_outcome(composite_score_at_logging=90, result="success"),
            make_outcome(composite_score_at_logging=88, result="failure"),
            make_outcome(composite_score_at_logging=30, result="failure"),
        ])
        by_band = {s.band: s for s in stats}
        assert by_band["85-100"].count == 2
        assert by_band["85-100"].success_rate == 50.0
        assert by_band["70-84"].count == 0
        assert by_band["70-84"].success_rate is None
        assert by_band["0-49"].success_rate == 0.0

    def test_activity_stats_sorted_by_success(self, make_outcome):
        stats = activity_stats([
            make_outcome(activity_type="workout", result="failure", composite_score_at_logging=50),
            make_outcome(activity_type="pitch", result="success", composite_score_at_logging=80),
            make_outcome(activity_type="workout", result="success", composite_score_at_logging=70),
        ])
        assert [s.activity_type for s in stats] == ["pitch", "workout"]
        assert stats[1].attempts == 2
        assert stats[1].success_rate == 50.0
        assert stats[1].average_score == 60.0

    def test_advice_rates(self, make_outcome):
        followed, ignored = advice_rates([
            make_outcome(followed_advice=True, result="success"),
            make_outcome(followed_advice=True, result="success"),
            make_outcome(followed_advice=False, result="failure"),
        ])
        assert followed == 100.0
        assert ignored == 0.0
        assert advice_rates([make_outcome(followed_advice=True)])[1] is None

    def test_score_outcome_correlation(self, make_outcome):
        aligned = [
            make_outcome(composite_score_at_logging=90, result="success"),
            make_outcome(composite_score_at_logging=60, result="neutral"),
            make_outcome(composite_score_at_logging=30, result="failure"),
        ]
        assert score_outcome_correlation(aligned) == pytest.approx(1.0)
        assert score_outcome_correlation(aligned[:1]) is None
        constant = [make_outcome(result="success"), make_outcome(result="success")]
        assert score_outcome_correlation(constant) is None

    def test_signal_buckets(self):
        assert sleep_score(4) < sleep_score(6.5) < sleep_score(8)
        assert sleep_score(11) < sleep_score(8)
        assert exercise_score(0) < exercise_score(30) < exercise_score(60)
        for value in (0, 3, 5.5, 7, 9, 14, 30, 45, 120):
            assert 0 <= sleep_score(value) <= 100
            assert 0 <= exercise_score(value) <= 100


# ═══════════════════════════════════════════════════════════════════════════
# Per-factor effect
# ═══════════════════════════════════════════════════════════════════════════


class TestComputeFactor:
    def test_three_of_four_high_against_even_baseline(self, analyzer, make_outcome):
        results = ["success", "success", "success", "failure", "success", "failure"]
        outcomes = [make_outcome(date=D[i], result=res) for i, res in enumerate(results)]
        by_date = {D[0]: 85, D[1]: 90, D[2]: 72, D[3]: 70, D[4]: 40, D[5]: 55}
        factor = analyzer.compute_factor("lunar", outcomes, by_date)
        assert factor.success_rate_high == 0.75
        assert factor.success_rate_baseline == 0.5
        assert 0 < factor.weight_delta <= 0.5
        assert factor.weight_delta == pytest.approx(0.25)
        assert factor.sample_size == 4
        assert factor.confidence == 70.0

    def test_needs_three_high_samples(self, analyzer, make_outcome):
        outcomes = [make_outcome(date=D[i]) for i in range(5)]
        by_date = {D[0]: 90, D[1]: 90, D[2]: 10, D[3]: 10, D[4]: 10}
        assert analyzer.compute_factor("lunar", outcomes, by_date) is None

    def test_outcomes_without_value_are_ignored(self, analyzer, make_outcome):
        outcomes = [make_outcome(date=D[i], result="failure") for i in range(6)]
        by_date = {D[0]: 90, D[1]: 90, D[2]: 90}
        factor = analyzer.compute_factor("sleep_hours", outcomes, by_date)
        # no low partition: baseline is the overall rate over observed outcomes
        assert factor.weight_delta == 0.0
        assert factor.success_rate_baseline == 0.0

    @pytest.mark.parametrize("high_result,low_result,expected", [
        ("success", "failure", 0.5),
        ("failure", "success", -0.5),
    ])
    def test_delta_clamped(self, analyzer, make_outcome, high_result, low_result, expected):
        outcomes = [make_outcome(date=D[i], result=high_result) for i in range(5)]
        outcomes += [make_outcome(date=D[i], result=low_result) for i in range(5, 10)]
        by_date = {d: (95 if i < 5 else 5) for i, d in enumerate(D[:10])}
        factor = analyzer.compute_factor("lunar", outcomes, by_date)
        assert factor.weight_delta == expected

    def test_high_sensitivity_still_clamped(self, r, make_outcome):
        analyzer = CorrelationAnalyzer(
            ReadingHistory(r), OutcomeHistory(r), SignalHistory(r), sensitivity=5.0
        )
        outcomes = [make_outcome(date=D[i], result="success" if i < 4 else "failure") for i in range(8)]
        outcomes[3] = make_outcome(date=D[3], result="failure")
        by_date = {d: (80 if i < 4 else 20) for i, d in enumerate(D[:8])}
        factor = analyzer.compute_factor("lunar", outcomes, by_date)
        # (0.75 - 0.0) * 5 -> clamped
        assert factor.weight_delta == 0.5

    def test_confidence_monotonic_and_capped(self, analyzer):
        values = [analyzer.factor_confidence(n) for n in range(3, 40)]
        assert values == sorted(values)
        assert values[0] == 65.0
        assert max(values) == 95.0

    def test_more_consistent_evidence_never_lowers_confidence(self, analyzer, make_outcome):
        previous = 0.0
        outcomes, by_date = [], {}
        for i in range(12):
            outcomes.append(make_outcome(date=D[i], result="success"))
            by_date[D[i]] = 85
            factor = analyzer.compute_factor("lunar", outcomes, by_date)
            if factor is not None:
                assert factor.confidence >= previous
                previous = factor.confidence
        assert previous == 95.0


# ═══════════════════════════════════════════════════════════════════════════
# Recompute
# ═══════════════════════════════════════════════════════════════════════════


class TestRecompute:
    def test_zero_outcomes_returns_prior(self, analyzer, profile):
        prior = PersonalizationProfile(
            profile_id="user-1",
            factors=(AdjustmentFactor("lunar", 0.2, 6, 80.0),),
            overall_accuracy=70.0,
            total_outcomes_considered=6,
            last_computed="2026-02-01T00:00:00+00:00",
        )
        result = analyzer.recompute(profile, prior)
        assert result.factors == prior.factors
        assert result.overall_accuracy == 70.0
        assert result.last_computed == prior.last_computed
        assert result.total_outcomes_considered == 0
        assert not result.has_sufficient_data

    def test_zero_outcomes_without_prior(self, analyzer, profile):
        result = analyzer.recompute(profile)
        assert result == PersonalizationProfile.empty("user-1")

    def test_factor_from_stored_readings(self, analyzer, profile, make_outcome, make_reading):
        _seed(analyzer, "user-1", make_outcome, make_reading, [
            (D[0], {"lunar": 85}, "success", 80),
            (D[1], {"lunar": 90}, "success", 80),
            (D[2], {"lunar": 75}, "success", 80),
            (D[3], {"lunar": 70}, "failure", 80),
            (D[4], {"lunar": 40}, "success", 40),
            (D[5], {"lunar": 30}, "failure", 40),
        ])
        now = datetime(2026, 2, 15, 12, tzinfo=timezone.utc)
        result = analyzer.recompute(profile, now=now)

        assert [f.factor_id for f in result.factors] == ["lunar"]
        lunar = result.factor("lunar")
        assert lunar.weight_delta == pytest.approx(0.25)
        assert lunar.sample_size == 4
        assert lunar.last_computed == now.isoformat()
        assert result.total_outcomes_considered == 6
        # predicted success: 3 of 4 right; predicted failure: 1 of 2 right
        assert result.overall_accuracy == pytest.approx(66.7)
        assert result.last_computed == now.isoformat()
        assert result.has_sufficient_data

    def test_lifestyle_signal_factor(self, analyzer, profile, make_outcome, make_reading):
        rows = []
        for i in range(6):
            good_night = i < 3
            analyzer.signals.record("user-1", "sleep_hours", D[i], 8.0 if good_night else 4.5)
            rows.append((D[i], {}, "success" if good_night else "failure", 60))
        _seed(analyzer, "user-1", make_outcome, make_reading, rows)

        result = analyzer.recompute(profile)
        sleep = result.factor("sleep_hours")
        assert sleep is not None
        assert sleep.weight_delta == 0.5
        assert sleep.sample_size == 3

    def test_missing_readings_are_recomputed(self, analyzer, profile, make_outcome):
        for i in range(10):
            analyzer.outcomes.append(
                "user-1", make_outcome(date=D[i], result="success" if i % 2 else "failure")
            )
        result = analyzer.recompute(profile)
        assert result.total_outcomes_considered == 10
        for f in result.factors:
            assert f.factor_id in MODEL_IDS
            assert f.sample_size >= 3
            assert -0.5 <= f.weight_delta <= 0.5

    def test_supplementary_statistics(self, analyzer, profile, make_outcome, make_reading):
        _seed(analyzer, "user-1", make_outcome, make_reading, [
            (D[0], {}, "success", 90),
            (D[1], {}, "success", 75),
            (D[2], {}, "failure", 30),
        ])
        result = analyzer.recompute(profile)
        assert {b.band for b in result.score_bands} == {"85-100", "70-84", "50-69", "0-49"}
        assert result.activity_stats[0].activity_type == "deep_work"
        assert result.followed_advice_rate == pytest.approx(66.7)
        assert result.ignored_advice_rate is None
        assert result.score_outcome_correlation > 0.9
