"""
Tests for the change detector engine.
"""

import logging
import math

import pytest
from pydantic import ValidationError

from uiwatch.change_monitor.analyzer import ChangeDetector
from uiwatch.change_monitor.models import (
    ChangeLevel,
    InvalidMetricsVector,
    MetricsVector,
    PartialThresholdConfig,
    ThresholdConfig,
)

from conftest import BASE_METRICS


@pytest.fixture
def detector(fixed_clock):
    return ChangeDetector(clock=fixed_clock)


@pytest.fixture
def primed(detector, make_metrics):
    """Detector whose baseline is the default page."""
    detector.classify(make_metrics())
    return detector


class TestFirstObservation:
    """Test baseline initialization."""

    def test_first_call_sets_baseline(self, detector, make_metrics):
        metrics = make_metrics()

        result = detector.classify(metrics)

        assert result.level == ChangeLevel.NONE
        assert result.changed is False
        assert result.reason == "Baseline initialized"
        assert result.major_reasons == []
        assert result.minor_reasons == []
        assert result.reasons == []
        assert result.should_take_screenshot is False
        assert result.should_take_snapshot is False
        assert result.suggested_filename == "baseline_set.png"
        assert result.metrics.delta is None
        assert detector.baseline == metrics

    def test_reset_reproduces_first_observation(self, primed, make_metrics, fixed_clock):
        metrics = make_metrics(elements=500, dialogs=2)

        primed.reset_baseline()
        after_reset = primed.classify(metrics)
        fresh = ChangeDetector(clock=fixed_clock).classify(metrics)

        assert after_reset.model_dump() == fresh.model_dump()
        assert primed.baseline == metrics

    def test_reset_returns_previous_baseline(self, primed, make_metrics):
        assert primed.reset_baseline() == make_metrics()
        assert primed.baseline is None
        assert primed.has_baseline is False

    def test_reset_without_baseline(self, detector):
        assert detector.reset_baseline() is None

    def test_detect_changes_alias(self, detector, make_metrics):
        result = detector.detect_changes(make_metrics())
        assert result.reason == "Baseline initialized"


class TestNoChange:
    """Test observations that stay below every threshold."""

    def test_identical_vectors(self, primed, make_metrics):
        result = primed.classify(make_metrics())

        assert result.level == ChangeLevel.NONE
        assert result.changed is False
        assert result.reason == "No significant changes"
        assert result.suggested_filename == "no_change.png"
        assert result.should_take_screenshot is False

    def test_small_element_change(self, primed, make_metrics):
        result = primed.classify(make_metrics(elements=101))

        assert result.level == ChangeLevel.NONE
        assert result.metrics.delta.elements == 1

    def test_disappearing_dialog_is_not_flagged(self, detector, make_metrics):
        detector.classify(make_metrics(dialogs=1, overlays=1))

        result = detector.classify(make_metrics(dialogs=0, overlays=0))

        assert result.level == ChangeLevel.NONE
        assert result.metrics.delta.dialogs == -1
        assert result.metrics.delta.overlays == -1

    def test_z_index_decrease_is_not_flagged(self, detector, make_metrics):
        detector.classify(make_metrics(max_z_index=9999))

        result = detector.classify(make_metrics(max_z_index=10))

        assert result.level == ChangeLevel.NONE
        assert result.metrics.delta.z_index == -9989


class TestMajorChanges:
    """Test major change classification."""

    def test_dialog_appeared(self, primed, make_metrics):
        result = primed.classify(make_metrics(dialogs=1))

        assert result.level == ChangeLevel.MAJOR
        assert result.changed is True
        assert "1 dialog(s) appeared" in result.major_reasons
        assert result.should_take_screenshot is True
        assert result.should_take_snapshot is True
        assert result.suggested_filename == (
            "major_change_1_dialog_s__appeared_1736937000000.png"
        )

    def test_url_changed(self, primed, make_metrics):
        result = primed.classify(make_metrics(url="https://example.com/checkout"))

        assert result.major_reasons == ["URL changed"]
        assert result.should_take_snapshot is True
        assert result.suggested_filename == "major_change_url_changed_1736937000000.png"

    def test_overlay_appeared(self, primed, make_metrics):
        result = primed.classify(make_metrics(overlays=2))

        assert result.major_reasons == ["2 overlay(s) appeared"]
        assert result.should_take_snapshot is True

    def test_form_count_changed(self, primed, make_metrics):
        result = primed.classify(make_metrics(forms=2))

        assert result.major_reasons == ["Form count changed by 1"]
        assert result.should_take_snapshot is True

    def test_form_removal_counts_as_change(self, primed, make_metrics):
        result = primed.classify(make_metrics(forms=0))

        assert result.major_reasons == ["Form count changed by 1"]

    def test_large_element_change(self, primed, make_metrics):
        result = primed.classify(make_metrics(elements=250))

        assert result.major_reasons == ["150 elements changed"]
        assert result.should_take_snapshot is False
        assert result.metrics.percent_change.elements == 150.0

    def test_z_index_increase(self, primed, make_metrics):
        result = primed.classify(make_metrics(max_z_index=510))

        assert result.major_reasons == ["Z-index increased by 500"]
        assert result.should_take_snapshot is False

    def test_positioned_elements(self, primed, make_metrics):
        result = primed.classify(make_metrics(fixed_elements=2, absolute_elements=5))

        assert result.major_reasons == [
            "1 fixed elements changed",
            "3 absolute elements changed",
        ]
        assert result.should_take_screenshot is True
        assert result.should_take_snapshot is False

    def test_viewport_height_change(self, primed, make_metrics):
        result = primed.classify(make_metrics(viewport_height=1500.0))

        assert result.major_reasons == ["Viewport height changed 50.0%"]
        assert result.metrics.percent_change.viewport == 50.0

    def test_reason_order(self, primed, make_metrics):
        result = primed.classify(
            make_metrics(
                url="https://example.com/other",
                dialogs=2,
                overlays=1,
                forms=3,
                elements=250,
                max_z_index=1000,
                fixed_elements=3,
                absolute_elements=5,
                viewport_height=2000.0,
            )
        )

        assert result.major_reasons == [
            "URL changed",
            "2 dialog(s) appeared",
            "1 overlay(s) appeared",
            "Form count changed by 2",
            "150 elements changed",
            "Z-index increased by 990",
            "2 fixed elements changed",
            "3 absolute elements changed",
            "Viewport height changed 100.0%",
        ]
        assert result.reasons == result.major_reasons
        assert result.suggested_filename == "major_change_url_changed_1736937000000.png"

    def test_major_preempts_minor(self, primed, make_metrics):
        result = primed.classify(make_metrics(elements=225, buttons=9, inputs=7))

        assert result.level == ChangeLevel.MAJOR
        assert result.major_reasons == ["125 elements changed"]
        assert result.minor_reasons == []


class TestMinorChanges:
    """Test minor change classification."""

    def test_moderate_element_change(self, primed, make_metrics):
        result = primed.classify(make_metrics(elements=125))

        assert result.level == ChangeLevel.MINOR
        assert result.minor_reasons == ["25 elements changed"]
        assert result.major_reasons == []
        assert result.should_take_screenshot is True
        assert result.should_take_snapshot is False
        assert result.suggested_filename == "minor_change_1736937000000.png"

    def test_reason_order(self, primed, make_metrics):
        result = primed.classify(
            make_metrics(elements=120, visible_elements=50, buttons=6, inputs=5)
        )

        assert result.minor_reasons == [
            "20 elements changed",
            "25.0% visibility changes",
            "1 button(s) changed",
            "2 input(s) changed",
        ]
        assert result.reasons == result.minor_reasons

    def test_zero_baseline_divides_by_one(self, detector, make_metrics):
        detector.classify(make_metrics(visible_elements=0))

        result = detector.classify(make_metrics(visible_elements=3))

        assert result.metrics.percent_change.visible == 300.0
        assert result.minor_reasons == ["300.0% visibility changes"]

    def test_link_changes_are_not_flagged(self, primed, make_metrics):
        result = primed.classify(make_metrics(links=35))

        assert result.level == ChangeLevel.NONE
        assert result.metrics.delta.links == 15


class TestSlidingBaseline:
    """Test that every classification advances the baseline."""

    def test_baseline_follows_last_vector(self, primed, make_metrics):
        for metrics in [
            make_metrics(elements=101),
            make_metrics(dialogs=1),
            make_metrics(elements=130),
        ]:
            primed.classify(metrics)
            assert primed.baseline == metrics

    def test_gradual_drift_stays_below_threshold(self, primed, make_metrics):
        first = primed.classify(make_metrics(elements=115))
        second = primed.classify(make_metrics(elements=130))

        assert first.level == ChangeLevel.NONE
        assert second.level == ChangeLevel.NONE
        assert second.metrics.baseline == make_metrics(elements=115)


class TestThresholds:
    """Test threshold configuration."""

    def test_defaults(self, detector):
        thresholds = detector.thresholds

        assert thresholds.major.element_delta == 100
        assert thresholds.major.dialog_delta == 1
        assert thresholds.major.overlay_delta == 1
        assert thresholds.major.form_delta == 1
        assert thresholds.major.z_index_delta == 500
        assert thresholds.major.viewport_delta == 30
        assert thresholds.minor.element_delta == 20
        assert thresholds.minor.viewport_delta == 5

    def test_partial_update_changes_one_field(self, detector):
        before = detector.thresholds.model_dump()

        after = detector.update_thresholds({"major": {"elementDelta": 5}})

        expected = dict(before)
        expected["major"] = {**before["major"], "element_delta": 5}
        assert after.model_dump() == expected

    def test_update_accepts_field_names(self, detector):
        after = detector.update_thresholds(
            PartialThresholdConfig(minor={"viewport_delta": 12})
        )

        assert after.minor.viewport_delta == 12
        assert after.minor.element_delta == 20
        assert after.major == ThresholdConfig().major

    def test_lower_threshold_changes_classification(self, primed, make_metrics):
        primed.update_thresholds({"major": {"elementDelta": 5}})

        result = primed.classify(make_metrics(elements=110))

        assert result.level == ChangeLevel.MAJOR
        assert result.major_reasons == ["10 elements changed"]

    def test_constructor_merges_partial_thresholds(self):
        detector = ChangeDetector(thresholds={"minor": {"elementDelta": 50}})

        assert detector.thresholds.minor.element_delta == 50
        assert detector.thresholds.major.element_delta == 100

    def test_full_config_replaces_values(self, detector):
        config = ThresholdConfig()
        config.major.z_index_delta = 50

        after = detector.update_thresholds(config)

        assert after.major.z_index_delta == 50

    def test_thresholds_property_is_a_copy(self, detector):
        detector.thresholds.major.element_delta = 1

        assert detector.thresholds.major.element_delta == 100

    def test_negative_threshold_accepted_with_warning(self, detector, caplog):
        with caplog.at_level(logging.WARNING):
            after = detector.update_thresholds({"minor": {"elementDelta": -1}})

        assert after.minor.element_delta == -1
        assert "Negative minor.element_delta" in caplog.text


class TestMetricsValidation:
    """Test rejection of malformed metrics vectors."""

    def test_missing_field(self, detector):
        raw = {k: v for k, v in BASE_METRICS.items() if k != "url"}

        with pytest.raises(InvalidMetricsVector) as exc_info:
            detector.classify(raw)

        assert "url" in exc_info.value.fields
        assert detector.baseline is None

    def test_nan_viewport(self, primed, make_metrics):
        raw = {**BASE_METRICS, "viewport_height": math.nan}

        with pytest.raises(InvalidMetricsVector):
            primed.classify(raw)

        assert primed.baseline == make_metrics()

    def test_negative_count(self):
        with pytest.raises(InvalidMetricsVector):
            MetricsVector.from_raw({**BASE_METRICS, "elements": -4})

    def test_non_mapping_payload(self):
        with pytest.raises(InvalidMetricsVector):
            MetricsVector.from_raw(None)

    def test_raw_payload_with_aliases(self, detector, make_metrics):
        raw = {
            "elements": 100,
            "visibleElements": 40,
            "dialogs": 0,
            "overlays": 0,
            "forms": 1,
            "inputs": 3,
            "buttons": 5,
            "links": 20,
            "maxZIndex": 10,
            "fixedElements": 1,
            "absoluteElements": 2,
            "viewportHeight": 1000,
            "url": "https://example.com/",
        }

        detector.classify(raw)

        assert detector.baseline == make_metrics()

    @pytest.mark.parametrize("field, value", [
        ("elements", "100"),
        ("dialogs", True),
        ("max_z_index", 10.5),
        ("viewport_height", "1000"),
        ("viewport_height", False),
    ])
    def test_wrongly_typed_field(self, primed, make_metrics, field, value):
        with pytest.raises(InvalidMetricsVector) as exc_info:
            primed.classify({**BASE_METRICS, field: value})

        assert len(exc_info.value.fields) == 1
        assert primed.baseline == make_metrics()

    def test_integer_viewport_height(self):
        metrics = MetricsVector.from_raw({**BASE_METRICS, "viewport_height": 1000})

        assert metrics.viewport_height == 1000.0

    def test_vector_is_immutable(self, make_metrics):
        metrics = make_metrics()

        with pytest.raises(ValidationError):
            metrics.elements = 5
