import pytest

from terraconstructs import UnscopedValidationError, ValidationError
from terraconstructs.aws.cloudwatch import FilterPattern, LogGroup, MetricFilter, Unit


def _single(items):
    assert len(items) == 1
    return items[0]


# ====== METRIC FILTERS ======

def test_metric_filter(stack, synth, resources, resolve):
    log_group = LogGroup(stack, "LogGroup")

    MetricFilter(
        stack,
        "Subscription",
        log_group=log_group,
        metric_namespace="AWS/Test",
        metric_name="Latency",
        metric_value="$.latency",
        filter_pattern=FilterPattern.exists("$.latency"),
        filter_name="latency-filter",
    )

    rendered = _single(resources(synth(stack), "aws_cloudwatch_log_metric_filter"))
    assert rendered["name"] == "latency-filter"
    assert rendered["log_group_name"] == resolve(log_group.log_group_name)
    assert rendered["pattern"] == '{ $.latency = "*" }'
    assert rendered["metric_transformation"] == {
        "namespace": "AWS/Test",
        "name": "Latency",
        "value": "$.latency",
    }


def test_metric_filter_with_dimensions_and_unit(stack, synth, resources):
    log_group = LogGroup(stack, "LogGroup")

    log_group.add_metric_filter(
        "Subscription",
        metric_namespace="AWS/Test",
        metric_name="Latency",
        metric_value="$.latency",
        filter_pattern=FilterPattern.exists("$.latency"),
        dimensions={"Foo": "Bar", "Bar": "$.bar"},
        unit=Unit.MILLISECONDS,
        default_value=0,
    )

    transformation = _single(resources(synth(stack), "aws_cloudwatch_log_metric_filter"))["metric_transformation"]
    assert transformation["dimensions"] == {"Foo": "Bar", "Bar": "$.bar"}
    assert transformation["unit"] == "Milliseconds"
    assert transformation["default_value"] == "0"


def test_metric_filter_rejects_more_than_three_dimensions(stack):
    log_group = LogGroup(stack, "LogGroup")

    with pytest.raises(ValidationError, match="MetricFilter only supports a maximum of 3 dimensions but received 4"):
        MetricFilter(
            stack,
            "Subscription",
            log_group=log_group,
            metric_namespace="AWS/Test",
            metric_name="Latency",
            filter_pattern=FilterPattern.all_events(),
            dimensions={"A": "a", "B": "b", "C": "c", "D": "d"},
        )


def test_metric_filter_metric(stack):
    log_group = LogGroup(stack, "LogGroup")
    metric_filter = MetricFilter(
        stack,
        "Subscription",
        log_group=log_group,
        metric_namespace="AWS/Test",
        metric_name="Latency",
        filter_pattern=FilterPattern.all_events(),
    )

    metric = metric_filter.metric(statistic="Maximum")

    assert metric.namespace == "AWS/Test"
    assert metric.metric_name == "Latency"
    assert metric.statistic == "Maximum"
    assert metric.period.to_minutes() == 5
    assert metric_filter.metric().statistic == "Average"


# ====== FILTER PATTERNS ======

def test_text_patterns():
    assert FilterPattern.all_events().log_pattern_string == ""
    assert FilterPattern.literal("[a, b]").log_pattern_string == "[a, b]"
    assert FilterPattern.all_terms("ERROR", "MainThread").log_pattern_string == '"ERROR" "MainThread"'
    assert FilterPattern.any_term("ERROR", "WARN").log_pattern_string == '?"ERROR" ?"WARN"'
    assert FilterPattern.any_term("ERROR").log_pattern_string == '"ERROR"'
    assert FilterPattern.any_term_group(["ERROR", "A"], ["WARN"]).log_pattern_string == '?"ERROR" "A" ?"WARN"'


def test_text_terms_are_escaped():
    assert FilterPattern.all_terms('say "hi"').log_pattern_string == '"say \\"hi\\""'


@pytest.mark.parametrize("pattern, expected", [
    (FilterPattern.string_value("$.field", "=", "value"), '{ $.field = "value" }'),
    (FilterPattern.string_value("$.field", "==", "value"), '{ $.field = "value" }'),
    (FilterPattern.string_value("$.field", "!=", "value"), '{ $.field != "value" }'),
    (FilterPattern.number_value("$.field", "<=", 100), "{ $.field <= 100 }"),
    (FilterPattern.is_null("$.field"), "{ $.field IS NULL }"),
    (FilterPattern.not_exists("$.field"), "{ $.field NOT EXISTS }"),
    (FilterPattern.boolean_value("$.field", False), "{ $.field IS FALSE }"),
])
def test_json_patterns(pattern, expected):
    assert pattern.log_pattern_string == expected


def test_json_patterns_combine():
    first = FilterPattern.string_value("$.a", "=", "x")
    second = FilterPattern.number_value("$.b", ">", 1)

    assert FilterPattern.all(first, second).log_pattern_string == '{ ($.a = "x") && ($.b > 1) }'
    assert FilterPattern.any(first, FilterPattern.all(first, second)).log_pattern_string == (
        '{ ($.a = "x") || (($.a = "x") && ($.b > 1)) }'
    )
    assert FilterPattern.all(first) is first


def test_invalid_patterns():
    with pytest.raises(UnscopedValidationError, match="must be either '=' or '!='"):
        FilterPattern.string_value("$.a", "<", "x")
    with pytest.raises(UnscopedValidationError, match="Invalid comparison operator"):
        FilterPattern.number_value("$.a", "~", 1)
    with pytest.raises(UnscopedValidationError, match="Must supply at least one pattern"):
        FilterPattern.any()
