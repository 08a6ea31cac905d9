# Copyright contributors to the nop-provider project. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import logging
from datetime import timedelta

import pytest

from nop_provider.schedule import (
    ConditionScheduleEvaluator,
    DurationParseError,
    governing_by_type,
    parse_duration,
)
from tests import resource_fixtures
from tests.resource_fixtures import BASETIME, RULES

evaluator = ConditionScheduleEvaluator()


@pytest.mark.parametrize(
    "elapsed, want",
    [
        # nothing is due before the earliest rule
        (timedelta(seconds=1, milliseconds=999), set()),
        (timedelta(seconds=2), {5}),
        (timedelta(seconds=8), {2, 3}),
        (timedelta(seconds=50), {0, 4}),
    ],
)
def test_evaluate_scenarios(elapsed, want):
    assert evaluator.evaluate(RULES, elapsed) == want


def test_evaluate_empty_rules():
    assert evaluator.evaluate([], timedelta(seconds=100)) == set()


def test_threshold_is_inclusive():
    r = resource_fixtures.rules([("5s", "Ready", "True")])
    assert evaluator.evaluate(r, timedelta(seconds=5)) == {0}
    assert evaluator.evaluate(r, timedelta(seconds=5) - timedelta(microseconds=1)) == set()


def test_equal_thresholds_first_rule_wins():
    r = resource_fixtures.rules(
        [
            ("3s", "Ready", "False"),
            ("3s", "Ready", "True"),
            ("1s", "Ready", "Unknown"),
        ]
    )
    assert evaluator.evaluate(r, timedelta(seconds=10)) == {0}


def test_types_do_not_interfere():
    r = resource_fixtures.rules(
        [
            ("1s", "Ready", "True"),
            ("30s", "Synced", "True"),
            ("2s", "Healthy", "False"),
        ]
    )
    assert evaluator.evaluate(r, timedelta(seconds=5)) == {0, 2}


def test_negative_elapsed_only_zero_thresholds():
    r = resource_fixtures.rules([("0s", "Ready", "False"), ("1s", "Synced", "True")])
    assert evaluator.evaluate(r, timedelta(seconds=-3)) == {0}


def test_evaluate_at_uses_creation_time():
    assert evaluator.evaluate_at(RULES, BASETIME, BASETIME + timedelta(seconds=8)) == {2, 3}


def test_evaluate_is_deterministic():
    elapsed = timedelta(seconds=6)
    results = [evaluator.evaluate(RULES, elapsed) for _ in range(5)]
    assert all(x == results[0] for x in results)


def test_eligibility_is_monotonic():
    thresholds = evaluator.thresholds(RULES)
    previous = set()
    for seconds in range(0, 15):
        elapsed = timedelta(seconds=seconds)
        eligible = {i for i, t in enumerate(thresholds) if t <= elapsed}
        assert previous <= eligible
        previous = eligible


def test_one_selection_per_type():
    for seconds in range(0, 15):
        selected = evaluator.evaluate(RULES, timedelta(seconds=seconds))
        types = [RULES[i].conditionType for i in selected]
        assert len(types) == len(set(types))


def test_governing_by_type():
    thresholds = evaluator.thresholds(RULES)
    assert governing_by_type(RULES, thresholds, timedelta(seconds=8)) == {"Ready": 2, "Synced": 3}


def test_malformed_rule_is_due_immediately(caplog):
    r = resource_fixtures.rules([("soon", "Ready", "True"), ("5s", "Ready", "False")])
    with caplog.at_level(logging.WARNING, logger="nop_provider.schedule"):
        assert evaluator.evaluate(r, timedelta(0)) == {0}
    assert "soon" in caplog.text
    assert evaluator.evaluate(r, timedelta(seconds=6)) == {1}


@pytest.mark.parametrize(
    "text, want",
    [
        ("10s", timedelta(seconds=10)),
        ("0", timedelta(0)),
        ("1m30s", timedelta(seconds=90)),
        ("1.5h", timedelta(minutes=90)),
        ("250ms", timedelta(milliseconds=250)),
        ("+2s", timedelta(seconds=2)),
        ("-0s", timedelta(0)),
    ],
)
def test_parse_duration(text, want):
    value, err = parse_duration(text)
    assert err is None
    assert value == want


@pytest.mark.parametrize("text", ["", "10", "ten seconds", "5x", "s", "-5s", "1s junk", "99999999999999h", "1" * 400 + "s", "999ns"])
def test_parse_duration_error(text):
    value, err = parse_duration(text)
    assert value == timedelta(0)
    assert isinstance(err, DurationParseError)
    assert err.text == text


def test_parse_duration_error_reasons():
    assert parse_duration("99999999999999h")[1].reason == "duration out of range"
    assert parse_duration("1" * 400 + "s")[1].reason == "duration out of range"
    assert parse_duration("1ns")[1].reason == "below microsecond resolution"


def test_parse_duration_rounds_to_microseconds():
    value, err = parse_duration("1.9999999s")
    assert err is None
    assert value == timedelta(seconds=2)
