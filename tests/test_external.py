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

from datetime import timedelta

import pytest

from nop_provider.external import (
    ERR_NOT_NOP_RESOURCE,
    Connector,
    ExternalObservation,
    NopExternal,
    NotNopResourceError,
)
from nop_provider.models.status import ConditionStatusEnum, ReasonEnum
from tests import resource_fixtures
from tests.resource_fixtures import RULES, FakeClock


def test_observe_applies_governing_rules():
    clock = FakeClock(timedelta(seconds=8))
    resource = resource_fixtures.build(RULES)
    observation = NopExternal(clock=clock).observe(resource)

    assert observation == ExternalObservation(resource_exists=True, resource_up_to_date=True, selected=[2, 3])
    assert observation.connection_details == {}
    assert resource.status.get_condition("Ready").status == ConditionStatusEnum.TRUE
    assert resource.status.get_condition("Synced").status == ConditionStatusEnum.FALSE


def test_observe_out_of_range_rule_does_not_block_other_types():
    clock = FakeClock(timedelta(seconds=5))
    resource = resource_fixtures.build(resource_fixtures.rules([("99999999999999h", "Ready", "True"), ("1s", "Synced", "True")]))
    observation = NopExternal(clock=clock).observe(resource)

    assert observation.selected == [0, 1]
    assert resource.status.get_condition("Ready").status == ConditionStatusEnum.TRUE
    assert resource.status.get_condition("Synced").status == ConditionStatusEnum.TRUE


def test_observe_before_any_rule_is_due():
    clock = FakeClock(timedelta(seconds=1))
    resource = resource_fixtures.build(RULES)
    observation = NopExternal(clock=clock).observe(resource)

    assert observation.resource_exists
    assert resource.status.conditions == []


def test_observe_every_poll():
    clock = FakeClock()
    resource = resource_fixtures.build(RULES)
    external = NopExternal(clock=clock)
    seen = []
    for seconds in [2, 5, 7, 10, 50]:
        clock.at(timedelta(seconds=seconds))
        external.observe(resource)
        seen.append(
            (
                resource.status.get_condition("Ready").status.value,
                resource.status.get_condition("Synced").status.value if resource.status.get_condition("Synced") else None,
            )
        )
    assert seen == [
        ("False", None),
        ("False", "False"),
        ("True", "False"),
        ("False", "True"),
        ("False", "True"),
    ]


def test_observe_deleted_skips_evaluation(monkeypatch):
    clock = FakeClock(timedelta(seconds=50))
    resource = resource_fixtures.build(RULES, deleted=True)
    external = NopExternal(clock=clock)

    def fail(*args, **kwargs):
        raise AssertionError("evaluator must not run for a deleted resource")

    monkeypatch.setattr(external.evaluator, "evaluate", fail)
    observation = external.observe(resource)

    assert not observation.resource_exists
    assert resource.status.conditions == []


def test_delete_sets_deleting_condition():
    clock = FakeClock(timedelta(seconds=8))
    resource = resource_fixtures.build(RULES)
    external = NopExternal(clock=clock)
    external.observe(resource)
    external.delete(resource)

    ready = resource.status.get_condition("Ready")
    assert ready.status == ConditionStatusEnum.FALSE
    assert ready.reason == ReasonEnum.Deleting
    assert ready.lastTransitionTime == clock()


def test_create_and_update_only_log(caplog):
    resource = resource_fixtures.build(RULES)
    external = NopExternal(clock=FakeClock())
    with caplog.at_level("INFO", logger="nop_provider.external"):
        assert external.create(resource).connection_details == {}
        assert external.update(resource).connection_details == {}
    assert "Creating: example" in caplog.text
    assert "Updating: example" in caplog.text
    assert resource.status.conditions == []


@pytest.mark.parametrize("method", ["observe", "create", "update", "delete"])
def test_type_mismatch(method):
    external = NopExternal(clock=FakeClock())
    with pytest.raises(NotNopResourceError) as e:
        getattr(external, method)({"kind": "NopResource"})
    assert ERR_NOT_NOP_RESOURCE in str(e.value)


def test_connector():
    resource = resource_fixtures.build(RULES)
    assert isinstance(Connector().connect(resource), NopExternal)
    with pytest.raises(NotNopResourceError):
        Connector().connect(object())
