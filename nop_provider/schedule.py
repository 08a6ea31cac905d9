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

"""Time-triggered condition scheduling.

A NopResource declares rules of the form "after duration D, condition C has
status S". On every poll the rules are grouped by condition type and, within
each group, the eligible rule (``threshold <= elapsed``) with the greatest
threshold governs that type. Ties go to the rule that comes first in the
manifest, so authors can express precedence by ordering.
"""

import logging
import math
import re
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Set, Tuple

from nop_provider.models.nop_resource import ResourceConditionAfter

logger = logging.getLogger(__name__)

ZERO = timedelta(0)
MAX_SECONDS = timedelta.max.total_seconds()

# seconds per unit
_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_COMPONENT = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


class DurationParseError(ValueError):

    def __init__(self, text: str, reason: str):
        self.text = text
        self.reason = reason
        super().__init__(f"invalid duration {text!r}: {reason}")


def parse_duration(text: str) -> Tuple[timedelta, Optional[DurationParseError]]:
    """Parse a duration such as "10s", "1m30s" or "250ms".

    Never raises. On failure the duration is zero and the error is returned
    next to it so the caller decides whether to log or reject the value.
    Negative durations are reported as errors as well.

    Values are kept at microsecond resolution: "1.9999999s" rounds to 2s, and
    a non-zero duration that rounds to nothing (e.g. "999ns") is an error.
    """
    if not isinstance(text, str):
        return ZERO, DurationParseError(str(text), "not a string")
    s = text.strip()
    negative = s.startswith("-")
    if s[:1] in ("-", "+"):
        s = s[1:]
    if s == "0":
        return ZERO, None
    if not s:
        return ZERO, DurationParseError(text, "empty duration")

    seconds = 0.0
    pos = 0
    while pos < len(s):
        m = _COMPONENT.match(s, pos)
        if not m:
            return ZERO, DurationParseError(text, f"unexpected {s[pos:]!r}")
        value, unit = m.groups()
        seconds += _UNITS[unit] * float(value)
        pos = m.end()

    if not math.isfinite(seconds) or seconds >= MAX_SECONDS:
        return ZERO, DurationParseError(text, "duration out of range")
    total = timedelta(seconds=seconds)
    if seconds > 0 and total == ZERO:
        return ZERO, DurationParseError(text, "below microsecond resolution")
    if negative and total > ZERO:
        return ZERO, DurationParseError(text, "negative duration")
    return total, None


def governing_by_type(rules: Sequence[ResourceConditionAfter], thresholds: Sequence[timedelta], elapsed: timedelta) -> Dict[str, int]:
    """Map each condition type to the index of the rule governing it at ``elapsed``.

    Types without an eligible rule are absent from the result.
    """
    if elapsed < ZERO:
        elapsed = ZERO
    governing: Dict[str, int] = {}
    for i, rule in enumerate(rules):
        if thresholds[i] > elapsed:
            continue
        current = governing.get(rule.conditionType)
        # strictly greater: an equal threshold later in the list never displaces the winner
        if current is None or thresholds[i] > thresholds[current]:
            governing[rule.conditionType] = i
    return governing


class ConditionScheduleEvaluator:

    def __init__(self, _logger: Optional[logging.Logger] = None) -> None:
        self.logger = _logger if _logger else logger

    def thresholds(self, rules: Sequence[ResourceConditionAfter]) -> List[timedelta]:
        thresholds = []
        for i, rule in enumerate(rules):
            threshold, err = parse_duration(rule.time)
            if err:
                self.logger.warning(f"Rule {i} ({rule.conditionType}={rule.conditionStatus.value}) has {err}. It is treated as due immediately.")
            thresholds.append(threshold)
        return thresholds

    def evaluate(self, rules: Sequence[ResourceConditionAfter], elapsed: timedelta) -> Set[int]:
        if len(rules) == 0:
            return set()
        governing = governing_by_type(rules, self.thresholds(rules), elapsed)
        self.logger.debug(f"Governing rules at {elapsed}: {governing}")
        return set(governing.values())

    def evaluate_at(self, rules: Sequence[ResourceConditionAfter], creation_time: datetime, now: datetime) -> Set[int]:
        return self.evaluate(rules, now - creation_time)
