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

import argparse
import logging
import sys
from datetime import timedelta

from nop_provider.app.config import load_provider_config
from nop_provider.common import log
from nop_provider.manifest import ManifestError, dump_manifest, load_manifest, write_manifest
from nop_provider.reconciler import NopResourceOperator
from nop_provider.schedule import ConditionScheduleEvaluator, parse_duration
from nop_provider.timeline import TimelineEntry, build_timeline

logger = logging.getLogger(__name__)


def duration_arg(text: str) -> timedelta:
    value, err = parse_duration(text)
    if err:
        raise argparse.ArgumentTypeError(str(err))
    return value


def run_evaluate(args):
    resource = load_manifest(args.file)
    rules = resource.rules
    selected = ConditionScheduleEvaluator().evaluate(rules, args.elapsed)
    print(f"Governing rules at {args.elapsed}:")
    for i in sorted(selected):
        rule = rules[i]
        print(f"  [{i}] after {rule.time}: {rule.conditionType}={rule.conditionStatus.value}")


def run_timeline(args):
    resource = load_manifest(args.file)
    entries = build_timeline(resource, until=args.until, step=args.step)
    df = TimelineEntry.to_dataframe(entries)
    df[TimelineEntry.Column.elapsed] = df[TimelineEntry.Column.elapsed].dt.total_seconds()
    if args.output:
        df.to_csv(args.output, index=False)
        logger.info(f"Wrote timeline to {args.output}")
    else:
        print(df.to_string(index=False))


def run_reconcile(args):
    provider_config = load_provider_config(args.config)
    if provider_config.log_level and args.verbose == 0:
        logging.getLogger("nop_provider").setLevel(log.to_log_level(provider_config.log_level))
    resource = load_manifest(args.file)
    status_writer = None
    if args.output:
        output = args.output

        def status_writer(r):
            write_manifest(r, output)

    operator = NopResourceOperator(resource, status_writer=status_writer)
    operator.run(
        interval=args.interval if args.interval is not None else provider_config.poll_interval,
        timeout=args.timeout if args.timeout is not None else provider_config.timeout,
        delete_after=args.delete_after,
    )
    if not args.output:
        print(dump_manifest(resource))


def main(argv=None):
    parser = argparse.ArgumentParser(description="NopResource provider: a managed resource whose conditions change with its age")
    parser.add_argument("-v", "--verbose", help="Display verbose output", action="count", default=0)

    subparsers = parser.add_subparsers(dest="command", required=True)

    parser_evaluate = subparsers.add_parser("evaluate", description="Show the governing rules at a given age", help="see `evaluate -h`")
    parser_evaluate.add_argument("-f", "--file", type=str, help="Path to the NopResource manifest.", required=True)
    parser_evaluate.add_argument("-e", "--elapsed", type=duration_arg, help="Age of the resource, e.g. '8s'.", required=True)

    parser_timeline = subparsers.add_parser("timeline", description="Tabulate conditions over the lifetime of a resource", help="see `timeline -h`")
    parser_timeline.add_argument("-f", "--file", type=str, help="Path to the NopResource manifest.", required=True)
    parser_timeline.add_argument("--until", type=duration_arg, default=timedelta(seconds=30), help="Last age to evaluate (default: 30s).")
    parser_timeline.add_argument("--step", type=duration_arg, default=timedelta(seconds=1), help="Distance between two ages (default: 1s).")
    parser_timeline.add_argument("-o", "--output", type=str, help="Write the table as CSV to this path.")

    parser_reconcile = subparsers.add_parser("reconcile", description="Poll a NopResource like a provider controller", help="see `reconcile -h`")
    parser_reconcile.add_argument("-f", "--file", type=str, help="Path to the NopResource manifest.", required=True)
    parser_reconcile.add_argument("-c", "--config", type=str, help="Path to the provider configuration.")
    parser_reconcile.add_argument("--interval", type=float, help="Seconds between two reconcile ticks.")
    parser_reconcile.add_argument("--timeout", type=float, help="Seconds after which polling stops.")
    parser_reconcile.add_argument("--delete-after", dest="delete_after", type=duration_arg, help="Mark the resource for deletion at this age.")
    parser_reconcile.add_argument("-o", "--output", type=str, help="Write the manifest with its status to this path after every tick.")

    args = parser.parse_args(argv)

    if args.verbose > 0:
        log.init(logging.DEBUG)
    else:
        log.init()

    try:
        if args.command == "evaluate":
            run_evaluate(args)
        elif args.command == "timeline":
            run_timeline(args)
        elif args.command == "reconcile":
            run_reconcile(args)
    except ManifestError as e:
        logger.error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
