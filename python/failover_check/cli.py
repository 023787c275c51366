from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Callable, Sequence

import boto3

from failover_check.config import AwsSettings, load_environment, validate_environment
from failover_check.content_probe import ContentCheck
from failover_check.errors import ConfigurationError, FleetQueryError
from failover_check.evidence import write_evidence
from failover_check.fleet import AutoScalingFleetController, FleetController
from failover_check.orchestrator import FailoverRunConfig, run_failover_check
from failover_check.poller import PollConfig
from failover_check.standby import DEFAULT_EXIT_ATTEMPTS

log = logging.getLogger(__name__)

# Failure counts are capped below the fatal status so neither wraps nor collides.
EXIT_MAX_FAILURES = 254
EXIT_FATAL = 255

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Put an auto scaling group into standby, verify the failover content, "
            "restore the group and verify the primary content"
        ),
        epilog=(
            f"Exit status: 0 on success, otherwise the number of failures capped at "
            f"{EXIT_MAX_FAILURES}. {EXIT_FATAL} means the check could not run at all."
        ),
    )
    parser.add_argument("--url", default="http://www.growkudos.com", help="The url to check")
    parser.add_argument("--content", default="Maintenance", help="The content to check for")
    parser.add_argument(
        "--timeout",
        type=int,
        default=600,
        help="The timeout for the content poll check in seconds",
    )
    parser.add_argument("--poll", type=int, default=10, help="The content poll interval in seconds")
    parser.add_argument("--user", default="", help="A user for basic authentication")
    parser.add_argument("--pwd", default="", help="The password for the basic auth user")
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Whether to ignore certificate TLS errors",
    )
    parser.add_argument("--primary-url", default="", help="The url serving the primary content")
    parser.add_argument(
        "--primary-content",
        default="",
        help="The content expected at --primary-url once the group is back in service",
    )
    parser.add_argument(
        "--env-config",
        default="",
        help="Simple YAML file holding aws_access_key_id/aws_secret_access_key/aws_region/asg_name",
    )
    parser.add_argument("--output-file", default="", help="Write FAILOVER_* evidence lines here")
    parser.add_argument("--exit-attempts", type=int, default=DEFAULT_EXIT_ATTEMPTS)
    parser.add_argument(
        "--max-restore-rounds",
        type=int,
        default=0,
        help="Give up restoring instances after this many exit standby rounds (0 = never)",
    )
    parser.add_argument(
        "--log-level",
        default="DEBUG",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
    )
    return parser


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level),
        format=_LOG_FORMAT,
        datefmt=_LOG_DATEFMT,
        stream=sys.stdout,
        force=True,
    )
    for noisy in ("botocore", "boto3", "urllib3"):
        logging.getLogger(noisy).setLevel(max(logging.INFO, logging.getLogger().level))


def build_fleet(settings: AwsSettings) -> FleetController:
    session = boto3.session.Session(
        aws_access_key_id=settings.access_key_id,
        aws_secret_access_key=settings.secret_access_key,
        aws_session_token=settings.session_token or None,
        region_name=settings.region,
    )
    return AutoScalingFleetController(session.client("autoscaling"))


def build_run_config(args: argparse.Namespace, group_name: str) -> FailoverRunConfig:
    if args.primary_url and not args.primary_content:
        raise ConfigurationError("--primary-content is required with --primary-url")
    if args.exit_attempts <= 0:
        raise ConfigurationError(f"--exit-attempts must be positive, got {args.exit_attempts}")
    if args.max_restore_rounds < 0:
        raise ConfigurationError(
            f"--max-restore-rounds must not be negative, got {args.max_restore_rounds}"
        )
    poll = PollConfig.from_seconds(args.poll, args.timeout)
    primary = None
    if args.primary_url:
        primary = ContentCheck(
            url=args.primary_url,
            expected=args.primary_content,
            user=args.user,
            password=args.pwd,
            insecure=args.insecure,
        )
    return FailoverRunConfig(
        group_name=group_name,
        failover_check=ContentCheck(
            url=args.url,
            expected=args.content,
            user=args.user,
            password=args.pwd,
            insecure=args.insecure,
        ),
        poll=poll,
        primary_check=primary,
        exit_attempts=args.exit_attempts,
        max_restore_rounds=args.max_restore_rounds,
    )


def main(
    argv: Sequence[str] | None = None,
    *,
    fleet_factory: Callable[[AwsSettings], FleetController] = build_fleet,
) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        settings = validate_environment(load_environment(args.env_config or None))
        run_config = build_run_config(args, settings.group_name)
        fleet = fleet_factory(settings)
        report = run_failover_check(fleet, run_config)
    except ConfigurationError as exc:
        log.critical("configuration error: %s", exc)
        return EXIT_FATAL
    except FleetQueryError as exc:
        log.critical("could not get instances in group: %s", exc)
        return EXIT_FATAL

    if args.output_file:
        output = write_evidence(
            args.output_file,
            report,
            failover_url=args.url,
            primary_url=args.primary_url,
        )
        log.info("evidence written path=%s", output)
    if report.exit_code > EXIT_MAX_FAILURES:
        log.warning(
            "failure count %d exceeds exit status range, exiting %d",
            report.exit_code,
            EXIT_MAX_FAILURES,
        )
    return min(report.exit_code, EXIT_MAX_FAILURES)


if __name__ == "__main__":
    raise SystemExit(main())
