from bgdeploy.config import DEFAULT_ALIAS, PublishSettings
from bgdeploy.errors import DeployError, InvalidSetting
from bgdeploy.models.publish import InvocationTask
from bgdeploy.services.lambda_gateway import LambdaGateway
from bgdeploy.services.publisher import PublishOrchestrator
from bgdeploy.services.verification import VerificationGate
import json
import argparse
import logging
import sys

logger = logging.getLogger("bgdeploy")


# run pip install -e .
# then do your thing
def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )
    # botocore is very chatty at DEBUG
    logging.getLogger("botocore").setLevel(logging.WARNING)


def _settings_from_args(args) -> PublishSettings:
    settle_delay = None
    if getattr(args, 'settle_delay_ms', None) is not None:
        settle_delay = args.settle_delay_ms / 1000
    try:
        settings = PublishSettings.from_env()
    except InvalidSetting as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)
    return settings.override(
        alias=getattr(args, 'alias', None),
        function_role=getattr(args, 'function_role', None),
        settle_delay=settle_delay,
        verify_attempts=getattr(args, 'verify_attempts', None),
        max_workers=getattr(args, 'max_workers', None),
        profile=args.profile,
        region=args.region,
        endpoint_url=args.endpoint_url,
    )


def publish_archives(args):
    """
    publish every archive with the blue-green flow and print the aliases
    """
    settings = _settings_from_args(args)
    orchestrator = PublishOrchestrator.from_settings(settings)
    task = InvocationTask(payload=args.payload)

    outcomes = orchestrator.publish_all(args.archives, alias=settings.alias, task=task)
    for outcome in outcomes:
        print(json.dumps(outcome.to_dict(), indent=2))

    failed = [o for o in outcomes if not o.succeeded]
    if failed:
        logger.error(f"{len(failed)} of {len(outcomes)} archive(s) failed to publish")
        sys.exit(1)


def invoke_functions(args):
    """
    invoke one or more functions, e.g. `invoke my-func,my-other-func -p file://payload.json`
    """
    settings = _settings_from_args(args)
    gate = VerificationGate(LambdaGateway(settings=settings))

    functions = [f.strip() for f in args.function.split(',') if f.strip()]
    # a single function gets the payload untouched, commas in JSON included
    if len(functions) > 1:
        payloads = [p.strip() for p in args.payload.split(',')]
    else:
        payloads = [args.payload]
    function = args.function
    try:
        for i, function in enumerate(functions):
            payload = payloads[i] if len(payloads) == len(functions) else payloads[0]
            response = gate.invoke(function, payload)
            if response:
                logger.info(response.decode("utf-8", errors="replace"))
            else:
                logger.info(f"Invoke {function} completed with no response to print.")
    except DeployError as e:
        logger.error(f"An error occurred invoking {function}: {e}")
        sys.exit(1)


def _add_aws_options(parser):
    parser.add_argument('--profile', help='AWS profile to use (default: environment)')
    parser.add_argument('--region', help='AWS region (default: AWS_REGION or us-east-1)')
    parser.add_argument(
        '--endpoint-url',
        '-e',
        help='Override the Lambda endpoint, e.g. a local emulator for debugging'
    )
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')


def main():
    parser = argparse.ArgumentParser(
        prog='bgdeploy',
        description='Blue-green publisher for AWS Lambda archives. Updates (or '
        '          creates) the function, publishes a version, invokes it and only '
        '          then moves the alias to the new version.'
    )

    # since we're having different functions, use subparsers for each one
    subparsers = parser.add_subparsers(
        dest='command',
        help='Available commands'
    )

    publish_parser = subparsers.add_parser(
        'publish',
        help='Publish archives named <function-name>.zip using a blue green process'
    )
    publish_parser.add_argument(
        'archives',
        nargs='+',
        help='Paths to the archives to publish'
    )
    publish_parser.add_argument(
        '--function-role',
        '-r',
        help='Execution role used when the function has to be created. '
             'Default: a new $FUNCTION-role-$RANDOM role with AWSLambdaBasicExecutionRole'
    )
    publish_parser.add_argument(
        '--alias',
        '-a',
        default=None,
        help=f'Alias that will point to the new version (default: {DEFAULT_ALIAS})'
    )
    publish_parser.add_argument(
        '--payload',
        '-p',
        default='',
        help='JSON string or file://path.json sent to the new version before switching'
    )
    publish_parser.add_argument('--settle-delay-ms', type=int, help='Pause before verifying (default: 250)')
    publish_parser.add_argument('--verify-attempts', type=int, help='Invocation attempts before giving up (default: 1)')
    publish_parser.add_argument('--max-workers', type=int, help='Archives published in parallel (default: 4)')
    _add_aws_options(publish_parser)
    publish_parser.set_defaults(func=publish_archives)

    invoke_parser = subparsers.add_parser(
        'invoke',
        help='Invoke functions, e.g. to check a release by hand'
    )
    invoke_parser.add_argument(
        'function',
        help='Function name, name:version, name:alias or ARN; comma separate several'
    )
    invoke_parser.add_argument(
        '--payload',
        '-p',
        default='',
        help='JSON string or file://path.json; comma separate one per function'
    )
    _add_aws_options(invoke_parser)
    invoke_parser.set_defaults(func=invoke_functions)

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    _configure_logging(getattr(args, 'verbose', False))
    # execute the passed function
    args.func(args)


if __name__ == '__main__':
    main()
