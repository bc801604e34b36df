"""Command line entry point.

Reads one JSON request, resolves it and writes the JSON response. Logs go to
stderr; on failure nothing is written to stdout and the process exits with
the code carried by the error.
"""

from __future__ import annotations

import json
import logging
import sys

from opamextract.args import parse_args
from opamextract.common.logging_utils import (
    Timer, add_file_handler, configure_logging, extra_context, is_debug_enabled,
)
from opamextract.config import build_environment_config
from opamextract.constants import Constants, ExitCodes
from opamextract.errors import ExtractError, OutputError, RequestMalformed
from opamextract.protocol import dump, parse_request, solve

logger = logging.getLogger(__name__)


def _read_request(path):
    try:
        if path:
            with open(path, "r", encoding="utf-8") as f:
                text = f.read()
        else:
            text = sys.stdin.read()
    except (OSError, UnicodeDecodeError) as e:
        raise RequestMalformed(f"Cannot read request: {e}") from e
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise RequestMalformed(f"Request is not valid JSON: {e}") from e


def _write_response(path, response):
    text = json.dumps(response, indent=Constants.JSON_INDENT)
    if path:
        try:
            with open(path, "w", encoding="utf-8") as f:
                f.write(text + "\n")
        except OSError as e:
            raise OutputError(f"Cannot write response: {e}") from e
    else:
        sys.stdout.write(text + "\n")
        sys.stdout.flush()


def run(args):
    """Process one request described by parsed ``args``."""
    config = build_environment_config(args.CONFIG, args.VARIABLE_SET)
    with Timer() as timer:
        request = parse_request(_read_request(args.INPUT))
        spec = solve(request, config)
        response = dump(spec, config)
    if is_debug_enabled(logger):
        logger.debug(
            "Request processed",
            extra=extra_context(packages=len(response), duration_ms=timer.duration_ms()),
        )
    _write_response(args.OUTPUT, response)


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    configure_logging(args.LOG_LEVEL)
    if args.LOG_FILE:
        add_file_handler(args.LOG_FILE)

    try:
        run(args)
    except ExtractError as e:
        logger.error("%s", e)
        sys.exit(e.exit_code.value)
    sys.exit(ExitCodes.SUCCESS.value)


if __name__ == "__main__":
    main()
