"""Argument parsing functionality for opamextract."""

import argparse


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="opamextract",
        description=(
            "opamextract - Resolve an opam package request into buildable descriptions"
        ),
        add_help=True,
    )

    parser.add_argument("-i", "--input",
                        dest="INPUT",
                        help="Read the JSON request from a file instead of stdin",
                        action="store",
                        type=str)
    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Write the JSON response to a file instead of stdout",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)

    # Variable configuration
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)
    parser.add_argument("--set",
                        dest="VARIABLE_SET",
                        help="Set an opam variable (KEY=VALUE or PKG:KEY=VALUE, can be used multiple times)",
                        action="append",
                        type=str,
                        default=[])

    return parser.parse_args(argv)
