"""Argument parsing functionality for depfetch."""

import argparse

from versioning.models import DependencyScope


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="depfetch",
        description=(
            "depfetch - Resolve Maven dependencies and their transitive closure into a local cache"
        ),
        add_help=True,
    )

    input_group = parser.add_mutually_exclusive_group(required=True)
    input_group.add_argument("-d", "--dependency",
                        dest="DEPENDENCIES",
                        help="Dependency coordinate group:artifact[:version[:classifier]]",
                        action="append", type=str)
    input_group.add_argument("--pom",
                        dest="POM",
                        help="Resolve the dependencies declared in a pom.xml",
                        action="store", type=str)

    parser.add_argument("-r", "--repository",
                        dest="REPOSITORIES",
                        help="Repository URL or local mirror path, tried in the given order",
                        action="append", type=str,
                        default=[])
    parser.add_argument("-b", "--base-dir",
                        dest="BASE_DIR",
                        help="Directory to download and store artifacts in (default: libs)",
                        action="store", type=str)
    parser.add_argument("-s", "--scope",
                        dest="SCOPES",
                        help="Scope to follow transitively (repeatable; default: runtime, compile)",
                        action="append", type=str.lower,
                        choices=[s.value for s in DependencyScope])
    parser.add_argument("--include-optional",
                        dest="INCLUDE_OPTIONAL",
                        help="Also follow dependencies marked optional",
                        action="store_true")
    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Path to a JSON report of the resolved dependencies",
                        action="store",
                        type=str)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-q", "--quiet",
                        dest="QUIET",
                        help="Report progress at DEBUG level only.",
                        action="store_true")

    return parser.parse_args(argv)
