"""depfetch - Resolve Maven dependencies into a local, hash-verified cache.

    Returns:
        int: Exit code
"""
import json
import logging
import os
import sys

from constants import Constants, ExitCodes
from common.errors import DownloadError, ParseError
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from args import parse_args
from cli_config import ConfigError, build_settings, load_config
from registry.repository import Repository
from resolver.downloader import DependencyDownloader
from resolver.sink import ClasspathCollector
from versioning.parser import parse_coordinate

logger = logging.getLogger(__name__)


def setup_logging(args) -> None:
    """Configure logging based on CLI arguments."""
    if getattr(args, "LOG_LEVEL", None):
        os.environ[Constants.LOG_LEVEL_ENV] = str(args.LOG_LEVEL).upper()
    configure_logging()

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s"
        ))
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def export_json(downloader, dependencies, path):
    """Exports the resolved dependencies to a JSON file.

    Args:
        downloader (DependencyDownloader): Downloader that produced the set.
        dependencies (set): Resolved dependencies.
        path (str): File path to export the JSON.
    """
    rows = []
    for dep in sorted(dependencies, key=str):
        artifact = downloader.artifact_path(dep)
        rows.append({
            "groupId": dep.group,
            "artifactId": dep.artifact,
            "classifier": dep.classifier,
            "version": dep.version,
            "scope": dep.scope.value,
            "artifact": str(artifact) if artifact.is_file() else None,
        })
    try:
        with open(path, 'w', encoding='utf-8') as file:
            json.dump(rows, file, ensure_ascii=False, indent=4)
        logging.info("JSON file has been successfully exported at: %s", path)
    except (OSError, TypeError, ValueError) as e:
        logging.error("JSON export error: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)


def run(args) -> int:
    """Resolve what ``args`` asks for and return an exit code."""
    try:
        settings = build_settings(args, load_config(getattr(args, "CONFIG", None)))
    except ConfigError as e:
        logging.error("%s", e)
        return ExitCodes.FILE_ERROR.value

    collector = ClasspathCollector()
    downloader = DependencyDownloader(
        base_dir=settings.base_dir,
        scopes=settings.scopes,
        ignore_optional=settings.ignore_optional,
        verbose=settings.verbose,
        sink=collector,
        repositories=settings.repositories,
    )

    try:
        if getattr(args, "POM", None):
            if not os.path.isfile(args.POM):
                logging.error("pom.xml not found: %s", args.POM)
                return ExitCodes.FILE_ERROR.value
            resolved = downloader.resolve_from_file(args.POM)
        else:
            dependencies = [parse_coordinate(token) for token in args.DEPENDENCIES]
            repositories = downloader.repositories or [Repository()]
            resolved = downloader.resolve_many(repositories, dependencies)
    except ParseError as e:
        logging.error("Parse error: %s", e)
        return ExitCodes.PARSE_ERROR.value
    except DownloadError as e:
        logging.error("%s", e)
        return ExitCodes.DOWNLOAD_ERROR.value

    logging.info("Resolved %d dependencies into %s", len(resolved), downloader.base_dir)
    if getattr(args, "OUTPUT", None):
        export_json(downloader, resolved, args.OUTPUT)
    print(collector.as_classpath())
    return ExitCodes.SUCCESS.value


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    setup_logging(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="main")
        )

    sys.exit(run(args))


if __name__ == "__main__":
    main()
