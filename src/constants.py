"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    DOWNLOAD_ERROR = 2
    PARSE_ERROR = 3


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    DEFAULT_REPOSITORY_URL = "https://repo1.maven.org/maven2"
    DEFAULT_BASE_DIR = "libs"
    DEFAULT_SCOPES = ["runtime", "compile"]
    IGNORE_OPTIONAL = True
    VERBOSE = True

    METADATA_FILE = "maven-metadata.xml"
    DESCRIPTOR_EXTENSION = "pom"
    ARTIFACT_EXTENSION = "jar"
    HASH_ALGORITHM = "sha1"
    HASH_EXTENSION = ".sha1"
    PARTIAL_EXTENSION = ".part"
    # Packaging types that never ship a binary next to their descriptor
    NON_BINARY_PACKAGING = ("pom",)

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_LEVEL_ENV = "DEPFETCH_LOG_LEVEL"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    DOWNLOAD_CHUNK_SIZE = 64 * 1024
    USER_AGENT = "depfetch/1.0"
