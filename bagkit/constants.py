"""
Common defaults and fixed names used when reading and writing bags.
"""
import re

DEFAULT_VERSION = "0.97"
DEFAULT_ENCODING = "UTF-8"

DECLARATION_FILE = "bagit.txt"
METADATA_FILE = "bag-info.txt"
LEGACY_METADATA_FILE = "package-info.txt"
FETCH_FILE = "fetch.txt"
PAYLOAD_DIR = "data"

MANIFEST_RE = re.compile(r"^manifest-([A-Za-z0-9-]+)\.txt$")
TAGMANIFEST_RE = re.compile(r"^tagmanifest-([A-Za-z0-9-]+)\.txt$")
ANY_MANIFEST_RE = re.compile(r"^(?:tag)?manifest-([A-Za-z0-9-]+)\.txt$")

# bag-info.txt lines are folded at this column
WRAP_WIDTH = 79

HASH_BLOCK_SIZE = 512 * 1024

# checks are disk (or network) bound, so this is not tied to the CPU count
DEFAULT_WORKERS = 4

# seconds allowed for each URL attempt while fetching
DEFAULT_TIMEOUT = 60
