"""
a library for reading, checking, updating and writing BagIt bags.

The main bag module provides the Bag class in which an instance wraps around
a bag stored either as a directory or as an archive file (zip, tar, tar.gz,
tgz, tar.bz2).  A Bag can test the bag's completeness and validity against
its manifests, download the files listed in its fetch file, and write the
bag (with updated manifests) to a directory.
"""
import logging

from .bag import Bag, open_bag
from .exceptions import BagError, BagValidationError
from .validate import ValidationResults, ERROR, WARN, REC, PROB, ALL
from .checksums import ChecksumProvider
from .transport import HttpClient

logging.getLogger(__name__).addHandler(logging.NullHandler())
