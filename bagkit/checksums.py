"""
The default checksum provider, built on hashlib.

A provider turns a byte source into a hex digest for a named algorithm.  The
set of algorithm names is fixed by the provider's ``algorithms`` table;
manifests refuse any name not in it.  Support for another algorithm is added
by subclassing and extending the table.
"""
import hashlib
from collections import OrderedDict

from .constants import HASH_BLOCK_SIZE
from .exceptions import UnsupportedAlgorithm

class ChecksumProvider(object):
    """
    computes hex digests for the algorithms usable in BagIt manifest names
    """

    algorithms = OrderedDict([
        ("md5",    hashlib.md5),
        ("sha1",   hashlib.sha1),
        ("sha224", hashlib.sha224),
        ("sha256", hashlib.sha256),
        ("sha384", hashlib.sha384),
        ("sha512", hashlib.sha512),
    ])

    def __init__(self, blocksize=HASH_BLOCK_SIZE):
        self.blocksize = blocksize

    def supported_algorithms(self):
        """
        return the set of algorithm names this provider can compute
        """
        return set(self.algorithms.keys())

    def supports(self, algorithm):
        return algorithm in self.algorithms

    def hasher(self, algorithm):
        """
        return a new, empty hash object for the named algorithm

        :raises UnsupportedAlgorithm:  if the algorithm is not in the table
        """
        try:
            return self.algorithms[algorithm]()
        except KeyError:
            raise UnsupportedAlgorithm(algorithm)

    def digest(self, algorithm, source):
        """
        return the hex digest of the given content.

        :param str algorithm:  the name of the algorithm (e.g. "sha256")
        :param source:  the content to digest: either a bytes object or a
                        binary file-like object, which will be read in blocks
                        until exhausted.
        :rtype: str
        """
        h = self.hasher(algorithm)
        if isinstance(source, (bytes, bytearray, memoryview)):
            h.update(source)
            return h.hexdigest()

        while True:
            block = source.read(self.blocksize)
            if not block:
                break
            h.update(block)
        return h.hexdigest()

default_provider = ChecksumProvider()
