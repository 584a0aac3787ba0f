"""
Payload and tag manifests: the checksums of a bag's files for one digest
algorithm.

A manifest's entries are unverified until they are checked against the bag's
storage.  The checks (is_complete(), is_valid(), update()) report problems by
logging them and through their return values; they do not raise exceptions
for missing or altered files, since a bag can legitimately be incomplete or
invalid and the caller needs to know why.
"""
from collections import OrderedDict, namedtuple
from multiprocessing.pool import ThreadPool

import fs.path
from fs.errors import FSError

from .base import Component
from ..checksums import default_provider
from ..constants import (DEFAULT_ENCODING, DEFAULT_WORKERS, PAYLOAD_DIR,
                         ANY_MANIFEST_RE, TAGMANIFEST_RE)
from ..exceptions import (BagError, DuplicatePath, UnsafePath,
                          UnsupportedAlgorithm, UnknownAlgorithm)
from ..access.adapter import is_unsafe_path

class ChecksumMismatch(namedtuple("ChecksumMismatch",
                                  "path algorithm expected found")):
    """
    a file whose computed checksum differs from the one in a manifest.  found
    is None if the file could not be read.
    """
    def __str__(self):
        if self.found is None:
            return "{0}: could not be read to compute its {1} checksum"\
                   .format(self.path, self.algorithm)
        return '{0} {1} validation failed: expected="{2}" found="{3}"'\
               .format(self.path, self.algorithm, self.expected, self.found)

class ManifestCheck(object):
    """
    the outcome of checking a manifest's entries against a bag's files.
    Each list is in the manifest's entry order.
    """
    def __init__(self, manifest, verified=True):
        self.filename = manifest.filename
        self.algorithm = manifest.algorithm
        self.verified = verified

        #: paths listed in the manifest that do not exist in the bag
        self.missing = []

        #: ChecksumMismatch instances for files whose content changed
        self.mismatches = []

        #: paths that this kind of manifest may not list
        self.disallowed = []

        #: the newly computed checksum for each existing file (when verified)
        self.computed = OrderedDict()

    def is_complete(self):
        return not self.missing

    def is_valid(self):
        return not (self.missing or self.mismatches or self.disallowed)

def normalize_path(path):
    """
    return a manifest path in normal form, stripping the leading asterisk
    that marks a binary-mode checksum in some manifests
    """
    if path.startswith('*'):
        path = path[1:]
    if is_unsafe_path(path):
        return path
    return fs.path.normpath(path).lstrip('/')

class Manifest(Component):
    """
    an abstract BagIt manifest mapping file paths (relative to the bag's root
    directory) to checksums computed with a single algorithm.
    """
    prefix = None

    def __init__(self, algorithm=None, adapter=None, provider=None,
                 logger=None, workers=None):
        """
        :param str algorithm:  the checksum algorithm, e.g. "sha256"
        :param StorageAdapter adapter:  the storage holding the bag's files,
                                needed for computing checksums and checking
                                the entries.
        :param ChecksumProvider provider:  the checksum implementation
        :param Logger logger:  where problems found by the checks are reported
        :param int workers:    the number of threads used for checking files
        """
        super(Manifest, self).__init__(logger)
        self.provider = provider or default_provider
        self.adapter = adapter
        self.workers = workers or DEFAULT_WORKERS
        self._hashes = OrderedDict()
        self._algorithm = None
        if algorithm is not None:
            self.set_algorithm(algorithm)

    @property
    def algorithm(self):
        return self._algorithm

    def set_algorithm(self, algorithm):
        """
        set the algorithm this manifest uses.
        :raises UnsupportedAlgorithm:  if the checksum provider does not
                                       support the algorithm
        """
        if not self.provider.supports(algorithm):
            raise UnsupportedAlgorithm(algorithm)
        self._algorithm = algorithm

    @property
    def filename(self):
        if not self._algorithm:
            raise BagError("Cannot supply a manifest filename before its "
                           "algorithm is set")
        return "{0}-{1}.txt".format(self.prefix, self._algorithm)

    def allows(self, path):
        """
        return True if this kind of manifest may list the given path
        """
        return True

    def has_file(self, path):
        return normalize_path(path) in self._hashes

    def get_hash(self, path):
        """
        return the checksum listed for the given path, or None if the path
        is not listed
        """
        return self._hashes.get(normalize_path(path))

    def list_files(self):
        return list(self._hashes.keys())

    def count_files(self):
        return len(self._hashes)

    def remove_file(self, path):
        path = normalize_path(path)
        if path in self._hashes:
            del self._hashes[path]

    def _checked_path(self, path):
        path = normalize_path(path)
        if is_unsafe_path(path):
            raise UnsafePath(path, self.filename)
        return path

    def compute(self, path):
        """
        compute the checksum of a file in the bag.
        :raises BagError:  if the manifest is not attached to any storage
        """
        if self.adapter is None:
            raise BagError("{0}: no bag storage attached for computing the "
                           "checksum of {1}".format(self.filename, path))
        with self.adapter.open_bin_file(path) as fd:
            return self.provider.digest(self._algorithm, fd)

    def add_file(self, path, hash=None):
        """
        add a file to the manifest.  A leading asterisk is removed from the
        path.

        :param str path:  the file's path relative to the bag root
        :param str hash:  the checksum; if None, it is computed from the file
        :raises DuplicatePath:  if the path is already in the manifest
        """
        path = self._checked_path(path)
        if path in self._hashes:
            raise DuplicatePath(path, self.filename)
        if hash is None:
            hash = self.compute(path)
        self._hashes[path] = hash

    def update_file(self, path, hash=None):
        """
        set the checksum for a file, adding the file if it is not already
        listed.  This method does not write changes to disk.
        """
        path = self._checked_path(path)
        if hash is None:
            hash = self.compute(path)
        self._hashes[path] = hash

    def _check_one(self, args):
        path, verify = args
        if not self.adapter.isfile(path):
            return path, False, None
        if not verify:
            return path, True, None
        try:
            return path, True, self.compute(path)
        except (OSError, FSError) as ex:
            self.log.error("Could not read %(path)s: %(error)s",
                           {'path': path, 'error': str(ex)})
            return path, True, None

    def check(self, verify=True, workers=None):
        """
        check the manifest's entries against the files in the bag.  Files are
        checked concurrently; the results are gathered in entry order.

        :param bool verify:  if True, recompute and compare checksums;
                             otherwise only check that files exist.
        :param int workers:  the number of threads to use (default: the
                             value given at construction)
        :rtype: ManifestCheck
        """
        if self.adapter is None:
            raise BagError("{0}: no bag storage attached to check against"
                           .format(self.filename))
        workers = workers or self.workers
        if not self.adapter.parallel_reads:
            workers = 1

        args = [(path, verify) for path in self._hashes]
        if workers == 1 or len(args) < 2:
            results = [self._check_one(a) for a in args]
        else:
            pool = ThreadPool(min(workers, len(args)))
            try:
                results = pool.map(self._check_one, args)
            finally:
                pool.terminate()

        out = ManifestCheck(self, verify)
        for path, exists, computed in results:
            if not self.allows(path):
                out.disallowed.append(path)
            if not exists:
                out.missing.append(path)
                continue
            if not verify:
                continue
            expected = self._hashes[path]
            if computed is not None:
                out.computed[path] = computed
            if computed is None or expected.lower() != computed:
                out.mismatches.append(ChecksumMismatch(path, self._algorithm,
                                                       expected.lower(),
                                                       computed))
        return out

    def _report_missing(self, check):
        for path in check.missing:
            self.log.warning("File %(path)s is listed in manifest %(filename)s "
                             "but does not exist in the bag.",
                             {'path': path, 'filename': self.filename})

    def is_complete(self, workers=None):
        """
        Checks that all the files listed in the manifest exist in the bag.
        Each missing file is logged as a warning.
        """
        check = self.check(False, workers)
        self._report_missing(check)
        return check.is_complete()

    def is_valid(self, workers=None):
        """
        Checks that all the files listed in the manifest exist in the bag and
        that their checksums match those in the manifest.  Missing files are
        logged as warnings; mismatches and disallowed entries, as errors.
        """
        check = self.check(True, workers)
        self._report_missing(check)
        for mm in check.mismatches:
            self.log.error("File %(path)s checksum in %(filename)s does not "
                           "match the file (%(mismatch)s).",
                           {'path': mm.path, 'filename': self.filename,
                            'mismatch': str(mm)})
        for path in check.disallowed:
            self.log.error("%(filename)s may not list %(path)s.",
                           {'path': path, 'filename': self.filename})
        return check.is_valid()

    def update(self, workers=None):
        """
        Update the checksums in the manifest to match the files in the bag.
        Entries for missing files (or files this kind of manifest may not
        list) are removed; entries for changed files get the new checksum.
        This changes only the in-memory manifest, not the file on disk.

        :return:  the check the update was based on
        :rtype: ManifestCheck
        """
        check = self.check(True, workers)

        hashes = OrderedDict()
        for path, hash in self._hashes.items():
            if path in check.disallowed:
                self.log.warning("%(path)s may not be listed in %(filename)s "
                                 "and will be removed from it.",
                                 {'path': path, 'filename': self.filename})
                continue
            if path in check.missing:
                self.log.warning("File %(path)s is not in the bag and will be "
                                 "removed from manifest %(filename)s.",
                                 {'path': path, 'filename': self.filename})
                continue
            computed = check.computed.get(path)
            if computed is None:
                hashes[path] = hash
                continue
            if computed != hash.lower():
                self.log.info("Hash for %(path)s does not match %(filename)s "
                              "and will be updated.",
                              {'path': path, 'filename': self.filename})
            hashes[path] = computed
        self._hashes = hashes
        return check

    def read(self, source, encoding=DEFAULT_ENCODING, filename=None):
        """
        Read a manifest file.  The algorithm is taken from the file name.
        Blank lines and comment lines (starting with '#') are ignored.

        :raises UnknownAlgorithm:  if the file name is not of the form
                                   [tag]manifest-ALG.txt
        :raises DuplicatePath:     if a path is listed twice
        """
        if filename is None:
            filename = getattr(source, 'name', None) or ''
        filename = fs.path.basename(str(filename))
        m = ANY_MANIFEST_RE.match(filename)
        if not m:
            raise UnknownAlgorithm(filename)
        self.set_algorithm(m.group(1))

        for line in self._read_content(source, encoding).splitlines():
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            entry = line.split(None, 1)
            if len(entry) != 2:
                self.log.error("%(filename)s: Invalid manifest entry: %(line)s",
                               {'filename': self.filename, 'line': line})
                continue
            self.add_file(entry[1], entry[0])

    def serialize(self):
        return "".join("{0} {1}\n".format(hash, path)
                       for path, hash in self._hashes.items())

class PayloadManifest(Manifest):
    """
    a manifest of the payload files, i.e. those under the data directory
    """
    prefix = "manifest"

    def allows(self, path):
        return path.startswith(PAYLOAD_DIR + '/')

class TagManifest(Manifest):
    """
    a manifest of the tag files: every file outside the data directory,
    including the payload manifests, but excluding all tag manifests.
    """
    prefix = "tagmanifest"

    def allows(self, path):
        if path.startswith(PAYLOAD_DIR + '/'):
            return False
        return not TAGMANIFEST_RE.match(path)
