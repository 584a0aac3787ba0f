"""
This module provides the Bag class, the primary interface for reading,
checking, updating and writing a bag.

A Bag holds the parsed forms of the bag's tag files (the declaration, the
metadata, the manifests and the fetch list) and reaches the bag's files
through a StorageAdapter, so that the same operations apply whether the bag
is a directory or an archive file.  Changes made through a Bag live in memory
until write() is called.
"""
import os, logging
from collections import OrderedDict

import fs.path

from .access.adapter import (open_adapter, is_archive, is_unsafe_path,
                             DirectoryAdapter)
from .checksums import default_provider
from .components.declaration import Declaration
from .components.metadata import Metadata
from .components.manifest import PayloadManifest, TagManifest
from .components.fetch import Fetch
from .constants import (DEFAULT_ENCODING, DEFAULT_WORKERS, DEFAULT_TIMEOUT,
                        DECLARATION_FILE, METADATA_FILE, LEGACY_METADATA_FILE,
                        FETCH_FILE, PAYLOAD_DIR, MANIFEST_RE, TAGMANIFEST_RE,
                        ANY_MANIFEST_RE)
from .exceptions import (BagError, ComponentNotFound, ReadOnlyBagError,
                         UnsafePath)
from .transport import HttpClient
from .validate import BagValidator, PROB

log = logging.getLogger(__name__)

OXUM_KEY = "Payload-Oxum"

class Bag(object):
    """
    a bag: a payload plus the tag files that describe it.

    A new Bag is empty and exists only in memory; use Bag.open() (or
    open_bag()) to load an existing bag.
    """

    def __init__(self, logger=None, provider=None, client=None, workers=None,
                 timeout=None):
        """
        :param Logger logger:  the logger to send messages to; if not given,
                               each part uses its module's logger.
        :param ChecksumProvider provider:  the checksum implementation
        :param client:         the HTTP collaborator used to download fetch
                               items; an HttpClient is created when needed
                               if not given.
        :param int workers:    the number of threads used for checking files
                               and downloading
        :param float timeout:  the seconds allowed for each download attempt
        """
        self._logger = logger
        self.log = logger or log
        self.provider = provider or default_provider
        self.client = client
        self.workers = workers or DEFAULT_WORKERS
        self.timeout = timeout or DEFAULT_TIMEOUT

        self.adapter = None
        self.declaration = Declaration(logger)
        self.metadata = Metadata(logger)
        self.fetch = Fetch(logger)
        self._payload_manifests = OrderedDict()
        self._tag_manifests = OrderedDict()
        self._removed_manifests = set()

    @classmethod
    def open(cls, location, **kw):
        """
        read the bag at the given location, either a directory or an archive
        file.  Keywords are passed to the constructor.
        """
        bag = cls(**kw)
        bag.read(location)
        return bag

    @property
    def name(self):
        """
        the name of the bag's root directory, or None if it is not attached
        to storage
        """
        if self.adapter is None:
            return None
        return self.adapter.name

    @property
    def payload_dir(self):
        return PAYLOAD_DIR

    def __str__(self):
        if self.adapter is None:
            return "Bag(in memory)"
        return str(self.adapter)

    def _require_adapter(self, what):
        if self.adapter is None:
            raise BagError("Unable to {0}: the bag has not been read from or "
                           "written to storage".format(what))
        return self.adapter

    def _require_writable(self, what):
        adapter = self._require_adapter(what)
        if not adapter.writable:
            raise ReadOnlyBagError("Unable to {0}: {1} is read-only"
                                   .format(what, str(adapter)))
        return adapter

    def _bind(self, adapter):
        self.adapter = adapter
        for manifest in self._all_manifests():
            manifest.adapter = adapter

    def _all_manifests(self):
        return list(self._payload_manifests.values()) + \
               list(self._tag_manifests.values())

    def _new_manifest(self, cls, algorithm):
        return cls(algorithm, self.adapter, self.provider, self._logger,
                   self.workers)

    def _read_manifests(self, adapter, cls, pattern, encoding):
        out = OrderedDict()
        for filename in sorted(adapter.list_files(pattern=pattern, depth=1)):
            algorithm = pattern.match(filename).group(1)
            if not self.provider.supports(algorithm):
                self.log.warning("Skipping %(filename)s: unsupported checksum "
                                 "algorithm %(algorithm)s",
                                 {'filename': filename, 'algorithm': algorithm})
                continue
            out[algorithm] = adapter.get_component(cls, filename,
                                                   encoding=encoding,
                                                   adapter=adapter,
                                                   provider=self.provider,
                                                   logger=self._logger,
                                                   workers=self.workers)
        return out

    def read(self, location):
        """
        load the bag at the given location, replacing this bag's content.

        :raises ComponentNotFound:  if the bag has no declaration
        :raises BagError:           if a tag file cannot be parsed
        """
        adapter = open_adapter(location, self._logger)
        try:
            declaration = adapter.get_component(Declaration, DECLARATION_FILE,
                    "Not a bag: missing declaration file, "+DECLARATION_FILE,
                    logger=self._logger)
            encoding = declaration.encoding
            tagfile = declaration.tag_file_name
            metadata = adapter.get_component(Metadata, tagfile,
                                             encoding=encoding,
                                             logger=self._logger,
                                             filename=tagfile)
            fetch = adapter.get_component(Fetch, FETCH_FILE, encoding=encoding,
                                          logger=self._logger)
            payload = self._read_manifests(adapter, PayloadManifest,
                                           MANIFEST_RE, encoding)
            tag = self._read_manifests(adapter, TagManifest, TAGMANIFEST_RE,
                                       encoding)
        except Exception:
            adapter.close()
            raise

        if self.adapter is not None:
            self.adapter.close()
        self.declaration = declaration
        self.metadata = metadata
        self.fetch = fetch
        self._payload_manifests = payload
        self._tag_manifests = tag
        self._removed_manifests = set()
        self._bind(adapter)
        self.log.debug("Read bag %(bag)s", {'bag': str(adapter)})

    def close(self):
        """
        release the storage this bag is attached to
        """
        if self.adapter is not None:
            self.adapter.close()

    # Declaration

    @property
    def version(self):
        return self.declaration.version

    def set_version(self, version):
        self.declaration.set_version(version)

    @property
    def encoding(self):
        return self.declaration.encoding

    def set_encoding(self, encoding):
        self.declaration.set_encoding(encoding)

    # Payload files

    def _payload_path(self, path):
        path = path.lstrip('/')
        if not path.startswith(PAYLOAD_DIR + '/'):
            path = PAYLOAD_DIR + '/' + path
        return path

    def list_payload_files(self, include_fetch=False):
        """
        return the paths of the payload files, each starting with 'data/'.

        :param bool include_fetch:  if True, also include the files listed in
                                    the fetch file that are not present yet.
        """
        files = []
        if self.adapter is not None:
            files = list(self.adapter.list_files(start=PAYLOAD_DIR))
        if include_fetch:
            present = set(files)
            files += [p for p in self.fetch.list_files() if p not in present]
        return files

    def has_payload_file(self, path, include_fetch=False):
        """
        return True if the payload file exists.  The 'data/' prefix is added
        to path if necessary.
        """
        path = self._payload_path(path)
        if self.adapter is not None and self.adapter.isfile(path):
            return True
        return include_fetch and self.fetch.has_entry(path)

    def count_payload_files(self, include_fetch=False):
        return len(self.list_payload_files(include_fetch))

    def _payload_target(self, path):
        path = self._payload_path(path)
        if is_unsafe_path(path) or \
           not fs.path.normpath(path).startswith(PAYLOAD_DIR + '/'):
            raise UnsafePath(path, message="Not a payload file path: "+path)
        return fs.path.normpath(path)

    def _put_file(self, path, content, replace, manifests):
        adapter = self._require_writable("write " + path)
        exists = adapter.isfile(path)
        if replace and not exists:
            raise BagError("Unable to replace {0}: no such file in {1}"
                           .format(path, str(adapter)))
        if not replace and adapter.exists(path):
            raise BagError("Unable to add {0}: it already exists in {1}"
                           .format(path, str(adapter)))
        if hasattr(content, 'read'):
            content = content.read()
        if isinstance(content, str):
            content = content.encode(self.encoding)

        adapter.write_bytes(path, content)
        for manifest in manifests:
            manifest.update_file(path)
        self.log.debug("%(action)s %(path)s",
                       {'action': (replace and "Replaced") or "Added",
                        'path': path})

    def add_payload_file(self, path, content):
        """
        write a new file into the payload and record its checksum in each
        payload manifest.  The 'data/' prefix is added to path if necessary.

        :param content:  the file's content as bytes, a str (encoded with the
                         bag's tag-file encoding) or a binary file object
        :raises BagError:  if the file already exists
        :raises ReadOnlyBagError:  if the bag's storage cannot be written to
        """
        self._put_file(self._payload_target(path), content, False,
                       self._payload_manifests.values())

    def replace_payload_file(self, path, content):
        """
        overwrite an existing payload file and update its checksums in the
        payload manifests.

        :raises BagError:  if the file does not exist
        """
        self._put_file(self._payload_target(path), content, True,
                       self._payload_manifests.values())

    def remove_payload_file(self, path, include_fetch=False):
        """
        delete a payload file and remove it from the payload manifests.

        :param bool include_fetch:  if True, also remove the file's entries
                          from the fetch list; a file that is only listed
                          there (not downloaded) is then removed from the
                          bag as well.
        :raises BagError:  if the file is not in the bag
        """
        path = self._payload_target(path)
        adapter = self._require_writable("remove " + path)
        fetched = include_fetch and self.fetch.has_entry(path)
        if adapter.isfile(path):
            adapter.remove(path)
        elif not fetched:
            raise BagError("Unable to remove {0}: no such file in {1}"
                           .format(path, str(adapter)))
        for manifest in self._payload_manifests.values():
            manifest.remove_file(path)
        if fetched:
            self.fetch.remove_path(path)

    def get_payload_file(self, path):
        """
        return a binary file object for reading a payload file.  The caller
        should close it.

        :raises ComponentNotFound:  if the file is not in the bag
        """
        path = self._payload_path(path)
        adapter = self._require_adapter("read " + path)
        if not adapter.isfile(path):
            raise ComponentNotFound(path, "No such payload file: "+path)
        return adapter.open_bin_file(path)

    # Manifests

    def _add_unlisted(self, manifest, files):
        for path in files:
            if manifest.allows(path) and not manifest.has_file(path):
                self.log.info("Adding %(path)s to %(filename)s",
                              {'path': path, 'filename': manifest.filename})
                manifest.add_file(path)

    def _tag_files_for_manifest(self):
        return [f for f in self.list_tag_files() if not TAGMANIFEST_RE.match(f)]

    def add_payload_manifest(self, algorithm):
        """
        add a payload manifest for the given algorithm and return it.  If the
        bag is attached to storage, the new manifest lists all of the payload
        files.  If a manifest for the algorithm exists already, it is returned
        unchanged.

        :raises UnsupportedAlgorithm:  if the algorithm is not supported
        """
        if algorithm in self._payload_manifests:
            return self._payload_manifests[algorithm]
        manifest = self._new_manifest(PayloadManifest, algorithm)
        self._removed_manifests.discard(manifest.filename)
        if self.adapter is not None:
            self._add_unlisted(manifest, self.list_payload_files())
        self._payload_manifests[algorithm] = manifest
        return manifest

    def remove_payload_manifest(self, algorithm):
        """
        remove the payload manifest for the given algorithm.  Its file is
        deleted when the bag is written.
        """
        manifest = self._payload_manifests.pop(algorithm, None)
        if manifest is not None:
            self._removed_manifests.add(manifest.filename)

    def has_payload_manifest(self, algorithm):
        return algorithm in self._payload_manifests

    def get_payload_manifest(self, algorithm):
        """
        return the payload manifest for the algorithm, or None if there is
        none
        """
        return self._payload_manifests.get(algorithm)

    def list_payload_manifests(self):
        """
        return the algorithms of the payload manifests
        """
        return list(self._payload_manifests.keys())

    def count_payload_manifests(self):
        return len(self._payload_manifests)

    def list_payload_manifest_content(self, algorithm):
        """
        return the paths listed in the payload manifest for the algorithm
        (empty if there is no such manifest)
        """
        if algorithm not in self._payload_manifests:
            return []
        return self._payload_manifests[algorithm].list_files()

    def get_payload_checksum(self, algorithm, path):
        """
        return the checksum recorded for a payload file, or None if there is
        no such manifest or the file is not listed in it
        """
        if algorithm not in self._payload_manifests:
            return None
        return self._payload_manifests[algorithm].get_hash(path)

    def update_payload_manifests(self):
        """
        bring the payload manifests up to date with the payload: checksums of
        changed files are replaced, missing files removed and unlisted files
        added.  Only the in-memory manifests are changed.
        """
        self._require_adapter("update the payload manifests")
        files = self.list_payload_files()
        for manifest in self._payload_manifests.values():
            manifest.update(self.workers)
            self._add_unlisted(manifest, files)

    def add_tag_manifest(self, algorithm):
        """
        add a tag manifest for the given algorithm and return it.  If the bag
        is attached to storage, the new manifest lists all of the tag files
        except the tag manifests.  If a manifest for the algorithm exists
        already, it is returned unchanged.
        """
        if algorithm in self._tag_manifests:
            return self._tag_manifests[algorithm]
        manifest = self._new_manifest(TagManifest, algorithm)
        self._removed_manifests.discard(manifest.filename)
        if self.adapter is not None:
            self._add_unlisted(manifest, self._tag_files_for_manifest())
        self._tag_manifests[algorithm] = manifest
        return manifest

    def remove_tag_manifest(self, algorithm):
        """
        remove the tag manifest for the given algorithm.  Its file is deleted
        when the bag is written.
        """
        manifest = self._tag_manifests.pop(algorithm, None)
        if manifest is not None:
            self._removed_manifests.add(manifest.filename)

    def has_tag_manifest(self, algorithm):
        return algorithm in self._tag_manifests

    def get_tag_manifest(self, algorithm):
        return self._tag_manifests.get(algorithm)

    def list_tag_manifests(self):
        return list(self._tag_manifests.keys())

    def count_tag_manifests(self):
        return len(self._tag_manifests)

    def list_tag_manifest_content(self, algorithm):
        if algorithm not in self._tag_manifests:
            return []
        return self._tag_manifests[algorithm].list_files()

    def get_tag_checksum(self, algorithm, path):
        if algorithm not in self._tag_manifests:
            return None
        return self._tag_manifests[algorithm].get_hash(path)

    def update_tag_manifests(self):
        """
        bring the tag manifests up to date with the tag files as they exist in
        storage.  Only the in-memory manifests are changed.
        """
        self._require_adapter("update the tag manifests")
        files = self._tag_files_for_manifest()
        for manifest in self._tag_manifests.values():
            manifest.update(self.workers)
            self._add_unlisted(manifest, files)

    # Metadata

    def has_metadata(self):
        return self.metadata.count_keys() > 0

    def add_metadata(self, key, value):
        self.metadata.add_data(key, value)

    def set_metadata(self, key, value):
        self.metadata.set_data(key, value)

    def get_metadata(self, key, default=None):
        return self.metadata.get_data(key, default)

    def remove_metadata(self, key):
        self.metadata.unset_data(key)

    def has_metadata_key(self, key):
        return self.metadata.has_data(key)

    def count_metadata_keys(self):
        return self.metadata.count_keys()

    def count_metadata_values(self, key):
        return self.metadata.count_values(key)

    def list_metadata_keys(self):
        return self.metadata.list_keys()

    def clear_metadata(self):
        self.metadata.clear_data()

    def calc_oxum(self):
        """
        compute the Payload-Oxum value, "OCTETS.COUNT", for the payload files
        present in storage
        """
        adapter = self._require_adapter("compute the Payload-Oxum")
        files = self.list_payload_files()
        size = sum(adapter.sizeof(f) for f in files)
        return "{0}.{1}".format(size, len(files))

    def update_oxum(self):
        """
        set the Payload-Oxum metadata to match the payload
        """
        self.metadata.set_data(OXUM_KEY, self.calc_oxum())

    # Tag files

    def list_tag_files(self):
        """
        return the paths of all the files outside the payload directory
        """
        if self.adapter is None:
            return []
        return list(self.adapter.list_files(exclude=[PAYLOAD_DIR]))

    def _tag_path(self, path, changing=False):
        if is_unsafe_path(path.lstrip('/')):
            raise UnsafePath(path)
        path = fs.path.normpath(path.lstrip('/'))
        if path == PAYLOAD_DIR or path.startswith(PAYLOAD_DIR + '/'):
            raise BagError("Not a tag file: "+path)
        if changing and (path in (DECLARATION_FILE, METADATA_FILE,
                                  LEGACY_METADATA_FILE, FETCH_FILE) or
                         ANY_MANIFEST_RE.match(path)):
            raise BagError("{0} is managed by the Bag; update it through its "
                           "component instead".format(path))
        return path

    def has_tag_file(self, path):
        """
        return True if the given file exists outside the payload directory
        """
        path = path.lstrip('/')
        if self.adapter is None or path.startswith(PAYLOAD_DIR + '/'):
            return False
        return self.adapter.isfile(path)

    def add_tag_file(self, path, content):
        """
        write a new tag file, e.g. a file of supplementary metadata, and
        record its checksum in each tag manifest.

        :param content:  the file's content as bytes, a str (encoded with the
                         bag's tag-file encoding) or a binary file object
        :raises BagError:  if the file already exists, lies in the payload
                           directory, or is one of the standard BagIt files
        :raises ReadOnlyBagError:  if the bag's storage cannot be written to
        """
        self._put_file(self._tag_path(path, True), content, False,
                       self._tag_manifests.values())

    def replace_tag_file(self, path, content):
        """
        overwrite an existing tag file and update its checksums in the tag
        manifests.
        """
        self._put_file(self._tag_path(path, True), content, True,
                       self._tag_manifests.values())

    def remove_tag_file(self, path):
        """
        delete a tag file and remove it from the tag manifests
        """
        path = self._tag_path(path, True)
        adapter = self._require_writable("remove " + path)
        if not adapter.isfile(path):
            raise BagError("Unable to remove {0}: no such file in {1}"
                           .format(path, str(adapter)))
        adapter.remove(path)
        for manifest in self._tag_manifests.values():
            manifest.remove_file(path)

    def get_tag_file(self, path):
        """
        return a binary file object for reading a tag file

        :raises ComponentNotFound:  if the file is not in the bag
        """
        path = self._tag_path(path)
        adapter = self._require_adapter("read " + path)
        if not adapter.isfile(path):
            raise ComponentNotFound(path, "No such tag file: "+path)
        return adapter.open_bin_file(path)

    # Fetch

    def has_fetch_file(self):
        """
        return True if the bag lists any files to fetch
        """
        return self.fetch.count_files() > 0

    def list_fetch_files(self):
        """
        list the remote files; a file listed with several URLs is reported
        once
        """
        return self.fetch.list_files()

    def count_fetch_files(self):
        return self.fetch.count_files()

    def get_fetch_urls(self, path):
        return self.fetch.get_urls(self._payload_path(path))

    def get_fetch_size(self, path, url=None):
        return self.fetch.get_size(self._payload_path(path), url)

    def add_fetch(self, path, url, size=None):
        """
        add an entry to the fetch list.  This does not upload anything.

        :param str path:  the path of the file in the bag; the 'data/' prefix
                          is added if necessary.
        :param str url:   the URL for the file
        :param int size:  the expected size of the file, if known
        """
        return self.fetch.add_item(url, size, self._payload_path(path))

    def has_fetch(self, path, url=None):
        """
        return True if there is a fetch entry for the path (and, if given, the
        URL)
        """
        return self.fetch.has_entry(self._payload_path(path), url)

    def count_fetch(self, path=None):
        """
        count the fetch entries, either all of them or those for one path
        """
        if path is None:
            return sum(self.fetch.count_urls(p) for p in self.fetch.list_files())
        return self.fetch.count_urls(self._payload_path(path))

    def _verify_download(self, path, content):
        listed = False
        for algorithm, manifest in self._payload_manifests.items():
            expected = manifest.get_hash(path)
            if expected is None:
                continue
            listed = True
            if self.provider.digest(algorithm, content) != expected.lower():
                return False
        if not listed:
            self.log.warning("%(path)s is not listed in any payload manifest; "
                             "unable to confirm its checksum", {'path': path})
        return listed

    def _store_download(self, path, content):
        self.adapter.write_bytes(path, content)

    def download_fetch(self, path=None, check_manifest=False, timeout=None):
        """
        download the files in the fetch list into the bag's payload.  For each
        file, the URLs are tried in order and only the first successful
        download is kept.

        :param str path:  the file to download; if None, all of the fetch
                          files are downloaded.
        :param bool check_manifest:  if True, a download counts as successful
                          only if its checksum matches the payload manifests.
        :param float timeout:  the seconds allowed for each attempt
        :rtype: DownloadReport
        :raises ReadOnlyBagError:  if the bag's storage cannot be written to
        """
        self._require_writable("download fetch files")
        if path is not None:
            path = self._payload_path(path)
        if self.client is None:
            self.client = HttpClient(timeout=self.timeout)

        verify = (check_manifest and self._verify_download) or None
        report = self.fetch.download(self.client, path, verify,
                                     self._store_download,
                                     timeout or self.timeout, self.workers)
        if report.failed():
            self.log.warning("%(count)d fetch file(s) could not be downloaded",
                             {'count': len(report.failed())})
        return report

    def remove_fetch_files(self):
        """
        delete the downloaded copies of the files in the fetch list from the
        bag's payload.  The manifests are not changed.
        """
        adapter = self._require_writable("remove fetch files")
        for path in self.fetch.list_files():
            if adapter.isfile(path):
                adapter.remove(path)

    def remove_fetch_file(self):
        """
        empty the fetch list, e.g. after its files have been downloaded.  The
        fetch file is removed when the bag is written.
        """
        self.fetch.clear()

    # Checks

    def is_complete(self):
        """
        return True if every file listed in the manifests exists.  Missing
        files are logged.
        """
        self._require_adapter("check completeness")
        return all([m.is_complete(self.workers) for m in self._all_manifests()])

    def is_valid(self):
        """
        return True if the bag has at least one payload manifest and every
        file listed in the manifests exists with the recorded checksum.
        Problems are logged.
        """
        self._require_adapter("check validity")
        if not self._payload_manifests:
            self.log.error("%(bag)s has no payload manifest",
                           {'bag': str(self)})
            return False
        return all([m.is_valid(self.workers) for m in self._all_manifests()])

    def validate(self, want=PROB):
        """
        apply all of the BagIt checks to the bag and return the results.
        :rtype: ValidationResults
        """
        self._require_adapter("validate")
        return BagValidator(self).validate(want)

    def ensure_valid(self, want=PROB):
        """
        apply all of the BagIt checks to the bag
        :raises BagValidationError:  if any of the requested checks fail
        """
        self._require_adapter("validate")
        return BagValidator(self).ensure_valid(want)

    def update(self):
        """
        bring all the manifests up to date with the bag's files.  This does
        not change anything in storage.
        """
        self.update_payload_manifests()
        self.update_tag_manifests()

    # Persistence

    def _same_location(self, adapter, path):
        if not isinstance(adapter, DirectoryAdapter) or '://' in adapter.location:
            return False
        return os.path.realpath(adapter.location) == os.path.realpath(path)

    def _write_or_remove(self, target, filename, content):
        if content:
            target.write_text(filename, content, self.encoding)
        else:
            target.remove(filename)

    def write(self, path):
        """
        write the bag to a directory.  If the bag was read from another
        location, its payload and other tag files are copied there first.
        The tag manifests are brought up to date with the written tag files,
        and afterward the bag is attached to the written directory.

        :param str path:  the directory to write to; it is created if needed.
        :raises BagError:  if path names an archive file
        """
        if is_archive(path):
            raise BagError("Writing a bag into an archive is not supported: "+
                           path)
        source = self.adapter
        if source is not None and self._same_location(source, path):
            target = source
        else:
            target = DirectoryAdapter(path, create=True, logger=self._logger)
        if not target.writable:
            raise ReadOnlyBagError("Unable to write to "+str(target))

        regenerated = set([DECLARATION_FILE, METADATA_FILE,
                           LEGACY_METADATA_FILE, FETCH_FILE])
        managed = set(m.filename for m in self._all_manifests())
        if source is not None and target is not source:
            for f in source.list_files():
                if f in regenerated or f in managed or \
                   f in self._removed_manifests:
                    continue
                target.copy_from(source, f)
        target.makedirs(PAYLOAD_DIR)

        target.write_text(DECLARATION_FILE, self.declaration.serialize(),
                          DEFAULT_ENCODING)
        tagfile = self.declaration.tag_file_name
        for name in (METADATA_FILE, LEGACY_METADATA_FILE):
            if name != tagfile:
                target.remove(name)
        self._write_or_remove(target, tagfile, self.metadata.serialize())
        self._write_or_remove(target, FETCH_FILE, self.fetch.serialize())

        for f in self._removed_manifests:
            target.remove(f)
        self._removed_manifests = set()

        for manifest in self._payload_manifests.values():
            target.write_text(manifest.filename, manifest.serialize(),
                              self.encoding)

        if source is not None and target is not source:
            source.close()
        self._bind(target)

        files = self._tag_files_for_manifest()
        for manifest in self._tag_manifests.values():
            manifest.update(self.workers)
            self._add_unlisted(manifest, files)
            target.write_text(manifest.filename, manifest.serialize(),
                              self.encoding)
        self.log.info("Wrote bag to %(path)s", {'path': path})

def open_bag(location, **kw):
    """
    read the bag at the given location, either a directory or an archive
    file, and return it as a Bag.  Keywords are passed to the Bag
    constructor.
    """
    return Bag.open(location, **kw)
