"""
The list of remotely-stored payload files, fetch.txt.

The BagIt specification allows a payload file to be listed in the fetch file
several times with different URLs.  Downloads try the URLs for a file in the
order they are listed; once one of them yields content of the expected size
(and, optionally, with a checksum confirmed by a manifest), the remaining
URLs for that file are skipped.
"""
import re
from collections import OrderedDict
from multiprocessing.pool import ThreadPool
from urllib.parse import urlsplit

import fs.path
from fs.errors import FSError

from .base import Component
from ..constants import DEFAULT_ENCODING, FETCH_FILE, PAYLOAD_DIR
from ..exceptions import (BagError, InvalidUrl, MissingFetchPath,
                          MalformedFetchLine, DownloadVerificationFailed,
                          UnsafePath)
from ..access.adapter import is_unsafe_path

UNKNOWN_SIZE = "-"

def check_url(url):
    """
    return the given URL if it is a well-formed absolute URL
    :raises InvalidUrl:  otherwise
    """
    if not isinstance(url, str) or not url or re.search(r'\s', url):
        raise InvalidUrl(url)
    try:
        parts = urlsplit(url)
    except ValueError:
        raise InvalidUrl(url)
    if not re.match(r'^[A-Za-z][A-Za-z0-9+.-]*$', parts.scheme):
        raise InvalidUrl(url)
    if not parts.netloc and not (parts.scheme == "file" and parts.path):
        raise InvalidUrl(url)
    return url

def parse_size(size):
    """
    convert a fetch size to an int, or None if the size is unknown
    :raises ValueError:  if the size is neither unknown nor a non-negative
                         integer
    """
    if size is None or size == UNKNOWN_SIZE:
        return None
    if isinstance(size, str):
        if not size.isdigit():
            raise ValueError("Not a file size: "+size)
        return int(size)
    if isinstance(size, bool) or not isinstance(size, int) or size < 0:
        raise ValueError("Not a file size: "+repr(size))
    return size

class FetchEntry(object):
    """
    one line of the fetch file: a URL from which a payload file can be
    retrieved and the file's expected size (None if unknown).
    """

    def __init__(self, url, size, path):
        if not path:
            raise MissingFetchPath("A fetch item path is required ({0})"
                                   .format(url))
        if is_unsafe_path(path):
            raise UnsafePath(path, FETCH_FILE)
        if not fs.path.normpath(path).startswith(PAYLOAD_DIR + '/'):
            raise UnsafePath(path, FETCH_FILE,
                             'Fetch path "{0}" is not in the payload directory'
                             .format(path))
        self.url = check_url(url)
        self.size = parse_size(size)
        self.path = path

    def serialize(self):
        size = UNKNOWN_SIZE if self.size is None else str(self.size)
        return " ".join([self.url, size, self.path])

    def __eq__(self, other):
        return isinstance(other, FetchEntry) and \
               (self.url, self.size, self.path) == \
               (other.url, other.size, other.path)

    def __repr__(self):
        return "FetchEntry({0!r}, {1!r}, {2!r})".format(self.url, self.size,
                                                        self.path)

class FetchResult(object):
    """
    the outcome of resolving one fetch path
    """
    def __init__(self, path):
        self.path = path

        #: the URL the content was finally retrieved from (None on failure)
        self.url = None

        #: the number of bytes retrieved
        self.size = None

        #: (url, reason) for each URL that was tried and failed, in order
        self.attempts = []

    @property
    def succeeded(self):
        return self.url is not None

    def __str__(self):
        if self.succeeded:
            return "{0}: fetched from {1}".format(self.path, self.url)
        return "{0}: failed after {1} attempt(s)".format(self.path,
                                                         len(self.attempts))

class DownloadReport(object):
    """
    the aggregated results of downloading one or more fetch paths, in the
    order the paths were requested
    """
    def __init__(self, results):
        self.results = OrderedDict((r.path, r) for r in results)

    def __getitem__(self, path):
        return self.results[path]

    def __iter__(self):
        return iter(self.results.values())

    def __len__(self):
        return len(self.results)

    def succeeded(self):
        return [p for p, r in self.results.items() if r.succeeded]

    def failed(self):
        return [p for p, r in self.results.items() if not r.succeeded]

    def ok(self):
        return not self.failed()

class Fetch(Component):
    """
    the fetch list: for each payload path, the ordered list of FetchEntry
    instances it can be retrieved from
    """

    def __init__(self, logger=None):
        super(Fetch, self).__init__(logger)
        self._data = OrderedDict()

    @property
    def filename(self):
        return FETCH_FILE

    def clear(self):
        """
        Remove all the fetch items.
        """
        self._data = OrderedDict()

    def add_item(self, url, size, path):
        """
        add a fetch entry for a path

        :param str url:   the URL to retrieve the file from
        :param size:      the expected size in bytes, or None or "-" if unknown
        :param str path:  the path of the file relative to the bag root
        :raises InvalidUrl:        if the URL is not well-formed
        :raises MissingFetchPath:  if no path is given
        :rtype: FetchEntry
        """
        return self.add_entry(FetchEntry(url, size, path))

    def add_entry(self, entry):
        self._data.setdefault(entry.path, []).append(entry)
        return entry

    def list_files(self):
        """
        list the paths in the fetch file; a path listed with several URLs
        appears only once
        """
        return list(self._data.keys())

    def count_files(self):
        return len(self._data)

    def count_urls(self, path):
        return len(self._data.get(path, []))

    def get_entries(self, path):
        return list(self._data.get(path, []))

    def get_urls(self, path):
        """
        return the URLs for a path, in the order they were declared
        """
        return [e.url for e in self._data.get(path, [])]

    def get_size(self, path, url=None):
        """
        return the expected size of a file.  If url is None, the size given
        on the first line for the path is returned; otherwise, the size on
        the line with the matching URL.  None is returned if the size is
        unknown or the path (or URL) is not listed.
        """
        entries = self._data.get(path)
        if not entries:
            return None
        if url is None:
            return entries[0].size
        for entry in entries:
            if entry.url == url:
                return entry.size
        return None

    def has_entry(self, path, url=None):
        if url is None:
            return path in self._data
        return url in self.get_urls(path)

    def remove_path(self, path):
        if path in self._data:
            del self._data[path]

    def _retrieve(self, entry, client, verify, timeout):
        if entry.size is not None:
            reported = client.head(entry.url, timeout=timeout)
            if reported is not None and reported != entry.size:
                raise DownloadVerificationFailed(entry.url,
                    "{0}: expected {1} bytes but the server reports {2}"
                    .format(entry.url, entry.size, reported))

        content = client.get(entry.url, timeout=timeout)
        if entry.size is not None and len(content) != entry.size:
            raise DownloadVerificationFailed(entry.url,
                "{0}: expected {1} bytes but received {2}"
                .format(entry.url, entry.size, len(content)))
        if verify is not None and not verify(entry.path, content):
            raise DownloadVerificationFailed(entry.url,
                "{0}: content does not match the manifest checksum for {1}"
                .format(entry.url, entry.path))
        return content

    def _resolve(self, path, client, verify, store, timeout):
        result = FetchResult(path)
        for entry in self._data[path]:
            try:
                content = self._retrieve(entry, client, verify, timeout)
            except (BagError, OSError, FSError) as ex:
                self.log.warning("Unable to fetch %(path)s from %(url)s: "
                                 "%(error)s", {'path': path, 'url': entry.url,
                                               'error': str(ex)})
                result.attempts.append((entry.url, str(ex)))
                continue

            if store is not None:
                try:
                    store(path, content)
                except (BagError, OSError, FSError) as ex:
                    # a save failure ends the attempts for this path
                    self.log.error("Unable to save %(path)s fetched from "
                                   "%(url)s: %(error)s",
                                   {'path': path, 'url': entry.url,
                                    'error': str(ex)})
                    result.attempts.append((entry.url, "unable to save: " +
                                            str(ex)))
                    return result
            result.url = entry.url
            result.size = len(content)
            self.log.info("Fetched %(path)s from %(url)s",
                          {'path': path, 'url': entry.url})
            return result

        self.log.error("Failed to fetch %(path)s from any of its %(count)d "
                       "URL(s)", {'path': path, 'count': len(result.attempts)})
        return result

    def download(self, client, path=None, verify=None, store=None,
                 timeout=None, workers=1):
        """
        retrieve the content for one or all of the paths in the fetch list.

        For each path, the URLs are tried in declared order until one of them
        passes every check: the size reported by client.head() and the size
        of the content from client.get() must equal the declared size (unless
        it is unknown), and verify(path, content), if given, must return True.
        Failure of one path does not stop the others.

        :param client:   the HTTP collaborator, e.g. an HttpClient
        :param str path: the path to retrieve; if None, all paths are.
        :param verify:   a function taking a path and content (bytes) that
                         returns True if the content is acceptable
        :param store:    a function taking a path and content that saves the
                         content that was accepted
        :param float timeout:  seconds allowed for each request
        :param int workers:  the number of paths to resolve concurrently
        :raises MissingFetchPath:  if path is given but not in the fetch list
        :rtype: DownloadReport
        """
        if path is None:
            paths = self.list_files()
        elif path not in self._data:
            raise MissingFetchPath("No fetch entry for path: "+path)
        else:
            paths = [path]

        def resolve(p):
            return self._resolve(p, client, verify, store, timeout)

        if not workers or workers == 1 or len(paths) < 2:
            results = [resolve(p) for p in paths]
        else:
            pool = ThreadPool(min(workers, len(paths)))
            try:
                results = pool.map(resolve, paths)
            finally:
                pool.terminate()

        return DownloadReport(results)

    def read(self, source, encoding=DEFAULT_ENCODING, filename=None):
        """
        Read the fetch data.  Each non-blank line has the form
        "URL SIZE PATH", where SIZE may be "-" when unknown.

        :raises MalformedFetchLine:  if a line does not have this form
        :raises InvalidUrl:          if a URL is not well-formed
        """
        for line in self._read_content(source, encoding).splitlines():
            line = line.strip()
            if not line:
                continue
            parts = line.split(None, 2)
            if len(parts) != 3:
                raise MalformedFetchLine(line)
            url, size, path = parts
            try:
                self.add_item(url, size, path)
            except ValueError as ex:
                raise MalformedFetchLine(line, "Malformed fetch line ({0}): {1}"
                                         .format(str(ex), line))

    def serialize(self):
        return "".join(e.serialize() + "\n"
                       for entries in self._data.values() for e in entries)
