"""
Storage adapters that give a bag uniform access to its files whether the bag
is an ordinary directory or has been serialized into an archive (zip, tar,
etc.).

Both variants are built on the fs (PyFilesystem2) module.  The bag's root
directory is wrapped as a Path whose filesystem is rooted at the bag's base
directory, so all paths handled by an adapter are relative to the bag root and
use '/' as the delimiter.  For an archive, the bag usually sits one directory
level below the top of the archive; the adapter opens that directory as a
sub-filesystem, which absorbs the extra container level so that listings and
depth limits mean the same thing for both variants.

The open_adapter() factory function is the recommended way to get an adapter
for a location.
"""
import os, re, logging
from abc import ABCMeta, abstractmethod

import fs.osfs, fs.zipfs, fs.tarfs
import fs.path
from fs import open_fs
from fs.copy import copy_file
from fs.errors import ResourceNotFound, IllegalBackReference

from ..constants import DECLARATION_FILE, DEFAULT_ENCODING
from ..exceptions import BagError, ComponentNotFound, ReadOnlyBagError, UnsafePath

log = logging.getLogger(__name__)

class Path(object):
    """
    A container class for pointing to a path within a specific FS instance
    """
    def __init__(self, filesys, path, prefix=None):
        """
        wrap a path within a filesystem
        :param FS   filesys:  the filesystem where the path is located
        :param str     path:  the path to the location within the filesystem
        :param str   prefix:  a label representing the filesystem, prepended
                              to the path in the string form of this Path.
                              It should include any desired delimiters.
        """
        self.fs = filesys
        self.path = str(path)
        if prefix is None:
            prefix = repr(filesys) + ":"
        self._pfx = prefix

    def subfspath(self, reldir=None):
        """
        return a Path whose filesystem is rooted at a subdirectory of this
        path (or, if reldir is empty, at this path itself).

        :raises fs.errors.DirectoryExpected: if the target is not a directory
        """
        target = self.path
        if reldir:
            target = fs.path.join(target, reldir)
        if not target.strip('/'):
            return Path(self.fs, "", self._pfx)
        return Path(self.fs.opendir(target), "",
                    self._pfx + target.strip('/') + '/')

    def __str__(self):
        return "{0}{1}".format(self._pfx, self.path)

    def __repr__(self):
        return "{0}:{1}".format(repr(self.fs), self.path)

def is_unsafe_path(path):
    """
    Return true if path looks dangerous, i.e. potentially operates
    outside the bag's directory structure, e.g. ~/.bashrc, ../../secrets.json,
    /etc/passwd, D:\\sys32\\cmd.exe
    """
    if not path:
        return True
    if fs.path.isabs(path) or path.startswith('~'):
        return True
    if re.match(r'^[A-Za-z]:[\\/]', path):
        return True
    try:
        norm = fs.path.normpath(path)
    except IllegalBackReference:
        return True
    return norm == '..' or norm.startswith('../')

class FileListing(object):
    """
    a lazy, restartable sequence of the files found in a bag.  The storage is
    walked afresh each time the listing is iterated; paths are returned
    relative to the bag's root directory.
    """

    def __init__(self, adapter, pattern=None, depth=None, exclude=None,
                 start=None):
        """
        :param StorageAdapter adapter:  the storage to walk
        :param pattern:  a regular expression (str or compiled) that a file's
                         base name must match to be included
        :param int depth:  the number of directory levels below start to
                         descend into; 1 means only files directly in start.
                         None means no limit.
        :param exclude:  a list of directory paths (relative to the bag root)
                         whose contents should be skipped
        :param str start:  the directory (relative to the bag root) to list;
                         if not set, the whole bag is listed.
        """
        if isinstance(pattern, str):
            pattern = re.compile(pattern)
        if depth is not None and depth < 1:
            raise ValueError("FileListing: depth must be at least 1: " +
                             str(depth))
        self.adapter = adapter
        self.pattern = pattern
        self.depth = depth
        self.exclude = [e.strip('/') for e in (exclude or [])]
        self.start = (start or '').strip('/')

    def _excluded(self, path):
        for e in self.exclude:
            if path == e or path.startswith(e + '/'):
                return True
        return False

    def _accept(self, path):
        if self._excluded(path):
            return False
        if self.pattern and not self.pattern.search(fs.path.basename(path)):
            return False
        return True

    def __iter__(self):
        fsys = self.adapter.root.fs
        base = self.start
        if base and not fsys.isdir(base):
            return

        pfx = (base and base + '/') or ''
        for info in fsys.scandir(base or '/'):
            path = pfx + info.name
            if not info.is_dir:
                if self._accept(path):
                    yield path
                continue
            if self._excluded(path) or self.depth == 1:
                continue

            depth = self.depth and self.depth - 1
            for f in fsys.walk.files(path, max_depth=depth):
                f = f.lstrip('/')
                if self._accept(f):
                    yield f

    def __contains__(self, path):
        return any(p == path for p in self)

class StorageAdapter(object, metaclass=ABCMeta):
    """
    the interface for accessing the files of a bag.

    Subclasses provide the root Path; this base class implements the
    read operations on top of it.  Write operations are refused unless a
    subclass enables them.
    """

    #: True if files can be read concurrently from separate threads
    parallel_reads = True

    #: True if the write operations are supported
    writable = False

    def __init__(self, root, location, logger=None):
        """
        :param Path root:      the bag's root directory, as a Path whose
                               path attribute is empty
        :param str location:   the location the bag was opened from
        :param Logger logger:  the logger to send messages to
        """
        self._root = root
        self.location = location
        self.log = logger or log

    @property
    def root(self):
        """
        the Path for the bag's root directory
        """
        return self._root

    @property
    @abstractmethod
    def name(self):
        """
        the name of the bag (i.e. its nominal base directory)
        """
        raise NotImplementedError()

    def __str__(self):
        return str(self._root)

    def exists(self, path):
        """
        return True if the given path exists within the bag.
        :param str path:  a path relative to the bag's root directory
        """
        if is_unsafe_path(path):
            return False
        return self._root.fs.exists(path)

    def isfile(self, path):
        """
        return True if the given path exists as a file within the bag.
        """
        if is_unsafe_path(path):
            return False
        return self._root.fs.isfile(path)

    def isdir(self, path):
        """
        return True if the given path exists as a directory within the bag.
        """
        if is_unsafe_path(path):
            return False
        return self._root.fs.isdir(path)

    def sizeof(self, path):
        """
        return the size of the file in bytes located at the give path
        :raises OSError:  if the file does not exist
        """
        try:
            info = self._root.fs.getinfo(path, namespaces=['details'])
        except ResourceNotFound:
            raise OSError(2, "File not found: "+path)
        return info.size

    def _safe(self, path):
        if is_unsafe_path(path):
            raise UnsafePath(path, str(self))
        return path

    def open_bin_file(self, path):
        """
        return a binary file object opened for reading the file at the given
        path relative to the bag's root directory.
        """
        return self._root.fs.openbin(self._safe(path), 'r')

    def open_text_file(self, path, encoding=DEFAULT_ENCODING, errors='strict'):
        """
        return a text file object opened for reading the file at the given
        path relative to the bag's root directory.
        """
        return self._root.fs.open(self._safe(path), 'r', encoding=encoding,
                                  errors=errors)

    def list_files(self, pattern=None, depth=None, exclude=None, start=None):
        """
        return a lazy listing of the files in the bag.  See FileListing for
        the meaning of the parameters.
        :rtype: FileListing
        """
        return FileListing(self, pattern, depth, exclude, start)

    def get_component(self, cls, path, missing_message=None,
                      encoding=DEFAULT_ENCODING, **kw):
        """
        create a bag component and load it from the file with the given path.

        :param type cls:   the Component class to instantiate; kw are passed
                           to its constructor.
        :param str path:   the location of the component's file relative to
                           the bag root
        :param str missing_message:  if given and the file does not exist,
                           raise ComponentNotFound with this message;
                           otherwise, an empty component is returned.
        :param str encoding:  the encoding to read the file with
        :raises ComponentNotFound:  if the file is required but missing
        """
        component = cls(**kw)
        if self.isfile(path):
            with self.open_bin_file(path) as fd:
                component.read(fd, encoding, filename=fs.path.basename(path))
        elif missing_message:
            raise ComponentNotFound(path, missing_message)
        return component

    def _refuse(self, what):
        raise ReadOnlyBagError("Unable to {0} as the bag at {1} was opened "
                               "read-only".format(what, str(self)))

    def write_text(self, path, content, encoding=DEFAULT_ENCODING):
        self._refuse("write "+path)

    def write_bytes(self, path, content):
        self._refuse("write "+path)

    def remove(self, path):
        self._refuse("remove "+path)

    def copy_from(self, source, path):
        self._refuse("copy "+path)

    def makedirs(self, path):
        self._refuse("create "+path)

    def close(self):
        """
        release any resources (e.g. open archive files) held by this adapter
        """
        self._root.fs.close()

class DirectoryAdapter(StorageAdapter):
    """
    an adapter for a bag stored as an ordinary (unserialized) directory.
    This adapter supports writing.
    """
    writable = True

    def __init__(self, location, filesys=None, create=False, logger=None):
        """
        :param str location:  the path to the bag's root directory (or an
                              fs URL when filesys is given)
        :param FS  filesys:   the filesystem rooted at the bag directory; if
                              not given, one is opened for location.
        :param bool  create:  create the directory if it does not exist
        """
        if not location:
            raise BagError("path to bag root directory not provided")
        if filesys is None:
            location = location.rstrip('/') or '/'
            filesys = fs.osfs.OSFS(location, create=create)
        self._name = fs.path.basename(location.rstrip('/'))
        label = location.rstrip('/') + '/'
        super(DirectoryAdapter, self).__init__(Path(filesys, "", label),
                                               location, logger)

    @property
    def name(self):
        return self._name

    def _parentdir(self, path):
        parent = fs.path.dirname(path)
        if parent:
            self._root.fs.makedirs(parent, recreate=True)

    def makedirs(self, path):
        """
        create a directory in the bag, along with any missing parents
        """
        self._root.fs.makedirs(self._safe(path), recreate=True)

    def write_text(self, path, content, encoding=DEFAULT_ENCODING):
        """
        write text content to a file in the bag, replacing any existing file
        """
        path = self._safe(path)
        self._parentdir(path)
        self._root.fs.writetext(path, content, encoding=encoding, newline='')

    def write_bytes(self, path, content):
        """
        write binary content to a file in the bag, replacing any existing file
        """
        path = self._safe(path)
        self._parentdir(path)
        self._root.fs.writebytes(path, content)

    def remove(self, path):
        """
        delete a file from the bag.  Nothing happens if it does not exist.
        """
        path = self._safe(path)
        if self._root.fs.isfile(path):
            self._root.fs.remove(path)

    def copy_from(self, source, path):
        """
        copy a file from another adapter into the same location in this bag.
        """
        path = self._safe(path)
        self._parentdir(path)
        copy_file(source.root.fs, path, self._root.fs, path)

class ArchiveAdapter(StorageAdapter):
    """
    an adapter for a bag serialized into an archive file.  The archive is
    opened read-only.
    """
    # member streams of a tar or zip archive share one underlying file
    parallel_reads = False

    def __init__(self, location, filesys, container, logger=None):
        """
        :param str  location:  the path to the archive file
        :param FS    filesys:  the filesystem opened on the archive
        :param str container:  the directory within the archive holding the
                               bag (empty if bagit.txt is at the top)
        """
        self.archive = filesys
        self.container = container.strip('/')
        label = fs.path.basename(location) + ':'
        top = Path(filesys, self.container, label)
        super(ArchiveAdapter, self).__init__(top.subfspath(), location, logger)

    @property
    def name(self):
        if self.container:
            return fs.path.basename(self.container)
        name = fs.path.basename(self.location)
        for ext in _ext_fs_lookup:
            if name.endswith(ext):
                return name[:-len(ext)]
        return name

    @property
    def container_depth(self):
        """
        the number of directory levels between the top of the archive and
        the bag's root directory
        """
        if not self.container:
            return 0
        return len(self.container.split('/'))

    def close(self):
        self.archive.close()

_ext_fs_lookup = {
    ".zip":      fs.zipfs.ZipFS,
    ".tar":      fs.tarfs.TarFS,
    ".tar.gz":   fs.tarfs.TarFS,
    ".tar.bz2":  fs.tarfs.TarFS,
    ".tgz":      fs.tarfs.TarFS
}

def is_archive(location):
    """
    return True if the location's file extension marks a supported archive
    """
    return any(location.endswith(ext) for ext in _ext_fs_lookup)

def _find_container(archive):
    if archive.isfile(DECLARATION_FILE):
        return ""
    for d in archive.walk.dirs():
        if archive.isfile(fs.path.join(d, DECLARATION_FILE)):
            return d.strip('/')
    return None

def _open_archive(location, archive, logger):
    container = _find_container(archive)
    if container is None:
        archive.close()
        raise BagError("File does not appear to contain a serialized "
                       "Bag: "+location)
    return ArchiveAdapter(location, archive, container, logger)

def open_adapter(location, logger=None):
    """
    A factory function that returns the StorageAdapter appropriate for the
    given bag location.  The location is examined to determine the form of
    the bag (a directory or an archive file on local disk, or an fs URL).
    An fs URL that opens a read-only filesystem (e.g. zip:// or tar://) is
    handled like an archive.

    :raises OSError:   if the location does not exist
    :raises BagError:  if an archive does not contain a bag
    :raises ValueError:  if the form of the location is not recognized
    """
    if not location:
        raise ValueError("open_adapter: empty location string")
    location = str(location)

    if '://' in location:
        filesys = open_fs(location)
        if filesys.getmeta().get('read_only', False):
            return _open_archive(location, filesys, logger)
        return DirectoryAdapter(location, filesys, logger=logger)

    if not os.path.exists(location):
        raise OSError(2, "File not found: "+location)

    if os.path.isdir(location):
        return DirectoryAdapter(location, logger=logger)

    for ext, fsclass in _ext_fs_lookup.items():
        if location.endswith(ext):
            return _open_archive(location, fsclass(location), logger)

    raise ValueError("open_adapter: bag serialization not recognized for " +
                     location)
