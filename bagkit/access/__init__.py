"""
A subpackage for accessing a bag's files.

The :py:mod:`adapter` module provides the storage adapters that present a
bag stored as a directory and a bag serialized into an archive through the
same interface.
"""
from .adapter import (Path, FileListing, StorageAdapter, DirectoryAdapter,
                      ArchiveAdapter, open_adapter, is_archive, is_unsafe_path)
