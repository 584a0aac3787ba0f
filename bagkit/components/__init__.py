"""
The parsed forms of a bag's tag files.  Each class reads its file's content
with read() and produces it again with serialize(); none of them touch
storage directly except the manifests, which check their entries against a
StorageAdapter.
"""
from .base import Component
from .declaration import Declaration
from .metadata import Metadata
from .manifest import (Manifest, PayloadManifest, TagManifest, ManifestCheck,
                       ChecksumMismatch)
from .fetch import Fetch, FetchEntry, FetchResult, DownloadReport
