"""
The bag declaration, bagit.txt.
"""
import re, codecs

from .base import Component
from ..constants import (DEFAULT_VERSION, DEFAULT_ENCODING, DECLARATION_FILE,
                         METADATA_FILE, LEGACY_METADATA_FILE)
from ..exceptions import (MalformedVersion, MalformedEncoding, ExtraContent,
                          UnsupportedEncoding)

_version_re = re.compile(r"^\d+\.\d+$")
_version_line_re = re.compile(r"^BagIt-Version:\s*(\d+\.\d+)$")
_encoding_line_re = re.compile(r"^Tag-File-Character-Encoding:\s*([A-Za-z0-9-]+)$")

def _check_encoding(encoding):
    try:
        codecs.lookup(encoding)
    except LookupError:
        raise UnsupportedEncoding(encoding)

class Declaration(Component):
    """
    the BagIt version and tag-file character encoding of a bag.
    """

    def __init__(self, logger=None):
        super(Declaration, self).__init__(logger)
        self._version = DEFAULT_VERSION
        self._encoding = DEFAULT_ENCODING

    @property
    def filename(self):
        return DECLARATION_FILE

    @property
    def version(self):
        """
        the version of the BagIt specification the bag follows, e.g. "0.97"
        """
        return self._version

    def set_version(self, version):
        """
        set the BagIt version.
        :raises MalformedVersion:  if version is not of the form MAJOR.MINOR
        """
        if not isinstance(version, str) or not _version_re.match(version):
            raise MalformedVersion("Malformed BagIt version: {0}".format(version))
        self._version = version

    @property
    def encoding(self):
        """
        the character encoding used by the bag's tag files
        """
        return self._encoding

    def set_encoding(self, encoding):
        """
        set the tag-file character encoding.
        :raises UnsupportedEncoding:  if Python does not recognize the encoding
        """
        if not isinstance(encoding, str):
            raise UnsupportedEncoding(encoding)
        _check_encoding(encoding)
        self._encoding = encoding

    @property
    def version_info(self):
        """
        the version as a tuple of integers, e.g. (0, 97)
        """
        return tuple(int(v) for v in self._version.split('.'))

    @property
    def tag_file_name(self):
        """
        the name of the metadata tag file used by this version of BagIt
        """
        if (0, 93) <= self.version_info <= (0, 95):
            return LEGACY_METADATA_FILE
        return METADATA_FILE

    def read(self, source, encoding=DEFAULT_ENCODING, filename=None):
        """
        parse the declaration.  The declaration is always read as UTF-8,
        regardless of the encoding parameter.

        :raises MalformedVersion:     if the first line is not a valid
                                      BagIt-Version line
        :raises MalformedEncoding:    if the second line is not a valid
                                      Tag-File-Character-Encoding line
        :raises UnsupportedEncoding:  if the declared encoding is unknown
        :raises ExtraContent:         if any other non-blank line follows
        """
        lines = self._read_content(source, DEFAULT_ENCODING).splitlines()
        lines += ['', '']

        m = _version_line_re.match(lines[0].strip())
        if not m:
            raise MalformedVersion("Malformed BagIt version in {0}: {1}"
                                   .format(self.filename, lines[0]))
        version = m.group(1)

        m = _encoding_line_re.match(lines[1].strip())
        if not m:
            raise MalformedEncoding("Malformed tag encoding in {0}: {1}"
                                    .format(self.filename, lines[1]))
        encoding = m.group(1)
        _check_encoding(encoding)

        if any(line.strip() for line in lines[2:]):
            raise ExtraContent("Extra content in "+self.filename)

        self._version = version
        self._encoding = encoding

    def serialize(self):
        return "BagIt-Version: {0}\nTag-File-Character-Encoding: {1}\n"\
               .format(self._version, self._encoding)
