"""
The base class for the parts of a bag that are each stored in a single tag
file (bagit.txt, bag-info.txt, the manifests and fetch.txt).
"""
import logging
from abc import ABCMeta, abstractmethod

from ..constants import DEFAULT_ENCODING

UNICODE_BYTE_ORDER_MARK = "\ufeff"

class Component(object, metaclass=ABCMeta):
    """
    a bag file that can be parsed from and serialized to text.
    """

    def __init__(self, logger=None):
        self.log = logger or logging.getLogger(type(self).__module__)

    def set_logger(self, logger):
        """
        set the logger that this component sends warnings and errors to
        """
        self.log = logger or logging.getLogger(type(self).__module__)

    @property
    @abstractmethod
    def filename(self):
        """
        the name of the file that stores this component, relative to the bag
        root directory
        """
        raise NotImplementedError()

    @abstractmethod
    def read(self, source, encoding=DEFAULT_ENCODING, filename=None):
        """
        load this component's data from an open file.

        :param source:        a file-like object opened for reading, in
                              either binary or text mode
        :param str encoding:  the encoding to decode binary content with
        :param str filename:  the base name of the file being read; if not
                              given, the source's name attribute is used.
        """
        raise NotImplementedError()

    @abstractmethod
    def serialize(self):
        """
        return this component's data as the text content of its file.  This
        does not write anything to disk.
        """
        raise NotImplementedError()

    def _read_content(self, source, encoding=DEFAULT_ENCODING):
        # return the entire content of source as a str
        content = source.read()
        if isinstance(content, (bytes, bytearray)):
            content = content.decode(encoding)
        if content.startswith(UNICODE_BYTE_ORDER_MARK):
            # contrary to the BagIt RFC, but harmless to skip
            self.log.warning("%(filename)s starts with an unnecessary "
                             "byte-order mark", {'filename': self.filename})
            content = content[1:]
        return content

    def __str__(self):
        return self.filename
