"""
The bag metadata, bag-info.txt.

Values for a repeated label are grouped together under that label.  This
means that serializing the metadata keeps the order in which labels first
appeared but not necessarily the original order of the lines: lines for a
repeated label are written out together.
"""
import re
from collections import OrderedDict

from .base import Component
from ..constants import DEFAULT_ENCODING, METADATA_FILE, WRAP_WIDTH
from ..exceptions import InvalidMetadataKey, MalformedMetadataLine

_continuation_re = re.compile(r"(?:\r\n|\r|\n)[ \t]+")
_line_re = re.compile(r"^(?P<label>[^:\s][^:]*?)\s*:\s*(?P<value>.*)$")
_word_re = re.compile(r"\S+\s*")

def fold(line, width=WRAP_WIDTH, indent=" "):
    """
    break a long line into a list of lines no longer than width (where
    possible), indenting each continuation line.  The whitespace at each
    break is kept at the end of the preceding line, so removing the line
    breaks and indentation restores the original line.
    """
    out = []
    current = ""
    limit = width
    for word in _word_re.findall(line):
        if current and len(current) + len(word.rstrip()) > limit:
            out.append(current)
            current = indent
            limit = width
        current += word
    out.append(current)
    return out

def _check_key(key):
    if not isinstance(key, str):
        raise InvalidMetadataKey("Metadata keys must be strings: {0}"
                                 .format(repr(key)))
    if key == '':
        raise InvalidMetadataKey("Metadata keys cannot be the empty string")

def _as_values(value):
    if isinstance(value, str):
        return [value]
    values = list(value)
    for v in values:
        if not isinstance(v, str):
            raise TypeError("Metadata values must be strings: "+repr(v))
    return values

class Metadata(Component):
    """
    an ordered store mapping each metadata label to one or more values.
    """

    def __init__(self, logger=None, filename=METADATA_FILE):
        super(Metadata, self).__init__(logger)
        self._filename = filename
        self._data = OrderedDict()

    @property
    def filename(self):
        return self._filename

    def add_data(self, key, value):
        """
        add a value to a key, creating the key if it doesn't already exist.

        :param str key:    the metadata label
        :param value:      the value to add, either a str or a list of them
        :raises InvalidMetadataKey:  if key is empty or not a str
        """
        _check_key(key)
        values = _as_values(value)
        if not values:
            return
        self._data.setdefault(key, []).extend(values)

    def set_data(self, key, value):
        """
        set the value(s) of a key, replacing any previous values
        """
        _check_key(key)
        values = _as_values(value)
        if not values:
            self.unset_data(key)
        else:
            self._data[key] = values

    def get_data(self, key, default=None):
        """
        return the value for the given key: a str if the key has a single
        value, a list of str if it has several, or default if it has none.
        """
        values = self._data.get(key)
        if not values:
            return default
        if len(values) == 1:
            return values[0]
        return list(values)

    def get_values(self, key):
        """
        return the list of values for the given key (empty if it has none)
        """
        return list(self._data.get(key, []))

    def has_data(self, key):
        return key in self._data

    def list_keys(self):
        """
        return the metadata keys, without duplicates, in order of first
        appearance
        """
        return list(self._data.keys())

    def count_keys(self):
        return len(self._data)

    def count_values(self, key):
        return len(self._data.get(key, []))

    def unset_data(self, key):
        """
        remove a key and all of its values
        """
        if key in self._data:
            del self._data[key]

    def clear_data(self):
        self._data = OrderedDict()

    def items(self):
        """
        iterate through (key, value) pairs, one pair per value, keys grouped
        """
        for key, values in self._data.items():
            for value in values:
                yield key, value

    def read(self, source, encoding=DEFAULT_ENCODING, filename=None):
        """
        load labels and values from a bag-info.txt-formatted file.  Values
        already in this store are kept; read values are added to them.

        :raises MalformedMetadataLine:  if a line is not of the form
                                        "label: value"
        """
        content = self._read_content(source, encoding)
        content = _continuation_re.sub("", content)

        for line in content.splitlines():
            if not line.strip():
                continue
            m = _line_re.match(line)
            if not m:
                raise MalformedMetadataLine(line)
            self.add_data(m.group('label'), m.group('value').strip())

    def serialize(self):
        out = []
        for key, value in self.items():
            out.extend(fold("{0}: {1}".format(key, value)))
        if not out:
            return ""
        return "\n".join(out) + "\n"
