"""
This module provides the BagInfoStore class which holds the metadata from
a bag's bag-info.txt file.
"""
import os, re, logging
from collections import OrderedDict

from ..constants import BAG_INFO_MUST_NOT_REPEAT, BAG_INFO_FILE
from ..utils import read_lines, write_file_text
from .exceptions import DuplicateNonRepeatableFieldError, MetadataError

LOGGER = logging.getLogger(__name__)

_tagre = re.compile(r'^([^:]+):(.*)$')

class BagInfoStore(object):
    """
    an ordered multi-map of bag-info metadata.

    Keys are stored with their exact case.  A value is stored as a string
    until a second value is stored under the identical key, at which point
    the values are kept as a list in the order they were added.

    Keys that differ only by case are kept as distinct keys.  Lookups are
    exact by default; has_key() can optionally ignore case.  Keys that must
    not be repeated (e.g. Payload-Oxum) are only checked against the exact
    key when a value is set; repeats across case variants are reported by
    validate_non_repeatable().
    """

    def __init__(self, data=None, nonrepeatable=BAG_INFO_MUST_NOT_REPEAT):
        """
        create the store.

        :param data:  initial metadata as a mapping of keys to a value or a
                      list of values; these are added via set_value().
        :param nonrepeatable:  the (lower-case) names of keys that must
                      not have more than one value
        """
        self._data = OrderedDict()
        self._norepeat = tuple(k.lower() for k in nonrepeatable)
        if data:
            for key, value in data.items():
                if isinstance(value, (list, tuple)):
                    for v in value:
                        self.set_value(key, v)
                else:
                    self.set_value(key, value)

    def _accumulate(self, key, value):
        if key not in self._data:
            self._data[key] = value
        elif isinstance(self._data[key], list):
            self._data[key].append(value)
        else:
            self._data[key] = [self._data[key], value]

    def _append_continuation(self, key, text):
        # the text extends the latest value of the key and of any of its
        # case-variant aliases
        lkey = key.lower()
        for k in self._data:
            if k.lower() != lkey:
                continue
            value = self._data[k]
            if isinstance(value, list):
                value[-1] = (value[-1] + " " + text).strip()
            else:
                self._data[k] = (value + " " + text).strip()

    def parse(self, lines):
        """
        load metadata from the lines of a bag-info.txt file, adding it to
        any metadata already in this store.

        :param lines:  an iterable of lines (with or without line endings)
        """
        prevkey = None
        for line in lines:
            line = line.rstrip('\r\n')
            if not line.strip():
                continue

            if line[0] in " \t":
                if prevkey is None:
                    LOGGER.warning("bag-info: dropping continuation line with "
                                   "no preceding tag: %s", line.strip())
                else:
                    self._append_continuation(prevkey, line.strip())
                continue

            m = _tagre.match(line)
            if not m:
                LOGGER.warning("bag-info: skipping line that is not a tag: %s",
                               line)
                continue

            prevkey = m.group(1).strip()
            self._accumulate(prevkey, m.group(2).strip())

    def serialize(self):
        """
        return the metadata formatted as the contents of a bag-info.txt file
        """
        lines = []
        for key, value in self._data.items():
            if isinstance(value, list):
                for v in value:
                    lines.append("{0}: {1}\n".format(key, v))
            else:
                lines.append("{0}: {1}\n".format(key, value))
        return "".join(lines)

    def read(self, filepath, encoding):
        """
        replace the contents of this store with the metadata in a
        bag-info.txt file.  A missing file results in an empty store.
        """
        self._data = OrderedDict()
        if os.path.exists(filepath):
            self.parse(read_lines(filepath, encoding))

    def write(self, filepath, encoding):
        """
        write the metadata to a bag-info.txt file
        """
        write_file_text(filepath, encoding, self.serialize())

    def is_nonrepeatable(self, key):
        """
        return True if the given key may not hold more than one value
        """
        return key.lower() in self._norepeat

    def set_value(self, key, value):
        """
        add a value under the given exact key.  If the key already has a
        value, the new one is appended to the existing value(s).

        :raises DuplicateNonRepeatableFieldError:  if the key is not
                        repeatable and the identical key already has a value.
        """
        if self.is_nonrepeatable(key) and key in self._data:
            raise DuplicateNonRepeatableFieldError(key)
        self._accumulate(key, value)

    def get_value(self, key, default=None):
        """
        return the value stored under the exact key: a string, a list of
        strings, or the default if the key is not present.
        """
        value = self._data.get(key, default)
        if isinstance(value, list):
            return list(value)
        return value

    def has_key(self, key, case_insensitive=False):
        """
        return True if the store has a value for the given key.

        :param bool case_insensitive:  if True, a key differing only in case
                                       also counts as a match.
        """
        if not case_insensitive:
            return key in self._data
        lkey = key.lower()
        return any(k.lower() == lkey for k in self._data)

    def clear_key(self, key):
        """
        remove all the values for the exact key
        """
        if key in self._data:
            del self._data[key]

    def clear(self):
        """
        remove all metadata
        """
        self._data = OrderedDict()

    def keys(self):
        return list(self._data.keys())

    def items(self):
        return [(k, self.get_value(k)) for k in self._data]

    def validate_non_repeatable(self, errors, location=BAG_INFO_FILE):
        """
        check that no non-repeatable field is stored under more than one
        distinct key (keys that differ only by case).  One MetadataError is
        appended to errors for each offending field.

        :return:  True if no problems were found
        """
        nerrs = len(errors)
        for name in self._norepeat:
            count = len([k for k in self._data if k.lower() == name])
            if count > 1:
                errors.append(MetadataError(location,
                   "cannot contain more than one of tag {0}, {1} found"
                   .format(name, count)))
        return nerrs == len(errors)

    def __len__(self):
        return len(self._data)

    def __iter__(self):
        return iter(self.keys())

    def __contains__(self, key):
        return key in self._data

    def __eq__(self, other):
        if isinstance(other, BagInfoStore):
            other = other._data
        return self._data == other

    def __ne__(self, other):
        return not (self == other)

    def __repr__(self):
        return "BagInfoStore({0!r})".format(dict(self._data))
