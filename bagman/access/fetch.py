"""
This module provides the FetchList class which manages the entries of a
bag's fetch.txt file, along with the default network collaborator used to
retrieve the files it lists.
"""
import os, logging
from collections import namedtuple

import requests
from bagit import BagError

from ..constants import DEFAULT_FILE_ENCODING
from ..utils import read_lines, write_file_text
from .exceptions import FetchError

LOGGER = logging.getLogger(__name__)

FetchEntry = namedtuple('FetchEntry', "url length filename".split())

class HTTPFetcher(object):
    """
    a network collaborator that retrieves a URL's contents into a file
    using the requests library.
    """

    def __init__(self, session=None, timeout=60, chunk_size=1 << 20):
        """
        :param requests.Session session:  the session to issue requests
                               with; if None, one is created on first use.
        :param timeout:        the connect/read timeout, in seconds
        :param int chunk_size: the size of the blocks written to disk
        """
        self._session = session
        self.timeout = timeout
        self.chunk_size = chunk_size

    @property
    def session(self):
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def get(self, url, filepath):
        """
        save the contents available at a URL to the given file.

        :raises requests.RequestException:  if the request fails or the
                                            server returns an error status
        """
        with self.session.get(url, stream=True, timeout=self.timeout) as resp:
            resp.raise_for_status()
            with open(filepath, 'wb') as fd:
                for chunk in resp.iter_content(chunk_size=self.chunk_size):
                    if chunk:
                        fd.write(chunk)

class FetchList(object):
    """
    the ordered list of remote files to be fetched into a bag, backed by a
    fetch.txt file with one "URL LENGTH FILENAME" entry per line.  The
    length is "-" when it is not known.
    """

    def __init__(self, filename, encoding=DEFAULT_FILE_ENCODING, fetcher=None):
        """
        load the entries from a fetch file, if it exists.

        :param str filename:  the path to the fetch.txt file
        :param str encoding:  the encoding for reading and writing the file
        :param fetcher:       the network collaborator used by download();
                              it must provide a get(url, filepath) method.
                              If None, an HTTPFetcher is used.
        """
        self.filename = filename
        self.encoding = encoding
        self._fetcher = fetcher
        self.data = []

        if os.path.exists(self.filename):
            self.read()

    @property
    def fetcher(self):
        if self._fetcher is None:
            self._fetcher = HTTPFetcher()
        return self._fetcher

    def read(self):
        """
        (re-)load the entries from the fetch file
        """
        fetch = []
        for line in read_lines(self.filename, self.encoding):
            fields = line.split()
            if len(fields) == 3:
                fetch.append(FetchEntry(*fields))
            elif line.strip():
                LOGGER.warning("fetch.txt: skipping malformed entry: %s", line)
        self.data = fetch

    def write(self):
        """
        save the entries to the fetch file.  If there are no entries, the
        file is removed.
        """
        if not self.data:
            if os.path.exists(self.filename):
                os.remove(self.filename)
            return

        lines = [" ".join(e) + "\n" for e in self.data]
        write_file_text(self.filename, self.encoding, "".join(lines))

    def clear(self):
        """
        remove all entries, truncating the fetch file if it exists
        """
        self.data = []
        if os.path.exists(self.filename):
            write_file_text(self.filename, self.encoding, "")

    def add(self, url, filename, length='-'):
        """
        append an entry and save the fetch file.

        :param str url:       the URL to retrieve the file from
        :param str filename:  where to save the file, relative to the bag's
                              root directory (e.g. "data/index.html")
        :param length:        the file's size in bytes, or "-" if unknown
        """
        self.data.append(FetchEntry(url, str(length), filename))
        self.write()

    def load(self, entries):
        """
        replace the in-memory entries without writing them to disk; call
        write() to save them.  Entries may be FetchEntry instances, 3-tuples,
        or dicts with 'url', 'length', and 'filename' keys; anything else
        is ignored.
        """
        data = []
        for entry in entries:
            if isinstance(entry, dict):
                if all(k in entry for k in FetchEntry._fields):
                    data.append(FetchEntry(entry['url'], str(entry['length']),
                                           entry['filename']))
            elif isinstance(entry, (list, tuple)) and len(entry) == 3:
                data.append(FetchEntry(entry[0], str(entry[1]), entry[2]))
        self.data = data

    def get_data(self):
        return list(self.data)

    def download(self, errors=None):
        """
        retrieve each listed file that is not already in the bag.  A failed
        transfer does not stop the others: any partial file is removed and
        a FetchError is recorded.

        :param list errors:  a list to append FetchError records to; if None,
                             a new list is created
        :return:  the list of errors
        """
        if errors is None:
            errors = []
        basedir = os.path.dirname(os.path.abspath(self.filename))

        for entry in self.data:
            filepath = os.path.join(basedir, *entry.filename.split('/'))
            if os.path.exists(filepath):
                continue

            parent = os.path.dirname(filepath)
            LOGGER.info("Fetching %s into %s", entry.url, entry.filename)
            try:
                if not os.path.isdir(parent):
                    os.makedirs(parent)
                self.fetcher.get(entry.url, filepath)
            except (requests.RequestException, BagError, OSError) as ex:
                LOGGER.error("Unable to fetch %s: %s", entry.url, str(ex))
                if os.path.exists(filepath):
                    os.remove(filepath)
                errors.append(FetchError(entry.filename, entry.url,
                              "Unable to fetch {0}: {1}".format(entry.url, ex)))

        return errors

    def __len__(self):
        return len(self.data)

    def __iter__(self):
        return iter(self.data)
