"""
This module determines which of the checksum algorithms allowed by the BagIt
specification can be computed on this host, and provides the digest
primitive used by the manifests.
"""
import hashlib

from bagit import HASH_BLOCK_SIZE

from .constants import HASH_ALGORITHMS
from .access.exceptions import UnsupportedAlgorithmError

class HashRegistry(object):
    """
    an immutable lookup of the canonical BagIt checksum algorithms that are
    available on this host.

    Canonical names are the ones that appear in manifest file names
    (e.g. "sha3256"); host names are the ones hashlib recognizes
    (e.g. "sha3_256").  An instance is usually created once and shared by
    all the bags and manifests that need it.
    """

    def __init__(self, available=None):
        """
        determine the supported algorithms.

        :param available:  the host algorithm names to consider available;
                           if None, hashlib.algorithms_available is used.
        :type available:   iterable of str
        """
        if available is None:
            available = hashlib.algorithms_available
        available = set([a.lower() for a in available])

        self._to_host = dict((c, h) for c, h in HASH_ALGORITHMS
                             if h in available)
        self._to_canon = dict((h, c) for c, h in self._to_host.items())
        self._supported = tuple(c for c, h in HASH_ALGORITHMS
                                if c in self._to_host)

    @property
    def supported(self):
        """
        the canonical names of the supported algorithms, in the order given
        by the BagIt specification.
        """
        return self._supported

    def is_supported(self, name):
        """
        return True if the given canonical algorithm name can be computed
        """
        return bool(name) and name.lower() in self._to_host

    def check_supported(self, name):
        """
        raise an UnsupportedAlgorithmError if the given algorithm is not
        supported
        """
        if not self.is_supported(name):
            raise UnsupportedAlgorithmError(name)

    def host_name(self, name):
        """
        return the hashlib name for the given canonical algorithm name
        :raises UnsupportedAlgorithmError: if the algorithm is not supported
        """
        self.check_supported(name)
        return self._to_host[name.lower()]

    def canonical_name(self, hostname):
        """
        return the canonical BagIt name for a hashlib algorithm name, or None
        if it has no canonical counterpart here.
        """
        return self._to_canon.get(hostname.lower())

    def new(self, name):
        """
        return a new hashlib hash object for the given canonical algorithm name
        """
        return hashlib.new(self.host_name(name))

    def file_digest(self, name, filepath):
        """
        return the lowercase hex digest of the contents of a file

        :param str name:      the canonical name of the algorithm to apply
        :param str filepath:  the path to the file to digest
        """
        hasher = self.new(name)
        with open(filepath, 'rb') as fd:
            while True:
                block = fd.read(HASH_BLOCK_SIZE)
                if not block:
                    break
                hasher.update(block)
        return hasher.hexdigest().lower()

    def __contains__(self, name):
        return self.is_supported(name)

    def __repr__(self):
        return "HashRegistry({0})".format(", ".join(self._supported))
