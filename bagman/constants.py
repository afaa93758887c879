"""
Common data about the BagIt layout and the defaults used when creating bags.
"""

DEFAULT_HASH_ALGORITHM = "sha512"
DEFAULT_FILE_ENCODING = "UTF-8"
DEFAULT_BAGIT_VERSION = (1, 0)

PAYLOAD_DIR = "data"
BAGIT_FILE = "bagit.txt"
BAG_INFO_FILE = "bag-info.txt"
FETCH_FILE = "fetch.txt"
MANIFEST_PREFIX = "manifest"
TAGMANIFEST_PREFIX = "tagmanifest"

# canonical BagIt algorithm names (RFC 8493, section 2.4) mapped to the names
# hashlib knows them by
HASH_ALGORITHMS = (
    ("md5",     "md5"),
    ("sha1",    "sha1"),
    ("sha256",  "sha256"),
    ("sha384",  "sha384"),
    ("sha512",  "sha512"),
    ("sha3224", "sha3_224"),
    ("sha3256", "sha3_256"),
    ("sha3384", "sha3_384"),
    ("sha3512", "sha3_512"),
)

# bag-info fields that must not be repeated (in lower case)
BAG_INFO_MUST_NOT_REPEAT = ("payload-oxum",)

def _2int(sint):
    try:
        return int(sint)
    except ValueError:
        return -1

class Version(object):
    """
    a BagIt version that can be compared for equality with another Version,
    a version string, or a tuple
    """

    def __init__(self, vers):
        """
        convert a version string (e.g. "1.0") or tuple (e.g. (1, 0)) to a
        Version instance
        """
        if isinstance(vers, str):
            self._vs = vers
            self.fields = tuple([_2int(v) for v in self._vs.split('.')])
        elif isinstance(vers, tuple):
            self._vs = ".".join([str(v) for v in vers])
            self.fields = tuple(vers)
        else:
            raise TypeError("Input version is not str or tuple: " + str(vers))

    @property
    def major(self):
        return self.fields[0]

    @property
    def minor(self):
        if len(self.fields) < 2:
            return 0
        return self.fields[1]

    def __str__(self):
        return self._vs

    def __repr__(self):
        return "Version({0!r})".format(self._vs)

    def __hash__(self):
        return hash(self.fields)

    def __eq__(self, other):
        if not isinstance(other, Version):
            other = Version(other)
        return self.fields == other.fields

    def __ne__(self, other):
        return not (self == other)
