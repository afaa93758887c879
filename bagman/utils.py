"""
Utility functions for reading and writing tag files, listing payload files,
and cleaning up payload file names.
"""
import os, re, codecs, random, logging

import fs.osfs
from bagit import open_text_file

from .constants import (DEFAULT_BAGIT_VERSION, DEFAULT_FILE_ENCODING,
                        BAGIT_FILE, Version)
from .access.exceptions import StructuralError, BagFormatError

LOGGER = logging.getLogger(__name__)

_wsre = re.compile(r'\s+')
_badcharre = re.compile(r'\.{2}|[~\^@!#%&\*/:\'?"<>\|]')
_devnamere = re.compile(r'^(CON|PRN|AUX|NUL|COM[1-9]|LPT[1-9])$', re.IGNORECASE)
_versionre = re.compile(r'^BagIt-Version:[ \t]*(\d+)\.(\d+)\s*$',
                        re.IGNORECASE | re.MULTILINE)
_encodingre = re.compile(r'^Tag-File-Character-Encoding:[ \t]*(\S+)\s*$',
                         re.IGNORECASE | re.MULTILINE)

def read_file_text(filepath, encoding=DEFAULT_FILE_ENCODING):
    """
    return the contents of a text file decoded with the given encoding
    """
    with open_text_file(filepath, 'r', encoding=encoding) as fd:
        return fd.read()

def read_lines(filepath, encoding=DEFAULT_FILE_ENCODING):
    """
    return the lines of a text file with their line endings removed.
    Leading whitespace is preserved as it is significant in some tag files.
    """
    with open_text_file(filepath, 'r', encoding=encoding) as fd:
        return [line.rstrip('\r\n') for line in fd]

def write_file_text(filepath, encoding, text):
    """
    (over)write a text file with the given contents, encoded with the given
    encoding.
    """
    with open_text_file(filepath, 'w', encoding=encoding) as fd:
        fd.write(text)

def touch(filepath):
    """
    create an empty file if it does not exist yet
    """
    if not os.path.exists(filepath):
        with open(filepath, 'a'):
            pass

def list_files(directory):
    """
    recursively list the files below a directory, skipping hidden files and
    directories (those whose names start with a '.').  The paths are
    returned sorted, each prefixed by the given directory.

    :param str directory:  the directory to list; if it does not exist, an
                           empty list is returned.
    """
    if not os.path.isdir(directory):
        return []

    out = []
    with fs.osfs.OSFS(directory) as dirfs:
        for f in dirfs.walk.files(exclude=['.*'], exclude_dirs=['.*']):
            out.append(os.path.join(directory, *f.lstrip('/').split('/')))
    out.sort()
    return out

def sanitize_filename(filename):
    """
    return a version of a file name that is safe to use as a payload file
    name: whitespace is converted to underscores, characters with special
    meaning to shells or file systems are removed, and reserved device names
    (e.g. NUL, COM3) are lower-cased and given a random suffix.
    """
    filename = _wsre.sub('_', filename)
    filename = _badcharre.sub('', filename)
    if _devnamere.match(filename):
        filename = "{0}_{1}".format(filename.lower(),
                                    random.randint(100000, 999999))
    if not filename:
        filename = "_"
    return filename

def unique_path(filepath):
    """
    return the given path if nothing exists there; otherwise return a
    variation of it (with a numeric suffix inserted before the extension)
    that does not yet exist.
    """
    if not os.path.lexists(filepath):
        return filepath
    base, ext = os.path.splitext(filepath)
    i = 1
    while os.path.lexists("{0}_{1}{2}".format(base, i, ext)):
        i += 1
    return "{0}_{1}{2}".format(base, i, ext)

def parse_version_string(text):
    """
    extract the BagIt-Version value from the contents of a bagit.txt file.
    :return: the (major, minor) integers or None if no valid version is found
    :rtype: tuple
    """
    m = _versionre.search(text)
    if not m:
        return None
    return (int(m.group(1)), int(m.group(2)))

def parse_encoding_string(text):
    """
    extract the Tag-File-Character-Encoding value from the contents of a
    bagit.txt file, or None if it is not found.
    """
    m = _encodingre.search(text)
    if not m:
        return None
    return m.group(1)

def read_bagit_file(filepath):
    """
    read the version and tag-file encoding declared in a bagit.txt file.

    Problems are not raised; instead they are returned as BagFormatError
    records.  A missing file is not an error: the defaults are returned.

    :return: a 3-tuple: the version as a Version instance (or None if it
             could not be read), the encoding (or None), and a list of
             errors
    """
    errors = []
    if not os.path.exists(filepath):
        return (Version(DEFAULT_BAGIT_VERSION), DEFAULT_FILE_ENCODING, errors)

    # bagit.txt is always UTF-8, regardless of what it declares
    try:
        text = read_file_text(filepath, "utf-8")
    except (UnicodeError, OSError) as ex:
        errors.append(BagFormatError(BAGIT_FILE,
                              "Error reading bagit.txt file: " + str(ex)))
        return (None, None, errors)

    version = parse_version_string(text)
    if version is None:
        errors.append(BagFormatError(BAGIT_FILE,
                   "Error reading version information from bagit.txt file."))
    else:
        version = Version(version)

    encoding = parse_encoding_string(text)
    if encoding is None:
        errors.append(BagFormatError(BAGIT_FILE,
                   "Error reading encoding information from bagit.txt file."))
    else:
        try:
            codecs.lookup(encoding)
        except LookupError:
            errors.append(BagFormatError(BAGIT_FILE,
                                         "Unsupported encoding: " + encoding))
            encoding = None

    return (version, encoding, errors)

def format_bagit_text(version, encoding):
    """
    return the contents of a bagit.txt file declaring the given version
    and encoding
    """
    version = Version(version)
    return "BagIt-Version: {0}.{1}\nTag-File-Character-Encoding: {2}\n" \
           .format(version.major, version.minor, encoding)

def validate_exists(filepath, errors):
    """
    append a StructuralError to errors if nothing exists at the given path
    :return: True if the path exists
    :rtype: bool
    """
    if os.path.exists(filepath):
        return True
    basename = os.path.basename(filepath.rstrip(os.sep))
    errors.append(StructuralError(basename, basename + " does not exist."))
    return False
