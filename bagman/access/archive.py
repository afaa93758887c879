"""
This module provides the archive codec used to serialize a bag into, and to
open a bag from, a zip or gzipped-tar file.  It relies on the fs module's
ZipFS and TarFS filesystems so that the archive contents can be copied as
any other filesystem.

Opening a serialized bag extracts it into a temporary directory.  That
directory is owned by the ExtractedBag handle returned by
ArchiveCodec.extract(); it is not removed until the handle's cleanup() is
called (or the handle is used as a context manager).
"""
import os, shutil, tempfile, tarfile, zipfile, logging

import fs.errors
import fs.osfs, fs.zipfs, fs.tarfs
from fs.copy import copy_fs, copy_dir

from ..constants import BAGIT_FILE
from .exceptions import PackagingError

LOGGER = logging.getLogger(__name__)

METHODS = ("tgz", "zip")

_ext_method_lookup = (
    (".zip",    "zip"),
    (".tar.gz", "tgz"),
    (".tgz",    "tgz"),
)

def _open_archive_fs(filepath, method, write=False):
    if method == "zip":
        return fs.zipfs.ZipFS(filepath, write=write)
    if method == "tgz":
        if write:
            return fs.tarfs.TarFS(filepath, write=True, compression="gz")
        return fs.tarfs.TarFS(filepath)
    raise PackagingError("Invalid compression method: '{0}'.".format(method))

def detect_method(location):
    """
    return the compression method ("zip" or "tgz") implied by the file
    extension of an archive's path, or None if the extension is not
    recognized.
    """
    lower = location.lower()
    for ext, method in _ext_method_lookup:
        if lower.endswith(ext):
            return method
    return None

def check_method(method):
    """
    normalize and check a compression method name
    :raises PackagingError:  if the method is not one of METHODS
    """
    normalized = (method or "").lower()
    if normalized not in METHODS:
        raise PackagingError("Invalid compression method: '{0}'.".format(method))
    return normalized

class BagSource(object):
    """
    a description of where a bag is read from.  An instance of one of the
    subclasses, DirectorySource or ArchiveSource, is determined once when
    a bag is opened.
    """
    is_archive = False
    method = None

    def __init__(self, location):
        self.location = location

    def __repr__(self):
        return "{0}({1!r})".format(type(self).__name__, self.location)

class DirectorySource(BagSource):
    """
    a bag stored as a plain directory
    """
    pass

class ArchiveSource(BagSource):
    """
    a bag serialized into an archive file with a given compression method
    """
    is_archive = True

    def __init__(self, location, method):
        super(ArchiveSource, self).__init__(location)
        self.method = method

    def __repr__(self):
        return "ArchiveSource({0!r}, {1!r})".format(self.location, self.method)

def resolve_source(location):
    """
    determine whether a location refers to a serialized bag or a directory
    :rtype: BagSource
    """
    if os.path.isfile(location):
        method = detect_method(location)
        if method:
            return ArchiveSource(location, method)
    return DirectorySource(location)

class ExtractedBag(object):
    """
    a handle on a temporary directory holding the extracted contents of a
    serialized bag.  The directory remains until cleanup() is called; using
    the handle as a context manager calls cleanup() on exit.
    """

    def __init__(self, tempdir, bagdir):
        """
        :param str tempdir:  the temporary directory the archive was
                             extracted into
        :param str bagdir:   the root directory of the bag found within it
        """
        self.tempdir = tempdir
        self.bagdir = bagdir

    @property
    def closed(self):
        """
        True if the temporary directory no longer exists
        """
        return not os.path.exists(self.tempdir)

    def cleanup(self):
        """
        remove the temporary directory and everything in it
        """
        if os.path.exists(self.tempdir):
            LOGGER.debug("Removing extracted bag directory, %s", self.tempdir)
            shutil.rmtree(self.tempdir)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.cleanup()
        return False

    def __repr__(self):
        return "ExtractedBag({0!r})".format(self.bagdir)

def _find_bag_root(dirfs):
    if dirfs.isfile(BAGIT_FILE):
        return ""
    for d in dirfs.walk.dirs():
        if dirfs.isfile("/".join([d, BAGIT_FILE])):
            return d.lstrip('/')
    return None

class ArchiveCodec(object):
    """
    the archive collaborator: serializes a bag directory into a zip or
    gzipped-tar file and extracts such files back into directories.
    """

    def __init__(self, tempdir=None):
        """
        :param str tempdir:  the parent directory for extraction directories;
                             if None, the system default is used.
        """
        self.tempdir = tempdir

    def extract(self, filepath, method=None):
        """
        extract a serialized bag into a new temporary directory.

        :param str filepath:  the path to the archive file
        :param str method:    the compression method; if None, it is
                              determined from the file's extension
        :return:  the handle that owns the temporary directory
        :rtype: ExtractedBag
        :raises PackagingError:  if the archive cannot be read or does not
                                 contain a bag
        """
        if method is None:
            method = detect_method(filepath)
        method = check_method(method)
        if not os.path.isfile(filepath):
            raise PackagingError("Archive file not found: " + filepath)

        tempdir = tempfile.mkdtemp(prefix="bag", dir=self.tempdir)
        try:
            with _open_archive_fs(filepath, method) as archfs:
                with fs.osfs.OSFS(tempdir) as outfs:
                    copy_fs(archfs, outfs)
                    root = _find_bag_root(outfs)
        except (fs.errors.FSError, zipfile.BadZipFile, tarfile.TarError,
                EOFError, OSError) as ex:
            shutil.rmtree(tempdir, ignore_errors=True)
            raise PackagingError("Unable to read archive {0}: {1}"
                                 .format(filepath, str(ex)))

        if root is None:
            shutil.rmtree(tempdir, ignore_errors=True)
            raise PackagingError("File does not appear to contain a serialized "
                                 "Bag: " + filepath)

        bagdir = os.path.join(tempdir, *root.split('/')) if root else tempdir
        LOGGER.info("Extracted %s into %s", filepath, bagdir)
        return ExtractedBag(tempdir, bagdir)

    def create(self, bagdir, destination, method="tgz"):
        """
        serialize a bag directory into an archive file.  The archive contains
        a single top-level directory named after the bag's root directory.

        :param str bagdir:       the root directory of the bag to serialize
        :param str destination:  the path of the archive file to write
        :param str method:       the compression method, "tgz" or "zip"
        :return:  the destination path
        :raises PackagingError:  if the method is not recognized or the
                                 archive cannot be written
        """
        method = check_method(method)
        bagdir = os.path.abspath(bagdir).rstrip(os.sep)
        parent, name = os.path.split(bagdir)

        try:
            with fs.osfs.OSFS(parent) as srcfs:
                with _open_archive_fs(destination, method, write=True) as archfs:
                    archfs.makedir(name, recreate=True)
                    copy_dir(srcfs, name, archfs, name)
        except (fs.errors.FSError, OSError) as ex:
            raise PackagingError("Unable to write archive {0}: {1}"
                                 .format(destination, str(ex)))

        LOGGER.info("Packaged %s into %s", bagdir, destination)
        return destination
