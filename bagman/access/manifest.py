"""
This module provides the classes that manage a bag's checksum manifests:
ManifestRecord for the payload manifests (manifest-ALGO.txt) and
TagManifestRecord for the tag manifests (tagmanifest-ALGO.txt).
"""
import os, re, logging

from ..constants import (MANIFEST_PREFIX, TAGMANIFEST_PREFIX,
                         DEFAULT_FILE_ENCODING)
from ..hashes import HashRegistry
from ..utils import read_lines, write_file_text, touch
from .exceptions import StructuralError, MissingFileError, ChecksumMismatchError

LOGGER = logging.getLogger(__name__)

_manfilere = re.compile(r'^(tag)?manifest-(\w+)\.txt$')

def algorithm_from_filename(filename):
    """
    return the algorithm name encoded into a manifest or tag manifest file
    name, or None if the name is not a manifest file name.
    """
    m = _manfilere.match(os.path.basename(filename))
    if not m:
        return None
    return m.group(2)

class ManifestRecord(object):
    """
    a mapping of file paths to checksums, computed with a single algorithm,
    for the payload files of a bag.  The mapping is backed by a
    manifest-ALGO.txt file in the bag's root directory.

    Paths are always relative to the bag's root directory and use '/' as
    the delimiter (e.g. "data/trial1.json").
    """
    prefix = MANIFEST_PREFIX

    def __init__(self, bagdir, algorithm, encoding=DEFAULT_FILE_ENCODING,
                 registry=None):
        """
        load the manifest for the given algorithm.  If the manifest file
        does not exist yet but the bag's directory does, an empty manifest
        file is created.

        :param str bagdir:     the bag's root directory
        :param str algorithm:  the canonical name of the checksum algorithm
        :param str encoding:   the encoding for reading and writing the
                               manifest file
        :param HashRegistry registry:  the registry to use for computing
                               checksums; if None, a default one is created.
        """
        if registry is None:
            registry = HashRegistry()
        self._bagdir = os.path.abspath(bagdir)
        self._reg = registry
        self.encoding = encoding
        self.algorithm = algorithm.lower()
        self.data = {}

        if os.path.exists(self.filename):
            self.read()
        elif os.path.isdir(self._bagdir):
            touch(self.filename)

    @property
    def bagdir(self):
        """
        the bag's root directory
        """
        return self._bagdir

    @property
    def filename(self):
        """
        the full path to the manifest file
        """
        return os.path.join(self._bagdir, self.basename)

    @property
    def basename(self):
        """
        the name of the manifest file, without a directory
        """
        return "{0}-{1}.txt".format(self.prefix, self.algorithm)

    def read(self):
        """
        (re-)load the checksums from the manifest file.  A missing file is
        treated as an empty manifest.
        :return:  the loaded mapping of paths to checksums
        """
        manifest = {}
        if os.path.exists(self.filename):
            for line in read_lines(self.filename, self.encoding):
                line = line.strip()
                if not line:
                    continue
                parts = line.split(None, 1)
                if len(parts) != 2:
                    LOGGER.warning("%s: skipping invalid manifest entry: %s",
                                   self.basename, line)
                    continue
                manifest[parts[1].lstrip('*')] = parts[0].lower()

        self.data = manifest
        return manifest

    def write(self):
        """
        write the current checksums to the manifest file, sorted by path
        """
        lines = ["{0} {1}\n".format(self.data[p], p) for p in sorted(self.data)]
        write_file_text(self.filename, self.encoding, "".join(lines))

    def clear(self):
        """
        remove all entries, both in memory and on disk.
        """
        self.data = {}
        write_file_text(self.filename, self.encoding, "")

    def update(self, file_list):
        """
        replace the contents of this manifest with the checksums of the
        given files and save them to disk.  Files that do not exist are
        skipped; entries for files not in the list are dropped.

        :param list file_list:  the files to include, given either as
                                absolute paths below the bag's root directory
                                or as paths relative to it
        :return:  the new mapping of paths to checksums
        """
        csums = {}
        for filepath in file_list:
            fullpath = self._full_path(filepath)
            if os.path.isfile(fullpath):
                csums[self.make_relative(fullpath)] = \
                                        self.calculate_hash(fullpath)
        self.data = csums
        self.write()
        return dict(csums)

    def calculate_hash(self, filepath):
        """
        return the checksum of a file computed with this manifest's algorithm
        """
        return self._reg.file_digest(self.algorithm, self._full_path(filepath))

    def get_hash(self, filepath):
        """
        return the recorded checksum for a file or None if the file is not
        in the manifest.

        :param str filepath:  the file's path, either relative to the bag's
                              root directory or absolute
        """
        if filepath in self.data:
            return self.data[filepath]
        return self.data.get(self.make_relative(filepath))

    def get_data(self):
        """
        return a copy of the mapping of paths to checksums
        """
        return dict(self.data)

    def set_hash_encoding(self, algorithm):
        """
        switch this manifest to a different algorithm, renaming its file
        accordingly.  The recorded checksums are not recomputed; call
        update() to do so.  The caller is responsible for ensuring the
        algorithm is supported.
        """
        oldname = self.filename
        self.algorithm = algorithm.lower()
        if oldname != self.filename and os.path.exists(oldname):
            os.rename(oldname, self.filename)

    def delete(self):
        """
        remove the manifest file from disk and forget its contents
        """
        if os.path.exists(self.filename):
            os.remove(self.filename)
        self.data = {}

    def validate(self, errors):
        """
        check that the manifest file exists, that every file it lists exists,
        and that each file's checksum matches the recorded one.  Problems
        are appended to errors; checking continues past the first problem
        except when the manifest file itself is missing.

        :param list errors:  the list to append ValidationError records to
        :return:  True if no problems were found
        """
        nerrs = len(errors)

        if not os.path.exists(self.filename):
            errors.append(StructuralError(self.basename,
                                          self.basename + " does not exist."))
            return False

        for path in sorted(self.data):
            fullpath = self._full_path(path)
            if not os.path.isfile(fullpath):
                errors.append(MissingFileError(path))
                continue

            found = self.calculate_hash(fullpath)
            if found != self.data[path].lower():
                LOGGER.warning("%s: %s checksum mismatch (expected %s, found %s)",
                               path, self.algorithm, self.data[path], found)
                errors.append(ChecksumMismatchError(path, self.algorithm,
                                                    self.data[path], found))

        return nerrs == len(errors)

    def make_relative(self, filepath):
        """
        convert an absolute path below the bag's root directory into a
        '/'-delimited path relative to it.  A path that is not absolute
        is returned unchanged.
        """
        if not os.path.isabs(filepath):
            return filepath
        rel = os.path.relpath(filepath, self._bagdir)
        return '/'.join(rel.split(os.sep))

    def _full_path(self, filepath):
        if os.path.isabs(filepath):
            return filepath
        return os.path.join(self._bagdir, *filepath.split('/'))

    def __len__(self):
        return len(self.data)

    def __contains__(self, filepath):
        return self.get_hash(filepath) is not None

    def __repr__(self):
        return "{0}({1!r})".format(type(self).__name__, self.filename)

class TagManifestRecord(ManifestRecord):
    """
    a mapping of file paths to checksums for the tag files of a bag
    (bagit.txt, bag-info.txt, fetch.txt and the payload manifests), backed
    by a tagmanifest-ALGO.txt file.
    """
    prefix = TAGMANIFEST_PREFIX
