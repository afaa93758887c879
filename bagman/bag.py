"""
This module provides the Bag class, the main interface for creating, opening,
updating, validating, and packaging bags.

A Bag is bound to a location when it is constructed:
  * if the location is an existing zip or gzipped-tar file, the bag it
    contains is extracted into a temporary directory and opened there;
  * if the location is a directory containing a bagit.txt file, the bag is
    opened in place;
  * otherwise, a new, empty bag is created at the location.

Changes to the payload (via add_file(), create_file(), or directly on disk)
are not reflected in the manifests until update() is called.  Problems
found while reading or validating a bag are not raised; they are collected
as ValidationError records and are available via get_bag_errors().
"""
import os, shutil, logging
from collections import OrderedDict

from bagit import BagError

from .constants import (DEFAULT_HASH_ALGORITHM, DEFAULT_FILE_ENCODING,
                        DEFAULT_BAGIT_VERSION, PAYLOAD_DIR, BAGIT_FILE,
                        BAG_INFO_FILE, FETCH_FILE, MANIFEST_PREFIX,
                        TAGMANIFEST_PREFIX, Version)
from .hashes import HashRegistry
from .utils import (list_files, sanitize_filename, unique_path, touch,
                    read_bagit_file, format_bagit_text, write_file_text,
                    validate_exists)
from .access.manifest import (ManifestRecord, TagManifestRecord,
                              algorithm_from_filename)
from .access.baginfo import BagInfoStore
from .access.fetch import FetchList
from .access.archive import (ArchiveCodec, resolve_source, check_method)
from .access.exceptions import (PayloadFileExistsError, PackagingError,
                                LastAlgorithmRemovalError, BagFormatError)

LOGGER = logging.getLogger(__name__)

OPEN_FROM_DIRECTORY = "open-from-directory"
OPEN_FROM_ARCHIVE = "open-from-archive"
CREATED = "created"

class Bag(object):
    """
    a bag on local disk, either opened from an existing directory or archive
    file or newly created.

    A bag is "extended" when it maintains the optional tag files:  tag
    manifests, bag-info.txt, and fetch.txt.  Bags are extended by default.
    """

    def __init__(self, location, validate=False, extended=True, fetch=False,
                 bag_info=None, registry=None, fetcher=None, codec=None,
                 logger=None):
        """
        open or create a bag at the given location.

        :param str location:  the path to a bag directory or serialized bag
                              file, or the directory where a new bag should
                              be created
        :param bool validate: if True, validate the bag after it is opened
                              or created
        :param bool extended: if True, maintain the tag manifests,
                              bag-info.txt, and fetch.txt files
        :param bool fetch:    if True, download the files listed in the
                              fetch list after the bag is opened
        :param dict bag_info: initial bag-info metadata; providing it makes
                              the bag extended.  When an existing bag is
                              opened, these values are added to the metadata
                              read from its bag-info.txt file.
        :param HashRegistry registry:  the checksum algorithm registry to use;
                              if None, one reflecting this host is created.
        :param fetcher:       the network collaborator for downloading
                              fetch.txt entries (see bagman.access.fetch)
        :param ArchiveCodec codec:  the archive collaborator for opening and
                              packaging serialized bags
        :param Logger logger: the logger to send messages to
        :raises PackagingError:  if location is an archive that cannot be
                              extracted or is a file that is not a
                              recognized archive
        """
        if not location:
            raise ValueError("Bag: location not specified")
        if not logger:
            logger = LOGGER
        if registry is None:
            registry = HashRegistry()
        if codec is None:
            codec = ArchiveCodec()

        self.log = logger
        self.location = location
        self.extended = bool(extended or bag_info is not None)
        self._reg = registry
        self._fetcher = fetcher
        self._codec = codec

        self.version = Version(DEFAULT_BAGIT_VERSION)
        self.encoding = DEFAULT_FILE_ENCODING
        self.manifests = OrderedDict()
        self.tag_manifests = OrderedDict()
        self._fetch = None
        self._info = None
        self._errors = []
        self._bagdir = None
        self.extraction = None

        self.source = resolve_source(location)
        if self.source.is_archive:
            self._open_bag(bag_info)
            self.state = OPEN_FROM_ARCHIVE
        elif os.path.isfile(os.path.join(location, BAGIT_FILE)):
            self._open_bag(bag_info)
            self.state = OPEN_FROM_DIRECTORY
        elif os.path.exists(location) and not os.path.isdir(location):
            raise PackagingError("Not a bag directory or recognized archive "
                                 "file: " + location)
        else:
            self._create_bag(bag_info)
            self.state = CREATED

        if fetch:
            self.fetch()
        if validate:
            self.validate()

    @property
    def bagdir(self):
        """
        the root directory of the bag on local disk.  For a bag opened from
        an archive, this is inside a temporary directory.
        """
        return self._bagdir

    @property
    def bagit_file(self):
        return os.path.join(self._bagdir, BAGIT_FILE)

    @property
    def bag_info_file(self):
        return os.path.join(self._bagdir, BAG_INFO_FILE)

    @property
    def fetch_file(self):
        return os.path.join(self._bagdir, FETCH_FILE)

    @property
    def version_info(self):
        """
        the declared BagIt version as a (major, minor) tuple
        """
        return (self.version.major, self.version.minor)

    def _new_manifest(self, algorithm):
        return ManifestRecord(self._bagdir, algorithm, self.encoding,
                              self._reg)

    def _new_tag_manifest(self, algorithm):
        return TagManifestRecord(self._bagdir, algorithm, self.encoding,
                                 self._reg)

    def _find_manifest_files(self, prefix):
        out = []
        for f in sorted(os.listdir(self._bagdir)):
            if not f.startswith(prefix+'-'):
                continue
            if algorithm_from_filename(f) and \
               os.path.isfile(os.path.join(self._bagdir, f)):
                out.append(f)
        return out

    def _open_bag(self, bag_info=None):
        if self.source.is_archive:
            self.extraction = self._codec.extract(self.source.location,
                                                  self.source.method)
            self._bagdir = os.path.realpath(self.extraction.bagdir)
        else:
            self._bagdir = os.path.realpath(self.location)
        self.log.info("Opening bag at %s", self._bagdir)

        self._errors.extend(self._read_bagit_file())
        self._load_manifests()

        if self.extended:
            self._load_tag_manifests()
            self._load_fetch()
            self._load_bag_info()
            if bag_info:
                for key, value in bag_info.items():
                    if isinstance(value, (list, tuple)):
                        for v in value:
                            self._info.set_value(key, v)
                    else:
                        self._info.set_value(key, value)

    def _read_bagit_file(self):
        version, encoding, errors = read_bagit_file(self.bagit_file)
        self.version = version or Version(DEFAULT_BAGIT_VERSION)
        self.encoding = encoding or DEFAULT_FILE_ENCODING
        return errors

    def _load_manifests(self):
        for filename in self._find_manifest_files(MANIFEST_PREFIX):
            algorithm = algorithm_from_filename(filename)
            if not self._reg.is_supported(algorithm):
                self.log.warning("%s: unsupported hash algorithm; ignoring "
                                 "manifest", filename)
                self._errors.append(BagFormatError(filename,
                                    "Unsupported hash algorithm: " + algorithm))
                continue
            try:
                self.manifests[algorithm.lower()] = \
                                             self._new_manifest(algorithm)
            except (UnicodeError, OSError) as ex:
                self._errors.append(BagFormatError(filename,
                        "Error reading manifest file: {0}".format(str(ex))))

        if not self.manifests:
            self.manifests[DEFAULT_HASH_ALGORITHM] = \
                                   self._new_manifest(DEFAULT_HASH_ALGORITHM)

    def _load_tag_manifests(self):
        for algorithm in self.manifests:
            self.tag_manifests[algorithm] = self._new_tag_manifest(algorithm)

        # tag manifests without a matching payload manifest are left alone
        for filename in self._find_manifest_files(TAGMANIFEST_PREFIX):
            if algorithm_from_filename(filename).lower() not in self.manifests:
                self.log.warning("%s: no matching payload manifest; it will "
                                 "not be updated", filename)

    def _load_fetch(self):
        try:
            self._fetch = FetchList(self.fetch_file, self.encoding,
                                    self._fetcher)
        except (UnicodeError, OSError) as ex:
            self._errors.append(BagFormatError(FETCH_FILE,
                               "Error reading fetch file: {0}".format(str(ex))))

    def _load_bag_info(self):
        self._info = BagInfoStore()
        try:
            self._info.read(self.bag_info_file, self.encoding)
        except (UnicodeError, OSError) as ex:
            self._errors.append(BagFormatError(BAG_INFO_FILE,
                          "Error reading bag info file: {0}".format(str(ex))))

    def _create_bag(self, bag_info=None):
        if not os.path.isdir(self.location):
            os.makedirs(self.location)
        self._bagdir = os.path.realpath(self.location)
        self.log.info("Creating new bag at %s", self._bagdir)

        datadir = os.path.join(self._bagdir, PAYLOAD_DIR)
        if not os.path.isdir(datadir):
            os.mkdir(datadir)
        write_file_text(self.bagit_file, "utf-8",
                        format_bagit_text(self.version.fields, self.encoding))

        self.manifests[DEFAULT_HASH_ALGORITHM] = \
                                   self._new_manifest(DEFAULT_HASH_ALGORITHM)

        if self.extended:
            self.tag_manifests[DEFAULT_HASH_ALGORITHM] = \
                               self._new_tag_manifest(DEFAULT_HASH_ALGORITHM)
            self._fetch = FetchList(self.fetch_file, self.encoding,
                                    self._fetcher)
            touch(self.bag_info_file)
            self._info = BagInfoStore(bag_info)

    def _ensure_info(self):
        if self._info is None:
            self._info = BagInfoStore()
        return self._info

    def _payload_path(self, dest):
        # normalize a destination to a path below the payload directory
        dest = dest.replace(os.sep, '/').lstrip('/')
        prefix = PAYLOAD_DIR + "/"
        if dest.lower().startswith(prefix):
            dest = prefix + dest[len(prefix):]
        else:
            dest = prefix + dest
        parts = [p for p in dest.split('/') if p and p != '.']
        if '..' in parts:
            raise ValueError("Destination path may not contain '..': " + dest)
        return os.path.join(self._bagdir, *parts)

    def _sanitize_payload_names(self):
        for filepath in list_files(self.get_data_directory()):
            name = os.path.basename(filepath)
            clean = sanitize_filename(name)
            if clean == name:
                continue
            newpath = unique_path(os.path.join(os.path.dirname(filepath), clean))
            self.log.info("Renaming payload file %s to %s", name,
                          os.path.basename(newpath))
            os.rename(filepath, newpath)

    def _tag_files(self):
        return [self.bagit_file, self.bag_info_file, self.fetch_file] + \
               [m.filename for m in self.manifests.values()]

    def update(self):
        """
        bring the bag's tag files in line with its payload:  payload file
        names are sanitized, bag-info.txt is written, and the checksums in
        the payload manifests and then the tag manifests are recomputed.
        """
        self.log.debug("Updating bag at %s", self._bagdir)
        for manifest in self.manifests.values():
            manifest.clear()
        for manifest in self.tag_manifests.values():
            manifest.clear()

        self._sanitize_payload_names()

        if self.extended or (self._info is not None and len(self._info) > 0):
            self._ensure_info().write(self.bag_info_file, self.encoding)

        payload = self.get_bag_contents()
        for manifest in self.manifests.values():
            manifest.update(payload)

        if self.tag_manifests:
            tagfiles = self._tag_files()
            for manifest in self.tag_manifests.values():
                manifest.update(tagfiles)

    def validate(self):
        """
        check the bag for structural, checksum, and metadata problems.  The
        bag's list of errors is replaced by the problems found.

        :return:  the list of ValidationError records found
        :rtype: list
        """
        errors = []
        if validate_exists(self.bagit_file, errors):
            errors.extend(read_bagit_file(self.bagit_file)[2])
        validate_exists(self.get_data_directory(), errors)

        for filename in self._find_manifest_files(MANIFEST_PREFIX):
            algorithm = algorithm_from_filename(filename)
            if not self._reg.is_supported(algorithm):
                errors.append(BagFormatError(filename,
                                    "Unsupported hash algorithm: " + algorithm))

        for manifest in self.manifests.values():
            try:
                manifest.read()
            except (UnicodeError, OSError) as ex:
                errors.append(BagFormatError(manifest.basename,
                        "Error reading manifest file: {0}".format(str(ex))))
                continue
            manifest.validate(errors)

        self._ensure_info().validate_non_repeatable(errors)

        if errors:
            self.log.warning("Bag at %s has %d problem(s)", self._bagdir,
                             len(errors))
        self._errors = errors
        return list(errors)

    def is_valid(self):
        """
        return True if the last validation (or the opening of the bag) found
        no problems.  This does not itself validate the bag.
        """
        return not self._errors

    def get_bag_errors(self, validate=False):
        """
        return the problems recorded for this bag.
        :param bool validate:  if True, validate the bag first
        """
        if validate:
            self.validate()
        return list(self._errors)

    def check_supported_hash(self, algorithm):
        """
        :raises UnsupportedAlgorithmError:  if the algorithm cannot be used
        """
        self._reg.check_supported(algorithm.lower())

    def get_hash_encodings(self):
        """
        return the names of the algorithms used by the payload manifests
        """
        return list(self.manifests.keys())

    def get_hash_encoding(self):
        """
        return the first of the algorithms used by the payload manifests
        """
        return next(iter(self.manifests))

    def has_hash_encoding(self, algorithm):
        return algorithm.lower() in self.manifests

    def add_hash_encoding(self, algorithm):
        """
        start maintaining manifests for an additional algorithm.  The new
        manifests are empty until update() is called.  Adding an algorithm
        already in use has no effect.

        :raises UnsupportedAlgorithmError:  if the algorithm cannot be used;
                                 in this case the bag is unchanged.
        """
        algorithm = algorithm.lower()
        self.check_supported_hash(algorithm)
        if algorithm in self.manifests:
            return

        manifest = self._new_manifest(algorithm)
        tagmanifest = None
        if self.extended:
            tagmanifest = self._new_tag_manifest(algorithm)

        self.manifests[algorithm] = manifest
        if tagmanifest is not None:
            self.tag_manifests[algorithm] = tagmanifest

    def remove_hash_encoding(self, algorithm):
        """
        stop maintaining the manifests for an algorithm, deleting their files.
        Removing an algorithm not in use has no effect.

        :raises LastAlgorithmRemovalError:  if it is the only algorithm in use
        """
        algorithm = algorithm.lower()
        if algorithm not in self.manifests:
            return
        if len(self.manifests) < 2:
            raise LastAlgorithmRemovalError(algorithm)
        self._clear_manifest(algorithm)

    def set_hash_encoding(self, algorithm):
        """
        make the given algorithm the only one in use, removing all others.

        :raises UnsupportedAlgorithmError:  if the algorithm cannot be used;
                                 in this case the bag is unchanged.
        """
        algorithm = algorithm.lower()
        self.add_hash_encoding(algorithm)
        for other in [a for a in self.manifests if a != algorithm]:
            self._clear_manifest(other)

    def _clear_manifest(self, algorithm):
        self.manifests.pop(algorithm).delete()
        if algorithm in self.tag_manifests:
            self.tag_manifests.pop(algorithm).delete()

    def add_file(self, src, dest):
        """
        copy a file into the bag's payload.

        :param str src:   the path to the file to copy
        :param str dest:  the destination path relative to the bag's root;
                          "data/" is prepended if it does not start with it.
        :return:  the full path of the copied file
        """
        destpath = self._payload_path(dest)
        parent = os.path.dirname(destpath)
        if not os.path.isdir(parent):
            os.makedirs(parent)
        shutil.copyfile(src, destpath)
        return destpath

    def create_file(self, content, dest):
        """
        write the given content into a new file in the bag's payload.

        :param content:   the file's content as str or bytes; str content
                          is written as UTF-8.
        :param str dest:  the destination path relative to the bag's root;
                          "data/" is prepended if it does not start with it.
        :return:  the full path of the new file
        :raises PayloadFileExistsError:  if the destination already exists
        """
        destpath = self._payload_path(dest)
        if os.path.exists(destpath):
            raise PayloadFileExistsError(dest)
        parent = os.path.dirname(destpath)
        if not os.path.isdir(parent):
            os.makedirs(parent)
        if isinstance(content, str):
            content = content.encode("utf-8")
        with open(destpath, 'wb') as fd:
            fd.write(content)
        return destpath

    def get_bag_contents(self):
        """
        return the full paths of all (non-hidden) files in the payload
        """
        return list_files(self.get_data_directory())

    def get_data_directory(self):
        return os.path.join(self._bagdir, PAYLOAD_DIR)

    def get_bag_directory(self):
        return self._bagdir

    def get_manifest_file_names(self):
        return [m.filename for m in self.manifests.values()]

    def get_manifests(self):
        return dict(self.manifests)

    def get_tag_manifests(self):
        return dict(self.tag_manifests)

    def get_fetch(self):
        """
        return the bag's FetchList or None if the bag is not extended
        """
        return self._fetch

    def get_bag_info(self):
        """
        return a summary of the bag's declaration:  a dictionary with the
        version (as a string and as major and minor parts), the tag file
        encoding, and the comma-separated list of algorithms in use.
        """
        return {
            "version": "{0}.{1}".format(self.version.major, self.version.minor),
            "version_parts": {"major": self.version.major,
                              "minor": self.version.minor},
            "encoding": self.encoding,
            "hash": ",".join(self.manifests.keys())
        }

    def get_file_encoding(self):
        return self.encoding

    def is_extended(self):
        return self.extended

    def is_compressed(self):
        return self.source.is_archive

    def get_compression_type(self):
        """
        return "zip" or "tgz" for a bag opened from an archive, or None
        """
        return self.source.method

    def get_bag_info_data(self, key=None):
        """
        return the value(s) of a bag-info field as a string or a list of
        strings, or None if the field is not set.  If key is None, all the
        metadata is returned as a dictionary.
        """
        info = self._ensure_info()
        if key is None:
            return OrderedDict(info.items())
        return info.get_value(key)

    def set_bag_info_data(self, key, value):
        """
        add a value to a bag-info field; if the field already has a value,
        the new one is appended.

        :raises DuplicateNonRepeatableFieldError: if the field must not repeat
                                                  and already has a value
        """
        self._ensure_info().set_value(key, value)

    def has_bag_info_data(self, key, case_insensitive=False):
        return self._ensure_info().has_key(key, case_insensitive)

    def clear_bag_info_data(self, key):
        self._ensure_info().clear_key(key)

    def clear_all_bag_info(self):
        self._ensure_info().clear()

    def get_bag_info_keys(self):
        return self._ensure_info().keys()

    def fetch(self, validate=False):
        """
        download the files listed in the fetch list that are not yet in the
        bag.  Failures are added to the bag's errors rather than raised.

        :param bool validate:  if True, update and validate the bag afterward
        :return:  the list of FetchError records for failed downloads
        """
        errors = []
        if self._fetch is not None:
            errors = self._fetch.download()
            self._errors.extend(errors)
        if validate:
            self.update()
            self.validate()
        return errors

    def package(self, destination, method="tgz"):
        """
        serialize the bag into an archive file.  The appropriate extension is
        appended to destination if it is missing.  Call update() first to
        ensure the manifests are current.

        :param str destination:  the path of the archive to write
        :param str method:       "tgz" (the default) or "zip"
        :return:  the path of the archive written
        :raises PackagingError:  if the method is not recognized (in which
                                 case nothing is written) or the archive
                                 cannot be written
        """
        method = check_method(method)
        lower = destination.lower()
        if method == "tgz":
            if not lower.endswith(".tgz") and not lower.endswith(".tar.gz"):
                destination += ".tgz"
        elif not lower.endswith("."+method):
            destination += "." + method

        return self._codec.create(self._bagdir, destination, method)

    def cleanup(self):
        """
        remove the temporary directory used to hold the contents of a bag
        opened from an archive.  The bag should not be used afterward.
        """
        if self.extraction:
            self.extraction.cleanup()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.cleanup()
        return False

    def __repr__(self):
        return "Bag({0!r})".format(self.location)

def open_bag(location, **kw):
    """
    open an existing bag from a directory or archive file.  Keyword
    arguments are passed to the Bag constructor.

    :raises OSError:  if nothing exists at the location
    :raises BagError: if the location is a directory that is not a bag
    """
    if not os.path.exists(location):
        raise OSError(2, "Bag not found", location)
    if os.path.isdir(location) and \
       not os.path.isfile(os.path.join(location, BAGIT_FILE)):
        raise BagError("Not a bag directory (missing bagit.txt): " + location)
    return Bag(location, **kw)

def create_bag(location, **kw):
    """
    create a new bag in the given directory, which may already exist (and
    may already contain payload files under data/).  Keyword arguments are
    passed to the Bag constructor.

    :raises BagError: if the location already contains a bag
    """
    if os.path.exists(os.path.join(location, BAGIT_FILE)):
        raise BagError("Bag already exists at " + location)
    return Bag(location, **kw)
