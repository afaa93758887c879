"""
exceptions that can be raised while accessing or updating a bag's contents,
and the error records collected while validating one.

Problems found while validating a bag are never raised; they are collected
as ValidationError instances (following the way the LOC bagit module collects
ManifestErrorDetail instances) so that the bag remains inspectable.
"""
from bagit import BagError

class UnsupportedAlgorithmError(BagError):
    """
    an exception indicating that a requested checksum algorithm is either not
    one of the algorithms allowed by the BagIt specification or cannot be
    computed on this host.
    """
    def __init__(self, algorithm, message=None):
        self.algorithm = algorithm
        if not message:
            message = "The hash algorithm ({0}) is not supported on this system." \
                      .format(algorithm)
        super(UnsupportedAlgorithmError, self).__init__(message)

class DuplicateNonRepeatableFieldError(BagError):
    """
    an exception indicating an attempt to add a second value for a bag-info
    field that must not be repeated (e.g. Payload-Oxum).
    """
    def __init__(self, key, message=None):
        self.key = key
        if not message:
            message = "You cannot add more than one instance of {0} to the " \
                      "bag-info.txt".format(key)
        super(DuplicateNonRepeatableFieldError, self).__init__(message)

class LastAlgorithmRemovalError(BagError):
    """
    an exception indicating an attempt to remove the only remaining payload
    manifest algorithm from a bag.
    """
    def __init__(self, algorithm, message=None):
        self.algorithm = algorithm
        if not message:
            message = "Cannot remove the last hash encoding ({0}), you must " \
                      "add a new one first.".format(algorithm)
        super(LastAlgorithmRemovalError, self).__init__(message)

class PackagingError(BagError):
    """
    an exception indicating that a bag could not be serialized to or read
    from an archive file.
    """
    pass

class PayloadFileExistsError(BagError):
    """
    an exception indicating that a file to be created in the payload already
    exists.
    """
    def __init__(self, filepath, message=None):
        self.file = filepath
        if not message:
            message = "File already exists: '{0}'".format(filepath)
        super(PayloadFileExistsError, self).__init__(message)


class ValidationError(BagError):
    """
    a record of a problem detected while validating or reading a bag.  It
    is collected into a bag's list of errors rather than raised.

    :param str location:  the file or component the problem is associated
                          with, usually a path relative to the bag's root
    :param str message:   a prose description of the problem
    """
    def __init__(self, location, message):
        super(ValidationError, self).__init__(message)
        self.location = location
        self.message = message

    def __str__(self):
        return "{0}: {1}".format(self.location, self.message)

    def __repr__(self):
        return "{0}({1!r}, {2!r})".format(type(self).__name__,
                                          self.location, self.message)

    def __eq__(self, other):
        return type(self) is type(other) and \
               self.location == other.location and \
               self.message == other.message

    def __ne__(self, other):
        return not (self == other)

    def __hash__(self):
        return hash((type(self).__name__, self.location, self.message))

    def to_tuple(self):
        """
        return a (location, message) tuple for this error
        """
        return (self.location, self.message)

class StructuralError(ValidationError):
    """
    a required file or directory is missing from the bag
    """
    pass

class MissingFileError(StructuralError):
    """
    a file listed in a manifest does not exist in the bag
    """
    def __init__(self, location, message="Missing data file."):
        super(MissingFileError, self).__init__(location, message)

class ChecksumMismatchError(ValidationError):
    """
    the checksum recorded in a manifest does not match the file's contents
    """
    def __init__(self, location, algorithm=None, expected=None, found=None,
                 message="Checksum mismatch."):
        super(ChecksumMismatchError, self).__init__(location, message)
        self.algorithm = algorithm
        self.expected = expected
        self.found = found

class BagFormatError(ValidationError):
    """
    a tag file (e.g. bagit.txt) could not be read or parsed as expected
    """
    pass

class MetadataError(ValidationError):
    """
    the bag-info metadata violates a constraint (e.g. a repeated
    non-repeatable field)
    """
    pass

class FetchError(ValidationError):
    """
    a file listed in fetch.txt could not be retrieved
    """
    def __init__(self, location, url, message=None):
        if not message:
            message = "Unable to fetch {0}".format(url)
        super(FetchError, self).__init__(location, message)
        self.url = url
