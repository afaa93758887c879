"""
The modules in this package provide access to the individual parts of a
bag: its checksum manifests, its bag-info metadata, its fetch list, and its
serialized (archive) form.  The Bag class in bagman.bag ties them together.
"""
