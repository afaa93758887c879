# encoding: utf-8
import os, re, hashlib, tempfile, shutil, logging
import unittest as test

import bagit

from bagman.bag import (Bag, open_bag, create_bag, CREATED,
                        OPEN_FROM_DIRECTORY, OPEN_FROM_ARCHIVE)
from bagman.hashes import HashRegistry
from bagman.access.exceptions import (UnsupportedAlgorithmError,
                                      LastAlgorithmRemovalError,
                                      DuplicateNonRepeatableFieldError,
                                      PayloadFileExistsError, PackagingError,
                                      MissingFileError, ChecksumMismatchError,
                                      StructuralError, BagFormatError,
                                      MetadataError, FetchError)

def sha512(content):
    return hashlib.sha512(content).hexdigest()

class FakeFetcher(object):

    def __init__(self, content):
        self.content = content

    def get(self, url, filepath):
        if url not in self.content:
            raise bagit.BagError("not found: " + url)
        with open(filepath, 'wb') as fd:
            fd.write(self.content[url])

class BagTestBase(test.TestCase):

    def setUp(self):
        self.tempdir = tempfile.mkdtemp(prefix="bagman-test")
        self.bagdir = os.path.join(self.tempdir, "mybag")

    def tearDown(self):
        shutil.rmtree(self.tempdir)

    def path(self, *parts):
        return os.path.join(self.bagdir, *parts)

    def read(self, *parts):
        with open(self.path(*parts)) as fd:
            return fd.read()

    def write(self, content, *parts):
        filepath = self.path(*parts)
        if not os.path.isdir(os.path.dirname(filepath)):
            os.makedirs(os.path.dirname(filepath))
        with open(filepath, 'w') as fd:
            fd.write(content)
        return filepath

class TestCreateBag(BagTestBase):

    def test_default_state(self):
        bag = Bag(self.bagdir)
        self.assertEqual(bag.state, CREATED)
        self.assertTrue(bag.is_extended())
        self.assertFalse(bag.is_compressed())
        self.assertIsNone(bag.get_compression_type())
        self.assertEqual(bag.get_hash_encodings(), ["sha512"])
        self.assertEqual(bag.get_hash_encoding(), "sha512")
        self.assertEqual(bag.get_bag_directory(), os.path.realpath(self.bagdir))

        self.assertTrue(os.path.isdir(self.path("data")))
        self.assertTrue(os.path.isfile(self.path("manifest-sha512.txt")))
        self.assertTrue(os.path.isfile(self.path("tagmanifest-sha512.txt")))
        self.assertTrue(os.path.isfile(self.path("bag-info.txt")))
        self.assertFalse(os.path.exists(self.path("fetch.txt")))
        self.assertEqual(self.read("bagit.txt"),
                 "BagIt-Version: 1.0\nTag-File-Character-Encoding: UTF-8\n")

        info = bag.get_bag_info()
        self.assertEqual(info["version"], "1.0")
        self.assertEqual(info["version_parts"], {"major": 1, "minor": 0})
        self.assertEqual(info["encoding"], "UTF-8")
        self.assertEqual(info["hash"], "sha512")
        self.assertEqual(bag.get_file_encoding(), "UTF-8")
        self.assertEqual(bag.version_info, (1, 0))

        self.assertEqual(len(bag.get_fetch()), 0)
        self.assertEqual(list(bag.get_tag_manifests().keys()), ["sha512"])
        self.assertEqual(bag.get_bag_errors(), [])
        self.assertTrue(bag.is_valid())

    def test_not_extended(self):
        bag = Bag(self.bagdir, extended=False)
        self.assertFalse(bag.is_extended())
        self.assertIsNone(bag.get_fetch())
        self.assertEqual(bag.get_tag_manifests(), {})
        self.assertFalse(os.path.exists(self.path("tagmanifest-sha512.txt")))
        self.assertFalse(os.path.exists(self.path("bag-info.txt")))

        bag.update()
        self.assertFalse(os.path.exists(self.path("bag-info.txt")))

        # metadata is still usable, and written once there is some
        self.assertEqual(bag.get_bag_info_keys(), [])
        bag.set_bag_info_data("Contact-Name", "Gurn")
        bag.update()
        self.assertEqual(self.read("bag-info.txt"), "Contact-Name: Gurn\n")

    def test_bag_info_forces_extended(self):
        bag = Bag(self.bagdir, extended=False,
                  bag_info={"Contact-Name": "Gurn", "Keyword": ["a", "b"]})
        self.assertTrue(bag.is_extended())
        self.assertEqual(bag.get_bag_info_data("Keyword"), ["a", "b"])
        bag.update()
        self.assertEqual(self.read("bag-info.txt"),
                         "Contact-Name: Gurn\nKeyword: a\nKeyword: b\n")

    def test_existing_payload(self):
        self.write("hello", "data", "a.txt")
        bag = Bag(self.bagdir)
        self.assertEqual(bag.state, CREATED)
        self.assertEqual(bag.get_bag_contents(), [self.path("data", "a.txt")])

    def test_on_file(self):
        filepath = os.path.join(self.tempdir, "notabag.txt")
        with open(filepath, 'w') as fd:
            fd.write("hello")
        with self.assertRaises(PackagingError):
            Bag(filepath)

    def test_factories(self):
        bag = create_bag(self.bagdir)
        self.assertEqual(bag.state, CREATED)
        with self.assertRaises(bagit.BagError):
            create_bag(self.bagdir)

        bag = open_bag(self.bagdir)
        self.assertEqual(bag.state, OPEN_FROM_DIRECTORY)
        with self.assertRaises(OSError):
            open_bag(os.path.join(self.tempdir, "goober"))
        with self.assertRaises(bagit.BagError):
            open_bag(self.tempdir)

class TestUpdateValidate(BagTestBase):

    def setUp(self):
        super(TestUpdateValidate, self).setUp()
        self.bag = Bag(self.bagdir)

    def test_single_file(self):
        self.bag.create_file("hello", "data/a.txt")
        self.bag.update()
        self.assertEqual(self.read("manifest-sha512.txt"),
                         sha512(b"hello") + " data/a.txt\n")
        self.assertEqual(self.bag.validate(), [])
        self.assertTrue(self.bag.is_valid())

    def test_tag_manifest(self):
        self.bag.create_file("hello", "data/a.txt")
        self.bag.update()
        tman = self.bag.get_tag_manifests()["sha512"]
        self.assertEqual(sorted(tman.get_data().keys()),
                         ["bag-info.txt", "bagit.txt", "manifest-sha512.txt"])
        with open(self.path("manifest-sha512.txt"), 'rb') as fd:
            self.assertEqual(tman.get_hash("manifest-sha512.txt"),
                             sha512(fd.read()))

        self.bag.get_fetch().add("http://example.com/b.txt", "data/b.txt")
        self.bag.update()
        self.assertIn("fetch.txt", tman)

    def test_idempotent(self):
        self.bag.create_file("hello", "data/a.txt")
        self.bag.create_file("goodbye", "data/sub/b.txt")
        self.bag.set_bag_info_data("Contact-Name", "Gurn")
        self.bag.add_hash_encoding("md5")
        self.bag.update()

        names = ["manifest-sha512.txt", "manifest-md5.txt",
                 "tagmanifest-sha512.txt", "tagmanifest-md5.txt",
                 "bag-info.txt"]
        first = [self.read(n) for n in names]
        self.bag.update()
        self.assertEqual([self.read(n) for n in names], first)
        self.assertEqual(self.bag.validate(), [])

    def test_missing_file(self):
        self.bag.create_file("hello", "data/a.txt")
        self.bag.update()
        with open(self.path("manifest-sha512.txt"), 'a') as fd:
            fd.write(sha512(b"gone") + " data/gone.txt\n")

        errs = self.bag.validate()
        self.assertEqual(errs, [MissingFileError("data/gone.txt")])
        self.assertNotIsInstance(errs[0], ChecksumMismatchError)
        self.assertFalse(self.bag.is_valid())
        self.assertEqual(self.bag.get_bag_errors(), errs)

    def test_checksum_mismatch(self):
        self.bag.create_file("hello", "data/a.txt")
        self.bag.update()
        self.write("changed", "data", "a.txt")

        errs = self.bag.validate()
        self.assertEqual(len(errs), 1)
        self.assertIsInstance(errs[0], ChecksumMismatchError)
        self.assertNotIsInstance(errs[0], StructuralError)
        self.assertEqual(errs[0].location, "data/a.txt")

        # a fresh validation replaces the errors
        self.bag.update()
        self.assertEqual(self.bag.get_bag_errors(validate=True), [])

    def test_structural(self):
        self.bag.update()
        shutil.rmtree(self.path("data"))
        os.remove(self.path("bagit.txt"))
        errs = self.bag.validate()
        self.assertIn(StructuralError("bagit.txt", "bagit.txt does not exist."),
                      errs)
        self.assertIn(StructuralError("data", "data does not exist."), errs)

    def test_new_files_not_in_manifest_until_update(self):
        self.bag.update()
        self.bag.create_file("hello", "a.txt")
        self.assertEqual(self.bag.get_manifests()["sha512"].get_data(), {})
        self.bag.update()
        self.assertEqual(self.bag.get_manifests()["sha512"].get_data(),
                         {"data/a.txt": sha512(b"hello")})

    def test_sanitize(self):
        self.write("1", "data", "has space.txt")
        self.write("2", "data", "backup~")
        self.write("3", "data", "PRN")
        self.write("4", "data", 'quoted "yep" quoted')
        self.write("5", "data", ".hidden")
        self.write("6", "data", "ok.txt")
        self.write("7", "data", "ok.txt~")
        self.bag.update()

        names = sorted(os.listdir(self.path("data")))
        self.assertIn("has_space.txt", names)
        self.assertIn("backup", names)
        self.assertIn("quoted_yep_quoted", names)
        self.assertIn(".hidden", names)
        self.assertIn("ok.txt", names)
        self.assertIn("ok_1.txt", names)
        self.assertTrue([n for n in names if re.match(r'^prn_\d{6}$', n)])
        self.assertEqual(len(names), 7)

        manifest = self.bag.get_manifests()["sha512"]
        self.assertEqual(len(manifest), 6)
        self.assertNotIn("data/.hidden", manifest)
        self.assertEqual(self.bag.validate(), [])

    def test_loc_bagit_interop(self):
        self.bag.create_file("hello", "data/a.txt")
        self.bag.create_file("goodbye", "data/sub/b.txt")
        self.bag.set_bag_info_data("Contact-Name", "Gurn Cranston")
        self.bag.add_hash_encoding("sha256")
        self.bag.update()

        locbag = bagit.Bag(self.bagdir)
        self.assertTrue(locbag.validate())
        self.assertEqual(sorted(locbag.algorithms), ["sha256", "sha512"])
        self.assertEqual(locbag.info["Contact-Name"], "Gurn Cranston")

class TestHashEncodings(BagTestBase):

    def setUp(self):
        super(TestHashEncodings, self).setUp()
        self.bag = Bag(self.bagdir)
        self.bag.create_file("hello", "data/a.txt")

    def test_add_remove_all(self):
        for algorithm in HashRegistry().supported:
            if algorithm == "sha512":
                continue
            self.bag.add_hash_encoding(algorithm)
            self.assertIn(algorithm, self.bag.get_hash_encodings())
            self.assertTrue(self.bag.has_hash_encoding(algorithm))
            self.bag.update()
            self.assertTrue(os.path.isfile(
                        self.path("manifest-{0}.txt".format(algorithm))))
            self.assertTrue(os.path.isfile(
                        self.path("tagmanifest-{0}.txt".format(algorithm))))

            self.bag.remove_hash_encoding(algorithm)
            self.assertNotIn(algorithm, self.bag.get_hash_encodings())
            self.assertFalse(os.path.exists(
                        self.path("manifest-{0}.txt".format(algorithm))))
            self.assertFalse(os.path.exists(
                        self.path("tagmanifest-{0}.txt".format(algorithm))))

        self.assertEqual(self.bag.get_hash_encodings(), ["sha512"])

    def test_add_all(self):
        supported = list(HashRegistry().supported)
        for algorithm in supported:
            self.bag.add_hash_encoding(algorithm)
        self.assertEqual(sorted(self.bag.get_hash_encodings()), sorted(supported))
        self.bag.update()
        self.assertEqual(self.bag.validate(), [])

    def test_tag_manifests_follow_algorithms(self):
        def check():
            self.assertEqual(sorted(self.bag.get_tag_manifests().keys()),
                             sorted(self.bag.get_hash_encodings()))

        self.bag.add_hash_encoding("md5")
        check()
        self.bag.update()
        tman = self.bag.get_tag_manifests()["md5"]
        self.assertIn("manifest-md5.txt", tman)
        self.assertGreater(os.path.getsize(self.path("tagmanifest-md5.txt")), 0)

        self.bag.set_hash_encoding("sha256")
        check()
        self.bag.add_hash_encoding("sha1")
        check()
        self.bag.remove_hash_encoding("sha256")
        check()
        self.assertEqual(self.bag.get_hash_encodings(), ["sha1"])
        for alg in ("md5", "sha256", "sha512"):
            self.assertFalse(os.path.exists(
                        self.path("tagmanifest-{0}.txt".format(alg))))

    def test_deduplicate(self):
        self.bag.add_hash_encoding("SHA512")
        self.assertEqual(self.bag.get_hash_encodings(), ["sha512"])

    def test_remove_last(self):
        with self.assertRaises(LastAlgorithmRemovalError):
            self.bag.remove_hash_encoding("sha512")
        self.assertEqual(self.bag.get_hash_encodings(), ["sha512"])
        self.assertTrue(os.path.isfile(self.path("manifest-sha512.txt")))

        # removing an algorithm not in use is harmless
        self.bag.remove_hash_encoding("md5")
        self.assertEqual(self.bag.get_hash_encodings(), ["sha512"])

    def test_unsupported(self):
        with self.assertRaises(UnsupportedAlgorithmError):
            self.bag.add_hash_encoding("err")
        with self.assertRaises(UnsupportedAlgorithmError):
            self.bag.set_hash_encoding("err")
        with self.assertRaises(UnsupportedAlgorithmError):
            self.bag.check_supported_hash("sha-1")
        self.assertEqual(self.bag.get_hash_encodings(), ["sha512"])

    def test_restricted_registry(self):
        bag = Bag(os.path.join(self.tempdir, "other"),
                  registry=HashRegistry(["sha256", "sha512"]))
        with self.assertRaises(UnsupportedAlgorithmError):
            bag.add_hash_encoding("md5")

    def test_set(self):
        self.bag.add_hash_encoding("md5")
        self.bag.set_hash_encoding("sha256")
        self.assertEqual(self.bag.get_hash_encodings(), ["sha256"])
        self.assertFalse(os.path.exists(self.path("manifest-sha512.txt")))
        self.assertFalse(os.path.exists(self.path("manifest-md5.txt")))
        self.assertFalse(os.path.exists(self.path("tagmanifest-sha512.txt")))

        self.bag.update()
        self.assertEqual(self.read("manifest-sha256.txt"),
                 hashlib.sha256(b"hello").hexdigest() + " data/a.txt\n")
        self.assertEqual(self.bag.get_bag_info()["hash"], "sha256")

class TestBagInfo(BagTestBase):

    def setUp(self):
        super(TestBagInfo, self).setUp()
        self.bag = Bag(self.bagdir)

    def test_accessors(self):
        self.assertFalse(self.bag.has_bag_info_data("Title"))
        self.bag.set_bag_info_data("Title", "My Bag")
        self.bag.set_bag_info_data("Keyword", "a")
        self.bag.set_bag_info_data("Keyword", "b")
        self.assertTrue(self.bag.has_bag_info_data("Title"))
        self.assertFalse(self.bag.has_bag_info_data("title"))
        self.assertTrue(self.bag.has_bag_info_data("title", True))
        self.assertEqual(self.bag.get_bag_info_data("Keyword"), ["a", "b"])
        self.assertEqual(self.bag.get_bag_info_keys(), ["Title", "Keyword"])
        self.assertEqual(dict(self.bag.get_bag_info_data()),
                         {"Title": "My Bag", "Keyword": ["a", "b"]})

        self.bag.clear_bag_info_data("Title")
        self.assertIsNone(self.bag.get_bag_info_data("Title"))
        self.bag.clear_all_bag_info()
        self.assertEqual(self.bag.get_bag_info_keys(), [])

    def test_payload_oxum_exact(self):
        self.bag.set_bag_info_data("Payload-Oxum", "5.1")
        with self.assertRaises(DuplicateNonRepeatableFieldError):
            self.bag.set_bag_info_data("Payload-Oxum", "6.1")
        self.assertEqual(self.bag.get_bag_info_data("Payload-Oxum"), "5.1")

    def test_payload_oxum_cross_case(self):
        self.bag.set_bag_info_data("Payload-Oxum", "5.1")
        self.bag.set_bag_info_data("PAYLOAD-OXUM", "6.1")
        errs = self.bag.validate()
        self.assertEqual(len(errs), 1)
        self.assertIsInstance(errs[0], MetadataError)

    def test_persist(self):
        self.bag.set_bag_info_data("External-Description",
                                   "a long description")
        self.bag.update()
        reopened = Bag(self.bagdir)
        self.assertEqual(reopened.get_bag_info_data("External-Description"),
                         "a long description")

class TestOpenBag(BagTestBase):

    def setUp(self):
        super(TestOpenBag, self).setUp()
        self.write("BagIt-Version: 0.97\nTag-File-Character-Encoding: UTF-8\n",
                   "bagit.txt")
        self.write("hello", "data", "a.txt")
        self.write("Source-Organization: NIST\nExternal-Description: long\n"
                   "  and continued\n", "bag-info.txt")
        self.write(hashlib.md5(b"hello").hexdigest() + " data/a.txt\n",
                   "manifest-md5.txt")
        self.write(hashlib.sha256(b"hello").hexdigest() + " data/a.txt\n",
                   "manifest-sha256.txt")
        self.write("http://example.com/b.txt 7 data/b.txt\n", "fetch.txt")

    def test_open(self):
        bag = Bag(self.bagdir)
        self.assertEqual(bag.state, OPEN_FROM_DIRECTORY)
        self.assertEqual(bag.get_bag_info()["version"], "0.97")
        self.assertEqual(bag.get_hash_encodings(), ["md5", "sha256"])
        self.assertEqual(sorted(bag.get_tag_manifests().keys()),
                         ["md5", "sha256"])
        self.assertEqual(bag.get_bag_info_data("External-Description"),
                         "long and continued")
        self.assertEqual(len(bag.get_fetch()), 1)
        self.assertEqual(bag.get_bag_errors(), [])
        self.assertEqual(bag.validate(), [])

    def test_open_not_extended(self):
        bag = Bag(self.bagdir, extended=False)
        self.assertIsNone(bag.get_fetch())
        self.assertEqual(bag.get_tag_manifests(), {})
        self.assertEqual(bag.get_bag_info_keys(), [])

    def test_open_merges_bag_info(self):
        bag = Bag(self.bagdir, bag_info={"Contact-Name": "Gurn"})
        self.assertEqual(bag.get_bag_info_data("Source-Organization"), "NIST")
        self.assertEqual(bag.get_bag_info_data("Contact-Name"), "Gurn")

    def test_bad_bagit_file(self):
        self.write("BagIt-Version: x.y\nTag-File-Character-Encoding: UTF-8\n",
                   "bagit.txt")
        bag = Bag(self.bagdir)
        self.assertEqual(bag.get_bag_info()["version"], "1.0")
        errs = bag.get_bag_errors()
        self.assertEqual(len(errs), 1)
        self.assertIsInstance(errs[0], BagFormatError)
        self.assertFalse(bag.is_valid())
        self.assertEqual(len(bag.validate()), 1)

    def test_undecodable_bagit_file(self):
        with open(self.path("bagit.txt"), "wb") as fd:
            fd.write(b"BagIt-Version: 1.0\nTag-File-Character-Encoding: \xe9\n")
        bag = Bag(self.bagdir)
        self.assertEqual(bag.get_bag_info()["version"], "1.0")
        self.assertEqual(bag.get_file_encoding(), "UTF-8")
        errs = bag.get_bag_errors()
        self.assertEqual(len(errs), 1)
        self.assertIsInstance(errs[0], BagFormatError)
        self.assertEqual(errs[0].location, "bagit.txt")

        errs = bag.validate()
        self.assertEqual(len(errs), 1)
        self.assertIsInstance(errs[0], BagFormatError)

    def test_repeated_payload_oxum_in_file(self):
        self.write("Payload-Oxum: 5.1\nPayload-Oxum: 6.1\n", "bag-info.txt")
        bag = Bag(self.bagdir)
        self.assertEqual(bag.get_bag_info_data("Payload-Oxum"), ["5.1", "6.1"])
        self.assertEqual(bag.validate(), [])

    def test_unsupported_manifest(self):
        bag = Bag(self.bagdir, registry=HashRegistry(["sha256", "sha512"]))
        self.assertEqual(bag.get_hash_encodings(), ["sha256"])
        errs = bag.get_bag_errors()
        self.assertEqual(len(errs), 1)
        self.assertIsInstance(errs[0], BagFormatError)
        self.assertEqual(errs[0].location, "manifest-md5.txt")

    def test_no_manifest(self):
        os.remove(self.path("manifest-md5.txt"))
        os.remove(self.path("manifest-sha256.txt"))
        bag = Bag(self.bagdir)
        self.assertEqual(bag.get_hash_encodings(), ["sha512"])

    def test_extra_tag_manifest(self):
        self.write("", "tagmanifest-sha1.txt")
        bag = Bag(self.bagdir)
        self.assertEqual(sorted(bag.get_tag_manifests().keys()),
                         ["md5", "sha256"])
        self.assertTrue(os.path.exists(self.path("tagmanifest-sha1.txt")))

    def test_validate_on_open(self):
        os.remove(self.path("data", "a.txt"))
        bag = Bag(self.bagdir, validate=True)
        self.assertEqual(bag.get_bag_errors(),
                         [MissingFileError("data/a.txt"),
                          MissingFileError("data/a.txt")])

    def test_fetch(self):
        fetcher = FakeFetcher({"http://example.com/b.txt": b"goodbye"})
        bag = Bag(self.bagdir, fetcher=fetcher, fetch=True)
        self.assertEqual(self.read("data", "b.txt"), "goodbye")
        self.assertTrue(bag.is_valid())

        bag.fetch(validate=True)
        self.assertEqual(bag.get_manifests()["sha256"].get_hash("data/b.txt"),
                         hashlib.sha256(b"goodbye").hexdigest())
        self.assertTrue(bag.is_valid())

    def test_fetch_failure(self):
        bag = Bag(self.bagdir, fetcher=FakeFetcher({}))
        errs = bag.fetch()
        self.assertEqual(len(errs), 1)
        self.assertIsInstance(errs[0], FetchError)
        self.assertEqual(bag.get_bag_errors(), errs)
        self.assertFalse(os.path.exists(self.path("data", "b.txt")))

    def test_logger(self):
        log = logging.getLogger("bagman.test")
        with self.assertLogs(log, logging.INFO) as cm:
            Bag(self.bagdir, logger=log)
        self.assertTrue(any("Opening bag" in m for m in cm.output))

class TestPayloadFiles(BagTestBase):

    def setUp(self):
        super(TestPayloadFiles, self).setUp()
        self.bag = Bag(self.bagdir)
        self.src = os.path.join(self.tempdir, "src.txt")
        with open(self.src, 'w') as fd:
            fd.write("source")

    def test_add_file(self):
        self.bag.add_file(self.src, "data/src.txt")
        self.bag.add_file(self.src, "pics/copy.txt")
        self.assertEqual(self.read("data", "src.txt"), "source")
        self.assertEqual(self.read("data", "pics", "copy.txt"), "source")
        self.assertEqual(self.bag.get_bag_contents(),
                         [self.path("data", "pics", "copy.txt"),
                          self.path("data", "src.txt")])

    def test_add_missing(self):
        with self.assertRaises(OSError):
            self.bag.add_file(os.path.join(self.tempdir, "goober"), "data/g")

    def test_bad_dest(self):
        with self.assertRaises(ValueError):
            self.bag.add_file(self.src, "data/../../escape.txt")

    def test_create_file(self):
        self.bag.create_file("This is some test content.", "testCreateFile.txt")
        self.bag.create_file(b"\x00\x01", "data/bin/raw.dat")
        self.assertEqual(self.read("data", "testCreateFile.txt"),
                         "This is some test content.")
        with open(self.path("data", "bin", "raw.dat"), 'rb') as fd:
            self.assertEqual(fd.read(), b"\x00\x01")

    def test_uppercase_data_prefix(self):
        self.bag.create_file("content", "DATA/upper.txt")
        self.bag.add_file(self.src, "Data/sub/copy.txt")
        self.assertEqual(self.read("data", "upper.txt"), "content")
        self.assertEqual(self.read("data", "sub", "copy.txt"), "source")
        self.assertEqual(sorted(os.listdir(self.bagdir)),
                         ["bag-info.txt", "bagit.txt", "data",
                          "manifest-sha512.txt", "tagmanifest-sha512.txt"])

    def test_create_duplicate(self):
        self.bag.create_file("content", "testCreateFile.txt")
        with self.assertRaises(PayloadFileExistsError):
            self.bag.create_file("", "data/testCreateFile.txt")
        self.assertEqual(self.read("data", "testCreateFile.txt"), "content")

    def test_manifest_file_names(self):
        self.bag.add_hash_encoding("md5")
        self.assertEqual(self.bag.get_manifest_file_names(),
                         [self.path("manifest-sha512.txt"),
                          self.path("manifest-md5.txt")])

class TestPackage(BagTestBase):

    def setUp(self):
        super(TestPackage, self).setUp()
        self.bag = Bag(self.bagdir, bag_info={"Contact-Name": "Gurn"})
        self.bag.create_file("hello", "data/a.txt")
        self.bag.create_file("goodbye", "data/sub/b.txt")
        self.bag.get_fetch().add("http://example.com/c.txt", "data/c.txt", 3)
        self.bag.add_hash_encoding("sha256")
        self.bag.update()

    def files(self, bagdir):
        out = []
        for root, dirs, files in os.walk(bagdir):
            for f in files:
                out.append(os.path.relpath(os.path.join(root, f), bagdir))
        return sorted(out)

    def check_roundtrip(self, method, destination, expected):
        archfile = self.bag.package(os.path.join(self.tempdir, destination),
                                    method)
        self.assertEqual(archfile, os.path.join(self.tempdir, expected))
        self.assertTrue(os.path.isfile(archfile))

        with Bag(archfile) as bag:
            self.assertEqual(bag.state, OPEN_FROM_ARCHIVE)
            self.assertTrue(bag.is_compressed())
            self.assertEqual(bag.get_compression_type(), method)
            self.assertEqual(os.path.basename(bag.get_bag_directory()),
                             "mybag")
            self.assertEqual(self.files(bag.get_bag_directory()),
                             self.files(self.bagdir))
            for alg in ("sha512", "sha256"):
                self.assertEqual(bag.get_manifests()[alg].get_data(),
                                 self.bag.get_manifests()[alg].get_data())
            self.assertEqual(bag.get_fetch().get_data(),
                             self.bag.get_fetch().get_data())
            self.assertEqual(bag.get_bag_info_data("Contact-Name"), "Gurn")
            self.assertEqual(bag.validate(), [])
            extracted = bag.get_bag_directory()
            self.assertTrue(os.path.isdir(extracted))
        self.assertFalse(os.path.exists(extracted))

    def test_tgz(self):
        self.check_roundtrip("tgz", "out", "out.tgz")

    def test_tar_gz(self):
        self.check_roundtrip("tgz", "out.tar.gz", "out.tar.gz")

    def test_zip(self):
        self.check_roundtrip("zip", "out.zip", "out.zip")

    def test_default_method(self):
        self.assertEqual(self.bag.package(os.path.join(self.tempdir, "out")),
                         os.path.join(self.tempdir, "out.tgz"))

    def test_bad_method(self):
        with self.assertRaises(PackagingError):
            self.bag.package(os.path.join(self.tempdir, "out"), "rar")
        self.assertEqual(sorted(os.listdir(self.tempdir)), ["mybag"])

    def test_cleanup(self):
        archfile = self.bag.package(os.path.join(self.tempdir, "out"), "zip")
        bag = Bag(archfile)
        extracted = bag.get_bag_directory()
        self.assertTrue(os.path.isdir(extracted))
        bag.cleanup()
        self.assertFalse(os.path.exists(extracted))
        bag.cleanup()

    def test_bad_archive(self):
        archfile = os.path.join(self.tempdir, "bad.zip")
        with open(archfile, 'w') as fd:
            fd.write("not a zip file")
        with self.assertRaises(PackagingError):
            Bag(archfile)


if __name__ == '__main__':
    test.main()
