from unittest import TestLoader, TestSuite

def additional_tests():
    from . import (test_exceptions, test_manifest, test_baginfo, test_fetch,
                   test_archive)

    suites = [TestLoader().loadTestsFromModule(m)
              for m in (test_exceptions, test_manifest, test_baginfo,
                        test_fetch, test_archive)]
    return TestSuite(suites)
