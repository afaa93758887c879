from unittest import TestLoader, TestSuite

def additional_tests():
    from . import test_constants, test_hashes, test_utils, test_bag

    suites = [TestLoader().loadTestsFromModule(m)
              for m in (test_constants, test_hashes, test_utils, test_bag)]
    return TestSuite(suites)
