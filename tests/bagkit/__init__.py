from unittest import TestLoader, TestSuite

def additional_tests():
    from . import (test_constants, test_checksums, test_transport,
                   test_validate, test_bag)

    return TestSuite([TestLoader().loadTestsFromModule(m)
                      for m in [test_constants, test_checksums, test_transport,
                                test_validate, test_bag]])
