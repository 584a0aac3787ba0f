from unittest import TestLoader, TestSuite

def additional_tests():
    from . import test_declaration, test_metadata, test_manifest, test_fetch

    return TestSuite([TestLoader().loadTestsFromModule(m)
                      for m in [test_declaration, test_metadata, test_manifest,
                                test_fetch]])
