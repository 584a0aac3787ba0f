from unittest import TestLoader, TestSuite

def additional_tests():
    from . import test_adapter

    return TestSuite([TestLoader().loadTestsFromModule(m)
                      for m in [test_adapter]])
