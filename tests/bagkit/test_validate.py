# encoding: utf-8
import os, pdb, tempfile, shutil
import unittest as test

import bagkit.validate as val
from bagkit.bag import Bag, open_bag
from bagkit.exceptions import BagValidationError
from tests.bagkit import mkbag

class TestValidationIssue(test.TestCase):

    def test_ctor(self):
        issue = val.ValidationIssue("A1.1")

        self.assertEqual(issue.label, "A1.1")
        self.assertEqual(issue.type, issue.ERROR)
        self.assertTrue(issue.passed())
        self.assertFalse(issue.failed())
        self.assertEqual(issue.specification, "")
        self.assertEqual(len(issue.comments), 0)

        issue = val.ValidationIssue("A1.1", val.REC,
                                    spec="Bags should be small.",
                                    passed=False)
        self.assertEqual(issue.type, issue.REC)
        self.assertFalse(issue.passed())
        self.assertTrue(issue.failed())
        self.assertEqual(issue.specification, "Bags should be small.")

        issue = val.ValidationIssue("A1.1", val.WARN,
                                    spec="Bags should be small.",
                                    comments=["little", "green"])
        self.assertEqual(issue.type, issue.WARN)
        self.assertEqual(issue.comments, ("little", "green"))

        issue = val.ValidationIssue("A1.1", comments="just one")
        self.assertEqual(issue.comments, ("just one",))

        with self.assertRaises(ValueError):
            val.ValidationIssue("A1.1", 8)

    def test_description(self):
        issue = val.ValidationIssue("A1.1")
        self.assertEqual(issue.summary, "PASSED: A1.1")
        self.assertEqual(str(issue), issue.summary)
        self.assertEqual(issue.description, issue.summary)

        issue = val.ValidationIssue("A1.1", spec="Bags must be valid",
                                    passed=False, comments=["Little", "green"])
        self.assertEqual(issue.summary, "ERROR: A1.1: Bags must be valid")
        self.assertEqual(str(issue), "ERROR: A1.1: Bags must be valid (Little)")
        self.assertEqual(issue.description,
                         "ERROR: A1.1: Bags must be valid\n   Little\n   green")

        issue.type = val.WARN
        self.assertEqual(issue.summary, "WARNING: A1.1: Bags must be valid")

class TestValidationResults(test.TestCase):

    def setUp(self):
        self.res = val.ValidationResults("Life", val.PROB)

    def test_ctor(self):
        self.assertEqual(self.res.target, "Life")
        self.assertEqual(self.res.want, 3)
        self.assertTrue(self.res.want & val.ERROR)
        self.assertTrue(self.res.want & val.WARN)
        self.assertFalse(self.res.want & val.REC)
        self.assertEqual(self.res.results[val.ERROR], [])
        self.assertEqual(self.res.results[val.WARN], [])
        self.assertEqual(self.res.results[val.REC], [])

    def test_applied(self):
        self.res.results[val.ERROR] = "a b c".split()
        self.res.results[val.WARN] = "d e".split()
        self.res.results[val.REC] = "f".split()

        self.assertEqual(self.res.applied(), "a b c d e f".split())
        self.assertEqual(self.res.applied(val.ERROR), "a b c".split())
        self.assertEqual(self.res.applied(val.WARN), "d e".split())
        self.assertEqual(self.res.applied(val.REC), "f".split())
        self.assertEqual(self.res.applied(val.PROB), "a b c d e".split())
        self.assertEqual(self.res.count_applied(), 6)
        self.assertEqual(self.res.count_applied(val.PROB), 5)

    def test_passed_failed(self):
        self.res.results[val.ERROR] = [
            val.ValidationIssue("1", val.ERROR, passed=False),
            val.ValidationIssue("2", val.ERROR, passed=True),
            val.ValidationIssue("3", val.ERROR, passed=False)
        ]
        self.res.results[val.REC] = [
            val.ValidationIssue("4", val.REC, passed=True),
            val.ValidationIssue("5", val.REC, passed=False),
        ]

        self.assertEqual([i.label for i in self.res.failed()], "1 3 5".split())
        self.assertEqual([i.label for i in self.res.passed()], "2 4".split())
        self.assertEqual(self.res.count_failed(val.ERROR), 2)
        self.assertEqual(self.res.count_passed(val.REC), 1)
        self.assertEqual(self.res.count_failed(val.WARN), 0)
        self.assertEqual([i.label for i in self.res.failed(val.PROB)],
                         "1 3".split())

    def test_ok(self):
        self.res.results[val.ERROR] = [
            val.ValidationIssue("1", val.ERROR, passed=True)
        ]
        self.res.results[val.REC] = [
            val.ValidationIssue("4", val.REC, passed=False)
        ]
        self.assertTrue(self.res.ok())
        self.res.want = val.ALL
        self.assertFalse(self.res.ok())

    def test_add_issue(self):
        issue = self.res._err(self.res._issue("stay-awake",
                                              "I must stay awake"),
                              True, "Good job!")
        self.assertEqual(issue.comments, ("Good job!",))
        self.assertEqual(self.res.count_applied(), 1)
        self.assertEqual(self.res.count_passed(), 1)

        self.res._warn(self.res._issue("attention", "I must pay attention"),
                       False, ["Up here!", "Now!"])
        self.assertEqual(self.res.count_applied(val.WARN), 1)
        self.assertEqual(self.res.count_failed(), 1)

        self.res._rec(self.res._issue("smile", "Smile"), False)
        self.assertEqual(self.res.count_failed(val.REC), 1)
        self.assertFalse(self.res.ok())

class TestValidationError(test.TestCase):

    def test_message(self):
        res = val.ValidationResults("bag")
        res._err(res._issue("a", "A must hold"), False, "details")
        ex = BagValidationError(res)
        self.assertIs(ex.results, res)
        self.assertEqual(str(ex), "ERROR: a: A must hold")

        for lab in "b c d".split():
            res._err(res._issue(lab, lab.upper()+" must hold"), False)
        ex = BagValidationError(res)
        self.assertEqual(ex.message, "4 validation errors detected")
        self.assertTrue(str(ex).startswith(
            "4 validation errors detected, including:"))
        self.assertIn("\n\n * ERROR: a: A must hold\n   details", str(ex))
        self.assertNotIn("D must hold", str(ex))

class TestBagValidator(test.TestCase):

    def setUp(self):
        self.tempdir = tempfile.mkdtemp()
        self.bagdir = mkbag.mkbag(os.path.join(self.tempdir, "samplebag"),
                                  algorithms=("md5", "sha256"),
                                  tagalgorithms=("sha256",),
                                  info=[("Contact-Name", "Gurn Cranston")],
                                  oxum=True)

    def tearDown(self):
        shutil.rmtree(self.tempdir)

    def labels(self, issues):
        return [i.label for i in issues]

    def test_valid(self):
        bag = open_bag(self.bagdir)
        try:
            res = val.BagValidator(bag).validate(val.ALL)
            self.assertEqual(self.labels(res.failed()), [])
            self.assertTrue(res.ok())
            self.assertEqual(res.target, str(bag))
            self.assertIn("manifest-md5.txt-valid", self.labels(res.passed()))
            self.assertIn("tagmanifest-sha256.txt-valid",
                          self.labels(res.passed()))
            self.assertIn("Payload-Oxum-match", self.labels(res.passed()))
            self.assertIn("payload-listed", self.labels(res.passed()))
        finally:
            bag.close()

    def test_want(self):
        bag = open_bag(self.bagdir)
        try:
            res = val.BagValidator(bag).validate(val.ERROR)
            self.assertEqual(res.count_applied(val.WARN), 0)
            self.assertEqual(res.count_applied(val.REC), 0)
            self.assertGreater(res.count_applied(val.ERROR), 0)
        finally:
            bag.close()

    def test_problems(self):
        with open(os.path.join(self.bagdir, "data", "hello.txt"), 'wb') as fd:
            fd.write(b"Goodbye world!\n")
        with open(os.path.join(self.bagdir, "data", "extra.txt"), 'wb') as fd:
            fd.write(b"unlisted\n")
        os.remove(os.path.join(self.bagdir, "data", "trial1.json"))

        bag = open_bag(self.bagdir)
        try:
            res = bag.validate()
            self.assertFalse(res.ok())
            failed = self.labels(res.failed())
            self.assertIn("manifest-md5.txt-complete", failed)
            self.assertIn("manifest-md5.txt-valid", failed)
            self.assertIn("manifest-sha256.txt-valid", failed)
            self.assertIn("payload-listed", failed)
            self.assertNotIn("tagmanifest-sha256.txt-valid", failed)

            # Payload-Oxum octets and count both changed
            self.assertIn("Payload-Oxum-match", failed)

            with self.assertRaises(BagValidationError) as cm:
                bag.ensure_valid()
            self.assertIs(type(cm.exception.results), val.ValidationResults)
        finally:
            bag.close()

    def test_no_manifest(self):
        os.remove(os.path.join(self.bagdir, "manifest-md5.txt"))
        os.remove(os.path.join(self.bagdir, "manifest-sha256.txt"))
        bag = open_bag(self.bagdir)
        try:
            res = bag.validate()
            self.assertIn("manifest", self.labels(res.failed()))
            self.assertNotIn("bagit.txt", self.labels(res.failed()))

            # the tag manifest still lists the removed manifests
            self.assertIn("tagmanifest-sha256.txt-complete",
                          self.labels(res.failed()))
        finally:
            bag.close()

    def test_recommendations(self):
        bagdir = mkbag.mkbag(os.path.join(self.tempdir, "plainbag"))
        bag = open_bag(bagdir)
        try:
            res = bag.validate(val.ALL)
            self.assertFalse(res.ok())
            self.assertEqual(self.labels(res.failed()),
                             ["tagmanifest", "Payload-Oxum"])
            self.assertTrue(bag.validate().ok())
        finally:
            bag.close()

if __name__ == '__main__':
    test.main()
