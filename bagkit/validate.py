"""
This module provides the infrastructure for reporting the results of checking
a bag against the BagIt rules, along with the validator that applies them.

Each rule applied to a bag is recorded as a ValidationIssue that either passed
or failed.  Issues come in three types: ERROR (a violation of a requirement),
WARN (a violation of a strong suggestion), and REC (an unmet recommendation).
"""
from collections.abc import Sequence

from .exceptions import BagError, BagValidationError

ERROR = 1
WARN  = 2
REC   = 4
ALL   = 7
PROB  = 3
issuetypes = [ ERROR, WARN, REC ]

type_labels = { ERROR: "error", WARN: "warning", REC: "recommendation" }
ERROR_LAB = type_labels[ERROR]
WARN_LAB  = type_labels[WARN]
REC_LAB   = type_labels[REC]

def _as_comments(comments):
    if not comments:
        return []
    if isinstance(comments, str):
        return [ comments ]
    if isinstance(comments, Sequence):
        return list(comments)
    return [ comments ]

class ValidationIssue(object):
    """
    an object capturing the outcome of one rule applied to a bag.  It
    contains attributes describing the type of issue, a label identifying the
    rule, and a prose description of the rule.
    """
    ERROR = issuetypes[0]
    WARN  = issuetypes[1]
    REC   = issuetypes[2]

    def __init__(self, idlabel='', issuetype=ERROR, spec='', passed=True,
                 comments=None):
        self._lab = idlabel
        self._spec = spec
        self.type = issuetype
        self._passed = passed
        self._comm = [str(c) for c in _as_comments(comments)]

    @property
    def label(self):
        """
        A label that identifies the rule that was tested, e.g. "manifest-md5"
        """
        return self._lab
    @label.setter
    def label(self, value):
        self._lab = value

    @property
    def type(self):
        """
        return the issue type, one of ERROR, WARN, or REC
        """
        return self._type
    @type.setter
    def type(self, issuetype):
        if issuetype not in issuetypes:
            raise ValueError("ValidationIssue: not a recognized issue type: "+
                             str(issuetype))
        self._type = issuetype

    @property
    def specification(self):
        """
        the explanation of the requirement or recommendation that the test
        checks for
        """
        return self._spec
    @specification.setter
    def specification(self, text):
        self._spec = text

    def add_comment(self, text):
        """
        attach a comment to this issue.  The comment typically provides some
        context-specific information about how a issue failed (e.g. by
        naming the file that failed).
        """
        self._comm.append(str(text))

    @property
    def comments(self):
        """
        return a tuple of strings giving comments about the issue that are
        context-specific to its application
        """
        return tuple(self._comm)

    def passed(self):
        """
        return True if this test is marked as having passed.
        """
        return self._passed

    def failed(self):
        """
        return True if this test is marked as having failed.
        """
        return not self.passed()

    @property
    def summary(self):
        """
        a one-line description of the issue that was tested.
        """
        status = (self.passed() and "PASSED") or type_labels[self._type].upper()
        out = "{0}: {1}".format(status, self.label)
        if self.specification:
            out += ": {0}".format(self.specification)
        return out

    @property
    def description(self):
        """
        a potentially lengthier description of the issue that was tested.
        It starts with the summary and follows with the attached comments
        providing more details.  Each comment is delimited with a newline;
        A newline is not added to the end of the last comment.
        """
        out = self.summary
        if self._comm:
            out += "\n   "
            out += "\n   ".join(self._comm)
        return out

    def __str__(self):
        out = self.summary
        if self._comm and self._comm[0]:
            out += " ({0})".format(self._comm[0])
        return out

class ValidationResults(object):
    """
    a container for collecting results from validation tests
    """
    ERROR = ERROR
    WARN  = WARN
    REC   = REC
    ALL   = ALL
    PROB  = PROB

    def __init__(self, target, want=ALL):
        """
        initialize an empty set of results for a particular bag

        :param str  target:   a name indicating the bag that is the target of
                              these results
        :param int    want:   the desired types of tests--one of ERROR, WARN,
                              REC, ALL, or PROB--to collect.
                              (ALL=ERROR+WARN+REC, PROB=ERROR+WARN) This
                              controls the result of ok():  if the types
                              indicated by this value all pass, then ok()
                              returns True.
        """
        self.target = target
        self.want    = want

        self.results = {
            ERROR: [],
            WARN:  [],
            REC:   []
        }

    def applied(self, issuetype=ALL):
        """
        return a list of the validation tests that were applied of the
        requested types:
        :param int issuetype:  an bit-wise and-ing of the desired issue types
                               (default: ALL)
        """
        out = []
        if ERROR & issuetype:
            out += self.results[ERROR]
        if WARN & issuetype:
            out += self.results[WARN]
        if REC & issuetype:
            out += self.results[REC]
        return out

    def count_applied(self, issuetype=ALL):
        """
        return the number of validation tests of requested types that were
        applied to the bag.
        """
        return len(self.applied(issuetype))

    def failed(self, issuetype=ALL):
        """
        return the validation tests of the requested types which failed when
        applied to the bag.
        """
        return [issue for issue in self.applied(issuetype) if issue.failed()]

    def count_failed(self, issuetype=ALL):
        return len(self.failed(issuetype))

    def passed(self, issuetype=ALL):
        """
        return the validation tests of the requested types which passed when
        applied to the bag.
        """
        return [issue for issue in self.applied(issuetype) if issue.passed()]

    def count_passed(self, issuetype=ALL):
        return len(self.passed(issuetype))

    def ok(self):
        """
        return True if none of the validation tests of the types specified by
        the constructor's want parameter failed.
        """
        return self.count_failed(self.want) == 0

    def _add_issue(self, issue, type, passed, comments=None):
        """
        add an issue to this result.  The issue will be updated with its
        type set to type and its status set to passed (True) or failed (False).

        :param ValidationIssue issue:  the issue to add
        :param int             type:   the issue type code (ERROR, WARN,
                                         or REC)
        :param bool            passed: either True or False, indicating whether
                                         the issue test passed or failed
        :param comments:  one or more comments to add to the
                                         issue instance.
        :type comments: str or list of str
        """
        issue.type = type
        issue._passed = bool(passed)
        for comm in _as_comments(comments):
            issue.add_comment(comm)
        self.results[type].append(issue)
        return issue

    def _err(self, issue, passed, comments=None):
        """
        add an issue to this result with its type set to ERROR
        """
        return self._add_issue(issue, ERROR, passed, comments)

    def _warn(self, issue, passed, comments=None):
        """
        add an issue to this result with its type set to WARN
        """
        return self._add_issue(issue, WARN, passed, comments)

    def _rec(self, issue, passed, comments=None):
        """
        add an issue to this result with its type set to REC
        """
        return self._add_issue(issue, REC, passed, comments)

    def _issue(self, label, message):
        """
        return a new ValidationIssue instance.  The issue type will be set to
        ERROR and its status, to passed.
        """
        return ValidationIssue(label, ERROR, message, True)

class Validator(object):
    """
    a base class for a class that will apply validation tests to a target
    set at construction.

    This base implementation runs no tests; validate() by default simple returns
    an empty ValidationResults object.  Subclasses should override validate() to
    run its tests and enter the results into a returned ValidationResults object.
    """

    def __init__(self, target):
        """
        initialize the validator

        :param str target:  a name indicating the target bag being validated.
        """
        self.target = target

    def validate(self, want=PROB, results=None):
        """
        run the embeded tests, returning the results.

        :param want    int:  bit-wise and-ed codes indicating which types of
                             test results are desired.  A validator may (but
                             is not required to) use this value to skip
                             execution of certain tests.
        :param results ValidationResults: a ValidationResults to add result
                             information to; if provided, this instance will
                             be the one returned by this method.
        :rtype: ValidationResults:  the results of applying requested validation
                             tests
        """
        out = results
        if not out:
            out = ValidationResults(self.target, want)
        return out

    def is_valid(self, want=PROB):
        """
        run the embedded tests and return True if all tests selected want
        pass.  Return False otherwise.
        """
        results = self.validate(want)
        return results.ok()

    def ensure_valid(self, want=PROB):
        """
        run the (requested) embedded tests; if any of the requested tests fail,
        raise a BagValidationError.

        :raise BagValidationError:  if any of the requested tests fail.
        """
        results = self.validate(want)
        if not results.ok():
            raise BagValidationError(results)
        return results

class BagValidator(Validator):
    """
    A validator that tests whether a given Bag (serialized or otherwise)
    complies with the BagIt rules: the required files are present, every
    manifest lists only the files it may and every listed file exists with
    the recorded checksum.
    """

    def __init__(self, bag):
        """
        :param Bag bag:  the bag to validate; it should be attached to storage
        """
        super(BagValidator, self).__init__(str(bag))
        self.bag = bag

    def _check_structure(self, results, want):
        adapter = self.bag.adapter
        if want & ERROR:
            issue = results._issue("bagit.txt",
                                   "Bag must contain a declaration file")
            results._err(issue, adapter.isfile(self.bag.declaration.filename))

            issue = results._issue("data", "Bag must contain a payload "
                                           "directory named 'data'")
            results._err(issue, adapter.isdir(self.bag.payload_dir))

            issue = results._issue("manifest", "Bag must contain at least "
                                               "one payload manifest")
            results._err(issue, self.bag.count_payload_manifests() > 0)

        if want & REC:
            issue = results._issue("tagmanifest", "Bag should contain at least "
                                                  "one tag manifest")
            results._rec(issue, self.bag.count_tag_manifests() > 0)

            issue = results._issue("Payload-Oxum", "Metadata should include "
                                   "Payload-Oxum")
            results._rec(issue, self.bag.has_metadata_key("Payload-Oxum"))

    def _check_oxum(self, results):
        oxum = self.bag.get_metadata("Payload-Oxum")
        if not oxum or self.bag.has_fetch_file():
            return
        issue = results._issue("Payload-Oxum-match", "Payload-Oxum must match "
                               "the payload's octet and file counts")
        calc = self.bag.calc_oxum()
        comments = None
        if oxum != calc:
            comments = "declared {0}; found {1}".format(oxum, calc)
        results._err(issue, oxum == calc, comments)

    def _check_manifest(self, results, manifest, want, verify):
        check = manifest.check(verify)
        if want & ERROR:
            issue = results._issue(manifest.filename+"-allowed",
                                   "A manifest must only list files of its kind")
            results._err(issue, not check.disallowed,
                         ["{0}: not allowed in {1}".format(p, manifest.filename)
                          for p in check.disallowed])

            issue = results._issue(manifest.filename+"-complete",
                                   "All files listed in a manifest must exist")
            results._err(issue, check.is_complete(),
                         ["{0}: missing".format(p) for p in check.missing])

            if verify:
                issue = results._issue(manifest.filename+"-valid",
                                       "Checksums in a manifest must match "
                                       "the files' content")
                results._err(issue, not check.mismatches,
                             [str(m) for m in check.mismatches])
        return check

    def _check_unlisted(self, results):
        listed = set()
        for alg in self.bag.list_payload_manifests():
            listed.update(self.bag.get_payload_manifest(alg).list_files())
        unlisted = [p for p in self.bag.list_payload_files() if p not in listed]
        issue = results._issue("payload-listed", "Every payload file should "
                               "be listed in the payload manifests")
        results._warn(issue, not unlisted,
                      ["{0}: not in any payload manifest".format(p)
                       for p in unlisted])

    def validate(self, want=PROB, results=None, verify=True):
        """
        apply the BagIt rules to the bag.

        :param bool verify:  if False, skip the checksum comparisons and only
                             check for completeness.
        """
        if not results:
            results = ValidationResults(self.target, want)

        try:
            self._check_structure(results, want)
            if want & ERROR:
                self._check_oxum(results)
            for alg in self.bag.list_payload_manifests():
                self._check_manifest(results,
                                     self.bag.get_payload_manifest(alg),
                                     want, verify)
            for alg in self.bag.list_tag_manifests():
                self._check_manifest(results, self.bag.get_tag_manifest(alg),
                                     want, verify)
            if want & WARN:
                self._check_unlisted(results)
        except BagError as ex:
            issue = results._issue("readable", "Bag must be readable")
            results._err(issue, False, str(ex))

        return results
