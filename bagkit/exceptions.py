"""
exceptions that can be raised while reading, checking or updating a bag.

Problems found while checking a bag's integrity (missing files, checksum
mismatches) are not raised; they are logged and returned as results.  The
exceptions here signal structural problems that prevent a bag or one of its
files from being loaded, or misuse of the API.
"""

class BagError(Exception):
    """
    a general exception while working with a bag
    """
    pass

class MalformedDeclaration(BagError):
    """
    the bag declaration (bagit.txt) could not be parsed
    """
    pass

class MalformedVersion(MalformedDeclaration):
    """
    a BagIt version that is not of the form MAJOR.MINOR
    """
    pass

class MalformedEncoding(MalformedDeclaration):
    """
    the tag-file encoding line of the declaration is missing or malformed
    """
    pass

class ExtraContent(MalformedDeclaration):
    """
    the declaration contains non-blank lines after the encoding line
    """
    pass

class UnsupportedEncoding(BagError):
    """
    a character encoding that this Python installation does not know
    """
    def __init__(self, encoding, message=None):
        self.encoding = encoding
        if not message:
            message = "Unsupported tag file encoding: {0}".format(encoding)
        super(UnsupportedEncoding, self).__init__(message)

class MalformedMetadataLine(BagError):
    """
    a line of bag-info.txt that is not of the form "label: value"
    """
    def __init__(self, line, message=None):
        self.line = line
        if not message:
            message = "Malformed metadata line: {0}".format(line)
        super(MalformedMetadataLine, self).__init__(message)

class InvalidMetadataKey(BagError):
    """
    a metadata key that is empty or not a string
    """
    pass

class UnsupportedAlgorithm(BagError):
    """
    a checksum algorithm that the checksum provider does not implement
    """
    def __init__(self, algorithm, message=None):
        self.algorithm = algorithm
        if not message:
            message = "Unsupported checksum algorithm: {0}".format(algorithm)
        super(UnsupportedAlgorithm, self).__init__(message)

class UnknownAlgorithm(UnsupportedAlgorithm):
    """
    the manifest algorithm could not be determined from a manifest file name
    """
    def __init__(self, filename, message=None):
        self.filename = filename
        if not message:
            message = "Cannot determine manifest algorithm from filename '{0}'"\
                      .format(filename)
        super(UnknownAlgorithm, self).__init__(None, message)

class DuplicatePath(BagError):
    """
    a path that is already listed in a manifest
    """
    def __init__(self, path, manifest, message=None):
        self.path = path
        self.manifest = manifest
        if not message:
            message = "File '{0}' already exists in {1}".format(path, manifest)
        super(DuplicatePath, self).__init__(message)

class UnsafePath(BagError):
    """
    a path that points outside of the bag's root directory
    """
    def __init__(self, path, source=None, message=None):
        self.path = path
        if not message:
            message = 'Path "{0}" is unsafe'.format(path)
            if source:
                message += ' (listed in {0})'.format(source)
        super(UnsafePath, self).__init__(message)

class ComponentNotFound(BagError):
    """
    a required bag file is missing.
    """
    def __init__(self, filepath, message=None):
        """
        initialize the exception with the name of the missing file
        :param str filepath:   the path to the missing file, relative to the
                               bag's root directory.
        :param str message:    the exception's message, overriding the default
                               (generated from the filename)
        """
        self.file = filepath
        if not message:
            message = "Missing required bag file: " + self.file
        super(ComponentNotFound, self).__init__(message)

class InvalidUrl(BagError):
    """
    a fetch URL that is not a well-formed absolute URL
    """
    def __init__(self, url, message=None):
        self.url = url
        if not message:
            message = "Invalid URL {0}".format(url)
        super(InvalidUrl, self).__init__(message)

class MissingFetchPath(BagError):
    """
    a fetch item given without a path
    """
    pass

class MalformedFetchLine(BagError):
    """
    a line of fetch.txt that is not of the form "url size path"
    """
    def __init__(self, line, message=None):
        self.line = line
        if not message:
            message = "Malformed fetch line: {0}".format(line)
        super(MalformedFetchLine, self).__init__(message)

class DownloadFailed(BagError):
    """
    an attempt to retrieve a fetch entry from one URL failed
    """
    def __init__(self, url, message=None):
        self.url = url
        if not message:
            message = "Download failed: {0}".format(url)
        super(DownloadFailed, self).__init__(message)

class DownloadVerificationFailed(DownloadFailed):
    """
    content was retrieved from a URL but did not match the expected size or
    checksum
    """
    pass

class TransportError(DownloadFailed):
    """
    the HTTP collaborator could not retrieve a URL (connection problem,
    timeout, or a non-success status)
    """
    pass

class ReadOnlyBagError(BagError):
    """
    an attempt to change a bag that is only available for reading (e.g. one
    serialized into an archive file)
    """
    pass

class BagValidationError(BagError):
    """
    An exception indicating that the target bag is not compliant with the
    BagIt specification in one or more ways.

    It carries along all of the result details as a ValidationResults
    instance ("results").
    """
    def __init__(self, results):
        self.results = results

        failed = results.failed()
        if len(failed) == 0:
            # shouldn't happen
            msg = "Unknown bag validation failure"
        elif len(failed) == 1:
            msg = failed[0].summary
        else:
            msg = "{0} validation errors detected".format(len(failed))
        self.message = msg
        super(BagValidationError, self).__init__(msg)

    def __str__(self):
        failed = self.results.failed()
        if len(failed) < 2:
            return self.message

        out = self.message
        if len(failed) > 3:
            out += ", including"
        out += ":"
        for f in failed[0:3]:
            out += "\n\n * "+f.description
        return out
