"""
The HTTP collaborator used to retrieve the files listed in a bag's fetch.txt.

Any object with the same head() and get() methods can stand in for the
HttpClient defined here (e.g. to add authentication or to test without a
network).
"""
import logging

import requests

from .constants import DEFAULT_TIMEOUT
from .exceptions import TransportError

log = logging.getLogger(__name__)

class HttpClient(object):
    """
    a minimal client that checks and retrieves URLs using requests.
    """

    def __init__(self, session=None, timeout=DEFAULT_TIMEOUT, verify=True):
        """
        :param requests.Session session:  the session to send requests with;
                             if not given, a new one is created.
        :param float timeout:  the default number of seconds to wait on a
                             request before giving up
        :param verify:       passed to requests: True to check TLS
                             certificates against the default CA bundle,
                             a str path to a CA bundle, or False.
        """
        if session is None:
            session = requests.Session()
        self.session = session
        self.timeout = timeout
        self.verify = verify

    def _send(self, method, url, timeout):
        if timeout is None:
            timeout = self.timeout
        try:
            resp = self.session.request(method, url, timeout=timeout,
                                        verify=self.verify,
                                        allow_redirects=True)
            resp.raise_for_status()
        except requests.RequestException as ex:
            raise TransportError(url, "{0} {1} failed: {2}"
                                 .format(method, url, str(ex)))
        return resp

    def head(self, url, timeout=None):
        """
        request a URL's headers and return the size of its content in bytes,
        or None if the server does not report it.

        :raises TransportError:  if the request fails or times out or the
                                 server does not respond with success
        """
        resp = self._send("HEAD", url, timeout)
        length = resp.headers.get('Content-Length')
        try:
            return int(length)
        except (TypeError, ValueError):
            log.debug("No usable Content-Length for %(url)s", {'url': url})
            return None

    def get(self, url, timeout=None):
        """
        retrieve the content at a URL

        :rtype: bytes
        :raises TransportError:  if the request fails or times out or the
                                 server does not respond with success
        """
        return self._send("GET", url, timeout).content

    def close(self):
        self.session.close()
