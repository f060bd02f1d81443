# Copyright (c) 2009-2010 Six Apart Ltd.
# All rights reserved.
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted provided that the following conditions are met:
#
# * Redistributions of source code must retain the above copyright notice,
#   this list of conditions and the following disclaimer.
#
# * Redistributions in binary form must reproduce the above copyright notice,
#   this list of conditions and the following disclaimer in the documentation
#   and/or other materials provided with the distribution.
#
# * Neither the name of Six Apart Ltd. nor the names of its contributors may
#   be used to endorse or promote products derived from this software without
#   specific prior written permission.
#
# THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS"
# AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE
# IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE
# ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR CONTRIBUTORS BE
# LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR
# CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF
# SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS
# INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN
# CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE)
# ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.

"""

The multiplex engine drives many HTTP exchanges from a single thread through
libcurl's multi interface.

Each exchange is described by a `Handle`, which owns a `pycurl.Curl` easy
handle. Handles are registered with a `Multi`, which wraps a
`pycurl.CurlMulti`: `Multi.perform()` advances every transfer as far as it
can without blocking, `Multi.info_read()` reports the ones that finished,
and `Multi.select()` sleeps until one of their sockets is ready.

Nothing here knows about queues or parallel limits; that is the job of
`crackle.requester.Requester`.

"""

from collections import deque, namedtuple
from io import BytesIO
import logging

import httplib2
import pycurl

import crackle

log = logging.getLogger(__name__)

# Statuses returned by `Multi.perform()`; libcurl's CURLM_* codes.
M_CALL_MULTI_PERFORM = -1
M_OK = 0
M_BAD_HANDLE = 1
M_BAD_EASY_HANDLE = 2
M_OUT_OF_MEMORY = 3
M_INTERNAL_ERROR = 4
M_ADDED_ALREADY = 7

MULTI_ERRORS = {
    M_CALL_MULTI_PERFORM: 'Please call perform() again immediately.',
    M_OK: 'No error.',
    M_BAD_HANDLE: 'The multi handle is not valid (it may have been closed).',
    M_BAD_EASY_HANDLE: 'The handle is not valid or not registered with this multi handle.',
    M_OUT_OF_MEMORY: 'The multi handle ran out of memory.',
    M_INTERNAL_ERROR: 'An internal error occurred in the multi handle.',
    M_ADDED_ALREADY: 'The handle is already registered with a multi handle.',
}

# Terminal result codes of a single handle; libcurl's CURLE_* codes.
E_OK = 0
E_UNSUPPORTED_PROTOCOL = 1
E_URL_MALFORMAT = 3
E_COULDNT_RESOLVE_PROXY = 5
E_COULDNT_RESOLVE_HOST = 6
E_COULDNT_CONNECT = 7
E_PARTIAL_FILE = 18
E_WRITE_ERROR = 23
E_OPERATION_TIMEDOUT = 28
E_SSL_CONNECT_ERROR = 35
E_BAD_FUNCTION_ARGUMENT = 43
E_TOO_MANY_REDIRECTS = 47
E_GOT_NOTHING = 52
E_SEND_ERROR = 55
E_RECV_ERROR = 56
E_PEER_FAILED_VERIFICATION = 60
E_BAD_CONTENT_ENCODING = 61
E_LOGIN_DENIED = 67

ERRORS = {
    E_OK: 'No error.',
    E_UNSUPPORTED_PROTOCOL: 'The URL uses a protocol that is not supported.',
    E_URL_MALFORMAT: 'The URL was not properly formatted.',
    E_COULDNT_RESOLVE_PROXY: "Couldn't resolve proxy.",
    E_COULDNT_RESOLVE_HOST: "Couldn't resolve host.",
    E_COULDNT_CONNECT: 'Failed to connect to host or proxy.',
    E_PARTIAL_FILE: 'The transfer was shorter than the server said it would be.',
    E_WRITE_ERROR: 'Failed writing received data.',
    E_OPERATION_TIMEDOUT: 'Operation timed out.',
    E_SSL_CONNECT_ERROR: 'A problem occurred somewhere in the SSL/TLS handshake.',
    E_BAD_FUNCTION_ARGUMENT: 'The request could not be configured.',
    E_TOO_MANY_REDIRECTS: 'Too many redirects.',
    E_GOT_NOTHING: 'Nothing was returned from the server.',
    E_SEND_ERROR: 'Failed sending network data.',
    E_RECV_ERROR: 'Failure with receiving network data.',
    E_PEER_FAILED_VERIFICATION: "The remote server's SSL certificate was deemed not OK.",
    E_BAD_CONTENT_ENCODING: 'Unrecognized or broken content encoding.',
    E_LOGIN_DENIED: 'The remote server denied login.',
}


def strerror(code):
    """Returns the message describing a handle result code."""
    return ERRORS.get(code, 'Unknown error.')


def multi_strerror(status):
    """Returns the message describing a `Multi.perform()` status."""
    return MULTI_ERRORS.get(status, 'Unknown error.')


def _status(exc, default=M_INTERNAL_ERROR):
    """Returns the libcurl code carried by a `pycurl.error`."""
    if exc.args and isinstance(exc.args[0], int):
        return exc.args[0]
    return default


class MultiError(Exception):
    """An Exception raised when a `Multi` is used incorrectly."""
    def __init__(self, status):
        self.status = status
        super(MultiError, self).__init__(multi_strerror(status))


class TransferError(Exception):
    """An Exception raised when a handle cannot be configured for its
    transfer."""
    def __init__(self, code, detail=None):
        self.code = code
        self.detail = detail
        super(TransferError, self).__init__(detail or strerror(code))


# How to authenticate: `method` is one of the ``pycurl.HTTPAUTH_*`` flags.
Auth = namedtuple('Auth', 'method username password')

# `kind` is one of the ``pycurl.PROXYTYPE_*`` constants; `auth` an `Auth`.
Proxy = namedtuple('Proxy', 'host port kind tunnel auth')


class Handle(object):

    """A single HTTP exchange that a `Multi` can drive.

    The public attributes configure the exchange and are set by the caller
    (normally `crackle.requests.Request.finalize()`) before the handle is
    added to a `Multi`:

    * `url`, `method`
    * `headers`, a list of ``(name, value)`` pairs
    * `body`, the request body as bytes, or `None`
    * `nobody`, when set no response body is expected (HEAD)
    * `timeout`, the number of seconds the whole exchange may take
    * `verify`, whether TLS certificates are checked
    * `follow_location` and `max_redirects`
    * `auth`, an `Auth` tuple or `None`
    * `proxy`, a `Proxy` tuple or `None`

    Once the handle is done, `result` holds one of the ``E_*`` codes and, on
    success, `response` holds an `httplib2.Response` and `content` the
    decoded body.

    """

    def __init__(self):
        self.url = None
        self.method = 'GET'
        self.headers = []
        self.body = None
        self.nobody = False
        self.timeout = None
        self.verify = True
        self.follow_location = True
        self.max_redirects = 5
        self.auth = None
        self.proxy = None
        self.multi = None
        self.curl = pycurl.Curl()
        self.reset()

    def reset(self):
        """Forgets any transfer results so the handle can be performed
        again."""
        self.result = None
        self.detail = None
        self.effective_url = None
        self.response = None
        self.content = None
        self.redirect_count = 0
        self._buffer = BytesIO()
        self._status_line = None
        self._header_lines = []

    @property
    def done(self):
        return self.result is not None

    def close(self):
        """Releases the curl handle. The handle cannot be used afterwards."""
        self.curl.close()

    def _prepare(self):
        """Sets the curl options for a new transfer.

        Raises `TransferError` if the configuration cannot be expressed.

        """
        if not self.url:
            raise TransferError(E_URL_MALFORMAT, 'No URL was set')
        try:
            url = self.url.encode('ascii')
        except UnicodeEncodeError:
            raise TransferError(E_URL_MALFORMAT,
                'The URL %r must be percent-encoded ASCII' % self.url)
        try:
            headers = [('%s: %s' % (name, value)).encode('latin-1')
                for name, value in self.headers]
        except UnicodeEncodeError as exc:
            raise TransferError(E_BAD_FUNCTION_ARGUMENT,
                'A header cannot be sent as Latin-1: %s' % exc)
        if 'expect' not in set(name.lower() for name, value in self.headers):
            # Never wait for "100 Continue" before sending a body.
            headers.append(b'Expect:')

        curl = self.curl
        curl.reset()
        try:
            curl.setopt(pycurl.URL, url)
            curl.setopt(pycurl.PROTOCOLS, pycurl.PROTO_HTTP | pycurl.PROTO_HTTPS)
            curl.setopt(pycurl.REDIR_PROTOCOLS, pycurl.PROTO_HTTP | pycurl.PROTO_HTTPS)
            curl.setopt(pycurl.NOSIGNAL, 1)
            curl.setopt(pycurl.USERAGENT, 'crackle/%s' % crackle.__version__)
            curl.setopt(pycurl.ENCODING, '')
            curl.setopt(pycurl.HTTPHEADER, headers)
            curl.setopt(pycurl.WRITEFUNCTION, self._buffer.write)
            curl.setopt(pycurl.HEADERFUNCTION, self._header)
            self._set_method(curl)
            curl.setopt(pycurl.FOLLOWLOCATION, 1 if self.follow_location else 0)
            curl.setopt(pycurl.MAXREDIRS, self.max_redirects)
            if self.timeout is not None:
                curl.setopt(pycurl.TIMEOUT_MS, int(self.timeout * 1000))
            if not self.verify:
                curl.setopt(pycurl.SSL_VERIFYPEER, 0)
                curl.setopt(pycurl.SSL_VERIFYHOST, 0)
            if self.auth is not None:
                curl.setopt(pycurl.HTTPAUTH, self.auth.method)
                curl.setopt(pycurl.USERNAME, self.auth.username)
                curl.setopt(pycurl.PASSWORD, self.auth.password)
            self._set_proxy(curl)
        except (pycurl.error, TypeError, ValueError) as exc:
            raise TransferError(E_BAD_FUNCTION_ARGUMENT, str(exc))

        req_log = logging.getLogger('.'.join((__name__, 'request')))
        if req_log.isEnabledFor(logging.DEBUG):
            req_log.debug('Sending request:\n%s %s\n%s\n\n%r', self.method, self.url,
                '\n'.join('%s: %s' % pair for pair in self.headers), self.body)

    def _set_method(self, curl):
        if self.nobody or self.method == 'HEAD':
            curl.setopt(pycurl.NOBODY, 1)
            return
        if self.method == 'GET' and self.body is None:
            curl.setopt(pycurl.HTTPGET, 1)
            return
        if self.method != 'POST':
            curl.setopt(pycurl.CUSTOMREQUEST, self.method)
        if self.body is not None or self.method in ('POST', 'PUT'):
            curl.setopt(pycurl.POSTFIELDS, self.body or b'')

    def _set_proxy(self, curl):
        if self.proxy is None:
            # An empty proxy also overrides any http_proxy environment variable.
            curl.setopt(pycurl.PROXY, '')
            return
        curl.setopt(pycurl.PROXY, self.proxy.host)
        curl.setopt(pycurl.PROXYPORT, self.proxy.port)
        curl.setopt(pycurl.PROXYTYPE, self.proxy.kind)
        curl.setopt(pycurl.HTTPPROXYTUNNEL, 1 if self.proxy.tunnel else 0)
        if self.proxy.auth is not None:
            curl.setopt(pycurl.PROXYAUTH, self.proxy.auth.method)
            curl.setopt(pycurl.PROXYUSERNAME, self.proxy.auth.username)
            curl.setopt(pycurl.PROXYPASSWORD, self.proxy.auth.password)

    def _header(self, line):
        line = line.decode('iso-8859-1').rstrip('\r\n')
        if line.startswith('HTTP/'):
            # A new response begins: after a redirect, a CONNECT or a 100.
            self._status_line = line
            self._header_lines = []
        elif line:
            self._header_lines.append(line)

    def _response(self, status):
        info = {}
        for line in self._header_lines:
            name, sep, value = line.partition(':')
            if not sep:
                continue
            name = name.strip().lower()
            value = value.strip()
            if name in info:
                info[name] = '%s, %s' % (info[name], value)
            else:
                info[name] = value
        info['status'] = str(status)
        response = httplib2.Response(info)
        pieces = (self._status_line or '').split(None, 2)
        if len(pieces) == 3:
            response.reason = pieces[2]
        return response

    def _finish(self, code, detail=None, performed=True):
        self.result = code
        self.detail = detail
        self.effective_url = self.url
        if performed:
            self.effective_url = self.curl.getinfo(pycurl.EFFECTIVE_URL) or self.url
            self.redirect_count = self.curl.getinfo(pycurl.REDIRECT_COUNT)
        if code != E_OK:
            log.debug('Transfer of %s failed: %s (%s)', self.effective_url,
                strerror(code), detail)
            return

        self.response = self._response(self.curl.getinfo(pycurl.RESPONSE_CODE))
        self.content = self._buffer.getvalue()
        resp_log = logging.getLogger('.'.join((__name__, 'response')))
        if resp_log.isEnabledFor(logging.DEBUG):
            resp_log.debug('Got response:\n%s\n\n%r',
                '\n'.join([
                    '%s: %s' % (k, v) for k, v in self.response.items()
                ]), self.content)


class Multi(object):

    """Drives any number of `Handle` instances at once from one thread."""

    def __init__(self):
        self._multi = pycurl.CurlMulti()
        self._handles = {}
        # Easy handles added to the curl multi handle, and their `Handle`.
        self._curls = {}
        self._messages = deque()
        self.closed = False

    def __len__(self):
        return len(self._handles)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    @property
    def running(self):
        return sum(1 for handle in self._handles if not handle.done)

    def add_handle(self, handle):
        """Registers `handle` so that `perform()` starts driving it.

        A `MultiError` is raised if this `Multi` has been closed, if `handle`
        is not a `Handle`, or if it is already registered somewhere. A handle
        whose configuration curl cannot accept is registered as already
        finished, with an ``E_*`` result describing the problem.

        """
        if self.closed:
            raise MultiError(M_BAD_HANDLE)
        if not isinstance(handle, Handle):
            raise MultiError(M_BAD_EASY_HANDLE)
        if handle.multi is not None:
            raise MultiError(M_ADDED_ALREADY)
        handle.reset()
        try:
            handle._prepare()
        except TransferError as exc:
            handle.multi = self
            self._handles[handle] = True
            handle._finish(exc.code, exc.detail, performed=False)
            self._messages.append((handle, exc.code))
            return
        try:
            self._multi.add_handle(handle.curl)
        except pycurl.error as exc:
            raise MultiError(_status(exc, M_BAD_EASY_HANDLE))
        handle.multi = self
        self._handles[handle] = True
        self._curls[handle.curl] = handle

    def remove_handle(self, handle):
        """Deregisters `handle`, abandoning its transfer if it is not done."""
        if self.closed:
            raise MultiError(M_BAD_HANDLE)
        if handle not in self._handles:
            raise MultiError(M_BAD_EASY_HANDLE)
        del self._handles[handle]
        handle.multi = None
        if self._curls.pop(handle.curl, None) is not None:
            try:
                self._multi.remove_handle(handle.curl)
            except pycurl.error as exc:
                raise MultiError(_status(exc, M_BAD_EASY_HANDLE))
        if self._messages:
            self._messages = deque(message for message in self._messages
                if message[0] is not handle)

    def perform(self):
        """Makes whatever progress is possible on every registered handle.

        Returns a tuple of a status and the number of transfers still
        running. The status is `M_CALL_MULTI_PERFORM` when there is more work
        that can be done immediately, `M_OK` when there is not, and any other
        ``M_*`` status when the engine itself has failed.

        """
        if self.closed:
            return M_BAD_HANDLE, 0
        try:
            return self._multi.perform()
        except pycurl.error as exc:
            log.exception('Multiplex engine failed while performing transfers')
            return _status(exc), self.running
        except MemoryError:
            log.exception('Multiplex engine ran out of memory')
            return M_OUT_OF_MEMORY, self.running

    def info_read(self):
        """Returns the next ``(handle, result)`` completion, or `None`."""
        if not self._messages and self._curls:
            self._collect()
        if self._messages:
            return self._messages.popleft()
        return None

    def _collect(self):
        while True:
            queued, succeeded, failed = self._multi.info_read()
            for curl in succeeded:
                handle = self._curls[curl]
                handle._finish(E_OK)
                self._messages.append((handle, E_OK))
            for curl, code, message in failed:
                handle = self._curls[curl]
                handle._finish(code, message)
                self._messages.append((handle, code))
            if not queued:
                break

    def select(self, timeout=1.0):
        """Waits until a registered transfer can make progress.

        Blocks for at most `timeout` seconds, or less when curl has a timer
        of its own due sooner, and returns the number of ready sockets.
        Returns straight away if there is nothing to wait for.

        """
        if self.closed:
            raise MultiError(M_BAD_HANDLE)
        if self._messages or not any(not handle.done for handle in self._curls.values()):
            return 0
        wait = self._multi.timeout()
        if wait == 0:
            return 0
        if wait > 0:
            timeout = min(timeout, wait / 1000.0)
        return self._multi.select(timeout)

    def close(self):
        """Detaches every handle and releases the curl multi handle.

        The handles themselves stay usable. Calling `close()` again has no
        effect.

        """
        if self.closed:
            return
        for curl in list(self._curls):
            self._multi.remove_handle(curl)
        for handle in self._handles:
            handle.multi = None
        self._handles.clear()
        self._curls.clear()
        self._messages.clear()
        self._multi.close()
        self.closed = True
