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

Requests and responses.

A `Request` is one HTTP request. What varies between methods is expressed by
what the request carries rather than by subclassing: the `method` tag, an
optional `body` (`crackle.fields.FormBody`, `RawBody` or `FileBody`),
`credentials` and a `proxy`.

"""

from email.message import Message
import logging
import os
import posixpath
from urllib.parse import quote, urlsplit, urlunsplit

from crackle.fields import Parameters
from crackle.multi import Handle, E_OK, strerror
from crackle.requester import Requester, RequestError

log = logging.getLogger(__name__)


class ValidationError(Exception):
    """An Exception raised when a request is not fit to be sent."""
    pass


class ResponseWriteError(IOError):
    """An Exception raised when a response body cannot be written to disk."""
    pass


class Headers(object):

    """Request headers, looked up without regard to case."""

    def __init__(self, headers=None):
        self._headers = {}
        if headers is not None:
            for name, value in dict(headers).items():
                self[name] = value

    @staticmethod
    def format(name):
        """Title-cases a header name, as in ``Content-Type``."""
        return '-'.join(piece.capitalize() for piece in name.split('-'))

    def __len__(self):
        return len(self._headers)

    def __contains__(self, name):
        return name.lower() in self._headers

    def __getitem__(self, name):
        return self._headers[name.lower()]

    def __setitem__(self, name, value):
        value = str(value)
        for text in (name, value):
            if '\r' in text or '\n' in text:
                raise ValidationError('Header %r contains a line break' % name)
        self._headers[name.lower()] = value

    def __delitem__(self, name):
        del self._headers[name.lower()]

    def get(self, name, default=None):
        return self._headers.get(name.lower(), default)

    def copy(self):
        headers = Headers()
        headers._headers = dict(self._headers)
        return headers

    def lines(self):
        """Returns ``(Name, value)`` pairs ready to send."""
        return [(self.format(name), value) for name, value in self._headers.items()]


class Request(object):

    """An HTTP request.

    Requests can be sent on their own with `fire()`, or queued on a
    `crackle.requester.Requester` to run in parallel with others. Either way,
    once the request completes its `callback` (if any) is called with the
    request as its only argument, and `response` or `error` describes what
    happened.

    """

    METHODS = ('GET', 'POST', 'PUT', 'DELETE', 'HEAD')

    def __init__(self, url=None, method='GET', body=None, callback=None):
        method = method.upper()
        if method not in self.METHODS:
            raise ValueError('Unsupported request method %r' % method)
        self.method = method
        self.handle = Handle()
        self.parameters = Parameters()
        self.headers = Headers()
        self.body = body
        self.credentials = None
        self.proxy = None
        self.timeout = None
        self.verify = True
        self.follow_location = True
        self.max_redirects = 5
        self.callback = callback

        # None until fired; then False on success or the error message.
        self.error = None
        self.result = None
        self._response = None
        self._url = None
        self._finalized = False
        if url is not None:
            self.url = url

    def __repr__(self):
        return '<%s %s %s>' % (type(self).__name__, self.method, self.url)

    @property
    def url(self):
        """The URL to request, including the query string built from
        `parameters`."""
        if self._url is None:
            return None
        query_string = self.parameters.query_string
        if not query_string:
            return self._url
        return '%s?%s' % (self._url, query_string)

    @url.setter
    def url(self, url):
        parts = urlsplit(url)
        if not parts.scheme or not parts.netloc:
            raise ValueError('The supplied URL is invalid: %r' % url)
        netloc = parts.netloc
        try:
            netloc.encode('ascii')
        except UnicodeEncodeError:
            try:
                netloc = netloc.encode('idna').decode('ascii')
            except UnicodeError:
                raise ValueError('The supplied URL has an invalid host: %r' % url)
        if parts.query:
            self.parameters.parse(parts.query)
        # Existing escapes are kept; anything else outside ASCII is escaped.
        path = quote(parts.path, safe="/%:@!$&'()*+,;=~")
        self._url = urlunsplit((parts.scheme, netloc, path, '', ''))

    @property
    def callback(self):
        return self._callback

    @callback.setter
    def callback(self, callback):
        if callback is not None and not callable(callback):
            raise TypeError('The request callback must be callable')
        self._callback = callback

    def is_fired(self):
        return self.error is not None

    def failed(self):
        return isinstance(self.error, str)

    def succeeded(self):
        return self.error is False

    @property
    def response(self):
        """The `Response` to this request, firing the request first if it
        hasn't been already.

        Raises a `RequestError` if the request fails.

        """
        if not self.is_fired():
            self.fire()
        if self.failed():
            raise RequestError('The request failed: %s' % self.error, self.result)
        return self._response

    def validate(self):
        """Checks this request for errors before it is sent.

        Raises a `ValidationError` if an issue is found.

        """
        if not self.url:
            raise ValidationError('A request URL must be specified')
        if urlsplit(self.url).scheme.lower() not in ('http', 'https'):
            raise ValidationError('Only http and https URLs can be requested, not %r' % self.url)
        try:
            self.url.encode('ascii')
        except UnicodeEncodeError:
            raise ValidationError('The URL %r must be percent-encoded ASCII' % self.url)
        if self.body is not None and self.method in ('GET', 'HEAD'):
            raise ValidationError('A %s request cannot have a body' % self.method)
        for name, value in self.headers.lines():
            try:
                ('%s: %s' % (name, value)).encode('latin-1')
            except UnicodeEncodeError:
                raise ValidationError('The %s header cannot be sent as Latin-1' % name)

    def finalize(self):
        """Pushes everything about this request to its handle.

        Called once, immediately before the request starts; later calls
        do nothing. Raises a `ValidationError` if the request is malformed.

        """
        if self._finalized:
            return
        self.validate()

        headers = self.headers.copy()
        handle = self.handle
        handle.url = self.url
        handle.method = self.method
        handle.nobody = self.method == 'HEAD'
        handle.body = None
        if self.body is not None:
            content_type, content = self.body.encode()
            if content_type and 'content-type' not in headers:
                headers['Content-Type'] = content_type
            handle.body = content
        handle.headers = headers.lines()
        handle.auth = None
        if self.credentials is not None:
            self.credentials.add_to(handle)
        handle.timeout = self.timeout
        handle.verify = self.verify
        handle.follow_location = self.follow_location
        handle.max_redirects = self.max_redirects
        handle.proxy = None
        if self.proxy is not None:
            self.proxy.add_to(handle)
        self._finalized = True

    def complete(self, result):
        """Builds the response and runs the callback for this request.

        Called once the request has finished, with one of the
        ``crackle.multi.E_*`` result codes.

        """
        self.result = result
        if result == E_OK:
            self.error = False
            self._response = Response.from_handle(self.handle)
        else:
            self.error = strerror(result)
            if self.handle.detail:
                self.error = '%s (%s)' % (self.error, self.handle.detail)
            log.debug('%r failed: %s', self, self.error)

        if self.callback is not None:
            self.callback(self)

    def fire(self):
        """Executes this request on its own.

        Raises a `RequestError` if the request fails. To fire many requests at
        once, use a `crackle.requester.Requester`.

        """
        with Requester(1) as requester:
            requester.queue(self)
            requester.fire_all()
        if self.failed():
            raise RequestError('The request failed: %s' % self.error, self.result)


class Response(object):

    """The response to a `Request`.

    `headers` is the `httplib2.Response` for the final response, with
    lower-case header names; `body` is the content as bytes, already decoded
    from any gzip or deflate content encoding.

    """

    def __init__(self, url, headers, body):
        self.url = url
        self.headers = headers
        self.status = headers.status
        self.reason = headers.reason
        self.body = body

    @classmethod
    def from_handle(cls, handle):
        return cls(handle.effective_url, handle.response, handle.content)

    @property
    def charset(self):
        message = Message()
        message['Content-Type'] = self.headers.get('content-type', 'text/plain')
        return message.get_content_charset() or 'utf-8'

    @property
    def text(self):
        """The body decoded to a string using the response's charset."""
        try:
            return self.body.decode(self.charset, 'replace')
        except LookupError:
            return self.body.decode('utf-8', 'replace')

    @property
    def filename(self):
        """The file name the server suggested for this response, or the last
        segment of its URL."""
        disposition = self.headers.get('content-disposition')
        if disposition:
            message = Message()
            message['Content-Disposition'] = disposition
            name = message.get_filename()
            if name:
                return posixpath.basename(name)
        return posixpath.basename(urlsplit(self.url).path)

    def write_to(self, directory, name=None):
        """Writes the body to a file in `directory`, named `name` or else
        `filename`.

        Returns the path written. Raises `ResponseWriteError` if the file
        cannot be written.

        """
        if name is None:
            name = self.filename
        if not name:
            raise ResponseWriteError('No file name was given or suggested for %s' % self.url)
        if not os.path.isdir(directory) or not os.access(directory, os.W_OK):
            raise ResponseWriteError('Insufficient permissions to write to %s' % directory)
        path = os.path.join(directory, name)
        try:
            with open(path, 'wb') as f:
                f.write(self.body)
        except OSError as exc:
            raise ResponseWriteError('Failed to write %s: %s' % (path, exc))
        return path
