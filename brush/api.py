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

Requests to the Pastebin API.

"""

import logging

from crackle.fields import FormBody
from crackle.requester import RequestError
from crackle.requests import Request

from brush.results import Success, ApiError, TransportError

log = logging.getLogger(__name__)

API_BASE_URL = 'https://pastebin.com/api/'

ERROR_PREFIX = 'Bad API request'


def interpret(request):
    """Returns the result of a fired API `request`."""
    if request.failed():
        return TransportError(request.error)
    body = request.response.text
    if body.startswith(ERROR_PREFIX):
        # The prefix is followed by ", " and the reason.
        return ApiError(body[len(ERROR_PREFIX) + 2:])
    return Success(body)


class ApiRequest(object):

    """A POST to one of the Pastebin API endpoints, signed with a developer
    key."""

    def __init__(self, developer, endpoint, option=None, base_url=None, timeout=None):
        if base_url is None:
            base_url = API_BASE_URL
        self.request = Request(base_url + endpoint, 'POST', body=FormBody())
        self.request.timeout = timeout
        developer.sign(self.variables)
        if option is not None:
            self.set_option(option)

    def __repr__(self):
        return '<ApiRequest %s>' % self.request.url

    @property
    def variables(self):
        """The form variables posted to the endpoint."""
        return self.request.body.variables

    def set_option(self, option):
        self.variables.set('api_option', option)

    def send(self):
        """Sends the request on its own and returns its result."""
        try:
            self.request.fire()
        except RequestError as exc:
            log.debug('%r failed: %s', self, exc)
            return TransportError(str(exc))
        return interpret(self.request)

    def queue(self, requester, callback):
        """Queues the request on `requester`, arranging for `callback` to be
        called with its result once it completes."""
        self.request.callback = lambda request: callback(interpret(request))
        requester.queue(self.request)
