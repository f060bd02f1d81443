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

import pycurl

from crackle.multi import Auth


class Credentials(object):

    """A username and password that authenticate a request or a proxy.

    Subclasses name the HTTP authentication scheme curl negotiates. An empty
    username or password is sent as ``X``, which some servers require for
    token-only logins.

    """

    method = None
    scheme = None

    def __init__(self, username, password):
        self.username = username or 'X'
        self.password = password or 'X'

    def __repr__(self):
        return '<%s %s>' % (type(self).__name__, self.username)

    def auth(self):
        return Auth(self.method, self.username, self.password)

    def add_to(self, handle):
        """Authenticates the request performed by `handle`."""
        handle.auth = self.auth()


class BasicCredentials(Credentials):
    """Credentials sent in the clear with HTTP Basic authentication."""
    method = pycurl.HTTPAUTH_BASIC
    scheme = 'Basic'


class DigestCredentials(Credentials):
    """Credentials proven with an HTTP Digest challenge and response."""
    method = pycurl.HTTPAUTH_DIGEST
    scheme = 'Digest'


class NTLMCredentials(Credentials):
    """Credentials proven with an NTLM handshake."""
    method = pycurl.HTTPAUTH_NTLM
    scheme = 'NTLM'
