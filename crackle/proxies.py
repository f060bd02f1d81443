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

from crackle.multi import Proxy


class HTTPProxy(object):

    """An HTTP proxy to send a request through.

    Plain HTTP requests are forwarded to the proxy with the full URL in the
    request line. HTTPS requests, and any request when `tunnel` is set, are
    tunnelled through the proxy with ``CONNECT``.

    """

    default_port = 8080

    def __init__(self, address, port=None, tunnel=False, credentials=None):
        self.address = address
        self.port = int(port) if port is not None else self.default_port
        self.tunnel = bool(tunnel)
        self.credentials = credentials

    def kind(self):
        return pycurl.PROXYTYPE_HTTP

    def add_to(self, handle):
        auth = None
        if self.credentials is not None:
            auth = self.credentials.auth()
        handle.proxy = Proxy(self.address, self.port, self.kind(), self.tunnel, auth)


class SOCKS5Proxy(HTTPProxy):

    """A SOCKS5 proxy to send a request through.

    Host names are resolved locally unless `remote_dns` is set, in which case
    the proxy resolves them.

    """

    default_port = 1080

    def __init__(self, address, port=None, credentials=None, remote_dns=False):
        super(SOCKS5Proxy, self).__init__(address, port, credentials=credentials)
        self.remote_dns = remote_dns

    def kind(self):
        if self.remote_dns:
            return pycurl.PROXYTYPE_SOCKS5_HOSTNAME
        return pycurl.PROXYTYPE_SOCKS5
