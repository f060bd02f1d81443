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

"""A local HTTP server for exercising crackle over real sockets."""

import gzip
import logging
import select
import socket
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import parse_qs, urlsplit

log = logging.getLogger(__name__)


class Handler(BaseHTTPRequestHandler):

    protocol_version = 'HTTP/1.1'

    def log_message(self, format, *args):
        log.debug(format, *args)

    def respond(self, body, status=200, content_type='text/plain', headers=()):
        if isinstance(body, str):
            body = body.encode('utf-8')
        self.send_response(status)
        self.send_header('Content-Type', content_type)
        for name, value in headers:
            self.send_header(name, value)
        self.send_header('Content-Length', str(len(body)))
        self.send_header('Connection', 'close')
        self.end_headers()
        if self.command != 'HEAD':
            self.wfile.write(body)
        self.close_connection = True

    def read_body(self):
        length = int(self.headers.get('Content-Length') or 0)
        return self.rfile.read(length) if length else b''

    def route(self):
        parts = urlsplit(self.path)
        query = dict((name, values[0]) for name, values in parse_qs(parts.query).items())
        path = parts.path
        server = self.server

        if path == '/hello':
            return self.respond('Hello, world')

        if path == '/delay':
            with server.lock:
                server.active += 1
                server.max_active = max(server.max_active, server.active)
            try:
                time.sleep(int(query.get('ms', '100')) / 1000.0)
            finally:
                with server.lock:
                    server.active -= 1
            return self.respond('slept %s' % query.get('ms', '100'))

        if path == '/echo':
            body = self.read_body()
            headers = [('X-Echo-' + name, value) for name, value in self.headers.items()]
            head = ('%s %s\n' % (self.command, self.path)).encode('utf-8')
            return self.respond(head + body, headers=headers)

        if path == '/redirect':
            remaining = int(query.get('n', '0'))
            if remaining > 0:
                location = '/redirect?n=%d' % (remaining - 1)
                return self.respond('moved', 302, headers=[('Location', location)])
            return self.respond('landed')

        if path == '/see-other':
            self.read_body()
            return self.respond('see other', 303, headers=[('Location', '/echo')])

        if path == '/gzip':
            return self.respond(gzip.compress(b'compressed content'),
                headers=[('Content-Encoding', 'gzip')])

        if path == '/chunked':
            self.send_response(200)
            self.send_header('Content-Type', 'text/plain')
            self.send_header('Transfer-Encoding', 'chunked')
            self.send_header('Connection', 'close')
            self.end_headers()
            for chunk in (b'first ', b'second ', b'third'):
                self.wfile.write(b'%x\r\n%s\r\n' % (len(chunk), chunk))
            self.wfile.write(b'0\r\n\r\n')
            self.close_connection = True
            return

        if path == '/status':
            code = int(query.get('code', '200'))
            if code in (204, 304):
                self.send_response(code)
                self.send_header('Connection', 'close')
                self.end_headers()
                self.close_connection = True
                return
            return self.respond('status %d' % code, code)

        if path == '/attachment':
            return self.respond('quarterly numbers', headers=[
                ('Content-Disposition', 'attachment; filename="report.txt"')])

        if path == '/hangup':
            self.close_connection = True
            return

        if path.startswith('/raw/'):
            return self.respond('raw %s' % path[len('/raw/'):])

        if path.startswith('/api/'):
            body = self.read_body()
            with server.lock:
                server.api_bodies.append(body)
            if b'name="api_option"\r\n\r\npaste\r\n' in body:
                with server.lock:
                    server.pastes += 1
                    key = 'Paste%d' % server.pastes
                return self.respond('https://pastebin.com/%s' % key)
            return self.respond('Bad API request, invalid api_option')

        return self.respond('not found', 404)

    do_GET = do_POST = do_PUT = do_DELETE = do_HEAD = route

    def do_CONNECT(self):
        host, _, port = self.path.rpartition(':')
        with self.server.lock:
            self.server.tunnels += 1
        upstream = socket.create_connection((host, int(port)))
        self.send_response(200, 'Connection established')
        self.end_headers()
        self.close_connection = True
        sockets = [self.connection, upstream]
        try:
            while True:
                readable, _, _ = select.select(sockets, [], [], 5)
                if not readable:
                    break
                for sock in readable:
                    data = sock.recv(65536)
                    if not data:
                        return
                    other = upstream if sock is self.connection else self.connection
                    other.sendall(data)
        finally:
            upstream.close()


class LocalServer(object):

    """A threaded HTTP server on a free port of 127.0.0.1.

    Besides serving requests it keeps count of how many ``/delay`` requests
    were being handled at once (`max_active`) and how many ``CONNECT``
    tunnels were opened.

    """

    def __init__(self):
        self.httpd = ThreadingHTTPServer(('127.0.0.1', 0), Handler)
        self.httpd.daemon_threads = True
        self.httpd.lock = threading.Lock()
        self.httpd.active = 0
        self.httpd.max_active = 0
        self.httpd.tunnels = 0
        self.httpd.pastes = 0
        self.httpd.api_bodies = []
        self.thread = None

    @property
    def port(self):
        return self.httpd.server_address[1]

    def url(self, path):
        return 'http://127.0.0.1:%d%s' % (self.port, path)

    def start(self):
        self.thread = threading.Thread(target=self.httpd.serve_forever,
            kwargs={'poll_interval': 0.05})
        self.thread.daemon = True
        self.thread.start()

    def stop(self):
        self.httpd.shutdown()
        self.httpd.server_close()
        self.thread.join()


def closed_port():
    """Returns a port on 127.0.0.1 that nothing is listening on."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(('127.0.0.1', 0))
    port = sock.getsockname()[1]
    sock.close()
    return port
